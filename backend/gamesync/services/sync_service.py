from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gamesync.models.element import Element, UserGameStats
from gamesync.models.game import Game, RoundState
from gamesync.models.sync_run import SyncLog
from gamesync.services.budget import BudgetReservation
from gamesync.services.errors import SwushAPIError, is_budget_exhausted
from gamesync.services.game_snapshot import GameSnapshot
from gamesync.services.swush_client import SwushClient


logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100
TRIGGER_KINDS = ("manual", "scheduled")


@dataclass
class SyncResult:
    game_id: str
    game_key: str
    success: bool
    users_synced: int = 0
    elements_synced: int = 0
    error: Optional[str] = None
    skipped: bool = False

    @property
    def failed(self) -> bool:
        return not self.success and not self.skipped

    @property
    def budget_exhausted(self) -> bool:
        return is_budget_exhausted(self.error)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _safe_int(value: Optional[object], default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _optional_int(value: Optional[object]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _current_round(payload: dict) -> Optional[dict]:
    rounds = payload.get("rounds") or []
    current_index = payload.get("currentRoundIndex")
    for entry in rounds:
        if entry.get("index") == current_index:
            return entry
    for entry in rounds:
        if entry.get("state") == RoundState.CURRENT_OPEN.value:
            return entry
    return None


def _chunks(items: list, size: int) -> Iterable[list]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class SyncService:
    """Full sync of one game: details, elements, then every user page."""

    def __init__(
        self,
        session_factory: sessionmaker,
        client_factory: Callable[[], SwushClient],
        game_base_url: str = "",
        batch_size: int = UPSERT_BATCH_SIZE,
    ) -> None:
        self.session_factory = session_factory
        self.client_factory = client_factory
        self.game_base_url = game_base_url.rstrip("/")
        self.batch_size = batch_size

    async def sync_game(
        self,
        game: GameSnapshot,
        trigger_kind: str,
        reservation: BudgetReservation,
    ) -> SyncResult:
        if trigger_kind not in TRIGGER_KINDS:
            raise ValueError(f"Unknown trigger kind: {trigger_kind}")

        logger.info("Starting %s sync for %s", trigger_kind, game.game_key)
        db = self.session_factory()
        try:
            sync_log = self._start_log(db, game.id, trigger_kind)
            try:
                async with self.client_factory() as client:
                    details = await client.get_game(game.subsite_key, game.game_key, reservation)
                    self._apply_game_details(db, game, details)

                    elements = await client.get_elements(game.subsite_key, game.game_key, reservation)
                    elements_synced = self._upsert_elements(db, game.id, elements)

                    users_payload = await client.get_all_users(game.subsite_key, game.game_key, reservation)
                    users_synced = self._upsert_users(db, game.id, users_payload.get("users") or [])

                self._mark_synced(db, game.id)
                db.commit()
            except asyncio.CancelledError:
                db.rollback()
                logger.warning("Sync of %s cancelled after %s calls", game.game_key, reservation.used)
                self._finish_log(db, sync_log, "failed", error="cancelled")
                raise
            except (SwushAPIError, SQLAlchemyError) as exc:
                db.rollback()
                error = str(exc)[:500]
                logger.error("Sync failed for %s: %s", game.game_key, error)
                self._finish_log(db, sync_log, "failed", error=error)
                return SyncResult(game_id=game.id, game_key=game.game_key, success=False, error=error)
            except Exception as exc:
                db.rollback()
                error = (str(exc) or exc.__class__.__name__)[:500]
                logger.error("Unexpected error syncing %s: %s", game.game_key, error, exc_info=True)
                self._finish_log(db, sync_log, "failed", error=error)
                return SyncResult(game_id=game.id, game_key=game.game_key, success=False, error=error)

            self._finish_log(db, sync_log, "completed", users_synced=users_synced, elements_synced=elements_synced)
            logger.info(
                "Completed sync for %s: %s users, %s elements (%s calls used)",
                game.game_key,
                users_synced,
                elements_synced,
                reservation.used,
            )
            return SyncResult(
                game_id=game.id,
                game_key=game.game_key,
                success=True,
                users_synced=users_synced,
                elements_synced=elements_synced,
            )
        finally:
            db.close()

    def _start_log(self, db: Session, game_id: str, trigger_kind: str) -> SyncLog:
        sync_log = SyncLog(game_id=game_id, sync_type=trigger_kind, status="started", started_at=datetime.utcnow())
        db.add(sync_log)
        db.commit()
        db.refresh(sync_log)
        return sync_log

    def _finish_log(
        self,
        db: Session,
        sync_log: SyncLog,
        status: str,
        users_synced: int = 0,
        elements_synced: int = 0,
        error: Optional[str] = None,
    ) -> None:
        sync_log.status = status
        sync_log.users_synced = users_synced
        sync_log.elements_synced = elements_synced
        sync_log.error_message = error
        sync_log.completed_at = datetime.utcnow()
        db.commit()

    def _apply_game_details(self, db: Session, game: GameSnapshot, payload: dict[str, Any]) -> None:
        row = db.query(Game).filter(Game.id == game.id).first()
        if row is None:
            raise SwushAPIError(f"Game {game.game_key} no longer exists")

        current = _current_round(payload) or {}
        rounds = payload.get("rounds") or []
        row.swush_game_id = _optional_int(payload.get("gameId"))
        row.current_round = _safe_int(payload.get("currentRoundIndex"), default=row.current_round or 1)
        row.total_rounds = len(rounds) or row.total_rounds
        row.round_state = current.get("state")
        row.current_round_start = _parse_datetime(current.get("start"))
        row.current_round_end = _parse_datetime(current.get("end"))
        row.next_trade_deadline = _parse_datetime(current.get("tradeCloses"))
        row.users_total = _safe_int(payload.get("userteamsCount"), default=row.users_total or 0)
        if self.game_base_url:
            row.game_url = f"{self.game_base_url}/{game.game_key}"
        db.flush()

    def _mark_synced(self, db: Session, game_id: str) -> None:
        row = db.query(Game).filter(Game.id == game_id).first()
        if row is not None:
            row.last_synced_at = datetime.now(timezone.utc)

    def _upsert_elements(self, db: Session, game_id: str, elements: list[dict]) -> int:
        existing = {
            element.element_id: element
            for element in db.query(Element).filter(Element.game_id == game_id).all()
        }
        synced = 0
        for batch in _chunks(elements, self.batch_size):
            for entry in batch:
                element_id = _optional_int(entry.get("elementId"))
                if element_id is None:
                    continue
                element = existing.get(element_id)
                if element is None:
                    element = Element(game_id=game_id, element_id=element_id)
                    db.add(element)
                    existing[element_id] = element
                element.short_name = entry.get("shortName") or ""
                element.full_name = entry.get("fullName") or element.short_name
                element.team_name = entry.get("teamName") or ""
                element.image_url = entry.get("imageUrl")
                element.popularity = float(entry.get("popularity") or 0)
                element.trend = _safe_int(entry.get("trend"))
                element.growth = _safe_int(entry.get("growth"))
                element.total_growth = _safe_int(entry.get("totalGrowth"))
                element.value = _safe_int(entry.get("value"))
                synced += 1
            db.flush()
        logger.debug("Upserted %s elements for game %s", synced, game_id)
        return synced

    def _upsert_users(self, db: Session, game_id: str, users: list[dict]) -> int:
        # Only users with an external ID can be matched downstream
        users = [user for user in users if user.get("externalId")]
        synced = 0
        now = datetime.utcnow()
        for batch in _chunks(users, self.batch_size):
            external_ids = [str(user["externalId"]) for user in batch]
            existing = {
                stats.external_id: stats
                for stats in db.query(UserGameStats).filter(
                    UserGameStats.game_id == game_id,
                    UserGameStats.external_id.in_(external_ids),
                )
            }
            for user in batch:
                external_id = str(user["externalId"])
                userteam = (user.get("userteams") or [{}])[0] or {}
                stats = existing.get(external_id)
                if stats is None:
                    stats = UserGameStats(game_id=game_id, external_id=external_id)
                    db.add(stats)
                    existing[external_id] = stats
                stats.swush_user_id = _safe_int(user.get("id"))
                stats.team_name = userteam.get("name") or user.get("name")
                stats.score = _safe_int(userteam.get("score"))
                stats.rank = _optional_int(userteam.get("rank"))
                stats.round_score = _safe_int(userteam.get("roundScore"))
                stats.round_rank = _optional_int(userteam.get("roundRank"))
                stats.round_jump = _safe_int(userteam.get("roundJump"))
                stats.injured_count = _safe_int(user.get("injured"))
                stats.suspended_count = _safe_int(user.get("suspended"))
                stats.lineup_element_ids = list(userteam.get("lineupElementIds") or [])
                stats.synced_at = now
                synced += 1
            db.flush()
        logger.debug("Upserted %s users for game %s", synced, game_id)
        return synced
