from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from gamesync.models.game import Game


def normalize_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of a game row, frozen at the start of an evaluation."""

    id: str
    game_key: str
    name: str
    sport_type: str
    subsite_key: str
    is_active: bool
    sync_interval_minutes: int
    last_synced_at: Optional[datetime] = None
    current_round: Optional[int] = None
    total_rounds: Optional[int] = None
    round_state: Optional[str] = None
    current_round_start: Optional[datetime] = None
    current_round_end: Optional[datetime] = None
    next_trade_deadline: Optional[datetime] = None
    users_total: Optional[int] = None

    @classmethod
    def from_model(cls, game: Game) -> "GameSnapshot":
        return cls(
            id=game.id,
            game_key=game.game_key,
            name=game.name,
            sport_type=game.sport_type,
            subsite_key=game.subsite_key,
            is_active=bool(game.is_active),
            sync_interval_minutes=game.sync_interval_minutes or 60,
            last_synced_at=normalize_utc(game.last_synced_at),
            current_round=game.current_round,
            total_rounds=game.total_rounds,
            round_state=game.round_state,
            current_round_start=normalize_utc(game.current_round_start),
            current_round_end=normalize_utc(game.current_round_end),
            next_trade_deadline=normalize_utc(game.next_trade_deadline),
            users_total=game.users_total,
        )
