"""
Budget-aware sync orchestration.

One batch walks the due set computed at batch start, admits each game through
the daily budget, paces upstream calls and aggregates per-game results. Games
are processed strictly one after another.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Awaitable, Callable, Iterable, Optional

from sqlalchemy.orm import Session, sessionmaker

from gamesync.config import Settings, get_settings
from gamesync.database import SessionLocal
from gamesync.models.sync_run import SyncRun
from gamesync.services.budget import BudgetReservation, BudgetTracker
from gamesync.services.due_set import fetch_candidate_games, select_due
from gamesync.services.errors import BatchAlreadyRunning, InsufficientBudgetError, SyncCooldownError
from gamesync.services.game_snapshot import GameSnapshot, normalize_utc
from gamesync.services.priority import DEFAULT_WINDOWS, CriticalWindows, round_minutes
from gamesync.services.swush_client import create_swush_client
from gamesync.services.sync_service import SyncResult, SyncService


logger = logging.getLogger(__name__)

BATCH_JOB = "scheduled_sync"

SyncOperation = Callable[[GameSnapshot, str, BudgetReservation], Awaitable[SyncResult]]


class BatchStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    BUDGET_EXHAUSTED = "budget_exhausted"
    TIMED_OUT = "timed_out"
    CRASHED = "crashed"


@dataclass
class BatchReport:
    status: BatchStatus
    started_at: datetime
    duration_seconds: float
    games_checked: int = 0
    results: list[SyncResult] = field(default_factory=list)
    remaining_budget: Optional[int] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def skipped(self) -> int:
        return sum(1 for result in self.results if result.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if result.failed)

    @property
    def not_attempted(self) -> int:
        if self.status == BatchStatus.CRASHED:
            return 0
        return max(self.games_checked - len(self.results), 0)

    @property
    def users_synced(self) -> int:
        return sum(result.users_synced for result in self.results)

    @property
    def elements_synced(self) -> int:
        return sum(result.elements_synced for result in self.results)

    @property
    def success(self) -> bool:
        if self.status == BatchStatus.CRASHED:
            return False
        return self.failed == 0

    @property
    def message(self) -> str:
        if self.status == BatchStatus.CRASHED:
            return f"Sync job failed: {self.error}"
        if self.games_checked == 0:
            return "No games due for sync"
        message = f"Synced {self.succeeded}/{self.games_checked} games"
        if self.status == BatchStatus.BUDGET_EXHAUSTED:
            message += " (daily API budget exhausted)"
        elif self.status == BatchStatus.TIMED_OUT:
            message += " (batch time limit reached)"
        return message


@dataclass
class ManualSyncReport:
    result: SyncResult
    remaining_budget: Optional[int]
    duration_seconds: float
    timestamp: datetime


def _start_sync_run(db: Session, job: str) -> SyncRun:
    run = SyncRun(job=job, status=BatchStatus.RUNNING.value, started_at=datetime.utcnow())
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def _finish_sync_run(db: Session, run: SyncRun, status: str, row_count: int = 0, error: Optional[str] = None) -> None:
    run.status = status
    run.row_count = row_count
    run.error = error
    run.finished_at = datetime.utcnow()
    db.commit()


class SyncOrchestrator:
    def __init__(
        self,
        budget: BudgetTracker,
        sync_operation: SyncOperation,
        windows: CriticalWindows = DEFAULT_WINDOWS,
        pacing_delay_seconds: float = 1.1,
        manual_cooldown_minutes: float = 5,
        max_games_per_run: Optional[int] = None,
        batch_timeout_seconds: Optional[float] = None,
        session_factory: Optional[sessionmaker] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.budget = budget
        self.sync_operation = sync_operation
        self.windows = windows
        self.pacing_delay_seconds = pacing_delay_seconds
        self.manual_cooldown_minutes = manual_cooldown_minutes
        self.max_games_per_run = max_games_per_run
        self.batch_timeout_seconds = batch_timeout_seconds
        self.session_factory = session_factory
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._batch_lock = asyncio.Lock()
        self.state = BatchStatus.IDLE

    async def run_batch(
        self,
        games: Optional[Iterable[GameSnapshot]] = None,
        now: Optional[datetime] = None,
    ) -> BatchReport:
        """Run one scheduled batch; loads active games when none are given."""
        if self._batch_lock.locked():
            raise BatchAlreadyRunning("A sync batch is already running")
        async with self._batch_lock:
            return await self._run_batch(games, now)

    async def _run_batch(self, games: Optional[Iterable[GameSnapshot]], now: Optional[datetime]) -> BatchReport:
        started_at = self._clock()
        started = time.monotonic()
        self.state = BatchStatus.RUNNING
        run = self._record_start()
        logger.info("Starting scheduled sync batch")

        due: list = []
        results: list[SyncResult] = []
        try:
            if games is None:
                games = self._load_candidates()
            due = select_due(games, normalize_utc(now or started_at), self.windows)
            if self.max_games_per_run is not None:
                due = due[: self.max_games_per_run]

            status = BatchStatus.COMPLETED
            pace_pending = False
            for game, schedule in due:
                if pace_pending and self.pacing_delay_seconds > 0:
                    await self._sleep(self.pacing_delay_seconds)
                pace_pending = False

                if self._time_left(started) == 0:
                    logger.warning("Batch time limit reached before %s", game.game_key)
                    status = BatchStatus.TIMED_OUT
                    break

                cost = self.budget.estimate_cost(game)
                reservation = self.budget.reserve(cost)
                if reservation is None:
                    remaining = self.budget.remaining()
                    logger.warning(
                        "Skipping %s (%s): insufficient budget (need %s, have %s)",
                        game.game_key,
                        schedule.priority.value,
                        cost,
                        remaining,
                    )
                    results.append(SyncResult(
                        game_id=game.id,
                        game_key=game.game_key,
                        success=False,
                        skipped=True,
                        error=f"insufficient budget (need {cost}, have {remaining})",
                    ))
                    continue

                pace_pending = True
                try:
                    result = await self._invoke(game, reservation, started)
                except asyncio.TimeoutError:
                    logger.warning("Batch time limit reached while syncing %s", game.game_key)
                    results.append(SyncResult(
                        game_id=game.id,
                        game_key=game.game_key,
                        success=False,
                        error="batch timed out",
                    ))
                    status = BatchStatus.TIMED_OUT
                    break

                results.append(result)
                if result.budget_exhausted:
                    logger.error("Daily API budget exhausted during %s; stopping batch", game.game_key)
                    status = BatchStatus.BUDGET_EXHAUSTED
                    break
        except Exception as exc:
            duration = time.monotonic() - started
            error = str(exc) or exc.__class__.__name__
            logger.error("Sync batch crashed after %.2fs: %s", duration, error, exc_info=True)
            self.state = BatchStatus.CRASHED
            self._record_finish(run, BatchStatus.CRASHED, 0, error=error[:500])
            return BatchReport(
                status=BatchStatus.CRASHED,
                started_at=started_at,
                duration_seconds=duration,
                games_checked=len(due),
                remaining_budget=self._remaining_or_none(),
                error=error,
            )

        report = BatchReport(
            status=status,
            started_at=started_at,
            duration_seconds=time.monotonic() - started,
            games_checked=len(due),
            results=results,
            remaining_budget=self._remaining_or_none(),
        )
        self.state = status
        failures = [f"{result.game_key}: {result.error}" for result in results if result.failed]
        if failures:
            logger.warning(
                "Sync batch %s with %s failures in %.2fs: %s",
                status.value,
                len(failures),
                report.duration_seconds,
                "; ".join(failures),
            )
        else:
            logger.info(
                "Sync batch %s: %s synced, %s skipped, %s users, %s elements in %.2fs",
                status.value,
                report.succeeded,
                report.skipped,
                report.users_synced,
                report.elements_synced,
                report.duration_seconds,
            )
        self._record_finish(run, status, report.users_synced + report.elements_synced)
        return report

    async def run_manual(self, game: GameSnapshot, now: Optional[datetime] = None) -> ManualSyncReport:
        """Sync one game on operator request, outside the due-set filter."""
        now = normalize_utc(now or self._clock())
        last_synced = normalize_utc(game.last_synced_at)
        if last_synced is not None:
            minutes_since = (now - last_synced).total_seconds() / 60.0
            if minutes_since < self.manual_cooldown_minutes:
                retry_after = max(math.ceil(self.manual_cooldown_minutes - minutes_since), 1)
                logger.info("Manual sync of %s throttled; retry in %s min", game.game_key, retry_after)
                raise SyncCooldownError(round_minutes(minutes_since), retry_after)

        cost = self.budget.estimate_cost(game)
        reservation = self.budget.reserve(cost)
        if reservation is None:
            raise InsufficientBudgetError(cost, self.budget.remaining())

        logger.info("Manual sync triggered for %s", game.game_key)
        started = time.monotonic()
        result = await self.sync_operation(game, "manual", reservation)
        return ManualSyncReport(
            result=result,
            remaining_budget=self._remaining_or_none(),
            duration_seconds=time.monotonic() - started,
            timestamp=self._clock(),
        )

    async def _invoke(self, game: GameSnapshot, reservation: BudgetReservation, started: float) -> SyncResult:
        time_left = self._time_left(started)
        if time_left is None:
            return await self.sync_operation(game, "scheduled", reservation)
        return await asyncio.wait_for(self.sync_operation(game, "scheduled", reservation), timeout=time_left)

    def _time_left(self, started: float) -> Optional[float]:
        if self.batch_timeout_seconds is None:
            return None
        return max(self.batch_timeout_seconds - (time.monotonic() - started), 0)

    def _load_candidates(self) -> list[GameSnapshot]:
        if self.session_factory is None:
            raise RuntimeError("No session factory configured to load games")
        db = self.session_factory()
        try:
            return fetch_candidate_games(db)
        finally:
            db.close()

    def _remaining_or_none(self) -> Optional[int]:
        try:
            return self.budget.remaining()
        except Exception as exc:
            logger.error("Failed to read remaining budget: %s", exc, exc_info=True)
            return None

    def _record_start(self) -> Optional[SyncRun]:
        if self.session_factory is None:
            return None
        db = self.session_factory()
        try:
            run = _start_sync_run(db, BATCH_JOB)
            db.expunge(run)
            return run
        finally:
            db.close()

    def _record_finish(self, run: Optional[SyncRun], status: BatchStatus, row_count: int, error: Optional[str] = None) -> None:
        if run is None or self.session_factory is None:
            return
        db = self.session_factory()
        try:
            run = db.merge(run)
            _finish_sync_run(db, run, status.value, row_count, error=error)
        except Exception as exc:
            db.rollback()
            logger.error("Failed to record sync run %s: %s", run.id, exc, exc_info=True)
        finally:
            db.close()


def build_budget_tracker(settings: Settings, session_factory: sessionmaker) -> BudgetTracker:
    return BudgetTracker(
        session_factory,
        daily_limit=settings.daily_budget_limit,
        reset_timezone=settings.budget_reset_timezone,
        unknown_users_estimate=settings.budget_unknown_users_estimate,
        warn_threshold=settings.budget_warn_threshold,
    )


def build_orchestrator(settings: Settings, session_factory: sessionmaker) -> SyncOrchestrator:
    sync_service = SyncService(
        session_factory,
        client_factory=lambda: create_swush_client(settings),
        game_base_url=settings.game_base_url,
    )
    return SyncOrchestrator(
        budget=build_budget_tracker(settings, session_factory),
        sync_operation=sync_service.sync_game,
        windows=CriticalWindows(
            round_start_minutes=settings.round_start_window_minutes,
            trade_deadline_minutes=settings.trade_deadline_window_minutes,
            round_ended_minutes=settings.round_ended_window_minutes,
        ),
        pacing_delay_seconds=settings.sync_pacing_delay_seconds,
        manual_cooldown_minutes=settings.manual_sync_cooldown_minutes,
        max_games_per_run=settings.max_games_per_run,
        batch_timeout_seconds=settings.batch_timeout_seconds,
        session_factory=session_factory,
    )


@lru_cache()
def get_orchestrator() -> SyncOrchestrator:
    return build_orchestrator(get_settings(), SessionLocal)


async def run_periodic_sync(orchestrator: Optional[SyncOrchestrator] = None) -> None:
    """In-process timer for deployments without an external cron."""
    settings = get_settings()
    orchestrator = orchestrator or get_orchestrator()
    interval = max(settings.scheduled_sync_period_minutes, 1) * 60
    logger.info("Starting periodic sync task, every %s minutes", interval // 60)
    while True:
        try:
            report = await orchestrator.run_batch()
            logger.debug("Periodic sync finished: %s", report.message)
        except BatchAlreadyRunning:
            logger.info("Previous sync batch still running; skipping this tick")
        except Exception as exc:
            logger.error(f"Periodic sync failed: {exc}", exc_info=True)
        await asyncio.sleep(interval)
