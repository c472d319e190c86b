"""
Sync priority classification.

Maps a game's timing and round fields to one of four priority tiers and a
human-readable reason. Pure functions only: the caller supplies ``now`` and
the critical window widths.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from gamesync.models.game import ENDED_ROUND_STATES
from gamesync.services.game_snapshot import GameSnapshot, normalize_utc
from gamesync.services.season import is_season_ended


class SyncPriority(str, enum.Enum):
    CRITICAL = "critical"
    OVERDUE = "overdue"
    ROUTINE = "routine"
    IDLE = "idle"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]


PRIORITY_RANK = {
    SyncPriority.CRITICAL: 0,
    SyncPriority.OVERDUE: 1,
    SyncPriority.ROUTINE: 2,
    SyncPriority.IDLE: 3,
}


class CriticalPeriodType(str, enum.Enum):
    ROUND_STARTING = "round_starting"
    TRADE_DEADLINE = "trade_deadline"
    ROUND_ENDED = "round_ended"


@dataclass(frozen=True)
class CriticalWindows:
    round_start_minutes: float = 120
    trade_deadline_minutes: float = 120
    round_ended_minutes: float = 60


DEFAULT_WINDOWS = CriticalWindows()


@dataclass(frozen=True)
class CriticalPeriod:
    type: CriticalPeriodType
    label: str
    event_time: datetime
    minutes_until_event: int


@dataclass(frozen=True)
class SyncSchedule:
    game: GameSnapshot
    minutes_since_sync: Optional[float]
    next_sync_at: datetime
    minutes_until_sync: float
    priority: SyncPriority
    priority_reason: str
    critical_period: Optional[CriticalPeriod] = None

    @property
    def in_critical_period(self) -> bool:
        return self.critical_period is not None

    @property
    def is_due(self) -> bool:
        if self.priority == SyncPriority.IDLE:
            return False
        return self.in_critical_period or self.minutes_until_sync <= 0

    @property
    def sort_key(self) -> tuple:
        return (self.priority.rank, self.minutes_until_sync, self.game.game_key)


def round_minutes(value: float) -> int:
    """Round half up, so 89.5 displays as 90."""
    return math.floor(value + 0.5)


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def find_critical_period(
    game: GameSnapshot,
    now: datetime,
    windows: CriticalWindows = DEFAULT_WINDOWS,
) -> Optional[CriticalPeriod]:
    """Return the first matching critical window: round start, trade deadline, round end."""
    round_start = normalize_utc(game.current_round_start)
    if round_start is not None:
        minutes_until = _minutes_between(now, round_start)
        if 0 < minutes_until <= windows.round_start_minutes:
            shown = round_minutes(minutes_until)
            return CriticalPeriod(
                type=CriticalPeriodType.ROUND_STARTING,
                label=f"Round {game.current_round} starting in {shown} min",
                event_time=round_start,
                minutes_until_event=shown,
            )

    deadline = normalize_utc(game.next_trade_deadline)
    if deadline is not None:
        minutes_until = _minutes_between(now, deadline)
        if 0 < minutes_until <= windows.trade_deadline_minutes:
            shown = round_minutes(minutes_until)
            return CriticalPeriod(
                type=CriticalPeriodType.TRADE_DEADLINE,
                label=f"Trade deadline in {shown} min",
                event_time=deadline,
                minutes_until_event=shown,
            )

    round_end = normalize_utc(game.current_round_end)
    if round_end is not None and (game.round_state or "") in ENDED_ROUND_STATES:
        minutes_since = _minutes_between(round_end, now)
        if 0 <= minutes_since <= windows.round_ended_minutes:
            shown = round_minutes(minutes_since)
            return CriticalPeriod(
                type=CriticalPeriodType.ROUND_ENDED,
                label=f"Round ended {shown} min ago",
                event_time=round_end,
                minutes_until_event=-shown,
            )

    return None


def classify(
    game: GameSnapshot,
    now: datetime,
    windows: CriticalWindows = DEFAULT_WINDOWS,
) -> SyncSchedule:
    now = normalize_utc(now)
    last_synced = normalize_utc(game.last_synced_at)

    if last_synced is not None:
        minutes_since_sync: Optional[float] = _minutes_between(last_synced, now)
        next_sync_at = last_synced + timedelta(minutes=game.sync_interval_minutes)
    else:
        # Never synced: due immediately
        minutes_since_sync = None
        next_sync_at = now
    minutes_until_sync = _minutes_between(now, next_sync_at)

    critical_period = None
    if game.is_active and not is_season_ended(game):
        critical_period = find_critical_period(game, now, windows)

    if not game.is_active:
        priority = SyncPriority.IDLE
        reason = "Game is inactive"
        critical_period = None
    elif critical_period is not None:
        priority = SyncPriority.CRITICAL
        reason = critical_period.label
    elif minutes_until_sync <= 0:
        priority = SyncPriority.OVERDUE
        reason = f"Overdue by {abs(round_minutes(minutes_until_sync))} min"
    else:
        priority = SyncPriority.ROUTINE
        reason = f"Next sync in {round_minutes(minutes_until_sync)} min"

    return SyncSchedule(
        game=game,
        minutes_since_sync=minutes_since_sync,
        next_sync_at=next_sync_at,
        minutes_until_sync=minutes_until_sync,
        priority=priority,
        priority_reason=reason,
        critical_period=critical_period,
    )
