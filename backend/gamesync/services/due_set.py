from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from gamesync.models.game import Game
from gamesync.services.game_snapshot import GameSnapshot
from gamesync.services.priority import DEFAULT_WINDOWS, CriticalWindows, SyncSchedule, classify


logger = logging.getLogger(__name__)


def fetch_candidate_games(db: Session) -> list[GameSnapshot]:
    """Snapshot every active game; the selector applies its own filter on top."""
    games = (
        db.query(Game)
        .filter(Game.is_active.is_(True))
        .order_by(Game.name.asc())
        .all()
    )
    return [GameSnapshot.from_model(game) for game in games]


def fetch_all_games(db: Session) -> list[GameSnapshot]:
    games = db.query(Game).order_by(Game.name.asc()).all()
    return [GameSnapshot.from_model(game) for game in games]


def build_schedule(
    games: Iterable[GameSnapshot],
    now: datetime,
    windows: CriticalWindows = DEFAULT_WINDOWS,
) -> list[SyncSchedule]:
    """Full schedule view: every game, idle ones included, most urgent first."""
    schedule = [classify(game, now, windows) for game in games]
    schedule.sort(key=lambda entry: entry.sort_key)
    return schedule


def select_due(
    games: Iterable[GameSnapshot],
    now: datetime,
    windows: CriticalWindows = DEFAULT_WINDOWS,
) -> list[tuple[GameSnapshot, SyncSchedule]]:
    due = [entry for entry in build_schedule(games, now, windows) if entry.is_due]
    if due:
        logger.info(
            "Found %s games due for sync: %s",
            len(due),
            ", ".join(f"{entry.game.game_key} ({entry.priority.value})" for entry in due),
        )
    return [(entry.game, entry) for entry in due]
