"""
Daily upstream API budget.

The counter lives in the ``api_budget`` table so every process (API server,
worker, manual triggers) draws from the same allowance. Spending is
serialized with a process-wide lock and a row lock where the database
supports one.
"""

from __future__ import annotations

import logging
import math
import threading
from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, sessionmaker

from gamesync.models.api_budget import ApiBudget
from gamesync.services.game_snapshot import GameSnapshot
from gamesync.services.swush_client import UPSTREAM_MAX_PAGE_SIZE


logger = logging.getLogger(__name__)

DEFAULT_BUDGET_KEY = "swush"
# Game details + elements, before user pages
FIXED_CALLS_PER_GAME = 2


class BudgetTracker:
    _lock = threading.Lock()

    def __init__(
        self,
        session_factory: sessionmaker,
        daily_limit: int,
        reset_timezone: str = "UTC",
        page_size: int = UPSTREAM_MAX_PAGE_SIZE,
        unknown_users_estimate: int = UPSTREAM_MAX_PAGE_SIZE,
        warn_threshold: int = 0,
        key: str = DEFAULT_BUDGET_KEY,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if daily_limit < 0:
            raise ValueError("daily_limit must be non-negative")
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.session_factory = session_factory
        self.daily_limit = daily_limit
        self.reset_timezone = ZoneInfo(reset_timezone)
        self.page_size = page_size
        self.unknown_users_estimate = max(unknown_users_estimate, 1)
        self.warn_threshold = warn_threshold
        self.key = key
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def budget_day(self) -> date:
        return self._clock().astimezone(self.reset_timezone).date()

    def _load_for_update(self, db: Session) -> ApiBudget:
        today = self.budget_day()
        row = (
            db.query(ApiBudget)
            .filter(ApiBudget.key == self.key)
            .with_for_update()
            .first()
        )
        if row is None:
            row = ApiBudget(
                key=self.key,
                budget_day=today,
                daily_limit=self.daily_limit,
                remaining_calls=self.daily_limit,
            )
            db.add(row)
            db.flush()
        elif row.budget_day < today:
            logger.info(
                "Resetting %s API budget for %s (was %s/%s on %s)",
                self.key,
                today.isoformat(),
                row.remaining_calls,
                row.daily_limit,
                row.budget_day.isoformat(),
            )
            row.budget_day = today
            row.daily_limit = self.daily_limit
            row.remaining_calls = self.daily_limit
            db.flush()
        return row

    def remaining(self) -> int:
        with self._lock:
            db = self.session_factory()
            try:
                row = self._load_for_update(db)
                remaining = row.remaining_calls
                db.commit()
                return remaining
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def estimate_cost(self, game: GameSnapshot) -> int:
        """Calls needed for one full sync, rounded up."""
        users_total = game.users_total
        if not users_total or users_total <= 0:
            users_total = self.unknown_users_estimate
        return FIXED_CALLS_PER_GAME + math.ceil(users_total / self.page_size)

    def try_spend(self, amount: int) -> bool:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._lock:
            db = self.session_factory()
            try:
                row = self._load_for_update(db)
                if row.remaining_calls < amount:
                    db.commit()
                    logger.warning(
                        "Refusing to spend %s %s API calls (%s remaining)",
                        amount,
                        self.key,
                        row.remaining_calls,
                    )
                    return False
                row.remaining_calls -= amount
                remaining = row.remaining_calls
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

        if remaining <= self.warn_threshold:
            logger.warning("Daily %s API budget running low: %s/%s left", self.key, remaining, self.daily_limit)
        return True

    def reserve(self, amount: int) -> Optional["BudgetReservation"]:
        if not self.try_spend(amount):
            return None
        return BudgetReservation(self, amount)


class BudgetReservation:
    """Calls already paid for one game; extra calls are charged one at a time."""

    def __init__(self, tracker: Optional[BudgetTracker], reserved: int) -> None:
        self.tracker = tracker
        self.reserved = reserved
        self.used = 0
        self.overflow = 0

    def take_call(self) -> bool:
        if self.used < self.reserved:
            self.used += 1
            return True
        if self.tracker is not None and self.tracker.try_spend(1):
            self.used += 1
            self.overflow += 1
            return True
        return False

    @property
    def unused(self) -> int:
        return max(self.reserved - self.used, 0)
