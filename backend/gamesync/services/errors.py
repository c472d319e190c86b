"""Error types shared by the sync services."""

from __future__ import annotations

from typing import Optional

# Marker carried by client-side budget refusals, distinct from an upstream 429
BUDGET_EXHAUSTED_PREFIX = "BUDGET_EXHAUSTED:"


def is_budget_exhausted(error: Optional[str]) -> bool:
    return bool(error) and error.startswith(BUDGET_EXHAUSTED_PREFIX)


class GameSyncError(RuntimeError):
    pass


class SwushAPIError(GameSyncError):
    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class BudgetExhaustedError(SwushAPIError):
    def __init__(self, message: str):
        super().__init__(f"{BUDGET_EXHAUSTED_PREFIX} {message}", status_code=429)


class InsufficientBudgetError(GameSyncError):
    def __init__(self, needed: int, remaining: int):
        super().__init__(f"insufficient budget (need {needed}, have {remaining})")
        self.needed = needed
        self.remaining = remaining


class SyncCooldownError(GameSyncError):
    def __init__(self, minutes_since_sync: int, retry_after_minutes: int):
        super().__init__(
            f"Game was synced {minutes_since_sync} minutes ago. "
            f"Please try again in {retry_after_minutes} minutes."
        )
        self.minutes_since_sync = minutes_since_sync
        self.retry_after_minutes = retry_after_minutes


class BatchAlreadyRunning(GameSyncError):
    pass
