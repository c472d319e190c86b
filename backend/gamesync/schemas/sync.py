from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from gamesync.services.orchestrator import BatchReport, ManualSyncReport


class SyncResultOut(BaseModel):
    game_id: str
    game_key: str
    success: bool
    skipped: bool = False
    users_synced: int = 0
    elements_synced: int = 0
    error: Optional[str] = None

    class Config:
        from_attributes = True


class BatchReportResponse(BaseModel):
    success: bool
    status: str
    message: str
    games_checked: int
    games_synced: int
    games_skipped: int
    games_failed: int
    games_not_attempted: int
    users_synced: int
    elements_synced: int
    remaining_budget: Optional[int] = None
    duration_ms: int
    error: Optional[str] = None
    results: List[SyncResultOut] = []
    timestamp: datetime

    @classmethod
    def from_report(cls, report: BatchReport) -> "BatchReportResponse":
        return cls(
            success=report.success,
            status=report.status.value,
            message=report.message,
            games_checked=report.games_checked,
            games_synced=report.succeeded,
            games_skipped=report.skipped,
            games_failed=report.failed,
            games_not_attempted=report.not_attempted,
            users_synced=report.users_synced,
            elements_synced=report.elements_synced,
            remaining_budget=report.remaining_budget,
            duration_ms=int(report.duration_seconds * 1000),
            error=report.error,
            results=[SyncResultOut.model_validate(result) for result in report.results],
            timestamp=report.started_at,
        )


class ManualSyncResponse(BaseModel):
    success: bool
    message: str
    game_key: str
    users_synced: int
    elements_synced: int
    remaining_budget: Optional[int] = None
    duration_ms: int
    timestamp: datetime

    @classmethod
    def from_report(cls, report: ManualSyncReport) -> "ManualSyncResponse":
        result = report.result
        return cls(
            success=result.success,
            message="Sync completed successfully" if result.success else (result.error or "Sync failed"),
            game_key=result.game_key,
            users_synced=result.users_synced,
            elements_synced=result.elements_synced,
            remaining_budget=report.remaining_budget,
            duration_ms=int(report.duration_seconds * 1000),
            timestamp=report.timestamp,
        )


class BudgetStatus(BaseModel):
    remaining_calls: int
    daily_limit: int
    reset_timezone: str
    budget_day: str


class SyncRunOut(BaseModel):
    job: str
    status: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    row_count: int = 0
    error: Optional[str] = None

    class Config:
        from_attributes = True


class SyncLogOut(BaseModel):
    id: str
    game_id: str
    game_name: Optional[str] = None
    game_key: Optional[str] = None
    sync_type: str
    status: str
    users_synced: int = 0
    elements_synced: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
