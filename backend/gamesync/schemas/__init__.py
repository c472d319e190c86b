from gamesync.schemas.user import User, UserCreate, Token, TokenData
from gamesync.schemas.schedule import GameSyncSchedule, SyncScheduleResponse
from gamesync.schemas.sync import (
    BatchReportResponse, ManualSyncResponse, SyncResultOut,
    BudgetStatus, SyncRunOut, SyncLogOut,
)

__all__ = [
    "User", "UserCreate", "Token", "TokenData",
    "GameSyncSchedule", "SyncScheduleResponse",
    "BatchReportResponse", "ManualSyncResponse", "SyncResultOut",
    "BudgetStatus", "SyncRunOut", "SyncLogOut",
]
