from gamesync.models.user import User, UserRole
from gamesync.models.game import Game, RoundState, SportType, ENDED_ROUND_STATES
from gamesync.models.element import Element, UserGameStats
from gamesync.models.sync_run import SyncRun, SyncLog
from gamesync.models.api_budget import ApiBudget

__all__ = [
    "User",
    "UserRole",
    "Game",
    "RoundState",
    "SportType",
    "ENDED_ROUND_STATES",
    "Element",
    "UserGameStats",
    "SyncRun",
    "SyncLog",
    "ApiBudget",
]
