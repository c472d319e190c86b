from gamesync.services.auth import AuthService
from gamesync.services.budget import BudgetTracker
from gamesync.services.orchestrator import SyncOrchestrator, get_orchestrator
from gamesync.services.sync_service import SyncService

__all__ = [
    "AuthService",
    "BudgetTracker",
    "SyncOrchestrator",
    "SyncService",
    "get_orchestrator",
]
