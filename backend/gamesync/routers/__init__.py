from gamesync.routers.auth import router as auth_router
from gamesync.routers.admin import router as admin_router
from gamesync.routers.cron import router as cron_router

__all__ = [
    "auth_router",
    "admin_router",
    "cron_router",
]
