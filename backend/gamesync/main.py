"""
Game Sync API
FastAPI backend that keeps fantasy game data in step with the SWUSH upstream
"""

import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import asyncio

from gamesync.database import engine, Base
import gamesync.models  # noqa: F401
from gamesync.routers import auth_router, admin_router, cron_router
from gamesync.config import get_settings
from gamesync.services.orchestrator import run_periodic_sync
from gamesync.migrations import ensure_schema_updates

settings = get_settings()

# Configure logging
log_level = logging.DEBUG if settings.environment == "development" else logging.INFO
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting Game Sync API...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")
    ensure_schema_updates(engine)

    if not settings.cron_secret:
        logger.warning("CRON_SECRET is not set; /cron/sync will reject every request")

    sync_task = None
    if settings.scheduled_sync_enabled and settings.run_sync_loop:
        logger.info(f"Scheduled sync enabled, period: {settings.scheduled_sync_period_minutes} minutes")
        sync_task = asyncio.create_task(run_periodic_sync())
    else:
        logger.info("Sync loop is disabled for this process")

    yield

    logger.info("Shutting down Game Sync API...")
    if sync_task:
        sync_task.cancel()
        try:
            await sync_task
        except asyncio.CancelledError:
            pass
    logger.info("Shutdown complete")


app = FastAPI(
    title="Game Sync API",
    description="Budget-aware sync scheduler for SWUSH fantasy games",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(cron_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Game Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "healthy",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
