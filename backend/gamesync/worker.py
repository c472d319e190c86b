import asyncio
import logging

import gamesync.models  # noqa: F401
from gamesync.config import get_settings
from gamesync.database import Base, engine
from gamesync.migrations import ensure_schema_updates
from gamesync.services.orchestrator import run_periodic_sync


logger = logging.getLogger(__name__)
settings = get_settings()


async def main() -> None:
    Base.metadata.create_all(bind=engine)
    ensure_schema_updates(engine)

    if not settings.scheduled_sync_enabled:
        logger.info("Scheduled sync disabled. Worker exiting.")
        return
    logger.info("Starting sync worker loop.")
    await run_periodic_sync()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
