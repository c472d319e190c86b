import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse

from gamesync.config import Settings, get_settings
from gamesync.schemas.sync import BatchReportResponse
from gamesync.services.errors import BatchAlreadyRunning
from gamesync.services.orchestrator import BatchStatus, SyncOrchestrator, get_orchestrator

router = APIRouter(prefix="/cron", tags=["Cron"])
logger = logging.getLogger(__name__)


def verify_cron_secret(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.cron_secret
    if not expected or not authorization or not secrets.compare_digest(authorization, f"Bearer {expected}"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def _run_scheduled_sync(orchestrator: SyncOrchestrator) -> JSONResponse:
    try:
        report = await orchestrator.run_batch()
    except BatchAlreadyRunning as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    payload = BatchReportResponse.from_report(report)
    status_code = (
        status.HTTP_500_INTERNAL_SERVER_ERROR
        if report.status == BatchStatus.CRASHED
        else status.HTTP_200_OK
    )
    return JSONResponse(
        status_code=status_code,
        content=payload.model_dump(mode="json"),
        headers={"Cache-Control": "no-store"},
    )


@router.post("/sync", response_model=BatchReportResponse, dependencies=[Depends(verify_cron_secret)])
async def cron_sync(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Timer-driven batch sync of every game that is due."""
    logger.info("Scheduled sync triggered")
    return await _run_scheduled_sync(orchestrator)


@router.get("/sync", response_model=BatchReportResponse, dependencies=[Depends(verify_cron_secret)])
async def cron_sync_get(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Same as POST, for manual testing from a browser or curl."""
    return await _run_scheduled_sync(orchestrator)
