import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from gamesync.config import get_settings
from gamesync.database import get_db
from gamesync.models.game import Game
from gamesync.models.sync_run import SyncLog, SyncRun
from gamesync.models.user import User
from gamesync.routers.auth import require_admin, require_user
from gamesync.schemas.schedule import GameSyncSchedule, SyncScheduleResponse
from gamesync.schemas.sync import BudgetStatus, ManualSyncResponse, SyncLogOut, SyncRunOut
from gamesync.services.due_set import build_schedule, fetch_all_games
from gamesync.services.errors import InsufficientBudgetError, SyncCooldownError
from gamesync.services.game_snapshot import GameSnapshot
from gamesync.services.orchestrator import BATCH_JOB, SyncOrchestrator, get_orchestrator

router = APIRouter(prefix="/admin", tags=["Admin"])
settings = get_settings()
logger = logging.getLogger(__name__)


def _budget_status(orchestrator: SyncOrchestrator) -> BudgetStatus:
    budget = orchestrator.budget
    return BudgetStatus(
        remaining_calls=budget.remaining(),
        daily_limit=budget.daily_limit,
        reset_timezone=str(budget.reset_timezone),
        budget_day=budget.budget_day().isoformat(),
    )


@router.get("")
def admin_root(_: User = Depends(require_admin)):
    return {
        "name": "Game Sync Admin",
        "status_endpoint": "/admin/status",
        "schedule_endpoint": "/admin/sync-schedule",
        "logs_endpoint": "/admin/sync-logs",
        "manual_sync_endpoint": "/admin/games/{game_id}/sync",
    }


@router.get("/sync-schedule", response_model=SyncScheduleResponse)
def sync_schedule(
    db: Session = Depends(get_db),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    _: User = Depends(require_admin),
):
    """Every game with its priority and next sync time, most urgent first."""
    now = datetime.now(timezone.utc)
    schedule = build_schedule(fetch_all_games(db), now, orchestrator.windows)
    return SyncScheduleResponse(
        schedule=[GameSyncSchedule.from_entry(entry) for entry in schedule],
        generated_at=now,
    )


@router.post("/games/{game_id}/sync", response_model=ManualSyncResponse)
async def manual_game_sync(
    game_id: str,
    db: Session = Depends(get_db),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    current_user: User = Depends(require_user),
):
    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    snapshot = GameSnapshot.from_model(game)

    logger.info("Manual sync of %s requested by %s", snapshot.game_key, current_user.username)
    try:
        report = await orchestrator.run_manual(snapshot)
    except SyncCooldownError as exc:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "detail": str(exc),
                "last_synced_at": snapshot.last_synced_at.isoformat() if snapshot.last_synced_at else None,
                "retry_after_minutes": exc.retry_after_minutes,
            },
            headers={"Retry-After": str(exc.retry_after_minutes * 60)},
        )
    except InsufficientBudgetError as exc:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "detail": str(exc),
                "needed": exc.needed,
                "remaining": exc.remaining,
            },
        )

    payload = ManualSyncResponse.from_report(report)
    if not report.result.success:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=payload.model_dump(mode="json"),
        )
    return payload


@router.get("/status")
def admin_status(
    db: Session = Depends(get_db),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    _: User = Depends(require_admin),
):
    recent_runs = (
        db.query(SyncRun)
        .filter(SyncRun.job == BATCH_JOB)
        .order_by(SyncRun.started_at.desc())
        .limit(10)
        .all()
    )
    total_games = db.query(func.count(Game.id)).scalar() or 0
    active_games = db.query(func.count(Game.id)).filter(Game.is_active.is_(True)).scalar() or 0

    return {
        "environment": settings.environment,
        "run_sync_loop": settings.run_sync_loop,
        "scheduled_sync_enabled": settings.scheduled_sync_enabled,
        "scheduled_sync_period_minutes": settings.scheduled_sync_period_minutes,
        "batch_state": orchestrator.state.value,
        "budget": _budget_status(orchestrator),
        "total_games": int(total_games),
        "active_games": int(active_games),
        "recent_runs": [SyncRunOut.model_validate(run) for run in recent_runs],
        "server_time_utc": datetime.now(timezone.utc),
    }


@router.get("/sync-logs", response_model=list[SyncLogOut])
def sync_logs(
    game_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    query = db.query(SyncLog).options(joinedload(SyncLog.game))
    if game_id:
        query = query.filter(SyncLog.game_id == game_id)
    logs = query.order_by(SyncLog.started_at.desc()).limit(limit).all()
    return [
        SyncLogOut(
            id=log.id,
            game_id=log.game_id,
            game_name=log.game.name if log.game else None,
            game_key=log.game.game_key if log.game else None,
            sync_type=log.sync_type,
            status=log.status,
            users_synced=log.users_synced or 0,
            elements_synced=log.elements_synced or 0,
            error_message=log.error_message,
            started_at=log.started_at,
            completed_at=log.completed_at,
        )
        for log in logs
    ]
