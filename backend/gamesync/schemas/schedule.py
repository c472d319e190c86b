from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from gamesync.services.priority import SyncSchedule, round_minutes


class RoundInfo(BaseModel):
    current_round: Optional[int] = None
    total_rounds: Optional[int] = None
    round_state: Optional[str] = None
    current_round_start: Optional[datetime] = None
    current_round_end: Optional[datetime] = None
    next_trade_deadline: Optional[datetime] = None


class CriticalPeriodOut(BaseModel):
    type: str
    label: str
    event_time: datetime
    minutes_until_event: int


class GameSyncSchedule(BaseModel):
    game_id: str
    game_name: str
    game_key: str
    sport_type: str
    is_active: bool
    last_synced_at: Optional[datetime] = None
    minutes_since_sync: Optional[int] = None
    sync_interval_minutes: int
    next_sync_at: datetime
    minutes_until_sync: int
    priority: str
    priority_reason: str
    round_info: RoundInfo
    in_critical_period: bool
    critical_period: Optional[CriticalPeriodOut] = None

    @classmethod
    def from_entry(cls, entry: SyncSchedule) -> "GameSyncSchedule":
        game = entry.game
        critical = entry.critical_period
        return cls(
            game_id=game.id,
            game_name=game.name,
            game_key=game.game_key,
            sport_type=game.sport_type,
            is_active=game.is_active,
            last_synced_at=game.last_synced_at,
            minutes_since_sync=(
                round_minutes(entry.minutes_since_sync) if entry.minutes_since_sync is not None else None
            ),
            sync_interval_minutes=game.sync_interval_minutes,
            next_sync_at=entry.next_sync_at,
            minutes_until_sync=round_minutes(entry.minutes_until_sync),
            priority=entry.priority.value,
            priority_reason=entry.priority_reason,
            round_info=RoundInfo(
                current_round=game.current_round,
                total_rounds=game.total_rounds,
                round_state=game.round_state,
                current_round_start=game.current_round_start,
                current_round_end=game.current_round_end,
                next_trade_deadline=game.next_trade_deadline,
            ),
            in_critical_period=entry.in_critical_period,
            critical_period=CriticalPeriodOut(
                type=critical.type.value,
                label=critical.label,
                event_time=critical.event_time,
                minutes_until_event=critical.minutes_until_event,
            ) if critical else None,
        )


class SyncScheduleResponse(BaseModel):
    schedule: List[GameSyncSchedule]
    generated_at: datetime
