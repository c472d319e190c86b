from sqlalchemy import Boolean, Column, String, Integer, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from gamesync.database import Base


class SportType(str, enum.Enum):
    FOOTBALL = "FOOTBALL"
    HOCKEY = "HOCKEY"
    F1 = "F1"
    OTHER = "OTHER"


class RoundState(str, enum.Enum):
    PENDING = "Pending"
    CURRENT_OPEN = "CurrentOpen"
    ENDED = "Ended"
    # Upstream spelling
    ENDED_LATEST = "EndedLastest"


ENDED_ROUND_STATES = frozenset({RoundState.ENDED.value, RoundState.ENDED_LATEST.value})


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    game_key = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    sport_type = Column(String(20), nullable=False, default=SportType.OTHER.value)
    subsite_key = Column(String(100), nullable=False, default="aftonbladet")
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    current_round = Column(Integer, nullable=True, default=1)
    total_rounds = Column(Integer, nullable=True)
    round_state = Column(String(20), nullable=True)
    current_round_start = Column(DateTime(timezone=True), nullable=True)
    current_round_end = Column(DateTime(timezone=True), nullable=True)
    next_trade_deadline = Column(DateTime(timezone=True), nullable=True)

    sync_interval_minutes = Column(Integer, nullable=False, default=60)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    swush_game_id = Column(Integer, nullable=True)
    game_url = Column(String(500), nullable=True)
    users_total = Column(Integer, nullable=True, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    elements = relationship("Element", back_populates="game", cascade="all, delete-orphan")
    sync_logs = relationship("SyncLog", back_populates="game", cascade="all, delete-orphan")
