from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from gamesync.database import Base


class SyncRun(Base):
    """One orchestrator batch."""

    __tablename__ = "sync_runs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)
    started_at = Column(DateTime, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=True)
    row_count = Column(Integer, default=0)
    error = Column(String(500), nullable=True)


class SyncLog(Base):
    """One per-game sync attempt, written by the sync operation."""

    __tablename__ = "sync_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    sync_type = Column(String(20), nullable=False, default="manual")
    status = Column(String(20), nullable=False, default="started")
    users_synced = Column(Integer, default=0)
    elements_synced = Column(Integer, default=0)
    error_message = Column(String(500), nullable=True)
    started_at = Column(DateTime, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)

    game = relationship("Game", back_populates="sync_logs")
