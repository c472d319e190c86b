from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from gamesync.database import Base


class Element(Base):
    __tablename__ = "elements"
    __table_args__ = (UniqueConstraint("game_id", "element_id", name="uq_elements_game_element"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    element_id = Column(Integer, nullable=False, index=True)  # SWUSH element ID
    short_name = Column(String(100), nullable=False)
    full_name = Column(String(200), nullable=False)
    team_name = Column(String(100), nullable=True)
    image_url = Column(String(500), nullable=True)
    popularity = Column(Float, default=0.0)
    trend = Column(Integer, default=0)
    growth = Column(Integer, default=0)
    total_growth = Column(Integer, default=0)
    value = Column(Integer, default=0)
    is_injured = Column(Boolean, default=False)
    is_suspended = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    game = relationship("Game", back_populates="elements")


class UserGameStats(Base):
    __tablename__ = "user_game_stats"
    __table_args__ = (UniqueConstraint("external_id", "game_id", name="uq_user_game_stats_external_game"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    external_id = Column(String(100), nullable=False, index=True)
    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    swush_user_id = Column(Integer, nullable=False)
    team_name = Column(String(200), nullable=True)
    score = Column(Integer, default=0)
    rank = Column(Integer, nullable=True)
    round_score = Column(Integer, default=0)
    round_rank = Column(Integer, nullable=True)
    round_jump = Column(Integer, default=0)
    injured_count = Column(Integer, default=0)
    suspended_count = Column(Integer, default=0)
    lineup_element_ids = Column(JSON, default=list)
    synced_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
