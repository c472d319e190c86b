from sqlalchemy import Column, String, Date, DateTime, Integer
from datetime import datetime

from gamesync.database import Base


class ApiBudget(Base):
    __tablename__ = "api_budget"

    key = Column(String(100), primary_key=True)
    budget_day = Column(Date, nullable=False)
    daily_limit = Column(Integer, nullable=False)
    remaining_calls = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
