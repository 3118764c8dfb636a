import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from finshare.db.base import Base, utcnow


class ActivityType(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    TRANSACTION = "TRANSACTION"
    BUDGET = "BUDGET"
    INVESTMENT = "INVESTMENT"
    PROFILE = "PROFILE"
    NEWS = "NEWS"
    EXPORT = "EXPORT"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    SETTINGS_CHANGE = "SETTINGS_CHANGE"


class Activity(Base):
    """Append-only audit row. Never updated or deleted by the application."""
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    activity_type = Column(String(32), nullable=False, index=True)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
