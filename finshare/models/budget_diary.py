"""
Budget diaries and their shared members.

A diary's owner lives on the diary row itself (``budget_sheets.user_id``) and is
never written to ``budget_diary_members``.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
from finshare.db.base import Base, utcnow


class AccessLevel(str, enum.Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class BudgetDiary(Base):
    __tablename__ = "budget_sheets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class BudgetDiaryMember(Base):
    __tablename__ = "budget_diary_members"
    __table_args__ = (
        UniqueConstraint("budget_id", "user_id", name="uq_budget_diary_members_budget_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    budget_id = Column(Integer, ForeignKey("budget_sheets.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    access_level = Column(
        SQLEnum(AccessLevel, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AccessLevel.VIEWER,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
