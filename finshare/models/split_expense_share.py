import enum

from sqlalchemy import Column, Integer, DateTime, Numeric, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
from finshare.db.base import Base, utcnow


class ShareStatus(str, enum.Enum):
    """Settlement state of one share. PAID and DECLINED are terminal."""
    PENDING = "pending"
    PAID = "paid"
    DECLINED = "declined"


class SplitExpenseShare(Base):
    __tablename__ = "split_expense_shares"
    __table_args__ = (
        UniqueConstraint("split_expense_id", "user_id", name="uq_split_expense_shares_expense_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    split_expense_id = Column(Integer, ForeignKey("split_expenses.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(
        SQLEnum(ShareStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ShareStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
