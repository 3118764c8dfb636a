from datetime import date as date_type, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel

from finshare.models.split_expense_share import ShareStatus


class ShareInput(BaseModel):
    user_id: int
    amount: Decimal


class SplitExpenseCreate(BaseModel):
    title: str
    description: str | None = None
    category: str
    total_amount: Decimal
    date: date_type
    currency: str | None = None
    shares: List[ShareInput]


class ShareStatusUpdate(BaseModel):
    status: Literal["paid", "declined"]


class SplitExpenseShareOut(BaseModel):
    id: int
    split_expense_id: int
    user_id: int
    amount: Decimal
    status: ShareStatus
    created_at: datetime
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    class Config:
        from_attributes = True


class SplitExpenseOut(BaseModel):
    id: int
    title: str
    description: str | None = None
    category: str
    total_amount: Decimal
    currency: str
    date: date_type
    creator_id: int
    created_at: datetime
    shares: List[SplitExpenseShareOut] = []


class SplitSummaryOut(BaseModel):
    user_id: int
    you_owe: Decimal
    owed_to_you: Decimal
    pending_shares: int
    settled_shares: int
