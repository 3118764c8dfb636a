from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.dependencies import get_current_user, get_settings
from finshare.db.session import get_db
from finshare.schemas.split_expense import (
    ShareStatusUpdate,
    SplitExpenseCreate,
    SplitExpenseOut,
    SplitExpenseShareOut,
    SplitSummaryOut,
)
from finshare.services.split_expense_services import (
    create_split_expense,
    delete_split_expense,
    fetch_user_split_expenses,
    get_split_expense,
    get_user_split_summary,
    update_expense_share_status,
)

router = APIRouter()


@router.post("/", response_model=SplitExpenseOut, status_code=201)
async def add_split_expense(
    data: SplitExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user),
    settings = Depends(get_settings)
):
    return await create_split_expense(
        db,
        creator_id=current_user.id,
        title=data.title,
        description=data.description,
        category=data.category,
        total_amount=data.total_amount,
        date=data.date,
        shares=data.shares,
        currency=data.currency or settings.DEFAULT_CURRENCY,
    )


@router.get("/", response_model=list[SplitExpenseOut], description="expenses created by or shared with the user")
async def my_split_expenses(db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await fetch_user_split_expenses(db, current_user.id)


@router.get("/summary", response_model=SplitSummaryOut)
async def my_summary(db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await get_user_split_summary(db, current_user.id)


@router.patch("/shares/{share_id}", response_model=SplitExpenseShareOut)
async def settle_share(
    share_id: int,
    data: ShareStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await update_expense_share_status(db, share_id, data.status, current_user.id)


@router.get("/{expense_id}", response_model=SplitExpenseOut)
async def fetch(expense_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await get_split_expense(db, expense_id, current_user.id)


@router.delete("/{expense_id}")
async def del_split_expense(expense_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await delete_split_expense(db, expense_id, current_user.id)
