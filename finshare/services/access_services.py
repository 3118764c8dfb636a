from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.db.session import store_errors
from finshare.models.budget_diary import AccessLevel, BudgetDiary, BudgetDiaryMember


async def resolve_access(db: AsyncSession, diary_id: int, user_id: int) -> Optional[AccessLevel]:
    """
    Access level of ``user_id`` on a budget diary.

    The owner always resolves to OWNER without a membership row. Anyone else
    gets their stored membership level, or None when they have neither
    ownership nor membership (including when the diary does not exist).
    """
    async with store_errors("resolve_access", f"budget_diary:{diary_id}"):
        owner_id = await db.scalar(select(BudgetDiary.user_id).where(BudgetDiary.id == diary_id))

        if owner_id is None:
            return None

        if owner_id == user_id:
            return AccessLevel.OWNER

        level = await db.scalar(
            select(BudgetDiaryMember.access_level).where(
                BudgetDiaryMember.budget_id == diary_id,
                BudgetDiaryMember.user_id == user_id
            )
        )

    return AccessLevel(level) if level is not None else None
