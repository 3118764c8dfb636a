from typing import Iterable, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.exceptions import NotFound
from finshare.db.session import store_errors
from finshare.models.user import User


async def get_user_by_id(db: AsyncSession, id: int):
    async with store_errors("get_user_by_id", f"user:{id}"):
        result = await db.execute(select(User).where(User.id == id))
    return result.scalar_one_or_none()


async def find_user_by_email(db: AsyncSession, email: str) -> User:
    normalized = email.strip().lower()
    async with store_errors("find_user_by_email", f"user:{normalized}"):
        result = await db.execute(select(User).where(func.lower(User.email) == normalized))
    user = result.scalar_one_or_none()

    if user is None:
        raise NotFound(f"User with email {normalized} not found",
                       operation="find_user_by_email", entity=f"user:{normalized}")
    return user


async def find_users_by_ids(db: AsyncSession, ids: Iterable[int]) -> List[User]:
    unique_ids = set(ids)
    if not unique_ids:
        return []

    async with store_errors("find_users_by_ids", "users"):
        result = await db.execute(select(User).where(User.id.in_(unique_ids)))
    return list(result.scalars().all())
