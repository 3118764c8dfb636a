import asyncio
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.exceptions import ValidationError
from finshare.db.session import STORE_ERRORS, store_errors
from finshare.models.activity import Activity, ActivityType

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 200
# seconds; a slow append is dropped rather than holding up the request
APPEND_TIMEOUT = 2.0


async def _append(db: AsyncSession, activity: Activity) -> None:
    db.add(activity)
    await db.commit()


async def log_activity(
    db: AsyncSession,
    user_id: int,
    activity_type: ActivityType,
    description: str,
) -> Optional[Activity]:
    """Best-effort append, run after the primary write has committed. Returns None on failure."""
    kind = getattr(activity_type, "value", activity_type)
    logger.info("activity", user_id=user_id, activity_type=kind, description=description)

    try:
        activity = Activity(user_id=user_id, activity_type=kind, description=description)
        await asyncio.wait_for(_append(db, activity), timeout=APPEND_TIMEOUT)
        return activity
    except Exception as e:
        logger.warning(
            "activity_append_failed",
            user_id=user_id,
            activity_type=kind,
            error=str(e) or type(e).__name__,
        )
        try:
            await db.rollback()
        except STORE_ERRORS as rollback_error:
            logger.warning("activity_rollback_failed", user_id=user_id, error=str(rollback_error))
        return None


async def list_activities(
    db: AsyncSession,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
    activity_type: Optional[ActivityType] = None,
):
    if limit <= 0 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}",
                              operation="list_activities", entity=f"user:{user_id}")
    if offset < 0:
        raise ValidationError("offset must not be negative",
                              operation="list_activities", entity=f"user:{user_id}")

    q = (
        select(Activity)
        .where(Activity.user_id == user_id)
        .order_by(Activity.created_at.desc(), Activity.id.desc())
        .offset(offset)
        .limit(limit)
    )
    if activity_type is not None:
        q = q.where(Activity.activity_type == ActivityType(activity_type).value)

    async with store_errors("list_activities", f"user:{user_id}"):
        res = await db.execute(q)
    return res.scalars().all()
