from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.dependencies import get_current_user
from finshare.db.session import get_db
from finshare.models.activity import ActivityType
from finshare.schemas.activity import ActivityOut
from finshare.services.activity_services import list_activities

router = APIRouter()


@router.get("/", response_model=list[ActivityOut])
async def my_activities(
    limit: int = 50,
    offset: int = 0,
    activity_type: Optional[ActivityType] = None,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await list_activities(db, current_user.id, limit=limit, offset=offset, activity_type=activity_type)
