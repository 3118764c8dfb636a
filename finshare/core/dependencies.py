from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.config import Settings
from finshare.core.jwt_config import decode_token, get_token_from_request
from finshare.db.session import get_db
from finshare.services.user_service import get_user_by_id


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    token = get_token_from_request(request)
    payload = decode_token(token, settings)
    user_id = payload.get("sub")

    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    try:
        user = await get_user_by_id(db, int(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    if user is None:
        raise HTTPException(status_code=401, detail="User not found")

    return user
