from fastapi import APIRouter, Depends

from finshare.core.dependencies import get_current_user
from finshare.schemas.user import UserOut

router = APIRouter()


@router.get("/me", response_model=UserOut)
async def read_users_me(current_user = Depends(get_current_user)):
    return UserOut.model_validate(current_user)
