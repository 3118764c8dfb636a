from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.dependencies import get_current_user
from finshare.core.exceptions import PermissionDenied
from finshare.db.session import get_db
from finshare.schemas.budget_diary import DiaryAccessOut, DiaryCreate, DiaryMemberOut, DiaryOut, DiaryRename, MemberAdd
from finshare.services.access_services import resolve_access
from finshare.services.budget_diary_services import (
    add_member,
    create_diary,
    delete_diary,
    get_diary,
    list_members,
    list_user_diaries,
    remove_member,
    rename_diary,
)

router = APIRouter()


@router.post("/", response_model=DiaryOut, status_code=201, description="create new budget diary")
async def create_new_diary(
    data: DiaryCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await create_diary(db, current_user.id, data.name, data.description, data.is_default)


@router.get("/", response_model=list[DiaryOut], description="diaries owned by or shared with the user")
async def my_diaries(db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await list_user_diaries(db, current_user.id)


@router.get("/{diary_id}", response_model=DiaryOut)
async def fetch_diary(diary_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await get_diary(db, diary_id, current_user.id)


@router.patch("/{diary_id}", response_model=DiaryOut)
async def rename(
    diary_id: int,
    data: DiaryRename,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await rename_diary(db, diary_id, current_user.id, data.name, data.description)


@router.delete("/{diary_id}")
async def del_diary(diary_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await delete_diary(db, diary_id, current_user.id)


@router.get("/{diary_id}/access", response_model=DiaryAccessOut)
async def my_access(diary_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    level = await resolve_access(db, diary_id, current_user.id)
    return DiaryAccessOut(budget_id=diary_id, user_id=current_user.id, access_level=level)


@router.get("/{diary_id}/members", response_model=list[DiaryMemberOut])
async def diary_members(diary_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    if await resolve_access(db, diary_id, current_user.id) is None:
        raise PermissionDenied("Unauthorized access", operation="list_members", entity=f"budget_diary:{diary_id}")
    return await list_members(db, diary_id)


@router.post("/{diary_id}/members", response_model=DiaryMemberOut, status_code=201)
async def add_diary_member(
    diary_id: int,
    data: MemberAdd,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await add_member(db, diary_id, current_user.id, data.email, data.access_level)


@router.delete("/{diary_id}/members/{user_id}")
async def remove_diary_member(
    diary_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await remove_member(db, diary_id, current_user.id, user_id)
