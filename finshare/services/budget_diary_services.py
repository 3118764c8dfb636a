from typing import List, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.exceptions import NotFound, PermissionDenied, ValidationError
from finshare.core.utils import entity_ref
from finshare.db.base import utcnow
from finshare.db.session import atomic, store_errors
from finshare.models.activity import ActivityType
from finshare.models.budget_diary import AccessLevel, BudgetDiary, BudgetDiaryMember
from finshare.schemas.budget_diary import DiaryMemberOut, DiaryOut
from finshare.services.access_services import resolve_access
from finshare.services.activity_services import log_activity
from finshare.services.user_service import find_user_by_email, find_users_by_ids

logger = structlog.get_logger(__name__)

DEFAULT_DIARY_NAME = "Monthly Budget"
UNTITLED_DIARY_NAME = "Untitled Sheet"


def _diary_out(diary: BudgetDiary, access_level: Optional[AccessLevel] = None,
               members: Optional[List[DiaryMemberOut]] = None) -> DiaryOut:
    return DiaryOut(
        id=diary.id,
        name=diary.name,
        description=diary.description,
        owner_id=diary.user_id,
        is_default=bool(diary.is_default),
        created_at=diary.created_at,
        updated_at=diary.updated_at,
        access_level=access_level,
        members=members or [],
    )


async def _get_diary(db: AsyncSession, diary_id: int, operation: str) -> BudgetDiary:
    entity = entity_ref("budget_diary", diary_id)
    async with store_errors(operation, entity):
        res = await db.execute(select(BudgetDiary).where(BudgetDiary.id == diary_id))
    diary = res.scalar_one_or_none()

    if diary is None:
        raise NotFound("Budget diary not found", operation=operation, entity=entity)
    return diary


async def _require_owner(db: AsyncSession, diary_id: int, user_id: int, operation: str) -> BudgetDiary:
    diary = await _get_diary(db, diary_id, operation)

    if await resolve_access(db, diary_id, user_id) != AccessLevel.OWNER:
        raise PermissionDenied("Only the diary owner can do this",
                               operation=operation, entity=entity_ref("budget_diary", diary_id))
    return diary


def _clean_name(name: Optional[str], operation: str, entity: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Diary name must not be blank", operation=operation, entity=entity)
    return cleaned


async def create_diary(
    db: AsyncSession,
    user_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
    is_default: bool = False,
) -> DiaryOut:
    name = (name or "").strip() or UNTITLED_DIARY_NAME

    async with atomic(db, "create_diary", entity_ref("user", user_id)):
        diary = BudgetDiary(
            user_id=user_id,
            name=name,
            description=description,
            is_default=is_default,
        )
        db.add(diary)
        await db.flush()

    out = _diary_out(diary, AccessLevel.OWNER)

    logger.info("budget_diary_created", diary_id=out.id, user_id=user_id)
    await log_activity(db, user_id, ActivityType.BUDGET, f"Created new budget sheet: {out.name}")

    return out


async def list_user_diaries(db: AsyncSession, user_id: int) -> List[DiaryOut]:
    """Owned diaries (default first, newest next) followed by shared ones."""
    owned_q = (
        select(BudgetDiary)
        .where(BudgetDiary.user_id == user_id)
        .order_by(BudgetDiary.is_default.desc(), BudgetDiary.created_at.desc(), BudgetDiary.id.desc())
    )
    shared_q = (
        select(BudgetDiary, BudgetDiaryMember.access_level)
        .join(BudgetDiaryMember, BudgetDiaryMember.budget_id == BudgetDiary.id)
        .where(BudgetDiaryMember.user_id == user_id)
        .order_by(BudgetDiary.created_at.desc(), BudgetDiary.id.desc())
    )

    async with store_errors("list_user_diaries", entity_ref("user", user_id)):
        owned = (await db.execute(owned_q)).scalars().all()
        shared = (await db.execute(shared_q)).all()

    if not owned:
        default = await create_diary(db, user_id, DEFAULT_DIARY_NAME, is_default=True)
        result = [default]
    else:
        result = [_diary_out(d, AccessLevel.OWNER) for d in owned]

    result.extend(_diary_out(row.BudgetDiary, AccessLevel(row.access_level)) for row in shared)
    return result


async def get_diary(db: AsyncSession, diary_id: int, user_id: int) -> DiaryOut:
    diary = await _get_diary(db, diary_id, "get_diary")
    level = await resolve_access(db, diary_id, user_id)

    if level is None:
        raise PermissionDenied("You do not have access to this diary",
                               operation="get_diary", entity=entity_ref("budget_diary", diary_id))

    members = await list_members(db, diary_id)
    return _diary_out(diary, level, members)


async def rename_diary(
    db: AsyncSession,
    diary_id: int,
    user_id: int,
    name: str,
    description: Optional[str] = None,
) -> DiaryOut:
    entity = entity_ref("budget_diary", diary_id)
    diary = await _require_owner(db, diary_id, user_id, "rename_diary")
    name = _clean_name(name, "rename_diary", entity)

    async with atomic(db, "rename_diary", entity):
        diary.name = name
        diary.description = description
        diary.updated_at = utcnow()

    out = _diary_out(diary, AccessLevel.OWNER)

    logger.info("budget_diary_renamed", diary_id=diary_id, user_id=user_id)
    await log_activity(db, user_id, ActivityType.SETTINGS_CHANGE, f"Renamed budget diary to: {name}")

    return out


async def add_member(
    db: AsyncSession,
    diary_id: int,
    inviter_id: int,
    email: str,
    access_level: AccessLevel = AccessLevel.VIEWER,
) -> DiaryMemberOut:
    """Share a diary with the user registered under ``email``.

    An existing membership has its access level overwritten.
    """
    entity = entity_ref("budget_diary", diary_id)
    diary = await _require_owner(db, diary_id, inviter_id, "add_member")

    access_level = AccessLevel(access_level)
    if access_level == AccessLevel.OWNER:
        raise ValidationError("Members can only be editors or viewers",
                              operation="add_member", entity=entity)

    user = await find_user_by_email(db, email)

    if user.id == diary.user_id:
        raise ValidationError("The owner cannot be added as a member",
                              operation="add_member", entity=entity)

    async with store_errors("add_member", entity):
        res = await db.execute(
            select(BudgetDiaryMember).where(
                BudgetDiaryMember.budget_id == diary_id,
                BudgetDiaryMember.user_id == user.id
            )
        )
    member = res.scalar_one_or_none()

    async with atomic(db, "add_member", entity):
        if member is None:
            member = BudgetDiaryMember(budget_id=diary_id, user_id=user.id, access_level=access_level)
            db.add(member)
        else:
            member.access_level = access_level
        await db.flush()

    out = DiaryMemberOut(
        id=member.id,
        budget_id=diary_id,
        user_id=user.id,
        access_level=access_level,
        created_at=member.created_at,
        user_name=user.name,
        user_email=user.email,
    )

    logger.info("budget_diary_member_added", diary_id=diary_id, user_id=user.id,
                access_level=access_level.value)
    await log_activity(
        db, inviter_id, ActivityType.SETTINGS_CHANGE,
        f"Shared budget diary {diary.name} with {user.email} as {access_level.value}"
    )

    return out


async def remove_member(db: AsyncSession, diary_id: int, owner_id: int, member_user_id: int):
    entity = entity_ref("budget_diary", diary_id)
    diary = await _require_owner(db, diary_id, owner_id, "remove_member")

    if member_user_id == diary.user_id:
        raise ValidationError("The diary owner cannot be removed",
                              operation="remove_member", entity=entity)

    async with atomic(db, "remove_member", entity):
        res = await db.execute(
            delete(BudgetDiaryMember).where(
                BudgetDiaryMember.budget_id == diary_id,
                BudgetDiaryMember.user_id == member_user_id
            )
        )
        if res.rowcount == 0:
            raise NotFound("User is not a member of this diary",
                           operation="remove_member", entity=entity_ref("user", member_user_id))

    logger.info("budget_diary_member_removed", diary_id=diary_id, user_id=member_user_id)
    await log_activity(
        db, owner_id, ActivityType.SETTINGS_CHANGE,
        f"Removed user {member_user_id} from budget diary {diary.name}"
    )

    return {"status": "member_removed"}


async def list_members(db: AsyncSession, diary_id: int) -> List[DiaryMemberOut]:
    """Membership rows with the member's name and email, looked up in one batch."""
    async with store_errors("list_members", entity_ref("budget_diary", diary_id)):
        res = await db.execute(
            select(BudgetDiaryMember)
            .where(BudgetDiaryMember.budget_id == diary_id)
            .order_by(BudgetDiaryMember.created_at, BudgetDiaryMember.id)
        )
    rows = res.scalars().all()

    if not rows:
        return []

    users = {u.id: u for u in await find_users_by_ids(db, [m.user_id for m in rows])}

    members = []
    for m in rows:
        user = users.get(m.user_id)
        members.append(DiaryMemberOut(
            id=m.id,
            budget_id=m.budget_id,
            user_id=m.user_id,
            access_level=m.access_level,
            created_at=m.created_at,
            user_name=user.name if user else None,
            user_email=user.email if user else None,
        ))
    return members


async def delete_diary(db: AsyncSession, diary_id: int, user_id: int):
    entity = entity_ref("budget_diary", diary_id)
    diary = await _require_owner(db, diary_id, user_id, "delete_diary")
    diary_name = diary.name

    async with store_errors("delete_diary", entity):
        owned = await db.scalar(
            select(func.count()).select_from(BudgetDiary).where(BudgetDiary.user_id == user_id)
        )

    if owned <= 1:
        raise ValidationError("Cannot delete the only budget diary",
                              operation="delete_diary", entity=entity)

    async with atomic(db, "delete_diary", entity):
        await db.execute(delete(BudgetDiaryMember).where(BudgetDiaryMember.budget_id == diary_id))
        await db.execute(delete(BudgetDiary).where(BudgetDiary.id == diary_id))

    logger.info("budget_diary_deleted", diary_id=diary_id, user_id=user_id)
    await log_activity(db, user_id, ActivityType.BUDGET, f"Deleted budget sheet: {diary_name}")

    return {"status": "deleted"}
