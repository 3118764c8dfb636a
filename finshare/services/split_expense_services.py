from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finshare.core.exceptions import (
    AmountMismatch,
    InvalidStateTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from finshare.core.utils import entity_ref, qround, require_cents, to_decimal
from finshare.db.session import atomic, store_errors
from finshare.models.activity import ActivityType
from finshare.models.split_expense import SplitExpense
from finshare.models.split_expense_share import ShareStatus, SplitExpenseShare
from finshare.models.user import User
from finshare.schemas.split_expense import SplitExpenseOut, SplitExpenseShareOut, SplitSummaryOut
from finshare.services.activity_services import log_activity
from finshare.services.user_service import find_users_by_ids

logger = structlog.get_logger(__name__)

DEFAULT_CURRENCY = "USD"
UNKNOWN_USER_NAME = "Unknown User"
TERMINAL_STATUSES = (ShareStatus.PAID, ShareStatus.DECLINED)


def _share_field(share, name):
    if isinstance(share, dict):
        return share.get(name)
    return getattr(share, name, None)


def _share_out(share: SplitExpenseShare, users: Optional[Dict[int, User]] = None) -> SplitExpenseShareOut:
    out = SplitExpenseShareOut.model_validate(share)
    if users is not None:
        user = users.get(share.user_id)
        out.user_name = user.name if user else UNKNOWN_USER_NAME
        out.user_email = user.email if user else ""
    return out


def _expense_out(expense: SplitExpense, shares: Sequence[SplitExpenseShare],
                 users: Dict[int, User]) -> SplitExpenseOut:
    return SplitExpenseOut(
        id=expense.id,
        title=expense.title,
        description=expense.description,
        category=expense.category,
        total_amount=expense.total_amount,
        currency=expense.currency,
        date=expense.date,
        creator_id=expense.creator_id,
        created_at=expense.created_at,
        shares=[_share_out(s, users) for s in shares],
    )


def _normalize_currency(currency: Optional[str], entity: str) -> str:
    code = (currency or DEFAULT_CURRENCY).strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"Invalid currency code: {currency!r}",
                              operation="create_split_expense", entity=entity)
    return code


async def _insert_shares(db: AsyncSession, expense: SplitExpense, creator_id: int,
                         shares: List[tuple]) -> List[SplitExpenseShare]:
    rows = [
        SplitExpenseShare(
            split_expense_id=expense.id,
            user_id=user_id,
            amount=amount,
            status=ShareStatus.PAID if user_id == creator_id else ShareStatus.PENDING,
        )
        for user_id, amount in shares
    ]
    db.add_all(rows)
    await db.flush()
    return rows


async def create_split_expense(
    db: AsyncSession,
    creator_id: int,
    title: str,
    description: Optional[str],
    category: str,
    total_amount,
    date: date,
    shares: Sequence,
    currency: Optional[str] = None,
) -> SplitExpenseOut:
    """
    Record a shared expense together with every participant's share.

    ``shares`` holds items with ``user_id`` and ``amount`` (objects or dicts).
    The creator's own share starts PAID, every other share starts PENDING.
    """
    op = "create_split_expense"
    entity = entity_ref("user", creator_id)

    # 1. Validate total and shares
    total = to_decimal(total_amount, op, entity)
    if total <= 0:
        raise ValidationError("Total amount must be positive", operation=op, entity=entity)

    if not shares:
        raise ValidationError("A split expense needs at least one share", operation=op, entity=entity)

    parsed = [
        (_share_field(s, "user_id"), to_decimal(_share_field(s, "amount"), op, entity))
        for s in shares
    ]

    # 2. Validate sum of shares == total, exact
    split_total = sum((amount for _, amount in parsed), Decimal("0"))
    if split_total != total:
        raise AmountMismatch(
            f"Sum of shares ({split_total}) must equal total amount ({total})",
            operation=op, entity=entity
        )

    # 3. Check duplicates
    user_ids = [uid for uid, _ in parsed]
    if any(uid is None for uid in user_ids):
        raise ValidationError("Every share needs a user_id", operation=op, entity=entity)

    if len(user_ids) != len(set(user_ids)):
        raise ValidationError("Duplicate users found in shares", operation=op, entity=entity)

    # 4. Validate positive whole-cent amounts
    if any(amount <= 0 for _, amount in parsed):
        raise ValidationError("Share amounts must be positive", operation=op, entity=entity)

    total = require_cents(total, op, entity)
    parsed = [(uid, require_cents(amount, op, entity)) for uid, amount in parsed]

    title = (title or "").strip()
    if not title:
        raise ValidationError("Title must not be blank", operation=op, entity=entity)

    code = _normalize_currency(currency, entity)

    # 5. Validate all users in shares exist
    users = {u.id: u for u in await find_users_by_ids(db, user_ids)}
    missing = sorted(set(user_ids) - set(users))
    if missing:
        raise NotFound(f"Unknown users in shares: {missing}",
                       operation=op, entity=entity_ref("user", missing[0]))

    # 6. Create expense and share records in one transaction
    async with atomic(db, op, entity):
        expense = SplitExpense(
            title=title,
            description=description,
            category=category,
            total_amount=total,
            currency=code,
            date=date,
            creator_id=creator_id,
        )
        db.add(expense)
        await db.flush()

        created_shares = await _insert_shares(db, expense, creator_id, parsed)

    out = _expense_out(expense, created_shares, users)

    logger.info("split_expense_created", expense_id=expense.id, creator_id=creator_id,
                total_amount=str(total), shares=len(created_shares))
    await log_activity(db, creator_id, ActivityType.TRANSACTION,
                       f"Created split expense: {title} ({total} {code})")

    return out


async def _load_expenses(db: AsyncSession, expense_ids: set, operation: str,
                         entity: str) -> List[SplitExpenseOut]:
    async with store_errors(operation, entity):
        expense_res = await db.execute(
            select(SplitExpense)
            .where(SplitExpense.id.in_(expense_ids))
            .order_by(SplitExpense.date.desc(), SplitExpense.created_at.desc(), SplitExpense.id.desc())
        )
        expenses = expense_res.scalars().all()

        share_res = await db.execute(
            select(SplitExpenseShare)
            .where(SplitExpenseShare.split_expense_id.in_(expense_ids))
            .order_by(SplitExpenseShare.id)
        )
        all_shares = share_res.scalars().all()

    users = {u.id: u for u in await find_users_by_ids(db, [s.user_id for s in all_shares])}

    shares_map: Dict[int, List[SplitExpenseShare]] = {}
    for share in all_shares:
        shares_map.setdefault(share.split_expense_id, []).append(share)

    return [_expense_out(e, shares_map.get(e.id, []), users) for e in expenses]


async def fetch_user_split_expenses(db: AsyncSession, user_id: int) -> List[SplitExpenseOut]:
    """Expenses the user created or holds a share in, each listed once."""
    op = "fetch_user_split_expenses"
    entity = entity_ref("user", user_id)

    async with store_errors(op, entity):
        share_ids = await db.execute(
            select(SplitExpenseShare.split_expense_id).where(SplitExpenseShare.user_id == user_id)
        )
        created_ids = await db.execute(
            select(SplitExpense.id).where(SplitExpense.creator_id == user_id)
        )
        expense_ids = set(share_ids.scalars().all()) | set(created_ids.scalars().all())

    if not expense_ids:
        return []

    return await _load_expenses(db, expense_ids, op, entity)


async def get_split_expense(db: AsyncSession, expense_id: int, user_id: int) -> SplitExpenseOut:
    op = "get_split_expense"
    entity = entity_ref("split_expense", expense_id)

    async with store_errors(op, entity):
        expense = await db.scalar(select(SplitExpense).where(SplitExpense.id == expense_id))
        if expense is None:
            raise NotFound("Split expense not found", operation=op, entity=entity)

        holds_share = await db.scalar(
            select(SplitExpenseShare.id).where(
                SplitExpenseShare.split_expense_id == expense_id,
                SplitExpenseShare.user_id == user_id
            )
        )

    if expense.creator_id != user_id and holds_share is None:
        raise PermissionDenied("Unauthorized access", operation=op, entity=entity)

    expenses = await _load_expenses(db, {expense_id}, op, entity)
    return expenses[0]


async def update_expense_share_status(
    db: AsyncSession,
    share_id: int,
    status,
    requesting_user_id: int,
) -> SplitExpenseShareOut:
    op = "update_expense_share_status"
    entity = entity_ref("split_expense_share", share_id)

    try:
        new_status = ShareStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown share status: {status!r}", operation=op, entity=entity)

    if new_status not in TERMINAL_STATUSES:
        raise ValidationError("A share can only be marked paid or declined", operation=op, entity=entity)

    async with store_errors(op, entity):
        share = await db.scalar(select(SplitExpenseShare).where(SplitExpenseShare.id == share_id))

    if share is None:
        raise NotFound("Share not found", operation=op, entity=entity)

    if share.user_id != requesting_user_id:
        raise PermissionDenied("Only the share holder can settle this share", operation=op, entity=entity)

    if share.status != ShareStatus.PENDING:
        raise InvalidStateTransition(
            f"Share is already {ShareStatus(share.status).value}", operation=op, entity=entity
        )

    async with atomic(db, op, entity):
        res = await db.execute(
            update(SplitExpenseShare)
            .where(
                SplitExpenseShare.id == share_id,
                SplitExpenseShare.status == ShareStatus.PENDING
            )
            .values(status=new_status)
        )
        if res.rowcount != 1:
            raise InvalidStateTransition("Share was settled by a concurrent request",
                                         operation=op, entity=entity)

    out = _share_out(share)
    out.status = new_status

    logger.info("split_expense_share_settled", share_id=share_id, user_id=requesting_user_id,
                status=new_status.value)
    await log_activity(
        db, requesting_user_id, ActivityType.TRANSACTION,
        f"Marked split expense share {share_id} as {new_status.value}"
    )

    return out


async def delete_split_expense(db: AsyncSession, expense_id: int, requesting_user_id: int):
    op = "delete_split_expense"
    entity = entity_ref("split_expense", expense_id)

    async with store_errors(op, entity):
        expense = await db.scalar(select(SplitExpense).where(SplitExpense.id == expense_id))

    if expense is None:
        raise NotFound("Split expense not found", operation=op, entity=entity)

    if expense.creator_id != requesting_user_id:
        raise PermissionDenied("You cannot delete this expense", operation=op, entity=entity)

    title = expense.title

    async with atomic(db, op, entity):
        # 1. Delete shares; a failure here aborts before the expense is touched
        await db.execute(
            delete(SplitExpenseShare).where(SplitExpenseShare.split_expense_id == expense_id)
        )
        # 2. Delete expense
        await db.execute(delete(SplitExpense).where(SplitExpense.id == expense_id))

    logger.info("split_expense_deleted", expense_id=expense_id, user_id=requesting_user_id)
    await log_activity(db, requesting_user_id, ActivityType.TRANSACTION,
                       f"Deleted split expense: {title}")

    return {"status": "deleted"}


async def get_user_split_summary(db: AsyncSession, user_id: int) -> SplitSummaryOut:
    """Pending amounts the user owes others and others owe the user."""
    op = "get_user_split_summary"

    async with store_errors(op, entity_ref("user", user_id)):
        debt_res = await db.execute(
            select(SplitExpenseShare.amount, SplitExpenseShare.status)
            .join(SplitExpense, SplitExpense.id == SplitExpenseShare.split_expense_id)
            .where(
                SplitExpenseShare.user_id == user_id,
                SplitExpense.creator_id != user_id
            )
        )
        cred_res = await db.execute(
            select(SplitExpenseShare.amount)
            .join(SplitExpense, SplitExpense.id == SplitExpenseShare.split_expense_id)
            .where(
                SplitExpense.creator_id == user_id,
                SplitExpenseShare.user_id != user_id,
                SplitExpenseShare.status == ShareStatus.PENDING
            )
        )
        debt_rows = debt_res.all()
        cred_rows = cred_res.all()

    you_owe = Decimal("0")
    pending = 0
    settled = 0
    for amount, status in debt_rows:
        if ShareStatus(status) == ShareStatus.PENDING:
            you_owe += Decimal(str(amount))
            pending += 1
        else:
            settled += 1

    owed_to_you = sum((Decimal(str(amount)) for (amount,) in cred_rows), Decimal("0"))

    return SplitSummaryOut(
        user_id=user_id,
        you_owe=qround(you_owe),
        owed_to_you=qround(owed_to_you),
        pending_shares=pending,
        settled_shares=settled,
    )
