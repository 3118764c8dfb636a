"""
Shared fixtures.

Every test gets its own SQLite file so the store behaves like a real shared
database (separate sessions, real commits and rollbacks).
"""
from datetime import date

import pytest
from sqlalchemy import func, select

import finshare.models.activity  # noqa: F401
import finshare.models.budget_diary  # noqa: F401
import finshare.models.split_expense  # noqa: F401
import finshare.models.split_expense_share  # noqa: F401
from finshare.db.session import Store
from finshare.models.budget_diary import BudgetDiary
from finshare.models.user import User


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'finshare.db'}"


@pytest.fixture
async def store(db_url):
    store = Store(db_url)
    await store.create_all()
    yield store
    await store.dispose()


@pytest.fixture
async def db(store):
    async with store.session() as session:
        yield session


@pytest.fixture
async def users(store):
    async with store.session() as session:
        people = {
            "alice": User(name="Alice", email="alice@example.com"),
            "bob": User(name="Bob", email="bob@example.com"),
            "carol": User(name="Carol", email="carol@example.com"),
            "dave": User(name="Dave", email="dave@example.com"),
        }
        session.add_all(people.values())
        await session.commit()
    return people


@pytest.fixture
async def diary(store, users):
    async with store.session() as session:
        sheet = BudgetDiary(user_id=users["alice"].id, name="Household", is_default=True)
        session.add(sheet)
        await session.commit()
    return sheet


@pytest.fixture
def today():
    return date(2026, 10, 18)


@pytest.fixture
def count_rows(store):
    async def _count(model, *criteria):
        async with store.session() as session:
            q = select(func.count()).select_from(model)
            if criteria:
                q = q.where(*criteria)
            return await session.scalar(q)
    return _count
