import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from finshare.core.exceptions import FinShareError, StoreUnavailable
from finshare.db.base import Base

logger = structlog.get_logger(__name__)

STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Store:

    def __init__(self, url: str, echo: bool = False, pool_timeout: float = 10.0):
        self.url = url
        if url.startswith("sqlite"):
            self.engine = create_async_engine(url, echo=echo)
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_async_engine(
                url,
                echo=echo,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=pool_timeout,
            )
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)

    def session(self) -> AsyncSession:
        return self.sessionmaker()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    store: Store = request.app.state.store
    async with store.session() as session:
        yield session


@asynccontextmanager
async def store_errors(operation: str, entity: Optional[str] = None):
    """Translate store failures raised by reads into ``StoreUnavailable``."""
    try:
        yield
    except STORE_ERRORS as e:
        logger.warning("store_read_failed", operation=operation, entity=entity, error=str(e))
        raise StoreUnavailable(
            f"Store unavailable during {operation}", operation=operation, entity=entity
        ) from e


async def _rollback(db: AsyncSession, operation: str, entity: Optional[str]) -> None:
    try:
        await db.rollback()
    except STORE_ERRORS as e:
        logger.error(
            "rollback_failed",
            operation=operation,
            entity=entity,
            needs_reconciliation=True,
            error=str(e),
        )
        raise StoreUnavailable(
            f"Rollback failed during {operation}; manual reconciliation required",
            operation=operation,
            entity=entity,
            needs_reconciliation=True,
        ) from e


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str, entity: Optional[str] = None):
    """Run the enclosed writes as one unit: commit all of them or none."""
    try:
        yield db
        await db.commit()
    except FinShareError:
        await _rollback(db, operation, entity)
        raise
    except STORE_ERRORS as e:
        logger.warning("store_write_failed", operation=operation, entity=entity, error=str(e))
        await _rollback(db, operation, entity)
        raise StoreUnavailable(
            f"Store unavailable during {operation}", operation=operation, entity=entity
        ) from e
