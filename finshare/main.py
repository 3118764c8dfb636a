from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import finshare.models.user  # noqa: F401  register every table on Base.metadata
import finshare.models.budget_diary  # noqa: F401
import finshare.models.split_expense  # noqa: F401
import finshare.models.split_expense_share  # noqa: F401
import finshare.models.activity  # noqa: F401
from finshare.api.v1.routes.activity import router as activity_router
from finshare.api.v1.routes.budget_diary import router as budget_diary_router
from finshare.api.v1.routes.investment import router as investment_router
from finshare.api.v1.routes.split_expense import router as split_expense_router
from finshare.api.v1.routes.user import router as user_router
from finshare.core.config import Settings
from finshare.core.exceptions import FinShareError
from finshare.core.logging import configure_logging
from finshare.db.session import Store

logger = structlog.get_logger(__name__)


async def finshare_error_handler(request: Request, exc: FinShareError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_failed", path=request.url.path, error=exc.code,
        operation=exc.operation, entity=exc.entity)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = Store(settings.DATABASE_URL, echo=settings.DB_ECHO, pool_timeout=settings.DB_POOL_TIMEOUT)
        if settings.DB_CREATE_ALL:
            await store.create_all()
        app.state.store = store
        logger.info("store_opened", database=store.engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            await store.dispose()
            logger.info("store_closed")

    app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FinShareError, finshare_error_handler)

    @app.get("/")
    async def root():
        return {"message": "FinShare backend is live"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.include_router(user_router, prefix="/api/v1/users")
    app.include_router(budget_diary_router, prefix="/api/v1/budget-diaries")
    app.include_router(split_expense_router, prefix="/api/v1/split-expenses")
    app.include_router(investment_router, prefix="/api/v1/investments")
    app.include_router(activity_router, prefix="/api/v1/activities")

    return app


def run():
    import uvicorn

    uvicorn.run("finshare.main:create_app", factory=True, host="0.0.0.0", port=8000)
