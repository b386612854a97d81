"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.au_auction.api.bids_router import router as bids_router
from src.au_auction.api.router import router as auction_router
from src.au_common.database import engine
from src.au_common.errors import AppError, InternalError
from src.au_common.redis_client import close_redis, get_redis
from src.au_common.response import error_from, to_json_response
from src.au_gateway.middleware.request_log import RequestLogMiddleware
from src.au_notify.service import get_notification_dispatcher
from src.au_settlement.api.router import router as settlement_router
from src.au_settlement.application.service import init_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, start notifier and sweeper. Shutdown in reverse."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if settings.NOTIFY_BACKEND == "redis":
        await get_redis()
    dispatcher = get_notification_dispatcher()
    dispatcher.start()
    init_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()
    await dispatcher.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return to_json_response(error_from(exc), getattr(request.state, "request_id", None))


@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return to_json_response(
        error_from(InternalError()), getattr(request.state, "request_id", None)
    )


app.include_router(auction_router, prefix="/api/v1")
app.include_router(bids_router, prefix="/api/v1")
app.include_router(settlement_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
