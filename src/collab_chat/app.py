from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from collab_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from collab_chat.api.middleware.metrics import RequestTimingMiddleware
from collab_chat.api.v1.routers import (
    chatroom,
    conversations,
    health,
    notifications,
    ws,
)
from collab_chat.application.exceptions import (
    AppError,
    ChannelError,
    ConflictError,
    DeliveryError,
    ForbiddenError,
    HistoryFetchError,
    NotFoundError,
    ValidationError,
)
from collab_chat.config import settings
from collab_chat.infrastructure.bus.redis_pubsub import RedisPushChannel

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (ConflictError, 409),
    (ValidationError, 422),
    (DeliveryError, 502),
    (HistoryFetchError, 502),
    (ChannelError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    push_channel = RedisPushChannel(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        reconnect_delay=settings.REDIS_RECONNECT_SECONDS,
    )
    await push_channel.start()
    app.state.push_channel = push_channel

    yield

    await push_channel.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Collab Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(chatroom.router)
    app.include_router(notifications.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    for error_cls, status_code in _STATUS_BY_ERROR:
        app.add_exception_handler(error_cls, _json_handler(status_code))


def _json_handler(status_code: int):
    async def _handle(_req: Request, exc: AppError) -> JSONResponse:
        if status_code >= 500:
            logger.warning("%s: %s", type(exc).__name__, exc.detail)
        return JSONResponse(status_code=status_code, content={"detail": exc.detail})

    return _handle
