from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from garden_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from garden_chat.api.routers import health, ws
from garden_chat.config import settings
from garden_chat.domain.entities.message import Message
from garden_chat.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber

logger = logging.getLogger(__name__)


async def _on_bus_message(message: Message) -> None:
    """Fan a published message out to the sockets joined to its conversation."""
    delivered = await ws.get_manager().broadcast_message(message)
    logger.debug(
        "Message %s delivered to %d socket(s) of conversation=%s",
        message.id,
        delivered,
        message.conversation_id,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        _on_bus_message,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Clean & Garden Chat Relay",
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
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(health.router)
    app.include_router(ws.router)

    return app
