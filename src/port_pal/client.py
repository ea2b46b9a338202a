from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import uuid

import redis.asyncio as redis
import structlog

from .backends import (
    InMemoryChangeNotifier,
    InMemoryRegistryBackend,
    RedisChangeNotifier,
    RedisRegistryBackend,
)
from .config import Settings
from .registry import RegistryStore

logger = structlog.get_logger(__name__)


def get_redis_client(settings: Settings) -> redis.Redis:
    return redis.from_url(settings.redis_url, decode_responses=True)


def build_registry(
    settings: Settings,
    redis_client: redis.Redis | None = None,
    observer_id: str | None = None,
) -> RegistryStore:
    """Wire a RegistryStore to the configured backend."""
    observer_id = observer_id or str(uuid.uuid4())

    if settings.storage_backend == "memory":
        return RegistryStore(
            InMemoryRegistryBackend(),
            InMemoryChangeNotifier(channel=settings.sync_channel, observer_id=observer_id),
        )

    if redis_client is None:
        redis_client = get_redis_client(settings)
    return RegistryStore(
        RedisRegistryBackend(redis_client, settings.registry_key),
        RedisChangeNotifier(redis_client, settings.sync_channel, observer_id=observer_id),
    )


@asynccontextmanager
async def registry_session(settings: Settings) -> AsyncIterator[RegistryStore]:
    """RegistryStore for the lifetime of one command, closing Redis afterwards."""
    redis_client = get_redis_client(settings) if settings.storage_backend == "redis" else None
    store = build_registry(settings, redis_client=redis_client)
    structlog.contextvars.bind_contextvars(observer_id=store.observer_id)
    logger.debug("registry_session_opened", backend=settings.storage_backend)
    try:
        yield store
    finally:
        if redis_client is not None:
            await redis_client.aclose()
            logger.debug("redis_connection_closed")
