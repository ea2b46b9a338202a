"""Redis-backed registry storage and pub/sub change notifier.

Layout:
    <registry_key>          JSON array of assignments
    <registry_key>:version  integer bumped on every write
    <sync_channel>          pub/sub channel carrying REGISTRY_UPDATE messages
"""

import asyncio
import json
import uuid

from pydantic import ValidationError
import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError
import structlog

from ..errors import RegistryConflictError, StorageError
from ..models import RegistryUpdate
from .base import ChangeCallback, Unsubscribe, dispatch

logger = structlog.get_logger(__name__)


def _as_text(value: str | bytes | None) -> str | None:
    if isinstance(value, bytes):
        return value.decode()
    return value


def _parse_version(value: str | bytes | None) -> int:
    try:
        return int(value or 0)
    except ValueError as e:
        raise StorageError(f"Registry version is not an integer: {value!r}") from e


class RedisRegistryBackend:
    """Registry JSON stored under a single Redis key with a version counter.

    Undecodable bytes and a non-integer version counter surface as
    StorageError, like connection failures.
    """

    def __init__(self, client: redis.Redis, key: str):
        self.redis = client
        self.key = key
        self.version_key = f"{key}:version"

    async def read(self) -> tuple[str | None, int]:
        try:
            raw, version = await self.redis.mget(self.key, self.version_key)
            return _as_text(raw), _parse_version(version)
        except (RedisError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read registry: {e}") from e

    async def write(self, raw: str, expected_version: int | None = None) -> int:
        try:
            if expected_version is None:
                async with self.redis.pipeline(transaction=True) as pipe:
                    pipe.set(self.key, raw)
                    pipe.incr(self.version_key)
                    _, version = await pipe.execute()
                return int(version)

            return await self._compare_and_write(raw, expected_version)
        except (RedisError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to write registry: {e}") from e

    async def _compare_and_write(self, raw: str, expected_version: int) -> int:
        async with self.redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(self.version_key)
                current = _parse_version(await pipe.get(self.version_key))
                if current != expected_version:
                    raise RegistryConflictError(expected_version, current)

                pipe.multi()
                pipe.set(self.key, raw)
                pipe.incr(self.version_key)
                _, version = await pipe.execute()
            except WatchError as e:
                # Someone wrote between WATCH and EXEC
                raise RegistryConflictError(expected_version) from e

        logger.debug("registry_cas_write", key=self.key, version=version)
        return int(version)


class RedisChangeNotifier:
    """Change notifier over Redis pub/sub.

    Each subscription gets its own pubsub connection and a background task
    that polls for messages until unsubscribed.
    """

    def __init__(
        self,
        client: redis.Redis,
        channel: str,
        observer_id: str | None = None,
        poll_timeout: float = 1.0,
        error_backoff: float = 1.0,
    ):
        self.redis = client
        self.channel = channel
        self.observer_id = observer_id or str(uuid.uuid4())
        self.poll_timeout = poll_timeout
        self.error_backoff = error_backoff

    async def publish(self, event: RegistryUpdate) -> None:
        """Publish a change marker; failures are logged, not raised."""
        if event.origin is None:
            event = event.model_copy(update={"origin": self.observer_id})
        try:
            receivers = await self.redis.publish(self.channel, event.model_dump_json())
            logger.debug("registry_update_published", channel=self.channel, receivers=receivers)
        except RedisError as e:
            logger.error("registry_update_publish_failed", channel=self.channel, error=str(e))

    async def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        logger.info("redis_channel_subscribed", channel=self.channel)

        task = asyncio.create_task(self._listen(pubsub, callback))

        async def unsubscribe() -> None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            try:
                await pubsub.unsubscribe(self.channel)
                await pubsub.aclose()
            except RedisError as e:
                logger.error(
                    "redis_pubsub_close_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
            logger.info("redis_channel_unsubscribed", channel=self.channel)

        return unsubscribe

    async def _listen(self, pubsub, callback: ChangeCallback) -> None:
        while True:
            try:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self.poll_timeout
                )
                if message is None:
                    await asyncio.sleep(0.01)
                    continue
                if message["type"] != "message":
                    continue

                event = self._parse(message["data"])
                if event is None or event.origin == self.observer_id:
                    continue

                logger.info("registry_update_received", origin=event.origin)
                await dispatch(callback, event)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Undecodable payloads surface here too; keep listening
                logger.error(
                    "registry_listener_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                await asyncio.sleep(self.error_backoff)

    def _parse(self, data: str | bytes) -> RegistryUpdate | None:
        try:
            return RegistryUpdate.model_validate(json.loads(_as_text(data)))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.warning("registry_update_ignored", error=str(e), raw_message=data)
            return None
