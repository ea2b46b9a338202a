"""In-memory registry backend and notifier.

Process-local counterparts of the Redis implementations. Observers that share a
backend and a hub see each other's writes and notifications.
"""

import uuid

import structlog

from ..errors import RegistryConflictError
from ..models import RegistryUpdate
from .base import ChangeCallback, Unsubscribe, dispatch

logger = structlog.get_logger(__name__)


class InMemoryRegistryBackend:
    """Registry JSON kept in a Python attribute."""

    def __init__(self, raw: str | None = None):
        self.raw = raw
        self.version = 0 if raw is None else 1

    async def read(self) -> tuple[str | None, int]:
        return self.raw, self.version

    async def write(self, raw: str, expected_version: int | None = None) -> int:
        if expected_version is not None and expected_version != self.version:
            raise RegistryConflictError(expected_version, self.version)
        self.raw = raw
        self.version += 1
        return self.version


class InMemoryBroadcastHub:
    """Named channels shared by in-process notifiers."""

    def __init__(self):
        self.channels: dict[str, list[tuple[str, ChangeCallback]]] = {}

    def add(self, channel: str, observer_id: str, callback: ChangeCallback) -> None:
        self.channels.setdefault(channel, []).append((observer_id, callback))

    def remove(self, channel: str, observer_id: str, callback: ChangeCallback) -> None:
        subscribers = self.channels.get(channel, [])
        if (observer_id, callback) in subscribers:
            subscribers.remove((observer_id, callback))

    async def broadcast(self, channel: str, event: RegistryUpdate) -> int:
        delivered = 0
        # Copy so callbacks may unsubscribe while we iterate
        for observer_id, callback in list(self.channels.get(channel, [])):
            if observer_id == event.origin:
                continue
            await dispatch(callback, event)
            delivered += 1
        return delivered


class InMemoryChangeNotifier:
    """Change notifier over an InMemoryBroadcastHub."""

    def __init__(
        self,
        hub: InMemoryBroadcastHub | None = None,
        channel: str = "port_authority_sync_channel",
        observer_id: str | None = None,
    ):
        self.hub = hub or InMemoryBroadcastHub()
        self.channel = channel
        self.observer_id = observer_id or str(uuid.uuid4())
        self.published: list[RegistryUpdate] = []

    async def publish(self, event: RegistryUpdate) -> None:
        if event.origin is None:
            event = event.model_copy(update={"origin": self.observer_id})
        self.published.append(event)
        receivers = await self.hub.broadcast(self.channel, event)
        logger.debug("registry_update_published", channel=self.channel, receivers=receivers)

    async def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        self.hub.add(self.channel, self.observer_id, callback)

        async def unsubscribe() -> None:
            self.hub.remove(self.channel, self.observer_id, callback)

        return unsubscribe
