"""Interfaces shared by the registry backends and change notifiers."""

from collections.abc import Awaitable, Callable
import inspect
from typing import Any, Protocol

import structlog

from ..models import RegistryUpdate

logger = structlog.get_logger(__name__)

ChangeCallback = Callable[[RegistryUpdate], Any]
Unsubscribe = Callable[[], Awaitable[None]]


class RegistryBackend(Protocol):
    """Versioned storage for the raw registry JSON."""

    async def read(self) -> tuple[str | None, int]:
        """Return the stored JSON (None if never written) and its version."""
        ...

    async def write(self, raw: str, expected_version: int | None = None) -> int:
        """Store ``raw`` and return the new version.

        When ``expected_version`` is given the write only happens if the stored
        version still matches; otherwise RegistryConflictError is raised.
        """
        ...


class ChangeNotifier(Protocol):
    """Best-effort broadcast of registry changes between observers."""

    observer_id: str

    async def publish(self, event: RegistryUpdate) -> None: ...

    async def subscribe(self, callback: ChangeCallback) -> Unsubscribe: ...


async def dispatch(callback: Callable[[Any], Any], payload: Any) -> None:
    """Invoke a plain or async callback, logging instead of raising."""
    try:
        result = callback(payload)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(
            "change_callback_failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
