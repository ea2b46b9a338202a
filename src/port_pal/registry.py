"""Registry store: load, validate, save and announce port assignments."""

from collections.abc import Callable, Iterable
import json
from typing import Any

import structlog

from .backends.base import ChangeNotifier, RegistryBackend, Unsubscribe, dispatch
from .constants import seed_assignments
from .errors import StorageError
from .models import PortAssignment, RegistrySnapshot, RegistryUpdate
from .validation import validate_collection

logger = structlog.get_logger(__name__)


class RegistryStore:
    """Authoritative collection of port assignments shared by all observers.

    Writes replace the whole collection. Without an expected version the last
    writer wins; with one, a concurrent write raises RegistryConflictError.
    """

    def __init__(
        self,
        backend: RegistryBackend,
        notifier: ChangeNotifier,
        *,
        seed_factory: Callable[[], list[PortAssignment]] = seed_assignments,
    ):
        self.backend = backend
        self.notifier = notifier
        self.seed_factory = seed_factory

    @property
    def observer_id(self) -> str:
        return self.notifier.observer_id

    async def load(self) -> list[PortAssignment]:
        """Read the registry, falling back to seed data if it is missing or corrupt."""
        return (await self.load_snapshot()).assignments

    async def load_snapshot(self) -> RegistrySnapshot:
        """Read the registry together with its backend version.

        Never raises for read or parse problems; they are logged and the seed
        set is returned instead.
        """
        try:
            raw, version = await self.backend.read()
        except StorageError as e:
            logger.error("registry_read_failed", error=str(e))
            return RegistrySnapshot(assignments=self.seed_factory(), version=None)

        if raw is None:
            logger.debug("registry_empty_using_seed")
            return RegistrySnapshot(assignments=self.seed_factory(), version=version)

        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("registry_corrupt", error=str(e), version=version)
            return RegistrySnapshot(assignments=self.seed_factory(), version=version)

        if not isinstance(parsed, list):
            logger.error("registry_corrupt", error="not a list", version=version)
            return RegistrySnapshot(assignments=self.seed_factory(), version=version)

        assignments = validate_collection(parsed)
        logger.debug(
            "registry_loaded",
            stored=len(parsed),
            valid=len(assignments),
            version=version,
        )
        return RegistrySnapshot(assignments=assignments, version=version)

    async def save(
        self,
        assignments: Iterable[PortAssignment | dict[str, Any]],
        *,
        expected_version: int | None = None,
    ) -> RegistrySnapshot:
        """Validate, persist and announce a full collection.

        Raises:
            RegistryConflictError: ``expected_version`` no longer matches.
            StorageError: the backend write failed (nothing is published).
        """
        safe = validate_collection(assignments)
        raw = json.dumps([a.to_wire() for a in safe])

        version = await self.backend.write(raw, expected_version)
        logger.info("registry_saved", count=len(safe), version=version)

        await self.notifier.publish(RegistryUpdate(origin=self.observer_id))
        return RegistrySnapshot(assignments=safe, version=version)

    async def subscribe(self, callback: Callable[[RegistryUpdate], Any]) -> Unsubscribe:
        """Register a raw change callback with the notifier."""
        return await self.notifier.subscribe(callback)

    async def on_change(
        self, callback: Callable[[list[PortAssignment]], Any]
    ) -> Unsubscribe:
        """Re-load the registry on every remote change and hand it to ``callback``."""

        async def reload(_event: RegistryUpdate) -> None:
            await dispatch(callback, await self.load())

        return await self.notifier.subscribe(reload)
