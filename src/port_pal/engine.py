"""Command engine: turns requests into committed port assignments.

Reproduces a ``port_pal.py`` run step by step in the terminal log:

    intent -> request checks -> "Executing: ..." -> (cosmetic lock retry)
    -> fresh snapshot -> allocate -> conditional save -> "Assigned PORT ..."
"""

import asyncio
from collections.abc import Awaitable, Callable
import random

import structlog

from .allocator import find_available_port
from .config import Settings
from .envfile import write_port_to_env
from .errors import PortPalError, RegistryConflictError, RequestValidationError
from .models import AppType, AssignmentStatus, PortAssignment
from .oracle import CommandOracle
from .registry import RegistryStore
from .terminal import TerminalLog
from .validation import Accepted, check_request_env_path, validate_assignment

logger = structlog.get_logger(__name__)

HELP_MESSAGE = "Help: Usage example: 'Assign a web port for project dashboard'"
INCOMPLETE_MESSAGE = (
    "Incomplete request. Please specify project name and type (web/api/streamlit)."
)
REMOTE_SYNC_MESSAGE = "Registry synced: Update received from remote agent."


class PortPal:
    """Allocation front-end shared by the CLI commands and the interactive shell."""

    def __init__(
        self,
        store: RegistryStore,
        terminal: TerminalLog,
        settings: Settings,
        oracle: CommandOracle | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.terminal = terminal
        self.settings = settings
        self.oracle = oracle
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.processing = False

    async def handle_command(self, text: str) -> PortAssignment | None:
        """Handle one natural-language request end to end.

        Every outcome is reported as terminal lines; PortPalError never
        escapes. Returns the new assignment on success.
        """
        self.terminal.add("info", text)
        self.processing = True
        try:
            if self.oracle is None:
                self.terminal.add("error", "Oracle unavailable: no LLM configured.")
                return None

            intent = await self.oracle.parse(text)

            if intent.is_help_request:
                self.terminal.add("system", HELP_MESSAGE)
                return None

            if intent.validation_error:
                self.terminal.add("error", f"SecurityError: {intent.validation_error}")
                return None

            if not intent.type or not intent.name:
                self.terminal.add("warning", INCOMPLETE_MESSAGE)
                return None

            return await self.assign(intent.type, intent.name, intent.env)

        except PortPalError as e:
            logger.warning("command_failed", error=str(e), error_type=type(e).__name__)
            self.terminal.add("error", str(e))
            return None
        finally:
            self.processing = False

    async def assign(
        self,
        app_type: AppType | str,
        name: str,
        env_path: str | None = None,
        write_env: bool = False,
    ) -> PortAssignment:
        """Allocate and commit a port for ``name``.

        Raises:
            RequestValidationError: unsafe env path or a name that sanitizes to nothing.
            AllocationExhaustedError: no free port in the range.
            RegistryConflictError: concurrent writers won every commit attempt.
            StorageError: the registry could not be written.
        """
        app_type = AppType(app_type)
        env_path = check_request_env_path(env_path)

        command = f"python port_pal.py --type {app_type.value} --name {name} --env {env_path}"
        self.terminal.add("system", f"Executing: {command}")

        await self._simulate_contention()
        await self.sleep(self.settings.processing_delay_seconds)

        assignment = await self._commit(app_type, name, env_path)

        self.terminal.add(
            "success",
            f"Assigned PORT {assignment.port} to '{assignment.name}' ({app_type.value})",
        )

        if write_env:
            target = write_port_to_env(assignment.env_path, assignment.port)
            self.terminal.add("system", f"Wrote PORT={assignment.port} to {target}")

        return assignment

    async def _simulate_contention(self) -> None:
        # Cosmetic only: there is no lock behind it and it always proceeds
        delay = self.settings.lock_retry_delay_seconds
        if self.rng.random() < self.settings.contention_probability:
            self.terminal.add(
                "warning",
                f"LockError: Registry locked by another process. Retrying in {delay:g}s...",
            )
            await self.sleep(delay)
            self.terminal.add("system", "Retry attempt 1/1...")

    async def _commit(self, app_type: AppType, name: str, env_path: str) -> PortAssignment:
        attempts = self.settings.max_commit_attempts
        attempt = 0

        while True:
            attempt += 1
            # Re-check availability against the freshest registry contents
            snapshot = await self.store.load_snapshot()
            port = find_available_port(app_type, snapshot.assignments)

            result = validate_assignment(
                {
                    "port": port,
                    "name": name,
                    "type": app_type.value,
                    "envPath": env_path,
                    "status": AssignmentStatus.ACTIVE.value,
                }
            )
            if not isinstance(result, Accepted):
                raise RequestValidationError(f"Invalid project name: '{name}'")
            assignment = result.assignment

            try:
                await self.store.save(
                    [*snapshot.assignments, assignment],
                    expected_version=snapshot.version,
                )
            except RegistryConflictError:
                logger.warning("registry_commit_conflict", attempt=attempt, port=port)
                if attempt >= attempts:
                    raise
                self.terminal.add(
                    "warning",
                    f"Registry changed by another agent. Retry {attempt}/{attempts - 1}...",
                )
                continue

            logger.info(
                "port_assigned",
                port=assignment.port,
                name=assignment.name,
                type=app_type.value,
                attempt=attempt,
            )
            return assignment

    async def watch_remote_changes(self) -> Callable[[], Awaitable[None]]:
        """Log a sync line whenever another observer saves the registry."""

        async def on_update(_assignments: list[PortAssignment]) -> None:
            self.terminal.add("system", REMOTE_SYNC_MESSAGE)

        return await self.store.on_change(on_update)
