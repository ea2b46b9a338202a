"""Exceptions raised by Port Pal.

Every user-facing failure is a PortPalError; the terminal turns each one into a
single error line and the CLI into exit code 1.
"""


class PortPalError(Exception):
    """Base class for Port Pal failures."""

    pass


class OracleError(PortPalError):
    """The command oracle failed or returned something unusable."""

    pass


class RequestValidationError(PortPalError):
    """A request carried an unsafe path or lacked required fields."""

    pass


class AllocationExhaustedError(PortPalError):
    """Every port in the requested range is already assigned."""

    def __init__(self, app_type: str, start: int, end: int):
        self.app_type = app_type
        self.start = start
        self.end = end
        super().__init__(f"No available ports for type {app_type} ({start}-{end})")


class RegistryConflictError(PortPalError):
    """Another observer wrote the registry since our snapshot was taken."""

    def __init__(self, expected_version: int, actual_version: int | None = None):
        self.expected_version = expected_version
        self.actual_version = actual_version
        detail = "" if actual_version is None else f", found {actual_version}"
        super().__init__(
            f"Registry changed concurrently (expected version {expected_version}{detail})"
        )


class StorageError(PortPalError):
    """The registry backend could not be read or written."""

    pass
