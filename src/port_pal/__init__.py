"""Port Pal: local port assignment registry."""

from .allocator import find_available_port
from .errors import (
    AllocationExhaustedError,
    OracleError,
    PortPalError,
    RegistryConflictError,
    RequestValidationError,
    StorageError,
)
from .models import AppType, AssignmentStatus, PortAssignment, RegistryUpdate
from .registry import RegistryStore

__all__ = [
    "AllocationExhaustedError",
    "AppType",
    "AssignmentStatus",
    "OracleError",
    "PortAssignment",
    "PortPalError",
    "RegistryConflictError",
    "RegistryStore",
    "RegistryUpdate",
    "RequestValidationError",
    "StorageError",
    "find_available_port",
]
