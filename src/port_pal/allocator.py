"""Range-based free port search."""

from collections.abc import Iterable

from .constants import PORT_RANGES
from .errors import AllocationExhaustedError
from .models import AppType, PortAssignment


def find_available_port(app_type: AppType | str, existing: Iterable[PortAssignment]) -> int:
    """Find the lowest unassigned port in the range of ``app_type``.

    Only looks at the given snapshot, so callers should pass the freshest
    registry contents right before committing. Ports are never reclaimed: the
    policy is "first gap, else fail".

    Raises:
        AllocationExhaustedError: every port in the range is taken.
    """
    app_type = AppType(app_type)
    port_range = PORT_RANGES[app_type]
    used = {a.port for a in existing}

    for port in port_range:
        if port not in used:
            return port

    raise AllocationExhaustedError(app_type.value, port_range.start, port_range.end)
