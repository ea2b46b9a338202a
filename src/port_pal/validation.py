"""Sanitization and validation of registry records.

Applied uniformly on load and on save. Records are never repaired in place:
``validate_assignment`` builds a new PortAssignment from the raw value or
rejects it.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import math
import re
from typing import Any

import structlog

from .constants import (
    DEFAULT_ENV_PATH,
    LOCAL_PATH_PREFIX,
    MAX_ENV_PATH_LENGTH,
    MAX_NAME_LENGTH,
)
from .errors import RequestValidationError
from .models import AppType, AssignmentStatus, PortAssignment, now_ms

logger = structlog.get_logger(__name__)

_FORBIDDEN_CHARS = re.compile(r"[<>]")
_APP_TYPES = {t.value for t in AppType}


@dataclass(frozen=True)
class Accepted:
    """Record passed validation (possibly after sanitizing)."""

    assignment: PortAssignment


@dataclass(frozen=True)
class Rejected:
    """Record was dropped."""

    reason: str
    raw: Any = None


ValidationResult = Accepted | Rejected


def sanitize_string(value: Any, max_length: int) -> str:
    """Strip markup-breaking characters and truncate.

    Non-string values become the empty string.
    """
    if not isinstance(value, str):
        return ""
    return _FORBIDDEN_CHARS.sub("", value)[:max_length]


def _coerce_number(value: Any) -> int | None:
    """Best-effort numeric coercion; None when the value is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if math.isfinite(number) else None
    return None


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, AppType | AssignmentStatus) else value


def validate_assignment(raw: Any) -> ValidationResult:
    """Validate and sanitize one untrusted record.

    Rules:
        - name: forbidden characters stripped, truncated to 32; empty rejects the record
        - envPath: must start with "./", otherwise replaced by "./.env"
        - type: unknown values fall back to "web"
        - status: anything but "active" becomes "error"
        - port / timestamp: invalid values become 0 / now
    """
    if isinstance(raw, PortAssignment):
        raw = raw.to_wire()
    if not isinstance(raw, Mapping):
        return Rejected(reason="not_an_object", raw=raw)

    name = sanitize_string(raw.get("name"), MAX_NAME_LENGTH)
    if not name:
        return Rejected(reason="empty_name", raw=raw)

    env_path = sanitize_string(raw.get("envPath", raw.get("env_path")), MAX_ENV_PATH_LENGTH)
    if not env_path.startswith(LOCAL_PATH_PREFIX):
        env_path = DEFAULT_ENV_PATH

    app_type = _enum_value(raw.get("type"))
    if app_type not in _APP_TYPES:
        app_type = AppType.WEB.value

    status = _enum_value(raw.get("status"))
    status = AssignmentStatus.ACTIVE if status == "active" else AssignmentStatus.ERROR

    port = _coerce_number(raw.get("port")) or 0
    timestamp = _coerce_number(raw.get("timestamp")) or now_ms()

    return Accepted(
        PortAssignment(
            port=port,
            name=name,
            type=AppType(app_type),
            env_path=env_path,
            timestamp=timestamp,
            status=status,
        )
    )


def validate_collection(items: Iterable[Any]) -> list[PortAssignment]:
    """Validate every record, dropping rejected ones and duplicate ports.

    The first record claiming a port wins. Port 0 marks a coerced invalid port
    and is exempt, so such records are all kept.
    """
    accepted: list[PortAssignment] = []
    seen_ports: set[int] = set()

    for index, item in enumerate(items):
        result = validate_assignment(item)
        if isinstance(result, Rejected):
            logger.warning("assignment_rejected", index=index, reason=result.reason)
            continue

        assignment = result.assignment
        if assignment.port and assignment.port in seen_ports:
            logger.warning("assignment_duplicate_port", index=index, port=assignment.port)
            continue

        seen_ports.add(assignment.port)
        accepted.append(assignment)

    return accepted


def check_request_env_path(path: str | None) -> str:
    """Check the env path of an incoming request.

    Returns the path to use ("./.env" when none was given).

    Raises:
        RequestValidationError: path is not project-relative or climbs out of it.
    """
    if not path:
        return DEFAULT_ENV_PATH
    if not path.startswith(LOCAL_PATH_PREFIX):
        raise RequestValidationError(
            f"SecurityError: Path '{path}' is unsafe. Must start with '{LOCAL_PATH_PREFIX}'."
        )
    if ".." in re.split(r"[\\/]", path):
        raise RequestValidationError(
            f"SecurityError: Path '{path}' is unsafe. Directory traversal is not allowed."
        )
    return path
