"""Fixed port ranges, validation limits and seed data."""

from .models import AppType, AssignmentStatus, PortAssignment, PortRange, now_ms

PORT_RANGES: dict[AppType, PortRange] = {
    AppType.WEB: PortRange(start=3000, end=3999),
    AppType.API: PortRange(start=8000, end=8499),
    AppType.STREAMLIT: PortRange(start=8500, end=8999),
}

DEFAULT_ENV_PATH = "./.env"
LOCAL_PATH_PREFIX = "./"
MAX_NAME_LENGTH = 32
MAX_ENV_PATH_LENGTH = 64

# (port, name, type, env path, age in ms)
_SEED_ROWS = [
    (3000, "dashboard-main", AppType.WEB, "./.env", 100_000),
    (8000, "auth-service", AppType.API, "./.env", 200_000),
    (8080, "payment-gateway", AppType.API, "./services/payment/.env", 300_000),
    (8501, "analytics-viz", AppType.STREAMLIT, "./analytics/.env", 400_000),
]


def seed_assignments() -> list[PortAssignment]:
    """Default registry used whenever no valid persisted state exists."""
    now = now_ms()
    return [
        PortAssignment(
            port=port,
            name=name,
            type=app_type,
            env_path=env_path,
            timestamp=now - age,
            status=AssignmentStatus.ACTIVE,
        )
        for port, name, app_type, env_path, age in _SEED_ROWS
    ]
