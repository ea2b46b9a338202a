"""Data models for the port registry."""

from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Literal
import uuid

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class AppType(str, Enum):
    """Application types, each bound to its own port range."""

    WEB = "web"
    API = "api"
    STREAMLIT = "streamlit"


class AssignmentStatus(str, Enum):
    """Lifecycle status of an assignment."""

    ACTIVE = "active"
    RESERVED = "reserved"
    ERROR = "error"


@dataclass(frozen=True)
class PortRange:
    """Inclusive port range."""

    start: int
    end: int

    def __contains__(self, port: object) -> bool:
        return isinstance(port, int) and self.start <= port <= self.end

    def __iter__(self):
        return iter(range(self.start, self.end + 1))

    def __len__(self) -> int:
        return self.end - self.start + 1


class PortAssignment(BaseModel):
    """One allocated port.

    Serialized with the camelCase wire names (``envPath``) so the persisted
    registry keeps its JSON shape.
    """

    model_config = ConfigDict(populate_by_name=True)

    port: int = Field(..., description="Port number, unique in the registry")
    name: str = Field(..., min_length=1, max_length=32, description="Project identifier")
    type: AppType = Field(..., description="Application type")
    env_path: str = Field(
        ...,
        alias="envPath",
        pattern=r"^\./",
        max_length=64,
        description="Project-relative env file",
    )
    timestamp: int = Field(default_factory=now_ms, description="Creation time (epoch ms)")
    status: AssignmentStatus = Field(default=AssignmentStatus.ACTIVE)

    def to_wire(self) -> dict:
        """Convert to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class CommandIntent(BaseModel):
    """Structured intent returned by the command oracle."""

    model_config = ConfigDict(extra="ignore")

    type: AppType | None = None
    name: str | None = None
    env: str | None = None
    validation_error: str | None = None
    is_help_request: bool


class RegistryUpdate(BaseModel):
    """Change marker sent on the sync channel.

    Carries no registry data; receivers re-load. ``origin`` identifies the
    publishing observer so it can skip its own messages.
    """

    type: Literal["REGISTRY_UPDATE"] = "REGISTRY_UPDATE"
    timestamp: int = Field(default_factory=now_ms)
    origin: str | None = None


@dataclass
class RegistrySnapshot:
    """Registry contents plus the backend version they were read at.

    ``version`` is None when the read failed and seed data was substituted.
    """

    assignments: list[PortAssignment]
    version: int | None


LogLevel = Literal["info", "success", "warning", "error", "system"]


@dataclass
class LogEntry:
    """One line in the terminal log."""

    level: LogLevel
    message: str
    timestamp: int = field(default_factory=now_ms)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
