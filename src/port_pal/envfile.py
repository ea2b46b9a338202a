"""Write assigned ports into project env files."""

from pathlib import Path

from dotenv import set_key
import structlog

from .validation import check_request_env_path

logger = structlog.get_logger(__name__)


def write_port_to_env(env_path: str, port: int, base_dir: Path | None = None) -> Path:
    """Set ``PORT=<port>`` in a project-relative env file, creating it if needed.

    Raises:
        RequestValidationError: the path is not a safe relative path.
    """
    env_path = check_request_env_path(env_path)
    target = (base_dir or Path.cwd()) / env_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.touch(exist_ok=True)

    set_key(str(target), "PORT", str(port), quote_mode="never")
    logger.info("env_port_written", path=str(target), port=port)
    return target
