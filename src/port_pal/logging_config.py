"""structlog setup shared by every Port Pal entry point.

The CLI points the stream at stderr; stdout is reserved for command output.
"""

import logging
import os
import sys
from typing import Literal, TextIO

import structlog
from structlog.types import Processor


def setup_logging(
    service_name: str | None = None,
    log_format: Literal["json", "console"] | None = None,
    log_level: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route stdlib logging and structlog through one renderer.

    Unset arguments come from PORT_PAL_SERVICE_NAME, PORT_PAL_LOG_FORMAT and
    PORT_PAL_LOG_LEVEL (defaults: "port-pal", console, INFO). Console output is
    colored only when writing to a tty.
    """
    service_name = service_name or os.getenv("PORT_PAL_SERVICE_NAME", "port-pal")
    log_format = log_format or os.getenv("PORT_PAL_LOG_FORMAT", "console")
    log_level = log_level or os.getenv("PORT_PAL_LOG_LEVEL", "INFO")

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=numeric_level,
        force=True,
    )

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        # observer_id and service are bound through contextvars
        structlog.contextvars.merge_contextvars,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=False))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=(stream or sys.stdout).isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=service_name)

    logger = structlog.get_logger()
    logger.debug(
        "logging_initialized",
        service=service_name,
        log_format=log_format,
        log_level=log_level,
    )

