"""Structured logging setup.

Modules log through get_logger(), which binds structlog to the stdlib
logger of the same name.  Nothing is configured on import: until a host
calls configure_logging(), events stop at the NullHandler on the
``structdiff`` logger.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from .config import DiffConfig

PACKAGE_LOGGER = "structdiff"

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _create_handler(destination: str) -> logging.Handler:
    """Create handler for stderr, stdout, or file path."""
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(destination).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def configure_logging(
    *,
    config: Optional["DiffConfig"] = None,
    level: Optional[str] = None,
    json_format: bool = False,
    destination: str = "stderr",
) -> None:
    """Configure structlog through stdlib logging.

    Args:
        config: Take the level from this config when `level` is not given
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Render JSON lines instead of console key=value output
        destination: "stderr", "stdout", or a file path
    """
    if level is None:
        level = config.log_level if config is not None else "WARNING"
    numeric_level = _LEVEL_MAP.get(level.upper(), logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Don't cache - allows reconfiguration and respects level changes
        cache_logger_on_first_use=False,
    )

    renderer: structlog.types.Processor
    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler = _create_handler(destination)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()
    package_logger.addHandler(handler)
    package_logger.setLevel(numeric_level)
    package_logger.propagate = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger writing to the stdlib logger `name`."""
    return structlog.wrap_logger(logging.getLogger(name))  # type: ignore[no-any-return]
