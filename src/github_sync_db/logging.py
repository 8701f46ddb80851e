"""Centralized logging configuration using loguru.

Provides:
- Log level from Settings with --verbose/--quiet CLI overrides
- Standard library interception (SQLAlchemy, httpx)
- Context binding for integration, organization and repository scopes
- Optional rotating file sink
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_configured = False

_CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - "
    "<level>{message}</level>"
)

_STDLIB_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - "
    "<level>{message}</level>"
)

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{extra[name]}:{function}:{line} | "
    "{extra} | "
    "{message}"
)


class InterceptHandler(logging.Handler):
    """Route standard library log records (SQLAlchemy, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        from types import FrameType

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Walk out of the logging module so loguru reports the real caller
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None:
            if frame.f_code.co_filename != logging.__file__:
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure logging for the application.

    Args:
        level: Base log level from config
        verbose: If True, use DEBUG level (overrides level)
        quiet: If True, use WARNING level (overrides level)
        log_file: Optional path for file logging with rotation
        rotation: When to rotate log file (e.g., "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: If True, write JSON lines to the file sink

    Returns:
        Configured logger instance

    Note:
        verbose takes precedence over quiet if both are True.
    """
    global _configured

    effective_level: LogLevel
    if verbose:
        effective_level = "DEBUG"
    elif quiet:
        effective_level = "WARNING"
    else:
        effective_level = level

    logger.remove()

    logger.add(
        sys.stderr,
        level=effective_level,
        format=_CONSOLE_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=True,
        filter=lambda record: "name" in record["extra"],
    )

    # Records from intercepted stdlib loggers carry no bound name
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_STDLIB_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=True,
        filter=lambda record: "name" not in record["extra"],
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            filter=lambda record: "name" in record["extra"],
        )

    _intercept_stdlib_logging(effective_level)

    _configured = True
    return logger


def _intercept_stdlib_logging(level: LogLevel) -> None:
    """Send SQLAlchemy, httpx and other stdlib loggers through loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    if level in ("TRACE", "DEBUG"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    httpx_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    logging.getLogger("httpx").setLevel(httpx_level)
    logging.getLogger("httpcore").setLevel(httpx_level)


def get_logger(name: str) -> Logger:
    """Get a logger with the given name bound as context.

    Usage:
        from github_sync_db.logging import get_logger
        logger = get_logger(__name__)

        logger.bind(repo="octo-org/api").info("Fetched {count} commits", count=12)

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance with name bound
    """
    return logger.bind(name=name)


def bind_integration(integration_id: int) -> Logger:
    """Bind integration context to logger."""
    return logger.bind(name="sync", integration=integration_id)


def bind_org(integration_id: int, org: str) -> Logger:
    """Bind integration and organization context to logger."""
    return logger.bind(name="sync", integration=integration_id, org=org)


def bind_repo(integration_id: int, owner: str, repo: str) -> Logger:
    """Bind integration and repository context to logger.

    Args:
        integration_id: Owning integration ID
        owner: Repository owner (organization login)
        repo: Repository name

    Returns:
        Logger with integration, org and repo context bound
    """
    return logger.bind(
        name="sync",
        integration=integration_id,
        org=owner,
        repo=f"{owner}/{repo}",
    )


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Reset logging state (primarily for testing)."""
    global _configured
    logger.remove()
    _configured = False
