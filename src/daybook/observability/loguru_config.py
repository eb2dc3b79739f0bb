"""Loguru configuration for daybook.

This module provides centralized loguru configuration with:
- Colored console output
- Structured JSON log file with rotation and retention
- Component-bound loggers (storage, rollover, retention, scheduler, service)
- Context manager for timing operations
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "COMPONENTS",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("storage", "rollover", "retention", "scheduler", "service")


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "14 days",
    compression: str = "zip",
    enable_console: bool = True,
) -> None:
    """Configure loguru sinks.

    Parameters
    ----------
    log_dir
        Directory for the JSONL log file (no file sink when None)
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "50 MB", "1 day")
    retention
        Log retention policy (e.g., "14 days", "1 week")
    compression
        Compression for rotated logs (zip, gz, bz2, xz)
    enable_console
        Enable console output

    Example
    -------
    >>> configure_loguru(log_dir=Path("logs"), level="DEBUG")
    """
    logger.remove()

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "daybook.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=True,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    logger.configure(extra={"component": "daybook"})
    get_logger("daybook").info("Loguru configured", log_dir=str(log_dir) if log_dir else None, level=level)


def get_logger(component: str = "daybook") -> Any:
    """Get logger instance bound to specific component.

    Parameters
    ----------
    component
        Component name (storage, rollover, retention, scheduler, service)

    Returns
    -------
    Logger
        Loguru logger bound to component
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "daybook",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Context manager logging the duration of an operation.

    Parameters
    ----------
    operation
        Name of the operation being timed
    component
        Component name for filtering logs
    **metadata
        Additional metadata to log

    Yields
    ------
    dict
        Context dictionary that can be updated with result data

    Example
    -------
    >>> with timing_context("rollover", component="rollover", day="2024-01-01") as ctx:
    ...     ctx["archived"] = True
    """
    start_time = time.perf_counter()
    context: dict[str, Any] = dict(metadata)
    bound = logger.bind(component=component, timing=True, operation=operation)

    bound.debug(f"START: {operation}", phase="start", **metadata)

    try:
        yield context
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        bound.debug(f"END: {operation}", phase="end", duration_ms=duration_ms, **context)
