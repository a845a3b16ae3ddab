"""Logging configuration for Blocker Diverter.

Uses Python's standard logging module with support for:
- File logging via config or BLOCKER_DIVERTER_LOG environment variable
- Stderr fallback when running on a real console
- Forwarding records to the host runtime's log API (HostLogHandler)

The host sink is best effort: a failing or hanging host logger must never
break a hook, so every sink failure is discarded inside the handler.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from blockerdiverter.config.schema import LoggingConfig

SERVICE_NAME = "blocker-diverter"

# Module-level logger
logger = logging.getLogger("blockerdiverter")

_initialized = False

# Map string level names to logging constants
_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Host log APIs use short lowercase level names
_HOST_LEVELS = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Initialize logging based on configuration.

    Call this once at startup. Subsequent calls are no-ops.

    Args:
        config: Optional LoggingConfig with level and file settings.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    log_level = logging.INFO
    if config and config.level:
        log_level = _LEVEL_MAP.get(config.level.upper(), logging.INFO)

    logger.setLevel(log_level)

    # Format: HH:MM:SS level: message
    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S"
    )

    log_path = config.file if config and config.file else os.environ.get("BLOCKER_DIVERTER_LOG")

    if log_path:
        log_path = os.path.expanduser(log_path)
        try:
            file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[blocker-diverter] Failed to open log file: {e}", file=sys.stderr)
                _add_stderr_handler(formatter, log_level)
    elif sys.stderr.isatty():
        # Only log to stderr if it's a real console, not a pipe owned by the host
        _add_stderr_handler(formatter, log_level)


def _add_stderr_handler(formatter: logging.Formatter, level: int = logging.DEBUG) -> None:
    """Add a stderr handler to the logger."""
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)


class HostLogHandler(logging.Handler):
    """Forwards log records to the host runtime's structured log API.

    The sink receives ``{"service", "level", "message"}`` and may be a plain
    callable or a coroutine function. Coroutines are scheduled on the event
    loop the handler was created on (or last emitted from); records logged
    from worker threads are handed to that loop thread-safely. Without any
    known loop the coroutine is closed unscheduled. Exceptions raised by the
    sink, synchronously or from the scheduled task, are discarded.
    """

    def __init__(self, sink: Callable[[dict[str, Any]], Any], level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._sink = sink
        self._tasks: set[asyncio.Task[Any]] = set()
        try:
            self._loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    def emit(self, record: logging.LogRecord) -> None:
        entry = {
            "service": SERVICE_NAME,
            "level": _HOST_LEVELS.get(record.levelno, "info"),
            "message": record.getMessage(),
        }
        try:
            result = self._sink(entry)
        except Exception:
            return
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._loop = loop
            self._schedule(result)
            return

        # Worker thread (e.g. asyncio.to_thread): hand off to the owning loop
        loop = self._loop
        if loop is None or loop.is_closed():
            _discard(result)
            return
        try:
            loop.call_soon_threadsafe(self._schedule, result)
        except RuntimeError:
            _discard(result)

    def _schedule(self, awaitable: Any) -> None:
        task = asyncio.ensure_future(_await_quietly(awaitable))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for in-flight host log calls (used by tests and shutdown)."""
        # Let callbacks handed over from worker threads create their tasks
        await asyncio.sleep(0)
        if self._tasks:
            await asyncio.gather(*list(self._tasks))


def _discard(awaitable: Any) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()


async def _await_quietly(awaitable: Any) -> None:
    try:
        await awaitable
    except Exception:
        pass


def attach_host_sink(sink: Callable[[dict[str, Any]], Any]) -> HostLogHandler:
    """Attach a HostLogHandler for ``sink`` to the package logger.

    Returns:
        The handler, so callers can detach it with ``detach_host_sink``.
    """
    handler = HostLogHandler(sink)
    logger.addHandler(handler)
    return handler


def detach_host_sink(handler: HostLogHandler) -> None:
    """Remove a handler previously returned by attach_host_sink."""
    logger.removeHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Optional name for a child logger (e.g., "scheduler").
              If None, returns the root blockerdiverter logger.

    Returns:
        A configured logger instance.
    """
    if name:
        return logger.getChild(name)
    return logger
