"""Interface of the host agent runtime as seen by this package."""

from __future__ import annotations

import inspect
from typing import Any, Protocol, runtime_checkable

from blockerdiverter.logging import get_logger

log = get_logger("host")


@runtime_checkable
class HostClient(Protocol):
    """Outbound calls into the host runtime.

    Only ``prompt`` is required. Hosts may also provide
    ``log(entry: dict)`` and ``show_toast(message, variant)``; both are
    looked up with ``getattr`` and treated as best effort.
    """

    async def prompt(self, session_id: str, text: str) -> Any:
        """Inject ``text`` into the session as a user message."""
        ...


async def show_toast(host: Any, message: str, variant: str = "info") -> None:
    """Show a toast through the host if it supports it. Failures are logged."""
    toast = getattr(host, "show_toast", None)
    if toast is None:
        return
    try:
        result = toast(message, variant)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        log.debug("Host toast failed: %s", e)


def host_log_sink(host: Any) -> Any:
    """The host's ``log`` callable, or None when the host has none."""
    sink = getattr(host, "log", None)
    return sink if callable(sink) else None
