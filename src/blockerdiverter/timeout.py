"""Deadline wrapper for outbound host calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from blockerdiverter.errors import BlockerDiverterError

T = TypeVar("T")


class PromptTimeoutError(BlockerDiverterError, TimeoutError):
    """An outbound host call did not finish within its deadline."""

    def __init__(self, label: str, timeout_ms: int) -> None:
        self.label = label
        self.timeout_ms = timeout_ms
        super().__init__(f"{label} timed out after {timeout_ms}ms")


async def with_timeout(awaitable: Awaitable[T], timeout_ms: int, label: str) -> T:
    """Await ``awaitable``, cancelling it after ``timeout_ms``.

    Raises:
        PromptTimeoutError: If the deadline passes first.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000)
    except asyncio.TimeoutError as e:
        raise PromptTimeoutError(label, timeout_ms) from e
