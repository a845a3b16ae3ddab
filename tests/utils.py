"""Shared test doubles for Blocker Diverter tests."""

from __future__ import annotations

import asyncio
from typing import Any

from blockerdiverter.models import Blocker, BlockerCategory

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeHost:
    """Host client recording prompts and toasts.

    Set ``error`` to make ``prompt`` raise, ``hang`` to make it never finish,
    or ``gate`` to hold it until the event is set.
    """

    def __init__(self) -> None:
        self.prompts: list[tuple[str, str]] = []
        self.toasts: list[tuple[str, str]] = []
        self.error: Exception | None = None
        self.hang = False
        self.gate: asyncio.Event | None = None

    async def prompt(self, session_id: str, text: str) -> Any:
        if self.hang:
            await asyncio.sleep(3600)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.prompts.append((session_id, text))
        return {"ok": True}

    async def show_toast(self, message: str, variant: str = "info") -> None:
        self.toasts.append((message, variant))

    def texts(self) -> list[str]:
        return [text for _, text in self.prompts]


class FakeLog:
    """In-memory stand-in for BlockerLog.

    ``fail`` makes appends report failure; ``gate`` holds appends until set.
    """

    def __init__(self) -> None:
        self.appended: list[Blocker] = []
        self.fail = False
        self.gate: asyncio.Event | None = None

    async def append(self, blocker: Blocker) -> bool:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            return False
        self.appended.append(blocker)
        return True


def create_mock_blocker(n: int = 1, session_id: str = "s1", **overrides: Any) -> Blocker:
    """Build a valid hard blocker numbered ``n``."""
    fields: dict[str, Any] = {
        "id": f"{START_MS + n}-{session_id}-abc12{n % 10}",
        "timestamp": "2023-11-14T22:13:20.000Z",
        "session_id": session_id,
        "category": BlockerCategory.ARCHITECTURE,
        "question": f"Question number {n}?",
        "context": "Working on the API layer",
    }
    fields.update(overrides)
    return Blocker(**fields)
