"""Process-scoped registry of per-session state.

Records are created lazily on first access and removed outright when the
host tears a session down. Every mutation goes through
:meth:`SessionRegistry.update`, whose updater runs synchronously so that no
other handler for the same session can observe a half-applied change.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterator
from typing import TypeVar

from blockerdiverter.logging import get_logger
from blockerdiverter.models import SessionState

log = get_logger("state")

T = TypeVar("T")

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class SessionRegistry:
    """Maps session id to its mutable :class:`SessionState`."""

    def __init__(self, default_divert: bool = False) -> None:
        self._default_divert = default_divert
        self._sessions: dict[str, SessionState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, session_id: str) -> SessionState:
        """Return the live record for ``session_id``, creating it if needed."""
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionState(divert_blockers=self._default_divert)
            self._sessions[session_id] = state
            log.debug("Created state for session %s", session_id)
        return state

    def update(self, session_id: str, updater: Callable[[SessionState], T]) -> T:
        """Apply ``updater`` to the session record and return its result."""
        return updater(self.get(session_id))

    def delete(self, session_id: str) -> SessionState | None:
        """Drop the record and its lock. Safe to call for unknown sessions."""
        self._locks.pop(session_id, None)
        return self._sessions.pop(session_id, None)

    def lock(self, session_id: str) -> asyncio.Lock:
        """Per-session lock serializing blocker recording."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))
