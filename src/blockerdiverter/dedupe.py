"""Time-expiring fingerprint gate for blocker deduplication.

Entries live in ``SessionState.cooldown_hashes`` as fingerprint -> expiry.
Expired entries are never purged; they are treated as absent and get
overwritten the next time the same fingerprint is allowed through.
"""

from __future__ import annotations

from blockerdiverter.logging import get_logger
from blockerdiverter.models import SessionState
from blockerdiverter.state import Clock, now_ms

log = get_logger("dedupe")


class CooldownGate:
    """Decides whether a blocker fingerprint is a recent duplicate."""

    def __init__(self, cooldown_ms: int, clock: Clock = now_ms) -> None:
        self.cooldown_ms = cooldown_ms
        self._clock = clock

    def is_in_cooldown(self, fp: str, state: SessionState) -> bool:
        """True if ``fp`` has an unexpired entry. Does not modify state."""
        expiry = state.cooldown_hashes.get(fp)
        return expiry is not None and expiry > self._clock()

    def remember(self, fp: str, state: SessionState) -> None:
        """Insert or refresh ``fp`` with a fresh expiry."""
        state.cooldown_hashes[fp] = self._clock() + self.cooldown_ms

    def should_suppress(self, fp: str, state: SessionState) -> bool:
        """Suppress a live duplicate, otherwise remember ``fp`` and allow it.

        A suppressed hit leaves the existing expiry untouched.
        """
        if self.is_in_cooldown(fp, state):
            log.debug("Cooldown hit for fingerprint %s", fp[:12])
            return True
        self.remember(fp, state)
        return False
