"""Tests for the cooldown gate."""

from __future__ import annotations

from blockerdiverter.dedupe import CooldownGate
from blockerdiverter.models import SessionState


class TestCooldownGate:
    """Duplicates are suppressed until their entry expires."""

    def test_first_seen_allowed_and_remembered(self, clock) -> None:
        gate = CooldownGate(30000, clock)
        state = SessionState()
        assert gate.should_suppress("fp", state) is False
        assert state.cooldown_hashes["fp"] == clock() + 30000

    def test_duplicate_within_window_suppressed(self, clock) -> None:
        gate = CooldownGate(30000, clock)
        state = SessionState()
        gate.should_suppress("fp", state)
        clock.advance(29999)
        assert gate.should_suppress("fp", state) is True

    def test_suppressed_hit_does_not_extend_window(self, clock) -> None:
        gate = CooldownGate(30000, clock)
        state = SessionState()
        gate.should_suppress("fp", state)
        expiry = state.cooldown_hashes["fp"]
        clock.advance(10000)
        gate.should_suppress("fp", state)
        assert state.cooldown_hashes["fp"] == expiry

    def test_expired_entry_overwritten(self, clock) -> None:
        gate = CooldownGate(30000, clock)
        state = SessionState()
        gate.should_suppress("fp", state)
        clock.advance(30000)
        assert gate.is_in_cooldown("fp", state) is False
        assert gate.should_suppress("fp", state) is False
        assert state.cooldown_hashes["fp"] == clock() + 30000

    def test_is_in_cooldown_is_read_only(self, clock) -> None:
        gate = CooldownGate(30000, clock)
        state = SessionState()
        assert gate.is_in_cooldown("fp", state) is False
        assert state.cooldown_hashes == {}

    def test_distinct_fingerprints_independent(self, clock) -> None:
        gate = CooldownGate(30000, clock)
        state = SessionState()
        gate.should_suppress("a", state)
        assert gate.should_suppress("b", state) is False
