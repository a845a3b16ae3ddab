"""Tests for the session registry."""

from __future__ import annotations

from blockerdiverter.models import SessionState
from blockerdiverter.state import SessionRegistry, now_ms


class TestSessionRegistry:
    """Lazy creation, updates and deletion of per-session state."""

    def test_lazy_creation_with_defaults(self) -> None:
        registry = SessionRegistry()
        assert "s1" not in registry
        state = registry.get("s1")
        assert state == SessionState()
        assert "s1" in registry
        assert len(registry) == 1

    def test_default_divert_applied(self) -> None:
        assert SessionRegistry(default_divert=True).get("s1").divert_blockers is True

    def test_get_returns_live_record(self) -> None:
        registry = SessionRegistry()
        assert registry.get("s1") is registry.get("s1")

    def test_update_returns_updater_result(self) -> None:
        registry = SessionRegistry()

        def bump(state: SessionState) -> int:
            state.reprompt_count += 1
            return state.reprompt_count

        assert registry.update("s1", bump) == 1
        assert registry.update("s1", bump) == 2
        assert registry.get("s1").reprompt_count == 2

    def test_delete(self) -> None:
        registry = SessionRegistry()
        registry.get("s1").reprompt_count = 3
        removed = registry.delete("s1")
        assert removed is not None
        assert removed.reprompt_count == 3
        assert "s1" not in registry
        assert registry.get("s1").reprompt_count == 0

    def test_delete_unknown_is_noop(self) -> None:
        assert SessionRegistry().delete("missing") is None

    def test_lock_is_per_session(self) -> None:
        registry = SessionRegistry()
        assert registry.lock("a") is registry.lock("a")
        assert registry.lock("a") is not registry.lock("b")

    def test_delete_drops_lock(self) -> None:
        registry = SessionRegistry()
        lock = registry.lock("a")
        registry.delete("a")
        assert registry.lock("a") is not lock

    def test_iteration(self) -> None:
        registry = SessionRegistry()
        registry.get("a")
        registry.get("b")
        assert sorted(registry) == ["a", "b"]
        assert sorted(registry.session_ids()) == ["a", "b"]


def test_now_ms_is_epoch_milliseconds() -> None:
    assert now_ms() > 1_600_000_000_000
