"""Tests for the idle-time continuation scheduler."""

from __future__ import annotations

import asyncio
import logging

import pytest

from blockerdiverter.config import PluginConfig
from blockerdiverter.scheduler import ContinuationScheduler, IdleDecision
from blockerdiverter.state import SessionRegistry
from blockerdiverter.templates import build_continuation_prompt

from tests.utils import START_MS


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry(default_divert=True)


@pytest.fixture
def scheduler(registry, host, config, clock) -> ContinuationScheduler:
    return ContinuationScheduler(registry, host, config, clock)


class TestInjection:
    """Continuation prompts while diversion is on."""

    async def test_injects_when_diverting(self, scheduler, registry, host) -> None:
        assert await scheduler.on_idle("s1") is IdleDecision.INJECTED
        assert host.prompts == [("s1", build_continuation_prompt("BLOCKER_DIVERTER_DONE!"))]
        assert "BLOCKER_DIVERTER_DONE!" in host.texts()[0]
        state = registry.get("s1")
        assert state.reprompt_count == 1
        assert state.last_reprompt_time == START_MS
        assert state.last_injected_prompt == host.texts()[0]
        assert state.injection_in_flight is False

    async def test_skipped_when_not_diverting(self, host, config, clock) -> None:
        registry = SessionRegistry(default_divert=False)
        scheduler = ContinuationScheduler(registry, host, config, clock)
        assert await scheduler.on_idle("s1") is IdleDecision.SKIPPED
        assert host.prompts == []

    async def test_cooldown_between_injections(self, scheduler, host, clock) -> None:
        await scheduler.on_idle("s1")
        clock.advance(29999)
        assert await scheduler.on_idle("s1") is IdleDecision.SKIPPED
        clock.advance(1)
        assert await scheduler.on_idle("s1") is IdleDecision.INJECTED
        assert len(host.prompts) == 2

    async def test_max_reprompts(self, scheduler, registry, host, clock) -> None:
        decisions = []
        for _ in range(6):
            decisions.append(await scheduler.on_idle("s1"))
            clock.advance(30000)
        assert decisions == [IdleDecision.INJECTED] * 5 + [IdleDecision.SKIPPED]
        assert registry.get("s1").reprompt_count == 5
        assert len(host.prompts) == 5

    async def test_window_reset(self, scheduler, registry, clock) -> None:
        state = registry.get("s1")
        state.reprompt_count = 5
        state.last_reprompt_time = clock() - 300001
        assert await scheduler.on_idle("s1") is IdleDecision.INJECTED
        assert registry.get("s1").reprompt_count == 1

    async def test_custom_marker_in_prompt(self, registry, host, clock) -> None:
        config = PluginConfig(default_divert_blockers=True, completion_marker="ALL\nDONE")
        scheduler = ContinuationScheduler(registry, host, config, clock)
        await scheduler.on_idle("s1")
        assert "'ALLDONE'" in host.texts()[0]

    async def test_single_flight(self, scheduler, registry, host) -> None:
        host.gate = asyncio.Event()
        first = asyncio.create_task(scheduler.on_idle("s1"))
        await asyncio.sleep(0)
        assert registry.get("s1").injection_in_flight is True
        assert await scheduler.on_idle("s1") is IdleDecision.SKIPPED
        host.gate.set()
        assert await first is IdleDecision.INJECTED
        assert len(host.prompts) == 1
        assert registry.get("s1").injection_in_flight is False

    async def test_session_deleted_during_prompt(self, scheduler, registry, host) -> None:
        host.gate = asyncio.Event()
        task = asyncio.create_task(scheduler.on_idle("s1"))
        await asyncio.sleep(0)
        registry.delete("s1")
        host.gate.set()
        assert await task is IdleDecision.INJECTED
        assert "s1" not in registry


class TestFailures:
    """Host failures never escape and never count as a reprompt."""

    async def test_host_error(self, scheduler, registry, host, caplog: pytest.LogCaptureFixture) -> None:
        host.error = RuntimeError("connection refused")
        with caplog.at_level(logging.ERROR, logger="blockerdiverter"):
            assert await scheduler.on_idle("s1") is IdleDecision.FAILED
        assert "Failed to send" in caplog.text
        state = registry.get("s1")
        assert state.reprompt_count == 0
        assert state.injection_in_flight is False

    async def test_timeout(self, registry, host, clock, caplog: pytest.LogCaptureFixture) -> None:
        config = PluginConfig(default_divert_blockers=True, prompt_timeout_ms=50)
        scheduler = ContinuationScheduler(registry, host, config, clock)
        host.hang = True
        with caplog.at_level(logging.WARNING, logger="blockerdiverter"):
            assert await scheduler.on_idle("s1") is IdleDecision.FAILED
        assert "Timed out" in caplog.text
        assert registry.get("s1").injection_in_flight is False

    async def test_retry_after_failure(self, scheduler, host) -> None:
        host.error = RuntimeError("boom")
        await scheduler.on_idle("s1")
        host.error = None
        assert await scheduler.on_idle("s1") is IdleDecision.INJECTED


class TestStopSignals:
    """Errors, aborts, completion and user takeover."""

    async def test_error_skips_one_tick(self, scheduler, host) -> None:
        scheduler.on_error("s1", "APIError")
        assert await scheduler.on_idle("s1") is IdleDecision.RECOVERING
        assert host.prompts == []
        assert await scheduler.on_idle("s1") is IdleDecision.INJECTED

    async def test_abort_error_resets_count(self, scheduler, registry) -> None:
        state = registry.get("s1")
        state.reprompt_count = 3
        state.last_reprompt_time = START_MS - 1000
        scheduler.on_error("s1", "MessageAbortedError")
        assert state.is_recovering is True
        assert (state.reprompt_count, state.last_reprompt_time) == (0, 0)

    async def test_other_error_keeps_count(self, scheduler, registry) -> None:
        registry.get("s1").reprompt_count = 3
        scheduler.on_error("s1")
        assert registry.get("s1").reprompt_count == 3

    async def test_aborted_turn_hands_back_control(self, scheduler, registry, host) -> None:
        registry.get("s1").reprompt_count = 2
        scheduler.on_assistant_update("s1", aborted=True)
        assert await scheduler.on_idle("s1") is IdleDecision.ABORTED
        state = registry.get("s1")
        assert state.divert_blockers is False
        assert state.last_assistant_aborted is False
        assert state.reprompt_count == 0
        assert host.prompts == []

    async def test_non_aborted_update_clears_flag(self, scheduler, registry) -> None:
        scheduler.on_assistant_update("s1", aborted=True)
        scheduler.on_assistant_update("s1", aborted=False)
        assert registry.get("s1").last_assistant_aborted is False

    @pytest.mark.parametrize(
        "text",
        [
            "BLOCKER_DIVERTER_DONE! Wrapping up now.",
            "Finished the parser. BLOCKER_DIVERTER_DONE! Remaining items are blocked.",
            "All tasks finished. BLOCKER_DIVERTER_DONE!",
            "BLOCKER_DIVERTER_DONE! BLOCKER_DIVERTER_DONE!",
        ],
        ids=["start", "middle", "end", "repeated"],
    )
    async def test_completion_marker(self, scheduler, registry, host, text: str) -> None:
        state = registry.get("s1")
        state.reprompt_count = 1
        state.last_reprompt_time = START_MS - 30000
        scheduler.on_assistant_text("s1", text)
        assert await scheduler.on_idle("s1") is IdleDecision.COMPLETED
        assert registry.get("s1").divert_blockers is False
        assert host.prompts == []

    async def test_no_marker_keeps_going(self, scheduler) -> None:
        scheduler.on_assistant_text("s1", "Still working on the parser")
        assert await scheduler.on_idle("s1") is IdleDecision.INJECTED

    async def test_recovering_checked_before_completion(self, scheduler, registry) -> None:
        scheduler.on_assistant_text("s1", "BLOCKER_DIVERTER_DONE!")
        scheduler.on_error("s1")
        assert await scheduler.on_idle("s1") is IdleDecision.RECOVERING
        assert registry.get("s1").divert_blockers is True

    def test_user_message_takes_control(self, scheduler, registry) -> None:
        registry.get("s1").reprompt_count = 2
        assert scheduler.on_user_message("s1", "stop, I'll handle it") is True
        state = registry.get("s1")
        assert state.divert_blockers is False
        assert state.reprompt_count == 0

    def test_synthetic_user_message_ignored(self, scheduler, registry) -> None:
        assert scheduler.on_user_message("s1", "anything", synthetic=True) is False
        assert registry.get("s1").divert_blockers is True

    async def test_echo_of_injected_prompt_ignored(self, scheduler, registry, host) -> None:
        await scheduler.on_idle("s1")
        assert scheduler.on_user_message("s1", host.texts()[0]) is False
        assert registry.get("s1").divert_blockers is True

    def test_user_message_when_not_diverting(self, host, config, clock) -> None:
        scheduler = ContinuationScheduler(SessionRegistry(), host, config, clock)
        assert scheduler.on_user_message("s1", "hello") is False


class TestSendPrompt:
    async def test_records_injected_text(self, scheduler, registry, host) -> None:
        assert await scheduler.send_prompt("s1", "Log this bash permission", "permission prompt") is True
        assert registry.get("s1").last_injected_prompt == "Log this bash permission"
        assert host.prompts == [("s1", "Log this bash permission")]

    async def test_failure_returns_false(self, scheduler, host) -> None:
        host.error = ConnectionError("gone")
        assert await scheduler.send_prompt("s1", "text", "permission prompt") is False
