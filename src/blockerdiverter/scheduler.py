"""Idle-time continuation engine.

Each idle tick of a session is evaluated in this order:

1. ``is_recovering`` set by a session error: clear it, do nothing else.
2. Last assistant turn aborted by the user: hand control back (disable
   diversion, reset reprompt bookkeeping).
3. Reprompt window elapsed: reset the reprompt counter.
4. Completion marker in the last assistant message: disable diversion.
5. Otherwise inject a continuation prompt when diversion is on, the
   counter is under ``max_reprompts`` and ``cooldown_ms`` has passed since
   the last injection.

All state reads and writes for one step happen inside one synchronous
``SessionRegistry.update`` call; the only suspension point is the outbound
prompt.
"""

from __future__ import annotations

from enum import Enum

from blockerdiverter.config.schema import PluginConfig
from blockerdiverter.events import ABORT_ERROR_NAME
from blockerdiverter.host import HostClient
from blockerdiverter.logging import get_logger
from blockerdiverter.models import SessionState
from blockerdiverter.state import Clock, SessionRegistry, now_ms
from blockerdiverter.templates import build_continuation_prompt
from blockerdiverter.timeout import PromptTimeoutError, with_timeout

log = get_logger("scheduler")


class IdleDecision(Enum):
    """Result of evaluating one idle tick."""

    RECOVERING = "recovering"  # Error grace tick consumed
    ABORTED = "aborted"  # User cancelled; diversion switched off
    COMPLETED = "completed"  # Completion marker seen; diversion switched off
    INJECTED = "injected"  # Continuation prompt sent
    SKIPPED = "skipped"  # Diversion off, cap reached, cooldown, or in flight
    FAILED = "failed"  # Prompt call failed or timed out


class ContinuationScheduler:
    """Decides when to nudge an idle agent, and tracks the signals that stop it."""

    def __init__(
        self,
        registry: SessionRegistry,
        host: HostClient,
        config: PluginConfig,
        clock: Clock = now_ms,
    ) -> None:
        self.registry = registry
        self.host = host
        self.config = config
        self._clock = clock

    # --- signals -------------------------------------------------------

    def on_error(self, session_id: str, error_name: str | None = None) -> None:
        """Session error: skip the next idle tick. A user abort also resets counting."""

        def apply(state: SessionState) -> None:
            state.is_recovering = True
            if error_name == ABORT_ERROR_NAME:
                state.reset_reprompts()

        self.registry.update(session_id, apply)
        log.debug("Session %s error %s, recovering", session_id, error_name or "unknown")

    def on_assistant_update(self, session_id: str, aborted: bool) -> None:
        """Track whether the latest assistant turn was aborted by the user."""

        def apply(state: SessionState) -> None:
            state.last_assistant_aborted = aborted

        self.registry.update(session_id, apply)
        if aborted:
            log.info("Assistant turn aborted by user in session %s", session_id)

    def on_assistant_text(self, session_id: str, text: str) -> None:
        """Remember the latest assistant text for completion-marker scanning."""

        def apply(state: SessionState) -> None:
            state.last_message_content = text

        self.registry.update(session_id, apply)

    def on_user_message(self, session_id: str, text: str = "", synthetic: bool = False) -> bool:
        """A real user turn while diverting takes manual control back.

        Turns injected by this package (flagged ``synthetic`` by the host, or
        identical to the last injected prompt) are ignored.

        Returns:
            True if diversion was switched off.
        """

        def apply(state: SessionState) -> bool:
            if synthetic or (state.last_injected_prompt is not None and text == state.last_injected_prompt):
                return False
            if not state.divert_blockers:
                return False
            state.divert_blockers = False
            state.reset_reprompts()
            state.last_assistant_aborted = False
            return True

        took_over = self.registry.update(session_id, apply)
        if took_over:
            log.info("User message in session %s, blocker diversion disabled", session_id)
        return took_over

    # --- idle evaluation ------------------------------------------------

    def _evaluate(self, state: SessionState, now: int) -> IdleDecision | None:
        """Synchronous part of an idle tick. None means: inject now."""
        if state.is_recovering:
            state.is_recovering = False
            return IdleDecision.RECOVERING

        if state.last_assistant_aborted:
            state.divert_blockers = False
            state.last_assistant_aborted = False
            state.reset_reprompts()
            return IdleDecision.ABORTED

        if state.reprompt_count > 0 and now - state.last_reprompt_time > self.config.reprompt_window_ms:
            log.debug("Reprompt window elapsed, resetting count from %d", state.reprompt_count)
            state.reprompt_count = 0

        marker = self.config.completion_marker
        if marker and marker in state.last_message_content:
            state.divert_blockers = False
            state.reset_reprompts()
            return IdleDecision.COMPLETED

        if not state.divert_blockers:
            return IdleDecision.SKIPPED
        if state.reprompt_count >= self.config.max_reprompts:
            return IdleDecision.SKIPPED
        if now - state.last_reprompt_time < self.config.cooldown_ms:
            return IdleDecision.SKIPPED
        if state.injection_in_flight:
            return IdleDecision.SKIPPED

        state.injection_in_flight = True
        return None

    async def on_idle(self, session_id: str) -> IdleDecision:
        """Evaluate one idle tick. Never raises for host failures."""
        decision = self.registry.update(session_id, lambda s: self._evaluate(s, self._clock()))
        if decision is IdleDecision.RECOVERING:
            log.debug("Session %s recovering from error, skipping continuation", session_id)
            return decision
        if decision is IdleDecision.ABORTED:
            log.info("Session %s was cancelled by the user, blocker diversion disabled", session_id)
            return decision
        if decision is IdleDecision.COMPLETED:
            log.info("Completion marker detected in session %s, stopping continuation", session_id)
            return decision
        if decision is IdleDecision.SKIPPED:
            return decision

        prompt = build_continuation_prompt(self.config.completion_marker)
        try:
            sent = await self.send_prompt(session_id, prompt, "continuation prompt")
        finally:
            if session_id in self.registry:
                self.registry.update(session_id, _clear_in_flight)

        if not sent:
            return IdleDecision.FAILED

        def count(state: SessionState) -> int:
            state.reprompt_count += 1
            state.last_reprompt_time = self._clock()
            return state.reprompt_count

        if session_id not in self.registry:
            return IdleDecision.INJECTED
        reprompts = self.registry.update(session_id, count)
        log.info(
            "Continuation prompt sent to session %s (%d/%d)",
            session_id,
            reprompts,
            self.config.max_reprompts,
        )
        return IdleDecision.INJECTED

    async def send_prompt(self, session_id: str, text: str, label: str) -> bool:
        """Send one synthetic user message with a deadline.

        Returns:
            True if the host accepted it. Timeouts and other failures are
            logged and reported as False; nothing is retried here.
        """
        if session_id in self.registry:
            self.registry.update(session_id, lambda s: _set_injected(s, text))
        try:
            await with_timeout(self.host.prompt(session_id, text), self.config.prompt_timeout_ms, label)
        except PromptTimeoutError as e:
            log.warning("Timed out sending %s to session %s: %s", label, session_id, e)
            return False
        except Exception as e:
            log.error("Failed to send %s to session %s: %s", label, session_id, e)
            return False
        return True


def _clear_in_flight(state: SessionState) -> None:
    state.injection_in_flight = False


def _set_injected(state: SessionState, text: str) -> None:
    state.last_injected_prompt = text
