"""Blocker recording flow: fingerprint, gate, cap, persist, remember.

Every caller answers the agent the same way regardless of the outcome; the
outcome exists for logging and tests.
"""

from __future__ import annotations

from enum import Enum

from blockerdiverter.dedupe import CooldownGate
from blockerdiverter.fingerprint import fingerprint, make_blocker_id, utc_timestamp
from blockerdiverter.logging import get_logger
from blockerdiverter.models import Blocker, BlockerDraft, SessionState
from blockerdiverter.persistence import BlockerLog
from blockerdiverter.state import Clock, SessionRegistry, now_ms

log = get_logger("recorder")


class RecordOutcome(Enum):
    """What happened to one blocker event."""

    RECORDED = "recorded"  # Persisted and kept in session state
    QUEUED = "queued"  # Write failed; kept in pending_writes for retry
    SUPPRESSED_DUPLICATE = "suppressed_duplicate"  # Same fingerprint within cooldown
    SUPPRESSED_CAP = "suppressed_cap"  # Session reached max_blockers_per_run


class BlockerRecorder:
    """Turns blocker drafts into persisted records for one project."""

    def __init__(
        self,
        registry: SessionRegistry,
        gate: CooldownGate,
        blocker_log: BlockerLog,
        max_blockers_per_run: int,
        clock: Clock = now_ms,
    ) -> None:
        self.registry = registry
        self.gate = gate
        self.log = blocker_log
        self.max_blockers_per_run = max_blockers_per_run
        self._clock = clock

    def _admit(self, session_id: str, fp: str) -> RecordOutcome | None:
        """Run the cooldown and cap checks as one synchronous step."""

        def check(state: SessionState) -> RecordOutcome | None:
            if self.gate.should_suppress(fp, state):
                return RecordOutcome.SUPPRESSED_DUPLICATE
            if len(state.blockers) + len(state.pending_writes) >= self.max_blockers_per_run:
                return RecordOutcome.SUPPRESSED_CAP
            return None

        return self.registry.update(session_id, check)

    async def record(self, session_id: str, draft: BlockerDraft) -> RecordOutcome:
        """Record one blocker for ``session_id``.

        Raises:
            PathTraversalError: If the configured log path escapes the project.
            BlockerValidationError: If the draft violates blocker invariants.
        """
        async with self.registry.lock(session_id):
            fp = fingerprint(draft.question, draft.context)
            rejected = self._admit(session_id, fp)
            if rejected is RecordOutcome.SUPPRESSED_CAP:
                log.warning(
                    "Blocker cap (%d) reached for session %s, ignoring blocker",
                    self.max_blockers_per_run,
                    session_id,
                )
                return rejected
            if rejected is RecordOutcome.SUPPRESSED_DUPLICATE:
                log.info("Duplicate blocker in cooldown for session %s, skipping", session_id)
                return rejected

            now = self._clock()
            blocker = Blocker(
                id=make_blocker_id(session_id, fp, now),
                timestamp=utc_timestamp(now),
                session_id=session_id,
                category=draft.category,
                question=draft.question,
                context=draft.context,
                blocks_progress=draft.blocks_progress,
                options=draft.options,
                chosen_option=draft.chosen_option,
                chosen_reasoning=draft.chosen_reasoning,
            )

            written = await self.log.append(blocker)
            if session_id not in self.registry:
                log.debug("Session %s deleted during write of blocker %s", session_id, blocker.id)
                return RecordOutcome.RECORDED if written else RecordOutcome.QUEUED

            def remember(state: SessionState) -> None:
                if written:
                    state.blockers.append(blocker)
                else:
                    state.pending_writes.append(blocker)
                state.last_blocker_time = now

            self.registry.update(session_id, remember)

            if written:
                log.info("Blocker recorded: %s (%s)", blocker.id, blocker.category.value)
                return RecordOutcome.RECORDED
            log.warning("Blocker %s queued for retry after write failure", blocker.id)
            return RecordOutcome.QUEUED

    async def flush_pending(self, session_id: str) -> int:
        """Retry queued writes in order, stopping at the first failure.

        Returns:
            Number of blockers written.
        """
        if session_id not in self.registry:
            return 0
        async with self.registry.lock(session_id):
            written = 0
            while True:
                pending = self.registry.update(
                    session_id, lambda s: s.pending_writes[0] if s.pending_writes else None
                )
                if pending is None:
                    break
                if not await self.log.append(pending):
                    log.warning("Retry of blocker %s failed; %s still queued", pending.id, session_id)
                    break

                def promote(state: SessionState, blocker: Blocker = pending) -> None:
                    if state.pending_writes and state.pending_writes[0] is blocker:
                        state.pending_writes.pop(0)
                    state.blockers.append(blocker)

                self.registry.update(session_id, promote)
                written += 1
            if written:
                log.info("Flushed %d pending blocker(s) for session %s", written, session_id)
            return written
