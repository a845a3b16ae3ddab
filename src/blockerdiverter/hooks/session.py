"""Session lifecycle, chat message and compaction hooks."""

from __future__ import annotations

from typing import Any

from blockerdiverter.errors import EventValidationError, PathTraversalError
from blockerdiverter.events import (
    ChatMessage,
    MessageUpdated,
    SessionCompacted,
    SessionCreated,
    SessionDeleted,
    SessionErrorEvent,
    SessionIdle,
    parse_event,
)
from blockerdiverter.logging import get_logger
from blockerdiverter.recorder import BlockerRecorder
from blockerdiverter.scheduler import ContinuationScheduler
from blockerdiverter.state import SessionRegistry
from blockerdiverter.templates import build_compaction_summary

log = get_logger("hooks.session")


async def handle_event(
    raw: Any,
    registry: SessionRegistry,
    recorder: BlockerRecorder,
    scheduler: ContinuationScheduler,
) -> None:
    """Dispatch one host event. Malformed or unknown events are logged and dropped."""
    try:
        event = parse_event(raw)
    except EventValidationError as e:
        log.warning("Dropping malformed event: %s", e)
        return
    if event is None:
        log.debug("Ignoring event type %r", raw.get("type"))
        return

    session_id = event.session_id
    try:
        match event:
            case SessionCreated():
                registry.get(session_id)
                log.info("Session created: %s", session_id)
            case SessionDeleted():
                state = registry.delete(session_id)
                if state is not None:
                    log.info(
                        "Session ended: %s (blockers logged: %d, pending: %d, reprompts: %d)",
                        session_id,
                        len(state.blockers),
                        len(state.pending_writes),
                        state.reprompt_count,
                    )
            case SessionIdle():
                await _flush_pending(recorder, session_id)
                await scheduler.on_idle(session_id)
            case SessionCompacted():
                log.debug("Session compacted: %s", session_id)
            case SessionErrorEvent():
                scheduler.on_error(session_id, event.error_name)
            case MessageUpdated():
                if event.role == "assistant":
                    scheduler.on_assistant_update(session_id, event.aborted)
    except Exception:
        log.exception("Error handling %s for session %s", event.type, session_id)


def handle_chat_message(message: ChatMessage, scheduler: ContinuationScheduler) -> None:
    """Feed chat messages to the scheduler's completion and takeover signals."""
    if message.role == "assistant":
        text = message.text
        if text:
            scheduler.on_assistant_text(message.session_id, text)
    elif message.role == "user":
        scheduler.on_user_message(message.session_id, message.text, synthetic=message.synthetic)


def handle_compacting(session_id: str | None, output: dict[str, Any], registry: SessionRegistry) -> None:
    """Carry a summary of logged blockers into the compacted context."""
    if not session_id:
        log.warning("Compaction hook called without a session id")
        return
    context = output.setdefault("context", [])
    blockers = registry.get(session_id).blockers
    context.append(build_compaction_summary(blockers))
    log.debug("Preserved %d blocker(s) across compaction of %s", len(blockers), session_id)


async def _flush_pending(recorder: BlockerRecorder, session_id: str) -> None:
    try:
        await recorder.flush_pending(session_id)
    except PathTraversalError as e:
        log.error("Blocker log path rejected: %s", e)
