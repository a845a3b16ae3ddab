"""Tool hooks: the agent-facing ``blocker`` tool and question-tool interception."""

from __future__ import annotations

import json
from typing import Any

from blockerdiverter.errors import PathTraversalError, QuestionToolBlocked
from blockerdiverter.events import ToolCall
from blockerdiverter.logging import get_logger
from blockerdiverter.models import BlockerCategory, BlockerDraft, BlockerToolArgs
from blockerdiverter.recorder import BlockerRecorder
from blockerdiverter.state import SessionRegistry
from blockerdiverter.templates import (
    BLOCKER_RESPONSE_MESSAGE,
    DIVERSION_DISABLED_MESSAGE,
    QUESTION_TOOL_BLOCKED_MESSAGE,
)

log = get_logger("hooks.tools")

BLOCKER_TOOL_NAME = "blocker"
BLOCKED_TOOLS = frozenset({"question"})

BLOCKER_TOOL_DESCRIPTION = (
    "Log a blocking question to the blockers file and continue with independent tasks. "
    "Use for hard blockers (architecture, security, destructive, deployment decisions) "
    "or for soft blockers where you pick one of the options you researched. "
    "Returns a confirmation message."
)


def blocker_tool_schema() -> dict[str, Any]:
    """JSON schema of the ``blocker`` tool arguments, camelCase keys."""
    return BlockerToolArgs.model_json_schema(by_alias=True)


async def run_blocker_tool(
    args: Any,
    session_id: str,
    registry: SessionRegistry,
    recorder: BlockerRecorder,
) -> str:
    """Execute the ``blocker`` tool.

    Raises:
        BlockerValidationError: If ``args`` are malformed.
        PathTraversalError: If the blocker log path escapes the project.
    """
    parsed = BlockerToolArgs.parse(args)
    if not registry.get(session_id).divert_blockers:
        return DIVERSION_DISABLED_MESSAGE

    outcome = await recorder.record(session_id, parsed.to_draft())
    log.debug("Blocker tool in session %s: %s", session_id, outcome.value)
    return BLOCKER_RESPONSE_MESSAGE


def blocked_tool_draft(call: ToolCall) -> BlockerDraft:
    context = json.dumps({"tool": call.tool, "callID": call.call_id, "sessionID": call.session_id})
    return BlockerDraft(
        category=BlockerCategory.QUESTION,
        question=f"Agent tried to use blocked tool: {call.tool}",
        context=context,
        blocks_progress=True,
    )


async def handle_tool_execute_before(
    call: ToolCall,
    registry: SessionRegistry,
    recorder: BlockerRecorder,
) -> None:
    """Stop interactive tools while the session runs autonomously.

    Raises:
        QuestionToolBlocked: For a blocked tool while diversion is on. The
            message tells the agent to decide by itself and continue.
    """
    if call.tool not in BLOCKED_TOOLS:
        return
    if not registry.get(call.session_id).divert_blockers:
        return

    try:
        outcome = await recorder.record(call.session_id, blocked_tool_draft(call))
        log.info("Blocked tool %s in session %s (%s)", call.tool, call.session_id, outcome.value)
    except PathTraversalError as e:
        log.error("Blocker log path rejected: %s", e)
    except Exception as e:
        log.error("Failed to record blocked tool %s: %s", call.tool, e)

    raise QuestionToolBlocked(QUESTION_TOOL_BLOCKED_MESSAGE)
