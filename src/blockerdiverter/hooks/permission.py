"""Permission-ask hook: deny, record and redirect instead of asking the user."""

from __future__ import annotations

import json
from typing import Any

from blockerdiverter.errors import PathTraversalError
from blockerdiverter.events import PermissionRequest
from blockerdiverter.logging import get_logger
from blockerdiverter.models import BlockerCategory, BlockerDraft
from blockerdiverter.recorder import BlockerRecorder
from blockerdiverter.sanitize import redact_secrets
from blockerdiverter.scheduler import ContinuationScheduler
from blockerdiverter.state import SessionRegistry
from blockerdiverter.templates import build_permission_prompt

log = get_logger("hooks.permission")

INTERCEPTED_PERMISSIONS = frozenset({"bash", "edit", "write", "external_directory"})


def permission_draft(request: PermissionRequest) -> BlockerDraft:
    """Blocker describing a permission request, with secrets redacted."""
    return BlockerDraft(
        category=BlockerCategory.PERMISSION,
        question=f"Agent requested {request.type} permission for: {request.tool_name}",
        context=redact_secrets(json.dumps(request.metadata, default=str, ensure_ascii=False)),
        blocks_progress=True,
    )


async def handle_permission_asked(
    request: PermissionRequest,
    output: dict[str, Any],
    registry: SessionRegistry,
    recorder: BlockerRecorder,
    scheduler: ContinuationScheduler,
) -> None:
    """Divert an intercepted permission request into the blocker log.

    Leaves ``output`` untouched unless diversion is on for the session and
    the permission type is intercepted. Otherwise the request is denied and
    the agent is told to log it and move on, even when recording fails.
    """
    session_id = request.session_id
    if not registry.get(session_id).divert_blockers:
        return
    if request.type not in INTERCEPTED_PERMISSIONS:
        log.debug("Permission type not intercepted: %s", request.type)
        return

    try:
        outcome = await recorder.record(session_id, permission_draft(request))
        log.debug("Permission %s in session %s: %s", request.type, session_id, outcome.value)
    except PathTraversalError as e:
        log.error("Blocker log path rejected: %s", e)
    except Exception as e:
        log.error("Permission hook failed for session %s: %s", session_id, e)

    output["status"] = "deny"
    await scheduler.send_prompt(session_id, build_permission_prompt(request.type), "permission prompt")
