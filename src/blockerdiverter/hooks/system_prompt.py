"""System prompt transform: autonomous-mode instructions while diverting."""

from __future__ import annotations

from typing import Any

from blockerdiverter.config.schema import PluginConfig
from blockerdiverter.logging import get_logger
from blockerdiverter.state import SessionRegistry
from blockerdiverter.templates import build_system_prompt

log = get_logger("hooks.system_prompt")


def handle_system_transform(
    session_id: str | None,
    output: dict[str, Any],
    registry: SessionRegistry,
    config: PluginConfig,
) -> None:
    """Append the instructions to ``output["system"]`` when diversion is on."""
    if not session_id:
        return
    state = registry.get(session_id)
    if not state.divert_blockers:
        return
    prompt = build_system_prompt(config.completion_marker, state.blockers)
    output.setdefault("system", []).append(prompt)
    log.debug("Injected autonomous-mode prompt into %s (%d chars)", session_id, len(prompt))
