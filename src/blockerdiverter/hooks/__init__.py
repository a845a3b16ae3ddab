"""Adapters between host hook points and the continuation engine."""

from blockerdiverter.hooks.commands import CommandResult, Toast, handle_command
from blockerdiverter.hooks.permission import INTERCEPTED_PERMISSIONS, handle_permission_asked
from blockerdiverter.hooks.session import handle_chat_message, handle_compacting, handle_event
from blockerdiverter.hooks.system_prompt import handle_system_transform
from blockerdiverter.hooks.tools import (
    BLOCKER_TOOL_DESCRIPTION,
    BLOCKER_TOOL_NAME,
    blocker_tool_schema,
    handle_tool_execute_before,
    run_blocker_tool,
)

__all__ = [
    "BLOCKER_TOOL_DESCRIPTION",
    "BLOCKER_TOOL_NAME",
    "CommandResult",
    "INTERCEPTED_PERMISSIONS",
    "Toast",
    "blocker_tool_schema",
    "handle_chat_message",
    "handle_command",
    "handle_compacting",
    "handle_event",
    "handle_permission_asked",
    "handle_system_transform",
    "handle_tool_execute_before",
    "run_blocker_tool",
]
