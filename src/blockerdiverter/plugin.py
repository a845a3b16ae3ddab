"""Plugin entry point wiring host hooks to the continuation engine."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from blockerdiverter.config import PluginConfig, load_config
from blockerdiverter.dedupe import CooldownGate
from blockerdiverter.events import ChatMessage, CommandInvocation, PermissionRequest, ToolCall
from blockerdiverter.hooks import (
    BLOCKER_TOOL_DESCRIPTION,
    BLOCKER_TOOL_NAME,
    CommandResult,
    blocker_tool_schema,
    handle_chat_message,
    handle_command,
    handle_compacting,
    handle_event,
    handle_permission_asked,
    handle_system_transform,
    handle_tool_execute_before,
    run_blocker_tool,
)
from blockerdiverter.host import HostClient, host_log_sink, show_toast
from blockerdiverter.logging import (
    HostLogHandler,
    attach_host_sink,
    detach_host_sink,
    get_logger,
    setup_logging,
)
from blockerdiverter.persistence import BlockerLog
from blockerdiverter.recorder import BlockerRecorder
from blockerdiverter.scheduler import ContinuationScheduler
from blockerdiverter.state import Clock, SessionRegistry, now_ms

log = get_logger("plugin")


class BlockerDiverter:
    """One plugin instance per host process and project.

    Hook methods accept the host's raw ``(input, output)`` mappings, narrow
    them to typed models and delegate to :mod:`blockerdiverter.hooks`. When
    ``config.enabled`` is false every hook is a no-op and :meth:`hooks`
    returns an empty mapping.
    """

    def __init__(
        self,
        host: HostClient,
        project_root: str | os.PathLike[str],
        config: PluginConfig | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self.host = host
        self.project_root = str(project_root)
        self.config = config or PluginConfig()
        self.registry = SessionRegistry(default_divert=self.config.default_divert_blockers)
        self.gate = CooldownGate(self.config.cooldown_ms, clock)
        self.blocker_log = BlockerLog(
            self.project_root,
            self.config.blockers_file,
            max_records_per_file=self.config.max_blockers_per_file,
        )
        self.recorder = BlockerRecorder(
            self.registry,
            self.gate,
            self.blocker_log,
            self.config.max_blockers_per_run,
            clock,
        )
        self.scheduler = ContinuationScheduler(self.registry, host, self.config, clock)
        self._log_handler: HostLogHandler | None = None

    @classmethod
    def create(
        cls,
        host: HostClient,
        project_root: str | os.PathLike[str],
        clock: Clock = now_ms,
    ) -> BlockerDiverter:
        """Load config for ``project_root``, set up logging and build the plugin."""
        config = load_config(str(project_root))
        setup_logging(config.logging)
        plugin = cls(host, project_root, config, clock)
        sink = host_log_sink(host)
        if sink is not None:
            plugin._log_handler = attach_host_sink(sink)
        log.info(
            "Blocker Diverter initialized (enabled=%s, blockers_file=%s, max_blockers_per_run=%d)",
            config.enabled,
            config.blockers_file,
            config.max_blockers_per_run,
        )
        if not config.enabled:
            log.info("Plugin disabled via config, hooks are inert")
        return plugin

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def close(self) -> None:
        """Detach the host log sink."""
        if self._log_handler is not None:
            detach_host_sink(self._log_handler)
            self._log_handler = None

    # --- hooks ------------------------------------------------------------

    async def on_event(self, event: Any) -> None:
        if not self.enabled:
            return
        await handle_event(event, self.registry, self.recorder, self.scheduler)

    async def on_permission_asked(self, request: Any, output: dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            parsed = PermissionRequest.model_validate(request)
        except ValidationError as e:
            log.warning("Ignoring malformed permission request: %s", e)
            return
        await handle_permission_asked(parsed, output, self.registry, self.recorder, self.scheduler)

    async def on_tool_execute_before(self, call: Any, output: dict[str, Any] | None = None) -> None:
        """Raises QuestionToolBlocked to stop a blocked tool."""
        if not self.enabled:
            return
        try:
            parsed = ToolCall.model_validate(call)
        except ValidationError as e:
            log.warning("Ignoring malformed tool call: %s", e)
            return
        await handle_tool_execute_before(parsed, self.registry, self.recorder)

    async def blocker_tool(self, args: Any, session_id: str) -> str:
        """Execute the agent-facing ``blocker`` tool."""
        return await run_blocker_tool(args, session_id, self.registry, self.recorder)

    async def on_chat_message(self, hook_input: dict[str, Any], output: dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            message = ChatMessage.model_validate(
                {
                    "sessionID": hook_input.get("sessionID"),
                    "role": (output.get("message") or {}).get("role"),
                    "parts": output.get("parts") or [],
                }
            )
        except ValidationError as e:
            log.warning("Ignoring malformed chat message: %s", e)
            return
        handle_chat_message(message, self.scheduler)

    async def on_compacting(self, hook_input: dict[str, Any], output: dict[str, Any]) -> None:
        if not self.enabled:
            return
        handle_compacting(hook_input.get("sessionID"), output, self.registry)

    async def on_system_transform(self, hook_input: dict[str, Any], output: dict[str, Any]) -> None:
        if not self.enabled:
            return
        handle_system_transform(hook_input.get("sessionID"), output, self.registry, self.config)

    async def on_command(self, hook_input: dict[str, Any], output: dict[str, Any]) -> CommandResult:
        """Handle ``/blockers.*``; replaces ``output["parts"]`` when handled."""
        if not self.enabled:
            return CommandResult(handled=False)
        try:
            invocation = CommandInvocation.model_validate(hook_input)
        except ValidationError as e:
            log.warning("Ignoring malformed command: %s", e)
            return CommandResult(handled=False)

        result = handle_command(invocation, self.registry, self.config)
        if not result.handled:
            return result
        if result.toast is not None:
            await show_toast(self.host, result.toast.message, result.toast.variant)
        if result.minimal_response is not None:
            output["parts"] = [{"type": "text", "text": result.minimal_response}]
        return result

    def hooks(self) -> dict[str, Any]:
        """Hook table keyed by host hook name (empty when disabled)."""
        if not self.enabled:
            return {}
        table: dict[str, Callable[..., Any] | dict[str, Any]] = {
            "event": self.on_event,
            "permission.ask": self.on_permission_asked,
            "tool.execute.before": self.on_tool_execute_before,
            "chat.message": self.on_chat_message,
            "experimental.session.compacting": self.on_compacting,
            "experimental.chat.system.transform": self.on_system_transform,
            "command.execute.before": self.on_command,
            "tool": {
                BLOCKER_TOOL_NAME: {
                    "description": BLOCKER_TOOL_DESCRIPTION,
                    "parameters": blocker_tool_schema(),
                    "execute": self.blocker_tool,
                }
            },
        }
        return table
