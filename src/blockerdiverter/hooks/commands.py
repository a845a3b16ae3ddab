"""``/blockers.*`` slash commands.

Each command returns a :class:`CommandResult`; the plugin replaces the
command's output with ``minimal_response`` and shows ``toast`` when set.
"""

from __future__ import annotations

from dataclasses import dataclass

from blockerdiverter.config.schema import PluginConfig
from blockerdiverter.events import CommandInvocation
from blockerdiverter.logging import get_logger
from blockerdiverter.models import SessionState
from blockerdiverter.state import SessionRegistry

log = get_logger("hooks.commands")

LIST_QUESTION_WIDTH = 80


@dataclass
class Toast:
    message: str
    variant: str = "info"  # info, success, warning, error
    title: str = "Blocker Diverter"


@dataclass
class CommandResult:
    """Outcome of a slash command."""

    handled: bool
    minimal_response: str | None = None
    toast: Toast | None = None


NOT_HANDLED = CommandResult(handled=False)


def command_on(state: SessionState) -> CommandResult:
    state.divert_blockers = True
    # A fresh start: forget stale abort, completion and reprompt signals
    state.last_assistant_aborted = False
    state.last_message_content = ""
    state.reset_reprompts()
    log.info("Blocker diversion enabled")
    return CommandResult(
        handled=True,
        minimal_response="Blocker diverter enabled for this session.",
        toast=Toast("Blocker diverter enabled", "success"),
    )


def command_off(state: SessionState) -> CommandResult:
    state.divert_blockers = False
    log.info("Blocker diversion disabled")
    return CommandResult(
        handled=True,
        minimal_response="Blocker diverter disabled for this session.",
        toast=Toast("Blocker diverter disabled", "success"),
    )


def command_status(state: SessionState, config: PluginConfig) -> CommandResult:
    status = "enabled" if state.divert_blockers else "disabled"
    lines = [
        "Blocker Diverter Status:",
        f"  State: {status}",
        f"  Blockers recorded: {len(state.blockers)}/{config.max_blockers_per_run}",
        f"  Reprompt count: {state.reprompt_count}",
    ]
    if state.pending_writes:
        lines.append(f"  Pending writes: {len(state.pending_writes)}")
    return CommandResult(
        handled=True,
        minimal_response="\n".join(lines),
        toast=Toast(f"Blocker diverter {status} ({len(state.blockers)} blockers)", "info"),
    )


def command_list(state: SessionState) -> CommandResult:
    if not state.blockers:
        return CommandResult(handled=True, minimal_response="No blockers recorded in this session.")
    lines = [f"Recorded Blockers ({len(state.blockers)}):"]
    for index, blocker in enumerate(state.blockers, start=1):
        question = blocker.question
        if len(question) > LIST_QUESTION_WIDTH:
            question = question[:LIST_QUESTION_WIDTH] + "..."
        lines.append(f"{index}. [{blocker.category.value}] {question}")
    return CommandResult(handled=True, minimal_response="\n".join(lines))


def parse_command(command: str, arguments: str = "") -> str | None:
    """Return the subcommand for ``/blockers.<sub>`` or ``/blockers <sub>``."""
    name = command.strip().lstrip("/")
    if name.startswith("blockers."):
        return name.removeprefix("blockers.") or None
    if name == "blockers":
        parts = arguments.split()
        return parts[0] if parts else None
    return None


def handle_command(
    invocation: CommandInvocation,
    registry: SessionRegistry,
    config: PluginConfig,
) -> CommandResult:
    """Run a ``/blockers`` command; anything else is not handled."""
    sub = parse_command(invocation.command, invocation.arguments)
    if sub is None:
        return NOT_HANDLED

    session_id = invocation.session_id
    match sub:
        case "on":
            return registry.update(session_id, command_on)
        case "off":
            return registry.update(session_id, command_off)
        case "status":
            return registry.update(session_id, lambda s: command_status(s, config))
        case "list":
            return registry.update(session_id, command_list)
    log.debug("Unknown blockers subcommand: %s", sub)
    return CommandResult(
        handled=True,
        minimal_response=f"Unknown subcommand: {sub}. Use /blockers.on, /blockers.off, /blockers.status or /blockers.list.",
        toast=Toast(f"Unknown command: {sub}", "warning"),
    )
