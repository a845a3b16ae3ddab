"""Agent-facing text: synthetic user messages, system prompt, summaries.

Every piece of configurable or agent-derived text is sanitized before it is
interpolated here.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from blockerdiverter.config.schema import DEFAULT_COMPLETION_MARKER
from blockerdiverter.models import Blocker
from blockerdiverter.sanitize import sanitize_blocker_text, sanitize_input

BLOCKER_RESPONSE_MESSAGE = "Great, blocker registered, move on with the next non-blocking issues!"

DIVERSION_DISABLED_MESSAGE = "Blocker diversion is disabled for this session. Use /blockers.on to enable."

QUESTION_TOOL_BLOCKED_MESSAGE = (
    "Blocker Diverter: Autonomous mode is active. Do not ask the user questions. "
    "Make a reasonable default choice based on project conventions, log your decision "
    "in the response, and continue working on the next task."
)

SYSTEM_PROMPT_RECENT_BLOCKERS = 3
COMPACTION_RECENT_BLOCKERS = 5

# Default layout of one persisted record. Placeholders use {{camelCase}}.
DEFAULT_RECORD_TEMPLATE = """
## Blocker #{{id}}
**Timestamp:** {{timestamp}}
**Session:** {{sessionId}}
**Category:** {{category}}

### Question
{{question}}

### Context
{{context}}

### Additional Info
- **Blocks Progress:** {{blocksProgress}}
- **Status:** {{status}}
{{optionsSection}}{{chosenSection}}
---
"""

_SYSTEM_PROMPT = """<blocker-diverter-mode enabled="true">
You are running in autonomous mode. No human is watching this session.
Never stop to wait for the user. When something would normally require a
human, record it with the `blocker` tool and continue with other work.

HARD BLOCKERS (log with blocksProgress=true, then move to unrelated work):
- Choosing a framework, library or overall architecture
- Security-sensitive decisions (credentials, auth, secrets, permissions)
- Destructive operations (deleting data, dropping tables, force pushes)
- Deployment or production changes
- Requirements that are genuinely ambiguous

SOFT QUESTIONS (decide yourself; log with blocksProgress=false, the options
you considered, your chosen option and your reasoning):
- Naming of variables, files and functions
- Formatting and code style
- Minor implementation details with an obvious conventional answer

DECISION FRAMEWORK:
1. Can the project's existing conventions answer it? Decide and continue.
2. Is it reversible and low risk? Decide, log it as a soft question, continue.
3. Otherwise log a hard blocker and work on something that does not depend on it.

Do not repeat a blocker you have already logged.
When all non-blocked work is complete, say "{marker}".
{recent}</blocker-diverter-mode>"""


def build_continuation_prompt(marker: str | None = None) -> str:
    """Synthetic user message that nudges an idle agent to keep working."""
    safe_marker = sanitize_input(marker or DEFAULT_COMPLETION_MARKER)
    return (
        "Check the progress on current tasks. If there's more non-blocking work to do, "
        f"continue. When all work is complete, say '{safe_marker}'!"
    )


def build_permission_prompt(permission: str) -> str:
    """Synthetic user message sent after a permission request was diverted."""
    return (
        f"Log this {sanitize_input(permission)} permission request as a blocker "
        "and continue with other non-blocking tasks."
    )


def build_system_prompt(marker: str, blockers: Sequence[Blocker] = ()) -> str:
    """Autonomous-mode instructions appended to the system prompt."""
    recent = ""
    if blockers:
        lines = ["", "Blockers already logged this session:"]
        for blocker in blockers[-SYSTEM_PROMPT_RECENT_BLOCKERS:]:
            lines.append(
                f"- [{blocker.category.value}] {sanitize_blocker_text(blocker.question)}"
            )
        recent = "\n".join(lines) + "\n"
    return _SYSTEM_PROMPT.format(marker=sanitize_input(marker), recent=recent)


def build_compaction_summary(blockers: Sequence[Blocker]) -> str:
    """Summary of logged blockers preserved across context compaction."""
    latest = [b.to_dict() for b in blockers[-COMPACTION_RECENT_BLOCKERS:]]
    return (
        "<active-blockers>\n"
        f"Recent blockers logged: {len(blockers)}\n"
        f"Latest: {json.dumps(latest, indent=2, ensure_ascii=False)}\n"
        "</active-blockers>"
    )
