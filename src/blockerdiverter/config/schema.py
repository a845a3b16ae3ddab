"""Configuration schema dataclasses for Blocker Diverter.

Defines the structure of configuration at all levels (user, project).
Defaults here are the effective values when no config file sets a field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_BLOCKERS_FILE = "./BLOCKERS.md"
DEFAULT_COMPLETION_MARKER = "BLOCKER_DIVERTER_DONE!"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    file: str | None = None  # Log file path


@dataclass
class PluginConfig:
    """Tunables for blocker diversion and autonomous continuation.

    Example config.yaml:
        enabled: true
        default_divert_blockers: true
        blockers_file: ./docs/BLOCKERS.md
        max_blockers_per_run: 50
        max_blockers_per_file: 200
        cooldown_ms: 30000
        max_reprompts: 5
        reprompt_window_ms: 300000
        completion_marker: BLOCKER_DIVERTER_DONE!
        prompt_timeout_ms: 30000
        logging:
          level: DEBUG
    """

    enabled: bool = True  # Global on/off; hooks become inert when false
    default_divert_blockers: bool = False  # Initial per-session toggle
    blockers_file: str = DEFAULT_BLOCKERS_FILE  # Relative to project root
    max_blockers_per_run: int = 50  # Per-session cap (1-100)
    max_blockers_per_file: int = 50  # Rotation threshold for the log file
    cooldown_ms: int = 30000  # Dedup window and minimum gap between reprompts
    max_reprompts: int = 5  # Continuation prompts allowed per window
    reprompt_window_ms: int = 300000  # Window after which the reprompt count resets
    completion_marker: str = DEFAULT_COMPLETION_MARKER
    prompt_timeout_ms: int = 30000  # Deadline for one prompt injection call
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level keys, kept for forward compatibility
    extra: dict[str, Any] = field(default_factory=dict)
