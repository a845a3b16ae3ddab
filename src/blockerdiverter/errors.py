"""Exception hierarchy for Blocker Diverter.

Only two kinds of failure are allowed to reach a hook's caller: path
security violations and malformed required input. Everything else is
logged and degraded where it happens.
"""

from __future__ import annotations


class BlockerDiverterError(Exception):
    """Base class for all package errors."""


class PathTraversalError(BlockerDiverterError):
    """Raised when a blocker log path resolves outside the project root."""

    def __init__(self, path: str, project_root: str) -> None:
        self.path = path
        self.project_root = project_root
        super().__init__(
            f"Invalid path: {path!r} resolves outside project directory "
            f"{project_root!r} (attempted directory traversal)"
        )


class BlockerValidationError(BlockerDiverterError, ValueError):
    """Raised when blocker fields or tool arguments are malformed."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or [message]
        super().__init__(message)


class EventValidationError(BlockerDiverterError, ValueError):
    """Raised when a host event of a known type has an invalid payload."""


class QuestionToolBlocked(BlockerDiverterError):
    """Raised from the tool hook to stop the host's interactive question tool."""
