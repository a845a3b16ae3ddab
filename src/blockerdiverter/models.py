"""Data model for blockers and per-session state.

``Blocker`` is the immutable record persisted to the blocker log.
``BlockerToolArgs`` validates the arguments an agent passes to the
``blocker`` tool before anything reaches the recording flow.
``SessionState`` is the mutable per-session record owned by
:class:`blockerdiverter.state.SessionRegistry`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from blockerdiverter.errors import BlockerValidationError


class BlockerCategory(str, Enum):
    """Closed set of blocker categories."""

    PERMISSION = "permission"
    ARCHITECTURE = "architecture"
    SECURITY = "security"
    DESTRUCTIVE = "destructive"
    DEPLOYMENT = "deployment"
    QUESTION = "question"
    OTHER = "other"


class ClarificationStatus(str, Enum):
    """Human follow-up status, set after a record has been persisted."""

    PENDING = "pending"
    CLARIFIED = "clarified"
    SKIPPED = "skipped"


def check_blocker_invariants(
    blocks_progress: bool,
    options: tuple[str, ...] | list[str] | None,
    chosen_option: str | None,
) -> list[str]:
    """Return the list of invariant violations (empty when valid)."""
    errors: list[str] = []
    if not blocks_progress and not options:
        errors.append("soft blockers (blocks_progress=false) require a non-empty options list")
    if chosen_option is not None and chosen_option not in (options or ()):
        errors.append(f"chosen_option {chosen_option!r} is not one of the options")
    return errors


@dataclass(frozen=True)
class Blocker:
    """One recorded blocking question or decision."""

    id: str
    timestamp: str  # ISO-8601 UTC, millisecond precision, Z suffix
    session_id: str
    category: BlockerCategory
    question: str
    context: str = ""
    blocks_progress: bool = True
    options: tuple[str, ...] | None = None
    chosen_option: str | None = None
    chosen_reasoning: str | None = None
    clarified: ClarificationStatus | None = None
    clarification: str | None = None

    def __post_init__(self) -> None:
        if self.options is not None and not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))
        if not isinstance(self.category, BlockerCategory):
            object.__setattr__(self, "category", BlockerCategory(self.category))
        errors = check_blocker_invariants(self.blocks_progress, self.options, self.chosen_option)
        if errors:
            raise BlockerValidationError("; ".join(errors), errors)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "category": self.category.value,
            "question": self.question,
            "context": self.context,
            "blocksProgress": self.blocks_progress,
        }
        if self.options is not None:
            data["options"] = list(self.options)
        if self.chosen_option is not None:
            data["chosenOption"] = self.chosen_option
        if self.chosen_reasoning is not None:
            data["chosenReasoning"] = self.chosen_reasoning
        if self.clarified is not None:
            data["clarified"] = self.clarified.value
        if self.clarification is not None:
            data["clarification"] = self.clarification
        return data


@dataclass(frozen=True)
class BlockerDraft:
    """The caller-supplied part of a blocker, before id and timestamp exist."""

    category: BlockerCategory
    question: str
    context: str = ""
    blocks_progress: bool = True
    options: tuple[str, ...] | None = None
    chosen_option: str | None = None
    chosen_reasoning: str | None = None


class BlockerToolArgs(BaseModel):
    """Arguments of the agent-facing ``blocker`` tool."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question: str = Field(min_length=1)
    category: BlockerCategory
    context: str = ""
    blocks_progress: bool = Field(default=True, alias="blocksProgress")
    options: list[str] | None = None
    chosen_option: str | None = Field(default=None, alias="chosenOption")
    chosen_reasoning: str | None = Field(default=None, alias="chosenReasoning")

    @model_validator(mode="after")
    def _check_invariants(self) -> BlockerToolArgs:
        if not self.question.strip():
            raise ValueError("question must not be blank")
        errors = check_blocker_invariants(self.blocks_progress, self.options, self.chosen_option)
        if errors:
            raise ValueError("; ".join(errors))
        return self

    @classmethod
    def parse(cls, data: Any) -> BlockerToolArgs:
        """Validate raw tool arguments.

        Raises:
            BlockerValidationError: With one message per pydantic error.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            messages = [
                f"{'.'.join(str(part) for part in err['loc']) or 'args'}: {err['msg']}"
                for err in e.errors()
            ]
            raise BlockerValidationError("Invalid blocker arguments: " + "; ".join(messages), messages) from e

    def to_draft(self) -> BlockerDraft:
        return BlockerDraft(
            category=self.category,
            question=self.question,
            context=self.context,
            blocks_progress=self.blocks_progress,
            options=tuple(self.options) if self.options is not None else None,
            chosen_option=self.chosen_option,
            chosen_reasoning=self.chosen_reasoning,
        )


@dataclass
class SessionState:
    """Mutable per-session record.

    Only :meth:`SessionRegistry.update` should mutate it.
    """

    divert_blockers: bool = False
    blockers: list[Blocker] = field(default_factory=list)
    cooldown_hashes: dict[str, int] = field(default_factory=dict)  # fingerprint -> expiry ms
    last_blocker_time: int = 0
    reprompt_count: int = 0
    last_reprompt_time: int = 0
    is_recovering: bool = False
    last_assistant_aborted: bool = False
    last_message_content: str = ""
    pending_writes: list[Blocker] = field(default_factory=list)
    # Reserved for loop detection; nothing populates it yet
    recent_response_hashes: list[str] = field(default_factory=list)
    injection_in_flight: bool = False
    last_injected_prompt: str | None = None

    def reset_reprompts(self) -> None:
        """Zero the reprompt counter and its window start."""
        self.reprompt_count = 0
        self.last_reprompt_time = 0
