"""Typed host payloads.

Host events arrive as untyped ``{"type": ..., "properties": {...}}``
mappings. They are narrowed here into a closed union discriminated on
``type``; nothing past this module touches a raw payload.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from blockerdiverter.errors import EventValidationError

ABORT_ERROR_NAME = "MessageAbortedError"


class HostModel(BaseModel):
    """Base for host payloads: camelCase aliases, unknown fields kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ErrorInfo(HostModel):
    name: str | None = None
    data: dict[str, Any] | None = None


class SessionInfo(HostModel):
    id: str


class SessionProperties(HostModel):
    """Session id lives in ``info.id`` or ``sessionID`` depending on the event."""

    info: SessionInfo | None = None
    session_id: str | None = Field(default=None, alias="sessionID")

    @model_validator(mode="after")
    def _require_session(self) -> SessionProperties:
        if not self.resolved_session_id:
            raise ValueError("session event has no session id")
        return self

    @property
    def resolved_session_id(self) -> str | None:
        if self.info is not None and self.info.id:
            return self.info.id
        return self.session_id


class SessionErrorProperties(SessionProperties):
    error: ErrorInfo | None = None


class MessageInfo(HostModel):
    id: str | None = None
    session_id: str = Field(alias="sessionID")
    role: str
    error: ErrorInfo | None = None
    finish: str | None = None


class MessageProperties(HostModel):
    info: MessageInfo


class _SessionEvent(HostModel):
    properties: SessionProperties

    @property
    def session_id(self) -> str:
        return self.properties.resolved_session_id or ""


class SessionCreated(_SessionEvent):
    type: Literal["session.created"]


class SessionIdle(_SessionEvent):
    type: Literal["session.idle"]


class SessionDeleted(_SessionEvent):
    type: Literal["session.deleted"]


class SessionCompacted(_SessionEvent):
    type: Literal["session.compacted"]


class SessionErrorEvent(_SessionEvent):
    type: Literal["session.error"]
    properties: SessionErrorProperties

    @property
    def error_name(self) -> str | None:
        error = self.properties.error
        return error.name if error is not None else None


class MessageUpdated(HostModel):
    type: Literal["message.updated"]
    properties: MessageProperties

    @property
    def session_id(self) -> str:
        return self.properties.info.session_id

    @property
    def role(self) -> str:
        return self.properties.info.role

    @property
    def aborted(self) -> bool:
        error = self.properties.info.error
        return error is not None and error.name == ABORT_ERROR_NAME


HostEvent = Annotated[
    Union[
        SessionCreated,
        SessionIdle,
        SessionDeleted,
        SessionCompacted,
        SessionErrorEvent,
        MessageUpdated,
    ],
    Field(discriminator="type"),
]

KNOWN_EVENT_TYPES = frozenset(
    {
        "session.created",
        "session.idle",
        "session.deleted",
        "session.compacted",
        "session.error",
        "message.updated",
    }
)

_event_adapter: TypeAdapter[Any] = TypeAdapter(HostEvent)


def parse_event(raw: Any) -> HostEvent | None:
    """Narrow a raw host event.

    Returns:
        The typed event, or None for event types this package ignores.

    Raises:
        EventValidationError: If a known event type has a malformed payload.
    """
    if not isinstance(raw, dict):
        raise EventValidationError(f"Event must be a mapping, got {type(raw).__name__}")
    if raw.get("type") not in KNOWN_EVENT_TYPES:
        return None
    try:
        return _event_adapter.validate_python(raw)
    except ValidationError as e:
        raise EventValidationError(f"Invalid {raw.get('type')} event: {e}") from e


class PermissionRequest(HostModel):
    """A permission the agent asked for."""

    id: str | None = None
    type: str
    session_id: str = Field(alias="sessionID")
    title: str | None = None
    pattern: str | list[str] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def tool_name(self) -> str:
        tool = self.metadata.get("tool")
        if isinstance(tool, str) and tool:
            return tool
        return self.title or "unknown"


class ToolCall(HostModel):
    """A tool invocation about to execute."""

    tool: str
    session_id: str = Field(alias="sessionID")
    call_id: str | None = Field(default=None, alias="callID")


class MessagePart(HostModel):
    type: str
    text: str | None = None
    synthetic: bool = False


class ChatMessage(HostModel):
    """A chat message with its parts, as delivered to the message hook."""

    session_id: str = Field(alias="sessionID")
    role: str
    parts: list[MessagePart] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(p.text for p in self.parts if p.type == "text" and p.text is not None)

    @property
    def synthetic(self) -> bool:
        text_parts = [p for p in self.parts if p.type == "text"]
        return bool(text_parts) and all(p.synthetic for p in text_parts)


class CommandInvocation(HostModel):
    """A slash command typed by the user."""

    command: str
    session_id: str = Field(alias="sessionID")
    arguments: str = ""
