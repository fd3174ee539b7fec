"""Pydantic v2 models for the JSON-lines messages emitted by a master CLI."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class _MessageBase(BaseModel):
    """Fields every protocol message may carry."""

    # Unknown extra fields are ignored so newer CLI versions still decode.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: str | None = Field(
        default=None,
        description="Resumable session identifier, when the CLI reports one",
    )


class StreamEventMessage(_MessageBase):
    """Wrapper around a low-level streaming API event (incremental family)."""

    type: Literal["stream_event"] = "stream_event"
    event: dict[str, Any] = Field(
        default_factory=dict, description="Nested API event"
    )


class AssistantMessage(_MessageBase):
    """A complete assistant message for one model step."""

    type: Literal["assistant"] = "assistant"
    message: dict[str, Any] = Field(
        default_factory=dict,
        description="API message with a ``content`` list of blocks",
    )


class ResultMessage(_MessageBase):
    """Final consolidated result for the whole turn."""

    type: Literal["result"] = "result"
    result: Any = Field(default=None, description="Terminal text payload")
    subtype: str | None = Field(default=None, description="e.g. 'success'")
    is_error: bool = Field(default=False, description="Turn ended in error")


class ContentDeltaMessage(_MessageBase):
    """Incremental text fragment for a content block."""

    type: Literal["content_block_delta"] = "content_block_delta"
    index: int | None = Field(default=None, description="Content block index")
    delta: dict[str, Any] = Field(default_factory=dict, description="Delta body")


class BlockBoundaryMessage(_MessageBase):
    """Start or end marker of a content block."""

    type: Literal["content_block_start", "content_block_stop"]
    index: int | None = Field(default=None, description="Content block index")
    content_block: dict[str, Any] | None = Field(
        default=None, description="Block header (start only)"
    )


class ToolUseMessage(_MessageBase):
    """A tool the master asks the orchestrator to run."""

    type: Literal["tool_use"] = "tool_use"
    id: str = Field(description="Call id, echoed back as ``tool_use_id``")
    name: str = Field(description="Tool name")
    input: Any = Field(default_factory=dict, description="Tool arguments")


class SystemMessage(_MessageBase):
    """System notice, e.g. the ``init`` event carrying the session id."""

    type: Literal["system"] = "system"
    subtype: str | None = Field(default=None, description="System event subtype")


class ErrorMessage(_MessageBase):
    """An error reported by the CLI."""

    type: Literal["error"] = "error"
    message: Any = Field(default=None, description="Error message")
    error: Any = Field(default=None, description="Structured error body")


class ChatMessage(_MessageBase):
    """A plain conversational message."""

    type: Literal["message"] = "message"
    role: str | None = Field(default=None, description="Author role")
    content: Any = Field(default=None, description="Text or content blocks")


class UnknownMessage(_MessageBase):
    """A structured record whose type is not recognized."""

    type: Literal["unknown"] = "unknown"
    raw_type: str | None = Field(default=None, description="Original type value")
    payload: dict[str, Any] = Field(
        default_factory=dict, description="The undecoded record"
    )


#: Wire ``type`` value -> union tag.
MESSAGE_TAGS: dict[str, str] = {
    "stream_event": "stream_event",
    "assistant": "assistant",
    "result": "result",
    "content_block_delta": "content_block_delta",
    "content_block_start": "block_boundary",
    "content_block_stop": "block_boundary",
    "tool_use": "tool_use",
    "system": "system",
    "error": "error",
    "message": "message",
}


def _message_discriminator(v: Any) -> str:
    """Map raw data or a model instance to its union tag."""
    raw = v.get("type", "") if isinstance(v, dict) else getattr(v, "type", "")
    return MESSAGE_TAGS.get(str(raw), "")


KnownMessage = Annotated[
    Annotated[StreamEventMessage, Tag("stream_event")]
    | Annotated[AssistantMessage, Tag("assistant")]
    | Annotated[ResultMessage, Tag("result")]
    | Annotated[ContentDeltaMessage, Tag("content_block_delta")]
    | Annotated[BlockBoundaryMessage, Tag("block_boundary")]
    | Annotated[ToolUseMessage, Tag("tool_use")]
    | Annotated[SystemMessage, Tag("system")]
    | Annotated[ErrorMessage, Tag("error")]
    | Annotated[ChatMessage, Tag("message")],
    Discriminator(_message_discriminator),
]
"""Discriminated union of all recognized message kinds."""

ProtocolMessage = (
    StreamEventMessage
    | AssistantMessage
    | ResultMessage
    | ContentDeltaMessage
    | BlockBoundaryMessage
    | ToolUseMessage
    | SystemMessage
    | ErrorMessage
    | ChatMessage
    | UnknownMessage
)
"""Every kind the decoder can produce, including the ``unknown`` arm."""
