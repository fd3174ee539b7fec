"""Pydantic v2 models for session recording events."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class _EventBase(BaseModel):
    """Common envelope fields shared by every session event."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    ts: str = Field(description="ISO 8601 timestamp with milliseconds")
    seq: int = Field(ge=0, description="Monotonic sequence number")


class SessionStartEvent(_EventBase):
    """Emitted once when the recorder opens."""

    type: Literal["session_start"] = "session_start"
    session_id: str = Field(description="Recorder identifier (not the CLI's)")
    name: str = Field(description="Project name")
    config_hash: str = Field(description="Hash of the resolved config")


#: Why a session ended, as passed by the CLI commands.
EndReason = Literal["complete", "user_shutdown", "ctrl_c", "error"]


class SessionEndEvent(_EventBase):
    """Emitted once when the recorder closes."""

    type: Literal["session_end"] = "session_end"
    reason: EndReason = Field(description="Why the session ended")
    duration_ms: int = Field(description="Total session duration in milliseconds")
    turns: int = Field(ge=0, description="Number of master turns executed")


class TurnStartEvent(_EventBase):
    """A master turn begins."""

    type: Literal["turn_start"] = "turn_start"
    project_path: str = Field(description="Directory the master runs in")
    resume_session_id: str | None = Field(
        default=None, description="Session resumed by this turn, if any"
    )
    command_line: str = Field(description="Startup invocation")


class TurnEndEvent(_EventBase):
    """A master turn finished (process exit observed)."""

    type: Literal["turn_end"] = "turn_end"
    exit_code: int = Field(description="Master process exit code")
    duration_ms: int = Field(description="Turn duration in milliseconds")
    cancelled: bool = Field(default=False, description="Interrupt was sent")


class SessionObservedEvent(_EventBase):
    """The master CLI reported its resumable session identifier."""

    type: Literal["session_observed"] = "session_observed"
    cli_session_id: str = Field(description="Identifier reported by the CLI")


class ToolCallEvent(_EventBase):
    """The master requested a tool."""

    type: Literal["tool_call"] = "tool_call"
    call_id: str = Field(description="Tool call id")
    tool: str = Field(description="Tool name")
    args: Any = Field(description="Tool arguments")


class ToolResultEvent(_EventBase):
    """A tool result was written back to the master."""

    type: Literal["tool_result"] = "tool_result"
    call_id: str = Field(description="Tool call id")
    tool: str = Field(description="Tool name")
    success: bool = Field(description="Whether the tool succeeded")
    duration_ms: int = Field(description="Round-trip duration in milliseconds")
    result_size: int = Field(description="Size of the serialized result in bytes")


class SlaveStartEvent(_EventBase):
    """A slave task was dispatched."""

    type: Literal["slave_start"] = "slave_start"
    task_id: str = Field(description="Slave task id")
    agent: str = Field(description="Slave agent identity")
    instruction: str = Field(description="Instruction text")


class SlaveDoneEvent(_EventBase):
    """A slave task reached a final status."""

    type: Literal["slave_done"] = "slave_done"
    task_id: str = Field(description="Slave task id")
    agent: str = Field(description="Slave agent identity")
    status: Literal["completed", "error"] = Field(description="Final status")
    duration_ms: int = Field(description="Task duration in milliseconds")


class NoiseEvent(_EventBase):
    """Tail of non-protocol output, kept when a turn fails."""

    type: Literal["noise"] = "noise"
    agent: str = Field(description="Process the noise came from")
    lines: list[str] = Field(description="Most recent noise lines, oldest first")


class StatusEvent(_EventBase):
    """Free-form progress update."""

    type: Literal["status"] = "status"
    agent: str = Field(description="Agent reporting status")
    status: str = Field(description="Status message")


class ErrorEvent(_EventBase):
    """An error encountered during the session."""

    type: Literal["error"] = "error"
    agent: str | None = Field(
        default=None,
        description="Agent that hit the error (null for system-level errors)",
    )
    error: str = Field(description="Error description")
    retrying: bool = Field(description="Whether the operation will be retried")
    context: str | None = Field(
        default=None,
        description="Error context: readiness, subprocess, tool, turn, etc.",
    )


def _event_discriminator(v: Any) -> str:
    """Extract the discriminator value from raw data or a model instance."""
    if isinstance(v, dict):
        return str(v.get("type", ""))
    return str(getattr(v, "type", ""))


SessionEvent = Annotated[
    Annotated[SessionStartEvent, Tag("session_start")]
    | Annotated[SessionEndEvent, Tag("session_end")]
    | Annotated[TurnStartEvent, Tag("turn_start")]
    | Annotated[TurnEndEvent, Tag("turn_end")]
    | Annotated[SessionObservedEvent, Tag("session_observed")]
    | Annotated[ToolCallEvent, Tag("tool_call")]
    | Annotated[ToolResultEvent, Tag("tool_result")]
    | Annotated[SlaveStartEvent, Tag("slave_start")]
    | Annotated[SlaveDoneEvent, Tag("slave_done")]
    | Annotated[NoiseEvent, Tag("noise")]
    | Annotated[StatusEvent, Tag("status")]
    | Annotated[ErrorEvent, Tag("error")],
    Discriminator(_event_discriminator),
]
"""Discriminated union of all session event types."""
