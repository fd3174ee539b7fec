"""Session recording — event models and JSONL recorder."""

from orka.session.models import (
    EndReason,
    ErrorEvent,
    NoiseEvent,
    SessionEndEvent,
    SessionEvent,
    SessionObservedEvent,
    SessionStartEvent,
    SlaveDoneEvent,
    SlaveStartEvent,
    StatusEvent,
    ToolCallEvent,
    ToolResultEvent,
    TurnEndEvent,
    TurnStartEvent,
)
from orka.session.recorder import SessionRecorder

__all__ = [
    "EndReason",
    "ErrorEvent",
    "NoiseEvent",
    "SessionEndEvent",
    "SessionEvent",
    "SessionObservedEvent",
    "SessionRecorder",
    "SessionStartEvent",
    "SlaveDoneEvent",
    "SlaveStartEvent",
    "StatusEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    "TurnEndEvent",
    "TurnStartEvent",
]
