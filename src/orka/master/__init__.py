"""Master CLI session state machine."""

from orka.master.output import TurnOutput
from orka.master.session import (
    MASTER_AGENT,
    MasterSession,
    SessionState,
    Turn,
    TurnOutcome,
)

__all__ = [
    "MASTER_AGENT",
    "MasterSession",
    "SessionState",
    "Turn",
    "TurnOutcome",
    "TurnOutput",
]
