"""Terminal abstraction and its subprocess-backed implementation."""

from orka.terminal.base import (
    Execution,
    ReadinessTimeoutError,
    Terminal,
    TerminalFactory,
)
from orka.terminal.shell import ShellExecution, ShellTerminal

__all__ = [
    "Execution",
    "ReadinessTimeoutError",
    "ShellExecution",
    "ShellTerminal",
    "Terminal",
    "TerminalFactory",
]
