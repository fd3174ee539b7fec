"""Process I/O boundary consumed by the orchestration engine."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Protocol, runtime_checkable


class ReadinessTimeoutError(Exception):
    """Raised when a terminal does not accept commands within the bound."""


@runtime_checkable
class Execution(Protocol):
    """One command running inside a terminal."""

    def read(self) -> AsyncIterator[str]:
        """Stream output fragments until the command exits (not restartable)."""
        ...

    async def write(self, text: str) -> None:
        """Send *text* to the command's input."""
        ...

    async def close_input(self) -> None:
        """Close the command's input; later writes are dropped."""
        ...

    async def wait(self) -> int:
        """Wait for this execution's exit event and return its exit code."""
        ...


@runtime_checkable
class Terminal(Protocol):
    """A long-lived terminal context that runs commands in one directory."""

    @property
    def closed(self) -> bool:
        """Whether the terminal has exited and must be recreated."""
        ...

    async def wait_ready(self, timeout: float) -> None:
        """Block until commands can be executed.

        Raises:
            ReadinessTimeoutError: If readiness is not signalled in time.
        """
        ...

    async def execute_command(self, command_line: str) -> Execution:
        """Start *command_line* and return its execution handle."""
        ...

    async def send_text(self, text: str, add_newline: bool = True) -> None:
        """Type *text* into the terminal (goes to the running command)."""
        ...

    async def close(self) -> None:
        """Terminate anything still running and release the terminal."""
        ...


#: Creates a terminal given a display name and working directory.
TerminalFactory = Callable[[str, Path], Terminal]
