"""Shared constants and type aliases for the Orka runtime."""

from __future__ import annotations

from collections.abc import Callable

#: Control byte sent to a terminal to interrupt the running command (Ctrl+C).
INTERRUPT = "\x03"

#: Seconds to wait for a terminal to accept commands.
DEFAULT_READINESS_TIMEOUT = 10.0

#: Number of non-protocol lines kept for diagnostics.
DEFAULT_NOISE_CAPACITY = 50

#: Noise lines attached to a failed-turn report.
NOISE_TAIL_LINES = 10

#: Callback type for plain text sinks (output, progress).
TextCallback = Callable[[str], None]
