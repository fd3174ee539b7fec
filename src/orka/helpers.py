"""Shared helper functions for orchestration components."""

from __future__ import annotations

import logging

from orka.session.models import ErrorEvent
from orka.session.recorder import SessionRecorder


def format_noise_preview(lines: list[str], max_lines: int = 5) -> str:
    """Format the last N non-empty lines of diagnostic output."""
    kept = [line for line in lines if line.strip()]
    last = kept[-max_lines:] if len(kept) > max_lines else kept
    return "\n  ".join(last)


def truncate(text: str, limit: int) -> str:
    """Shorten *text* to *limit* characters with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def record_error(
    recorder: SessionRecorder,
    agent_name: str,
    error_msg: str,
    context: str = "subprocess",
    retrying: bool = False,
    logger: logging.Logger | None = None,
) -> None:
    """Log and record an error event in one call."""
    if logger:
        logger.error("%s: %s", agent_name, error_msg)
    recorder.record(
        ErrorEvent(
            ts="",
            seq=0,
            agent=agent_name,
            error=error_msg,
            retrying=retrying,
            context=context,
        )
    )
