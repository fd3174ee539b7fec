"""Protocol decoder — turns clean lines into typed messages or noise."""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Iterator
from typing import Any

from pydantic import TypeAdapter, ValidationError

from orka.constants import DEFAULT_NOISE_CAPACITY
from orka.protocol.messages import (
    MESSAGE_TAGS,
    AssistantMessage,
    ContentDeltaMessage,
    KnownMessage,
    ProtocolMessage,
    ResultMessage,
    StreamEventMessage,
    UnknownMessage,
)

logger = logging.getLogger(__name__)

_KNOWN_ADAPTER: TypeAdapter[Any] = TypeAdapter(KnownMessage)


class NoiseBuffer:
    """Fixed-capacity ring of non-protocol lines, oldest evicted first."""

    def __init__(self, capacity: int = DEFAULT_NOISE_CAPACITY) -> None:
        if capacity < 1:
            msg = f"Noise buffer capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._lines: deque[str] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._lines.maxlen or 0

    def append(self, line: str) -> None:
        self._lines.append(line)

    def tail(self, count: int) -> list[str]:
        """Return up to *count* most recent lines, oldest first."""
        if count <= 0:
            return []
        return list(self._lines)[-count:]

    def clear(self) -> None:
        self._lines.clear()

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)


class ProtocolDecoder:
    """Decodes one line at a time; never raises on malformed input.

    Lines that are not a JSON object are interactive-terminal noise
    (banners, prompts, redraws) and go to :attr:`noise` instead.
    """

    def __init__(self, noise_capacity: int = DEFAULT_NOISE_CAPACITY) -> None:
        self.noise = NoiseBuffer(noise_capacity)

    def decode(self, line: str) -> ProtocolMessage | None:
        """Return the message encoded in *line*, or ``None`` for noise."""
        try:
            record = json.loads(line)
        except (json.JSONDecodeError, RecursionError):
            self.noise.append(line)
            return None

        if not isinstance(record, dict):
            self.noise.append(line)
            return None

        raw_type = record.get("type")
        if not isinstance(raw_type, str) or raw_type not in MESSAGE_TAGS:
            logger.debug("Unknown message type from CLI: %r", raw_type)
            return _unknown(raw_type, record)

        try:
            return _KNOWN_ADAPTER.validate_python(record)
        except ValidationError as exc:
            logger.warning(
                "Malformed %r message from CLI (%d errors): %s",
                raw_type,
                exc.error_count(),
                line[:200],
            )
            return _unknown(raw_type, record)


def _unknown(raw_type: object, record: dict[str, Any]) -> UnknownMessage:
    session_id = record.get("session_id")
    return UnknownMessage(
        raw_type=None if raw_type is None else str(raw_type),
        payload=record,
        session_id=session_id if isinstance(session_id, str) else None,
    )


# ------------------------------------------------------------------ #
# Content flattening
# ------------------------------------------------------------------ #


def flatten_content(value: Any) -> str:
    """Flatten a nested content payload into a single string.

    Strings pass through, lists are joined with a blank line, ``{"text": x}``
    wrappers and ``{"type": "text", "text": x}`` blocks are unwrapped
    recursively, and anything else is JSON-encoded.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = [flatten_content(item) for item in value]
        return "\n\n".join(p for p in parts if p)
    if isinstance(value, dict) and _is_text_wrapper(value):
        return flatten_content(value["text"])
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def _is_text_wrapper(value: dict[Any, Any]) -> bool:
    keys = set(value)
    if keys == {"text"}:
        return True
    return keys == {"type", "text"} and value.get("type") == "text"


# ------------------------------------------------------------------ #
# Text extraction
# ------------------------------------------------------------------ #


def delta_text(message: StreamEventMessage | ContentDeltaMessage) -> str:
    """Text carried by an incremental delta, or ``""``."""
    if isinstance(message, StreamEventMessage):
        event = message.event
        if event.get("type") != "content_block_delta":
            return ""
        delta = event.get("delta")
    else:
        delta = message.delta
    if not isinstance(delta, dict):
        return ""
    text = delta.get("text")
    return text if isinstance(text, str) else ""


def assistant_text(message: AssistantMessage) -> str:
    """Joined text blocks of an assistant message.

    ``tool_use`` and ``thinking`` blocks are not output text.
    """
    content = message.message.get("content")
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    texts = [
        flatten_content(block)
        for block in content
        if isinstance(block, str)
        or (isinstance(block, dict) and block.get("type") in (None, "text"))
    ]
    return "\n\n".join(t for t in texts if t)


def assistant_tool_names(message: AssistantMessage) -> list[str]:
    """Names of tools the CLI itself is running in this message."""
    content = message.message.get("content")
    if not isinstance(content, list):
        return []
    return [
        str(block.get("name", ""))
        for block in content
        if isinstance(block, dict) and block.get("type") == "tool_use"
    ]


def result_text(message: ResultMessage) -> str:
    return flatten_content(message.result)
