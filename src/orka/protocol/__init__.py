"""Noise-tolerant decoding of JSON-lines CLI output."""

from orka.protocol.decoder import NoiseBuffer, ProtocolDecoder, flatten_content
from orka.protocol.messages import (
    AssistantMessage,
    BlockBoundaryMessage,
    ChatMessage,
    ContentDeltaMessage,
    ErrorMessage,
    ProtocolMessage,
    ResultMessage,
    StreamEventMessage,
    SystemMessage,
    ToolUseMessage,
    UnknownMessage,
)
from orka.protocol.sanitizer import (
    LineAssembler,
    aiter_lines,
    iter_lines,
    strip_terminal_noise,
)

__all__ = [
    "AssistantMessage",
    "BlockBoundaryMessage",
    "ChatMessage",
    "ContentDeltaMessage",
    "ErrorMessage",
    "LineAssembler",
    "NoiseBuffer",
    "ProtocolDecoder",
    "ProtocolMessage",
    "ResultMessage",
    "StreamEventMessage",
    "SystemMessage",
    "ToolUseMessage",
    "UnknownMessage",
    "aiter_lines",
    "flatten_content",
    "iter_lines",
    "strip_terminal_noise",
]
