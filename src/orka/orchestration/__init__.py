"""Slave task registry, dispatcher, and tool routing."""

from orka.orchestration.executor import SlaveExecutionError, SlaveExecutor
from orka.orchestration.models import SlaveTask, TaskStatus, ToolCall, ToolResult
from orka.orchestration.router import ToolRouter
from orka.orchestration.tools import (
    SLAVE_TOOL_PREFIX,
    STATUS_TOOL,
    build_tool_definitions,
    slave_tool_name,
    tool_definitions_json,
)

__all__ = [
    "SLAVE_TOOL_PREFIX",
    "STATUS_TOOL",
    "SlaveExecutionError",
    "SlaveExecutor",
    "SlaveTask",
    "TaskStatus",
    "ToolCall",
    "ToolResult",
    "ToolRouter",
    "build_tool_definitions",
    "slave_tool_name",
    "tool_definitions_json",
]
