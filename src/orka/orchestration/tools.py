"""Tool definitions advertised to the master CLI."""

from __future__ import annotations

import json
from typing import Any

from orka.config.models import SlaveAgentConfig

#: Prefix of the per-agent execution tools (``execute_slave_codex``, ...).
SLAVE_TOOL_PREFIX = "execute_slave_"

#: Name of the task status tool.
STATUS_TOOL = "get_slave_status"


STATUS_TOOL_SCHEMA: dict[str, Any] = {
    "name": STATUS_TOOL,
    "description": "Check the status of a slave task",
    "input_schema": {
        "type": "object",
        "properties": {
            "task_id": {
                "type": "string",
                "description": "Task ID to check",
            },
        },
        "required": ["task_id"],
    },
}


def slave_tool_name(agent: str) -> str:
    return f"{SLAVE_TOOL_PREFIX}{agent}"


def slave_tool_schema(agent: str, config: SlaveAgentConfig) -> dict[str, Any]:
    """Schema for the tool that runs a task on *agent*."""
    purpose = config.description or "Execute a task."
    return {
        "name": slave_tool_name(agent),
        "description": (
            f"Execute a task using the {agent} CLI (slave agent). {purpose}"
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "instruction": {
                    "type": "string",
                    "description": "Detailed instruction for the task",
                },
                "context": {
                    "type": "string",
                    "description": "Additional context or constraints",
                },
            },
            "required": ["instruction"],
        },
    }


def build_tool_definitions(
    agents: dict[str, SlaveAgentConfig],
) -> list[dict[str, Any]]:
    """One execution tool per slave agent, plus the status tool."""
    tools = [slave_tool_schema(name, config) for name, config in agents.items()]
    tools.append(STATUS_TOOL_SCHEMA)
    return tools


def tool_definitions_json(agents: dict[str, SlaveAgentConfig]) -> str:
    return json.dumps(build_tool_definitions(agents))
