"""Tool router — resolves master tool calls to slave executions or status queries."""

from __future__ import annotations

import logging
from pathlib import Path

from orka.constants import TextCallback
from orka.helpers import truncate
from orka.orchestration.executor import SlaveExecutor
from orka.orchestration.models import ToolCall, ToolResult
from orka.orchestration.tools import SLAVE_TOOL_PREFIX, STATUS_TOOL

logger = logging.getLogger(__name__)

#: Max characters of an instruction shown in progress messages.
_PREVIEW_LEN = 50


class ToolRouter:
    """Maps a tool name to a slave execution or a task status lookup.

    :meth:`route` never raises: the master expects a result for every
    call it issues, so failures become ``success=False`` results.
    """

    def __init__(
        self,
        executor: SlaveExecutor,
        project_path: str | Path,
        on_progress: TextCallback | None = None,
    ) -> None:
        self._executor = executor
        self._project_path = Path(project_path)
        self._on_progress = on_progress

    async def route(self, call: ToolCall) -> ToolResult:
        try:
            return await self._dispatch(call)
        except Exception as exc:
            logger.exception("Tool %s (%s) failed", call.name, call.id)
            return ToolResult(success=False, error=str(exc) or type(exc).__name__)

    async def _dispatch(self, call: ToolCall) -> ToolResult:
        if call.name.startswith(SLAVE_TOOL_PREFIX):
            agent = call.name[len(SLAVE_TOOL_PREFIX):]
            if agent in self._executor.agents:
                return await self._execute_slave(agent, call)

        if call.name == STATUS_TOOL:
            return self._slave_status(call)

        logger.warning("Unknown tool requested by master: %s", call.name)
        return ToolResult(success=False, error=f"Unknown tool: {call.name}")

    async def _execute_slave(self, agent: str, call: ToolCall) -> ToolResult:
        instruction = call.argument("instruction")
        if not isinstance(instruction, str) or not instruction.strip():
            return ToolResult(
                success=False,
                agent=agent,
                error="Missing required argument: instruction",
            )
        context = call.argument("context")
        if context is not None and not isinstance(context, str):
            context = str(context)

        self._progress(
            f"🤖 {agent.upper()} executing: {truncate(instruction, _PREVIEW_LEN)}"
        )
        result = await self._executor.execute(
            agent, instruction, context, self._project_path
        )
        if result.success:
            elapsed = result.execution_time or 0.0
            self._progress(f"✅ {agent.upper()} completed ({elapsed:.2f}s)")
        else:
            error = truncate(result.error or "unknown error", _PREVIEW_LEN)
            self._progress(f"❌ {agent.upper()} failed: {error}")
        return result

    def _slave_status(self, call: ToolCall) -> ToolResult:
        task_id = call.argument("task_id")
        if task_id is None or not str(task_id).strip():
            return ToolResult(
                success=False, error="Missing required argument: task_id"
            )
        task = self._executor.get_task(str(task_id))
        if task is None:
            return ToolResult(success=False, error=f"Task {task_id} not found")
        return ToolResult(
            success=True,
            task_id=task.id,
            output=task.model_dump_json(),
        )

    def _progress(self, status: str) -> None:
        if self._on_progress is not None:
            self._on_progress(status)
