"""Slave executor — runs one-shot slave CLI commands and tracks their tasks."""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
import time
from pathlib import Path

from orka.config.models import SlaveAgentConfig
from orka.constants import DEFAULT_READINESS_TIMEOUT
from orka.helpers import record_error, truncate
from orka.orchestration.models import SlaveTask, TaskStatus, ToolResult
from orka.protocol.decoder import flatten_content
from orka.protocol.sanitizer import iter_lines
from orka.session.models import SlaveDoneEvent, SlaveStartEvent
from orka.session.recorder import SessionRecorder
from orka.terminal.base import ReadinessTimeoutError, Terminal, TerminalFactory

logger = logging.getLogger(__name__)

#: Max characters of slave output carried in an error message.
_MAX_ERROR_OUTPUT = 4096


class SlaveExecutionError(Exception):
    """Raised when a slave command exits with a non-zero status."""

    def __init__(self, agent: str, exit_code: int, output: str) -> None:
        self.agent = agent
        self.exit_code = exit_code
        self.output = output
        detail = truncate(output, _MAX_ERROR_OUTPUT) or "(no output)"
        super().__init__(f"{agent} CLI exited with code {exit_code}: {detail}")


class SlaveExecutor:
    """Registry and dispatcher for slave agent tasks.

    Each agent identity owns one long-lived terminal, reused across calls
    and recreated when it closes; every task runs as its own one-shot
    command inside it, so tasks for different agents run concurrently.
    """

    def __init__(
        self,
        recorder: SessionRecorder,
        agents: dict[str, SlaveAgentConfig],
        terminal_factory: TerminalFactory,
        readiness_timeout: float = DEFAULT_READINESS_TIMEOUT,
    ) -> None:
        self._recorder = recorder
        self._agents = dict(agents)
        self._terminal_factory = terminal_factory
        self._readiness_timeout = readiness_timeout

        self._terminals: dict[str, Terminal] = {}
        self._terminal_locks: dict[str, asyncio.Lock] = {}

        self._tasks: dict[str, SlaveTask] = {}
        self._task_counter = 0

    @property
    def agents(self) -> list[str]:
        """Configured agent identities."""
        return list(self._agents)

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    async def execute(
        self,
        agent: str,
        instruction: str,
        context: str | None,
        project_path: str | Path,
    ) -> ToolResult:
        """Run *instruction* on *agent* and return the result for the master.

        Never raises for execution problems: a non-zero exit, a spawn
        failure, or a readiness timeout all produce a failed task and a
        ``success=False`` result.
        """
        task = self._create_task(agent, instruction, context)
        task.start()
        self._recorder.record(
            SlaveStartEvent(
                ts="",
                seq=0,
                task_id=task.id,
                agent=agent,
                instruction=truncate(instruction, 500),
            )
        )
        logger.info("%s: started task %s", agent, task.id)

        try:
            result = await self._run(task, Path(project_path))
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            task.fail(error)
            timed_out = isinstance(exc, ReadinessTimeoutError)
            record_error(
                self._recorder,
                agent,
                f"task {task.id} failed: {truncate(error, 500)}",
                context="readiness" if timed_out else "subprocess",
                logger=logger,
            )
            self._record_done(task)
            return ToolResult(
                success=False,
                agent=agent,
                task_id=task.id,
                error=error,
                execution_time=task.duration,
            )

        task.complete(result)
        self._record_done(task)
        logger.info(
            "%s: completed task %s in %.2fs", agent, task.id, task.duration or 0.0
        )
        return result

    async def _run(self, task: SlaveTask, project_path: Path) -> ToolResult:
        config = self._agents.get(task.agent)
        if config is None:
            msg = f"Unknown agent: {task.agent}"
            raise ValueError(msg)

        terminal = await self._get_terminal(task.agent, project_path)
        command_line = shlex.join([*config.command, _full_instruction(task)])
        execution = await terminal.execute_command(command_line)
        # One-shot commands get no input; EOF keeps stdin readers from hanging.
        await execution.close_input()

        chunks = [chunk async for chunk in execution.read()]
        exit_code = await execution.wait()
        output = "\n".join(iter_lines(chunks))

        if exit_code != 0:
            raise SlaveExecutionError(task.agent, exit_code, output)
        return self._build_result(task, output)

    def _build_result(self, task: SlaveTask, output: str) -> ToolResult:
        """Interpret slave output as JSON when possible, else raw text."""
        elapsed = time.time() - task.start_time
        try:
            data = json.loads(output)
        except json.JSONDecodeError:
            data = None

        if isinstance(data, dict):
            body = data.get("output", data.get("result"))
            files = data.get("files_modified")
            if not isinstance(files, list):
                files = []
            return ToolResult(
                success=True,
                agent=task.agent,
                task_id=task.id,
                output=flatten_content(body) if body is not None else output,
                files_modified=[str(f) for f in files],
                execution_time=elapsed,
            )

        return ToolResult(
            success=True,
            agent=task.agent,
            task_id=task.id,
            output=output,
            execution_time=elapsed,
        )

    async def _get_terminal(self, agent: str, project_path: Path) -> Terminal:
        lock = self._terminal_locks.setdefault(agent, asyncio.Lock())
        async with lock:
            terminal = self._terminals.get(agent)
            if terminal is not None and not terminal.closed:
                return terminal

            terminal = self._terminal_factory(f"Orka Slave ({agent})", project_path)
            try:
                await terminal.wait_ready(self._readiness_timeout)
            except ReadinessTimeoutError:
                await terminal.close()
                raise
            self._terminals[agent] = terminal
            return terminal

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #

    def _create_task(
        self, agent: str, instruction: str, context: str | None
    ) -> SlaveTask:
        self._task_counter += 1
        task_id = f"task_{self._task_counter}_{int(time.time() * 1000)}"
        task = SlaveTask(
            id=task_id,
            agent=agent,
            instruction=instruction,
            context=context or None,
        )
        self._tasks[task_id] = task
        return task

    def get_task(self, task_id: str) -> SlaveTask | None:
        return self._tasks.get(task_id)

    def list_tasks(self) -> list[SlaveTask]:
        """All tasks in creation order."""
        return list(self._tasks.values())

    def tasks_by_status(self, status: TaskStatus) -> list[SlaveTask]:
        return [t for t in self._tasks.values() if t.status == status]

    def _record_done(self, task: SlaveTask) -> None:
        status = "completed" if task.status == "completed" else "error"
        self._recorder.record(
            SlaveDoneEvent(
                ts="",
                seq=0,
                task_id=task.id,
                agent=task.agent,
                status=status,
                duration_ms=int((task.duration or 0.0) * 1000),
            )
        )

    async def close(self) -> None:
        """Close every agent terminal."""
        for terminal in self._terminals.values():
            await terminal.close()
        self._terminals.clear()


def _full_instruction(task: SlaveTask) -> str:
    if task.context:
        return f"{task.instruction}\n\nContext: {task.context}"
    return task.instruction
