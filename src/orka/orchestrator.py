"""Orchestrator — wires the master session, tool router, and slave executor."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from orka.config.models import OrkaConfig
from orka.constants import TextCallback
from orka.helpers import truncate
from orka.master.session import MasterSession, Turn, TurnOutcome
from orka.orchestration.executor import SlaveExecutor
from orka.orchestration.models import SlaveTask
from orka.orchestration.router import ToolRouter
from orka.orchestration.tools import tool_definitions_json
from orka.session.recorder import SessionRecorder
from orka.terminal.base import Terminal, TerminalFactory
from orka.terminal.shell import ShellTerminal

logger = logging.getLogger(__name__)

#: Characters of an instruction shown in status listings.
_INSTRUCTION_PREVIEW = 60


def shell_terminal_factory(shell: str | None = None) -> TerminalFactory:
    """Factory producing :class:`ShellTerminal` instances."""

    def _create(name: str, cwd: Path) -> Terminal:
        return ShellTerminal(name, cwd, shell=shell)

    return _create


class Orchestrator:
    """One master conversation plus its slave agents.

    Owns the resumable session identifier: whatever the master reports
    during a turn is passed back as the resume token of the next turn.
    """

    def __init__(
        self,
        config: OrkaConfig,
        recorder: SessionRecorder,
        terminal_factory: TerminalFactory | None = None,
        session_id: str | None = None,
    ) -> None:
        factory = terminal_factory or shell_terminal_factory(config.terminal.shell)
        self._config = config
        self._project_path = Path(config.project_path or Path.cwd())
        self._session_id = session_id

        self.executor = SlaveExecutor(
            recorder=recorder,
            agents=config.slaves,
            terminal_factory=factory,
            readiness_timeout=config.terminal.readiness_timeout,
        )
        self.master = MasterSession(
            terminal_factory=factory,
            recorder=recorder,
            config=config.master,
            tools_json=tool_definitions_json(config.slaves),
            readiness_timeout=config.terminal.readiness_timeout,
        )

    @property
    def session_id(self) -> str | None:
        """Resume token for the next turn, if the master has reported one."""
        return self._session_id

    @property
    def project_path(self) -> Path:
        return self._project_path

    async def handle_prompt(
        self,
        prompt: str,
        on_output: TextCallback,
        on_progress: TextCallback,
        cancel: asyncio.Event | None = None,
    ) -> TurnOutcome:
        """Run *prompt* as one master turn, resuming the previous session."""
        router = ToolRouter(self.executor, self._project_path, on_progress=on_progress)
        turn = Turn(
            project_path=self._project_path,
            command=prompt,
            session_id=self._session_id,
            on_output=on_output,
            on_progress=on_progress,
            on_tool_call=router.route,
            on_session=self._remember_session,
            cancel=cancel,
        )
        outcome = await self.master.execute(turn)
        if outcome.session_id:
            self._session_id = outcome.session_id
        return outcome

    def _remember_session(self, session_id: str) -> None:
        if session_id != self._session_id:
            logger.info("master session: %s", session_id)
        self._session_id = session_id

    # ------------------------------------------------------------------ #
    # Status / command surface
    # ------------------------------------------------------------------ #

    def list_tasks(self) -> list[SlaveTask]:
        return self.executor.list_tasks()

    def get_task(self, task_id: str) -> SlaveTask | None:
        return self.executor.get_task(task_id)

    async def abort(self) -> bool:
        """Interrupt the running master turn, if any."""
        return await self.master.abort()

    def format_status(self) -> str:
        """Human-readable summary of all slave tasks grouped by status."""
        tasks = self.list_tasks()
        if not tasks:
            return "No slave tasks have been executed yet."

        sections: list[str] = []
        running = [t for t in tasks if t.status in ("pending", "running")]
        completed = [t for t in tasks if t.status == "completed"]
        failed = [t for t in tasks if t.status == "error"]

        if running:
            lines = [f"  - {t.agent}: {_preview(t)}" for t in running]
            sections.append("Running:\n" + "\n".join(lines))
        if completed:
            lines = [
                f"  - {t.agent} ({_format_duration(t)}): {_preview(t)}"
                for t in completed
            ]
            sections.append("Completed:\n" + "\n".join(lines))
        if failed:
            lines = [
                f"  - {t.agent}: {_preview(t)} ({truncate(t.error or '', 120)})"
                for t in failed
            ]
            sections.append("Failed:\n" + "\n".join(lines))

        return "\n\n".join(sections)

    def format_task(self, task_id: str) -> str:
        task = self.get_task(task_id)
        if task is None:
            return f"Task {task_id} not found"
        lines = [
            f"ID:          {task.id}",
            f"Agent:       {task.agent}",
            f"Status:      {task.status}",
            f"Instruction: {task.instruction}",
        ]
        if task.status == "completed" and task.result is not None:
            lines.append(f"Duration:    {_format_duration(task)}")
        elif task.status == "error" and task.error:
            lines.append(f"Error:       {task.error}")
        return "\n".join(lines)

    async def close(self) -> None:
        await self.master.close()
        await self.executor.close()


def _preview(task: SlaveTask) -> str:
    return truncate(task.instruction, _INSTRUCTION_PREVIEW)


def _format_duration(task: SlaveTask) -> str:
    duration = task.duration
    return "N/A" if duration is None else f"{duration:.2f}s"
