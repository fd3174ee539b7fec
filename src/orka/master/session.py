"""Master session — drives the master CLI through one turn at a time."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import shlex
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from orka.config.models import MasterConfig
from orka.constants import (
    DEFAULT_READINESS_TIMEOUT,
    INTERRUPT,
    NOISE_TAIL_LINES,
    TextCallback,
)
from orka.helpers import format_noise_preview, record_error
from orka.master.output import TurnOutput
from orka.orchestration.models import ToolCall, ToolResult
from orka.protocol.decoder import (
    NoiseBuffer,
    ProtocolDecoder,
    assistant_text,
    assistant_tool_names,
    delta_text,
    flatten_content,
    result_text,
)
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
from orka.protocol.sanitizer import aiter_lines
from orka.session.models import (
    NoiseEvent,
    SessionObservedEvent,
    StatusEvent,
    ToolCallEvent,
    ToolResultEvent,
    TurnEndEvent,
    TurnStartEvent,
)
from orka.session.recorder import SessionRecorder
from orka.terminal.base import (
    Execution,
    ReadinessTimeoutError,
    Terminal,
    TerminalFactory,
)

logger = logging.getLogger(__name__)

#: Agent name used in session events.
MASTER_AGENT = "master"

#: Exit code reported when the master command could not be started.
_SPAWN_FAILED = -1


class SessionState(StrEnum):
    """Lifecycle of the master process."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    TURN_ACTIVE = "turn_active"
    TURN_COMPLETE = "turn_complete"
    TERMINATED = "terminated"


def _ignore(_text: str) -> None:
    return None


@dataclass
class Turn:
    """One request submitted to the master, with its event sinks."""

    project_path: str | Path
    command: str
    session_id: str | None = None
    on_output: TextCallback = _ignore
    on_progress: TextCallback = _ignore
    on_tool_call: Callable[[ToolCall], Awaitable[ToolResult]] | None = None
    on_session: Callable[[str], None] | None = None
    cancel: asyncio.Event | None = None


@dataclass
class TurnOutcome:
    """How a turn ended."""

    exit_code: int
    session_id: str | None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class MasterSession:
    """State machine around the master CLI's terminal.

    ``uninitialized -> ready -> turn_active -> turn_complete -> ready ...``
    and ``terminated`` after :meth:`close`. Turns are serialized; within a
    turn, messages are handled strictly in stream order and a tool result
    is written back before the next line is decoded.
    """

    def __init__(
        self,
        terminal_factory: TerminalFactory,
        recorder: SessionRecorder,
        config: MasterConfig | None = None,
        tools_json: str | None = None,
        readiness_timeout: float = DEFAULT_READINESS_TIMEOUT,
    ) -> None:
        self._terminal_factory = terminal_factory
        self._recorder = recorder
        self._config = config or MasterConfig()
        self._tools_json = tools_json
        self._readiness_timeout = readiness_timeout

        self._decoder = ProtocolDecoder(self._config.noise_capacity)
        self._terminal: Terminal | None = None
        self._execution: Execution | None = None
        self._state = SessionState.UNINITIALIZED
        self._turn_lock = asyncio.Lock()
        self._cancelled = False
        self._last_session_id: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def noise(self) -> NoiseBuffer:
        """Recent non-protocol output from the master process."""
        return self._decoder.noise

    @property
    def turn_active(self) -> bool:
        return self._execution is not None

    # ------------------------------------------------------------------ #
    # Startup invocation
    # ------------------------------------------------------------------ #

    def build_command_args(self, turn: Turn) -> list[str]:
        """Arguments for the master CLI, prompt last.

        A resumed session carries the resume flag and never the model
        flag; the turn cap only appears when configured above zero.
        """
        cfg = self._config
        args = [cfg.command, *cfg.args]

        if turn.session_id:
            args.extend([cfg.resume_flag, turn.session_id])
        elif cfg.model:
            args.extend([cfg.model_flag, cfg.model])

        if cfg.max_turns > 0:
            args.extend([cfg.max_turns_flag, str(cfg.max_turns)])

        if cfg.tools_flag and self._tools_json:
            args.extend([cfg.tools_flag, self._tools_json])

        args.append(turn.command)
        return args

    def build_command_line(self, turn: Turn) -> str:
        return shlex.join(self.build_command_args(turn))

    # ------------------------------------------------------------------ #
    # Turn execution
    # ------------------------------------------------------------------ #

    async def execute(self, turn: Turn) -> TurnOutcome:
        """Run one turn to completion.

        Raises:
            ValueError: If the turn has no project path.
            ReadinessTimeoutError: If the terminal never became ready; the
                next call starts over with a fresh terminal.
        """
        if not str(turn.project_path or "").strip():
            msg = "A project path is required to run the master CLI"
            raise ValueError(msg)

        async with self._turn_lock:
            if self._state is SessionState.TERMINATED:
                msg = "Master session is closed"
                raise RuntimeError(msg)
            terminal = await self._ensure_ready(Path(turn.project_path))
            return await self._run_turn(terminal, turn)

    async def _ensure_ready(self, project_path: Path) -> Terminal:
        if self._terminal is None or self._terminal.closed:
            self._terminal = self._terminal_factory(
                f"Orka Master ({self._config.command})", project_path
            )
            self._state = SessionState.UNINITIALIZED

        terminal = self._terminal
        try:
            await terminal.wait_ready(self._readiness_timeout)
        except ReadinessTimeoutError as exc:
            record_error(
                self._recorder,
                MASTER_AGENT,
                str(exc),
                context="readiness",
                logger=logger,
            )
            self._terminal = None
            self._state = SessionState.UNINITIALIZED
            await terminal.close()
            raise

        self._state = SessionState.READY
        return terminal

    async def _run_turn(self, terminal: Terminal, turn: Turn) -> TurnOutcome:
        command_line = self.build_command_line(turn)
        self._recorder.record(
            TurnStartEvent(
                ts="",
                seq=0,
                project_path=str(turn.project_path),
                resume_session_id=turn.session_id,
                command_line=command_line,
            )
        )
        self._state = SessionState.TURN_ACTIVE
        self._cancelled = False
        self._last_session_id = turn.session_id
        self._decoder.noise.clear()
        start = time.monotonic()

        try:
            execution = await terminal.execute_command(command_line)
        except (OSError, RuntimeError) as exc:
            error_msg = f"Failed to start master CLI: {exc}"
            record_error(self._recorder, MASTER_AGENT, error_msg, logger=logger)
            turn.on_output(f"\n\n❌ {error_msg}")
            return self._end_turn(_SPAWN_FAILED, start)

        self._execution = execution
        output = TurnOutput(turn.on_output)
        watcher = (
            asyncio.create_task(self._watch_cancel(turn.cancel))
            if turn.cancel is not None
            else None
        )
        try:
            async for line in aiter_lines(execution.read()):
                message = self._decoder.decode(line)
                if message is not None:
                    await self._handle_message(message, turn, output, execution)
            exit_code = await execution.wait()
        finally:
            self._execution = None
            if watcher is not None:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher

        output.finish()
        if exit_code != 0:
            self._report_failure(exit_code, turn)
        return self._end_turn(exit_code, start)

    def _end_turn(self, exit_code: int, start: float) -> TurnOutcome:
        self._recorder.record(
            TurnEndEvent(
                ts="",
                seq=0,
                exit_code=exit_code,
                duration_ms=int((time.monotonic() - start) * 1000),
                cancelled=self._cancelled,
            )
        )
        self._state = SessionState.TURN_COMPLETE
        return TurnOutcome(
            exit_code=exit_code,
            session_id=self._last_session_id,
            cancelled=self._cancelled,
        )

    def _report_failure(self, exit_code: int, turn: Turn) -> None:
        tail = self._decoder.noise.tail(NOISE_TAIL_LINES)
        report = f"\n\n❌ Master CLI exited with code {exit_code}"
        if tail:
            preview = format_noise_preview(tail, NOISE_TAIL_LINES)
            report += f"\nLast output:\n  {preview}"
            self._recorder.record(
                NoiseEvent(ts="", seq=0, agent=MASTER_AGENT, lines=tail)
            )
        record_error(
            self._recorder,
            MASTER_AGENT,
            f"master CLI exited with code {exit_code}",
            context="turn",
            logger=logger,
        )
        turn.on_output(report)

    # ------------------------------------------------------------------ #
    # Message handling
    # ------------------------------------------------------------------ #

    async def _handle_message(
        self,
        message: ProtocolMessage,
        turn: Turn,
        output: TurnOutput,
        execution: Execution,
    ) -> None:
        if message.session_id:
            self._observe_session(message.session_id, turn)

        match message:
            case SystemMessage():
                turn.on_progress(message.subtype or "initialized")
                self._recorder.record(
                    StatusEvent(
                        ts="",
                        seq=0,
                        agent=MASTER_AGENT,
                        status=message.subtype or "initialized",
                    )
                )
            case StreamEventMessage() | ContentDeltaMessage():
                output.add_delta(delta_text(message))
            case AssistantMessage():
                output.add_assistant(assistant_text(message))
                for name in assistant_tool_names(message):
                    turn.on_progress(f"🛠 {name}")
            case ResultMessage():
                text = result_text(message)
                output.add_result(f"❌ {text}" if message.is_error and text else text)
            case ChatMessage():
                output.emit(flatten_content(message.content))
            case ErrorMessage():
                detail = flatten_content(
                    message.message if message.message is not None else message.error
                )
                logger.warning("master CLI reported an error: %s", detail)
                output.emit(f"\n\n❌ Error: {detail}")
            case ToolUseMessage():
                await self._handle_tool_use(message, turn, execution)
            case BlockBoundaryMessage():
                logger.debug("block %s (index=%s)", message.type, message.index)
            case UnknownMessage():
                logger.debug("ignoring message of type %r", message.raw_type)

    def _observe_session(self, session_id: str, turn: Turn) -> None:
        if session_id != self._last_session_id:
            self._recorder.record(
                SessionObservedEvent(ts="", seq=0, cli_session_id=session_id)
            )
        self._last_session_id = session_id
        if turn.on_session is not None:
            turn.on_session(session_id)

    async def _handle_tool_use(
        self,
        message: ToolUseMessage,
        turn: Turn,
        execution: Execution,
    ) -> None:
        """Resolve one tool call and write exactly one result back."""
        call = ToolCall(id=message.id, name=message.name, arguments=message.input)
        turn.on_progress(f"🔧 Executing {call.name}...")
        self._recorder.record(
            ToolCallEvent(
                ts="", seq=0, call_id=call.id, tool=call.name, args=call.arguments
            )
        )

        start = time.monotonic()
        if turn.on_tool_call is None:
            result = ToolResult(success=False, error="No tool handler configured")
        else:
            try:
                result = await turn.on_tool_call(call)
            except Exception as exc:
                logger.exception("tool call %s (%s) raised", call.name, call.id)
                result = ToolResult(success=False, error=str(exc) or repr(exc))

        await self._send_tool_result(call.id, result, execution)
        self._recorder.record(
            ToolResultEvent(
                ts="",
                seq=0,
                call_id=call.id,
                tool=call.name,
                success=result.success,
                duration_ms=int((time.monotonic() - start) * 1000),
                result_size=len(result.to_wire().encode()),
            )
        )

    async def _send_tool_result(
        self, call_id: str, result: ToolResult, execution: Execution
    ) -> None:
        line = json.dumps(
            {
                "type": "tool_result",
                "tool_use_id": call_id,
                "content": result.to_wire(),
            }
        )
        await execution.write(line + "\n")

    # ------------------------------------------------------------------ #
    # Cancellation & lifecycle
    # ------------------------------------------------------------------ #

    async def _watch_cancel(self, cancel: asyncio.Event) -> None:
        await cancel.wait()
        await self.abort()

    async def abort(self) -> bool:
        """Ask the master to stop its current turn (Ctrl+C).

        Advisory only: the turn still ends when the process reports its
        exit. Returns ``False`` when no turn is running.
        """
        terminal = self._terminal
        if terminal is None or terminal.closed or self._execution is None:
            return False
        self._cancelled = True
        logger.info("interrupting master turn")
        await terminal.send_text(INTERRUPT, add_newline=False)
        return True

    async def close(self) -> None:
        """Close the master terminal; the session cannot be used afterwards."""
        self._state = SessionState.TERMINATED
        terminal, self._terminal = self._terminal, None
        if terminal is not None:
            await terminal.close()
