"""Shared fixtures: in-process terminals that satisfy the terminal protocol."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from orka.session.recorder import SessionRecorder
from orka.terminal.base import ReadinessTimeoutError


class FakeExecution:
    """Scripted command: output is fed by the test, exit is set by the test.

    ``responder`` is called for every write and may feed more output,
    which lets a test play a CLI that blocks until it gets a tool result.
    """

    def __init__(
        self,
        chunks: list[str] | None = None,
        exit_code: int | None = 0,
        responder: Callable[[FakeExecution, str], None] | None = None,
    ) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._exit: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        self.written: list[str] = []
        self.input_closed = False
        self.responder = responder
        for chunk in chunks or []:
            self.feed(chunk)
        if exit_code is not None:
            self.finish(exit_code)

    def feed(self, text: str) -> None:
        self._queue.put_nowait(text)

    def feed_json(self, payload: dict[str, Any]) -> None:
        self.feed(json.dumps(payload) + "\n")

    def finish(self, exit_code: int = 0) -> None:
        """Signal EOF and the exit event."""
        self._queue.put_nowait(None)
        if not self._exit.done():
            self._exit.set_result(exit_code)

    async def read(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is None:
                return
            yield item

    async def write(self, text: str) -> None:
        self.written.append(text)
        if self.responder is not None:
            self.responder(self, text)

    async def close_input(self) -> None:
        self.input_closed = True

    async def wait(self) -> int:
        return await self._exit


class FakeTerminal:
    """Records commands and typed text; hands out queued executions."""

    def __init__(self, name: str, cwd: Path, ready: bool = True) -> None:
        self.name = name
        self.cwd = cwd
        self.ready = ready
        self.commands: list[str] = []
        self.sent: list[str] = []
        self.executions: list[FakeExecution] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def wait_ready(self, timeout: float) -> None:
        if not self.ready:
            await asyncio.sleep(min(timeout, 0.01))
            msg = f"Terminal '{self.name}' did not become ready within {timeout}s"
            raise ReadinessTimeoutError(msg)

    async def execute_command(self, command_line: str) -> FakeExecution:
        self.commands.append(command_line)
        if self.executions:
            return self.executions.pop(0)
        return FakeExecution()

    async def send_text(self, text: str, add_newline: bool = True) -> None:
        self.sent.append(text + ("\n" if add_newline else ""))

    async def close(self) -> None:
        self._closed = True


class FakeTerminalFactory:
    """Terminal factory that remembers every terminal it created."""

    def __init__(self) -> None:
        self.created: list[FakeTerminal] = []
        self.pending_executions: list[FakeExecution] = []
        self.ready = True

    def __call__(self, name: str, cwd: Path) -> FakeTerminal:
        terminal = FakeTerminal(name, cwd, ready=self.ready)
        terminal.executions = self.pending_executions
        self.created.append(terminal)
        return terminal

    def queue(self, execution: FakeExecution) -> FakeExecution:
        self.pending_executions.append(execution)
        return execution


@pytest.fixture
def recorder(tmp_path: Path) -> Iterator[SessionRecorder]:
    rec = SessionRecorder("test-project", "abc123", sessions_dir=tmp_path / "sessions")
    yield rec
    rec.close()


@pytest.fixture
def terminal_factory() -> FakeTerminalFactory:
    return FakeTerminalFactory()


@pytest.fixture
def make_execution() -> type[FakeExecution]:
    return FakeExecution


def read_events(recorder: SessionRecorder) -> list[dict[str, Any]]:
    """Parse every event written so far."""
    assert recorder.session_file is not None
    text = recorder.session_file.read_text(encoding="utf-8")
    return [json.loads(line) for line in text.splitlines() if line.strip()]


@pytest.fixture
def events() -> Callable[[SessionRecorder], list[dict[str, Any]]]:
    return read_events
