"""Tests for the subprocess-backed terminal against a real /bin/sh."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from orka.config.models import SlaveAgentConfig
from orka.constants import INTERRUPT
from orka.orchestration.executor import SlaveExecutor
from orka.terminal.base import Execution, ReadinessTimeoutError, Terminal
from orka.terminal.shell import ShellTerminal

pytestmark = pytest.mark.skipif(
    sys.platform == "win32" or not Path("/bin/sh").exists(),
    reason="requires a POSIX shell",
)


async def _read_all(execution) -> str:
    return "".join([chunk async for chunk in execution.read()])


@pytest.fixture
async def terminal(tmp_path: Path):
    term = ShellTerminal("test", tmp_path, shell="/bin/sh")
    await term.wait_ready(5.0)
    yield term
    await term.close()


class TestReadiness:
    async def test_ready(self, tmp_path: Path) -> None:
        term = ShellTerminal("test", tmp_path, shell="/bin/sh")
        await term.wait_ready(5.0)
        # A second wait returns immediately.
        await term.wait_ready(0.001)
        assert isinstance(term, Terminal)
        await term.close()

    async def test_missing_directory(self, tmp_path: Path) -> None:
        term = ShellTerminal("test", tmp_path / "missing", shell="/bin/sh")
        with pytest.raises(ReadinessTimeoutError, match="could not start"):
            await term.wait_ready(5.0)

    async def test_missing_shell(self, tmp_path: Path) -> None:
        term = ShellTerminal("test", tmp_path, shell=str(tmp_path / "no-shell"))
        with pytest.raises(ReadinessTimeoutError):
            await term.wait_ready(5.0)

    async def test_execute_before_ready(self, tmp_path: Path) -> None:
        term = ShellTerminal("test", tmp_path, shell="/bin/sh")
        with pytest.raises(RuntimeError, match="not ready"):
            await term.execute_command("true")


class TestExecution:
    async def test_output_and_exit_code(self, terminal: ShellTerminal) -> None:
        execution = await terminal.execute_command("echo hello; echo oops >&2; exit 3")
        assert isinstance(execution, Execution)

        output = await _read_all(execution)

        assert "hello\n" in output
        assert "oops\n" in output
        assert await execution.wait() == 3

    async def test_runs_in_cwd(self, terminal: ShellTerminal, tmp_path: Path) -> None:
        execution = await terminal.execute_command("pwd")
        output = await _read_all(execution)
        assert Path(output.strip()).resolve() == tmp_path.resolve()

    async def test_write_to_stdin(self, terminal: ShellTerminal) -> None:
        execution = await terminal.execute_command('read line; echo "got:$line"')
        await execution.write("ping\n")
        assert (await _read_all(execution)).strip() == "got:ping"
        assert await execution.wait() == 0

    async def test_send_text_reaches_current_command(
        self, terminal: ShellTerminal
    ) -> None:
        execution = await terminal.execute_command('read line; echo "got:$line"')
        await terminal.send_text("pong")
        assert (await _read_all(execution)).strip() == "got:pong"

    async def test_close_input_sends_eof(self, terminal: ShellTerminal) -> None:
        execution = await terminal.execute_command("cat >/dev/null; echo done")
        await execution.close_input()
        output = await asyncio.wait_for(_read_all(execution), timeout=5.0)
        assert output.strip() == "done"
        # Writes after EOF are dropped.
        await execution.write("late\n")
        assert await execution.wait() == 0

    async def test_read_only_once(self, terminal: ShellTerminal) -> None:
        execution = await terminal.execute_command("true")
        await _read_all(execution)
        with pytest.raises(RuntimeError, match="only be read once"):
            await _read_all(execution)

    async def test_utf8_output(self, terminal: ShellTerminal) -> None:
        execution = await terminal.execute_command("printf '\\342\\234\\205 ok\\n'")
        assert (await _read_all(execution)).strip() == "✅ ok"


class TestInterrupt:
    async def test_interrupt_stops_command(self, terminal: ShellTerminal) -> None:
        execution = await terminal.execute_command("sleep 30")
        await asyncio.sleep(0.1)

        await terminal.send_text(INTERRUPT, add_newline=False)

        exit_code = await asyncio.wait_for(execution.wait(), timeout=5.0)
        assert exit_code != 0

    async def test_close_terminates_running_commands(self, tmp_path: Path) -> None:
        term = ShellTerminal("test", tmp_path, shell="/bin/sh")
        await term.wait_ready(5.0)
        execution = await term.execute_command("sleep 30")

        await asyncio.wait_for(term.close(), timeout=10.0)

        assert term.closed
        assert execution.running is False
        with pytest.raises(RuntimeError, match="closed"):
            await term.execute_command("true")


class TestSlaveCommands:
    async def test_stdin_reading_slave_completes(
        self, tmp_path: Path, recorder
    ) -> None:
        command = ["sh", "-c", "cat >/dev/null; echo done", "x"]
        executor = SlaveExecutor(
            recorder=recorder,
            agents={"reader": SlaveAgentConfig(command=command)},
            terminal_factory=lambda name, cwd: ShellTerminal(
                name, cwd, shell="/bin/sh"
            ),
        )

        result = await asyncio.wait_for(
            executor.execute("reader", "summarize", None, tmp_path), timeout=5.0
        )

        assert result.success
        assert result.output == "done"
        assert executor.get_task(result.task_id).status == "completed"
        await executor.close()
