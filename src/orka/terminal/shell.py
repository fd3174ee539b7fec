"""Terminal implementation backed by asyncio subprocesses."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import os
import signal
from collections.abc import AsyncIterator
from pathlib import Path

from orka.constants import INTERRUPT
from orka.terminal.base import ReadinessTimeoutError

logger = logging.getLogger(__name__)

#: Bytes requested per read; output arrives in arbitrary fragments.
_READ_SIZE = 4096

#: Seconds to wait after SIGTERM before SIGKILL.
_SIGTERM_WAIT = 3.0


class ShellExecution:
    """A single ``<shell> -c <command>`` subprocess."""

    def __init__(self, proc: asyncio.subprocess.Process, name: str) -> None:
        self._proc = proc
        self._name = name
        self._read_started = False

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def running(self) -> bool:
        return self._proc.returncode is None

    async def read(self) -> AsyncIterator[str]:
        if self._read_started:
            msg = "Execution output can only be read once"
            raise RuntimeError(msg)
        self._read_started = True

        stdout = self._proc.stdout
        if stdout is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stdout.read(_READ_SIZE)
            if not data:
                break
            text = decoder.decode(data)
            if text:
                yield text
        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail

    async def write(self, text: str) -> None:
        stdin = self._proc.stdin
        if stdin is None or stdin.is_closing():
            logger.warning("%s: cannot write, stdin is closed", self._name)
            return
        try:
            stdin.write(text.encode())
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError, OSError) as exc:
            logger.warning("%s: failed to write to command input: %s", self._name, exc)

    async def close_input(self) -> None:
        """Send EOF so commands that read their input do not block."""
        stdin = self._proc.stdin
        if stdin is None or stdin.is_closing():
            return
        stdin.close()
        with contextlib.suppress(BrokenPipeError, ConnectionResetError):
            await stdin.wait_closed()

    async def wait(self) -> int:
        return await self._proc.wait()

    def interrupt(self) -> None:
        """Deliver SIGINT to the command's process group."""
        if not self.running:
            return
        with contextlib.suppress(ProcessLookupError):
            if hasattr(os, "killpg"):
                os.killpg(self._proc.pid, signal.SIGINT)
            else:
                self._proc.send_signal(signal.SIGINT)

    async def terminate(self) -> None:
        """SIGTERM, then SIGKILL if the command ignores it."""
        if not self.running:
            return
        with contextlib.suppress(ProcessLookupError):
            self._proc.terminate()
        try:
            await asyncio.wait_for(self._proc.wait(), timeout=_SIGTERM_WAIT)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                self._proc.kill()
            await self._proc.wait()


class ShellTerminal:
    """Runs each command as its own shell subprocess in a fixed directory.

    Readiness is a handshake: the shell must start and exit cleanly on a
    no-op command before real commands are accepted. Text sent to the
    terminal goes to the input of the most recent running command; the
    interrupt control byte is translated to SIGINT since pipes have no
    line discipline to do it for us.
    """

    def __init__(
        self,
        name: str,
        cwd: Path,
        shell: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.name = name
        self._cwd = Path(cwd)
        self._shell = shell or os.environ.get("SHELL") or "/bin/sh"
        self._env = env
        self._ready = asyncio.Event()
        self._closed = False
        self._current: ShellExecution | None = None
        self._executions: list[ShellExecution] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cwd(self) -> Path:
        return self._cwd

    async def wait_ready(self, timeout: float) -> None:
        if self._ready.is_set():
            return
        try:
            await asyncio.wait_for(self._handshake(), timeout=timeout)
        except TimeoutError as exc:
            msg = f"Terminal '{self.name}' did not become ready within {timeout:.0f}s"
            raise ReadinessTimeoutError(msg) from exc
        except OSError as exc:
            msg = f"Terminal '{self.name}' could not start {self._shell}: {exc}"
            raise ReadinessTimeoutError(msg) from exc

    async def _handshake(self) -> None:
        if not self._cwd.is_dir():
            msg = f"Working directory does not exist: {self._cwd}"
            raise NotADirectoryError(msg)
        proc = await asyncio.create_subprocess_exec(
            self._shell,
            "-c",
            "exit 0",
            cwd=self._cwd,
            env=self._env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        returncode = await proc.wait()
        if returncode != 0:
            msg = f"shell handshake exited with code {returncode}"
            raise OSError(msg)
        self._ready.set()
        logger.debug("%s: terminal ready (%s in %s)", self.name, self._shell, self._cwd)

    async def execute_command(self, command_line: str) -> ShellExecution:
        if self._closed:
            msg = f"Terminal '{self.name}' is closed"
            raise RuntimeError(msg)
        if not self._ready.is_set():
            msg = f"Terminal '{self.name}' is not ready"
            raise RuntimeError(msg)

        logger.debug("%s: executing %s", self.name, command_line)
        proc = await asyncio.create_subprocess_exec(
            self._shell,
            "-c",
            command_line,
            cwd=self._cwd,
            env=self._env,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            start_new_session=True,
        )
        execution = ShellExecution(proc, self.name)
        self._executions = [e for e in self._executions if e.running]
        self._executions.append(execution)
        self._current = execution
        return execution

    async def send_text(self, text: str, add_newline: bool = True) -> None:
        execution = self._current
        if execution is None or not execution.running:
            logger.debug("%s: no running command to receive input", self.name)
            return
        if INTERRUPT in text:
            execution.interrupt()
            text = text.replace(INTERRUPT, "")
        if add_newline:
            text += "\n"
        if text:
            await execution.write(text)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for execution in self._executions:
            await execution.terminate()
        self._executions.clear()
        self._current = None
