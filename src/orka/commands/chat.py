"""orka chat — interactive conversation with the master CLI."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import select
import signal
import sys
import threading

import click

from orka.commands.runtime import (
    configure_logging,
    echo_output,
    echo_progress,
    make_recorder,
    resolve_config,
)
from orka.config.models import OrkaConfig
from orka.orchestrator import Orchestrator
from orka.session.models import EndReason
from orka.terminal.base import ReadinessTimeoutError

HELP_TEXT = """\
  /status       list slave tasks
  /task <id>    show one slave task
  /session      show the master session id
  /abort        interrupt the running turn (or press Ctrl+C)
  /exit         leave the chat"""


@click.command()
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
@click.option(
    "--no-config", is_flag=True, help="Use built-in defaults instead of orka.yaml."
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory the agents run in.",
)
@click.option(
    "--session-id", default=None, help="Resume a previous master session."
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def chat(
    config_file: str | None,
    no_config: bool,
    project: str | None,
    session_id: str | None,
    verbose: bool,
) -> None:
    """Start an interactive chat with the master CLI."""
    configure_logging(verbose)
    config = resolve_config(config_file, no_config, project)
    asyncio.run(_run_chat(config, session_id))


async def _run_chat(config: OrkaConfig, session_id: str | None) -> None:
    recorder = make_recorder(config)
    orchestrator = Orchestrator(config, recorder, session_id=session_id)

    click.echo(f"\n  Orka -- {config.name}")
    slaves = ", ".join(config.slaves)
    click.echo(f"  Master: {config.master.command} | Slaves: {slaves}")
    click.echo(f"  Project: {orchestrator.project_path}")
    if recorder.session_file is not None:
        click.echo(f"  Log:     {recorder.session_file}")
    click.echo("  Type /help for commands.\n")

    shutdown_event = asyncio.Event()
    turn_cancel: asyncio.Event | None = None

    def _on_sigint() -> None:
        # Ctrl+C during a turn interrupts it; at the prompt it exits.
        if turn_cancel is not None and not turn_cancel.is_set():
            turn_cancel.set()
            click.echo("\n  interrupting...", err=True)
        else:
            shutdown_event.set()

    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, _on_sigint)

    # Bridge the async shutdown event to the input thread.
    thread_cancel = threading.Event()

    async def _bridge_shutdown() -> None:
        await shutdown_event.wait()
        thread_cancel.set()

    bridge_task = asyncio.create_task(_bridge_shutdown())
    reason: EndReason = "user_shutdown"

    try:
        while not shutdown_event.is_set():
            try:
                line = await loop.run_in_executor(
                    None, functools.partial(_read_input, thread_cancel)
                )
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue

            if line.startswith("/"):
                if await _handle_command(line, orchestrator):
                    break
                continue

            turn_cancel = asyncio.Event()
            try:
                outcome = await orchestrator.handle_prompt(
                    line,
                    on_output=echo_output,
                    on_progress=echo_progress,
                    cancel=turn_cancel,
                )
            except ReadinessTimeoutError as exc:
                click.echo(f"Error: {exc}", err=True)
                click.echo("  The next message retries with a new terminal.", err=True)
                continue
            finally:
                turn_cancel = None
            click.echo()
            if outcome.cancelled:
                click.echo("  (turn interrupted)", err=True)
    finally:
        bridge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await bridge_task
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)
        await orchestrator.close()

    if shutdown_event.is_set():
        reason = "ctrl_c"
    if orchestrator.session_id:
        click.echo(f"Session: {orchestrator.session_id}", err=True)
    recorder.end(reason)


async def _handle_command(line: str, orchestrator: Orchestrator) -> bool:
    """Process a slash command. Returns ``True`` if the chat should exit."""
    parts = line.split()
    cmd = parts[0].lower()

    if cmd in ("/exit", "/quit", "/done"):
        return True

    if cmd == "/help":
        click.echo(HELP_TEXT)
    elif cmd == "/status":
        click.echo(orchestrator.format_status())
    elif cmd == "/task":
        if len(parts) < 2:
            click.echo("Usage: /task <id>")
        else:
            click.echo(orchestrator.format_task(parts[1]))
    elif cmd == "/session":
        click.echo(orchestrator.session_id or "No session yet.")
    elif cmd == "/abort":
        if not await orchestrator.abort():
            click.echo("No turn is running.")
    else:
        click.echo(f"Unknown command: {cmd}")
    return False


def _read_input(cancel: threading.Event | None = None) -> str:
    r"""Blocking stdin reader for use with ``run_in_executor``.

    Polls stdin with a 0.5 s timeout so the thread notices *cancel* and
    raises ``EOFError`` instead of blocking forever. Lines ending with
    ``\`` continue onto the next line.
    """
    lines: list[str] = []
    prompt = "> "

    while True:
        sys.stdout.write(prompt)
        sys.stdout.flush()

        while cancel is not None and not cancel.is_set():
            ready, _, _ = select.select([sys.stdin], [], [], 0.5)
            if ready:
                break

        if cancel is not None and cancel.is_set():
            raise EOFError

        line = sys.stdin.readline()
        if not line:
            raise EOFError
        line = line.rstrip("\n")

        if line.endswith("\\"):
            lines.append(line[:-1])
            prompt = "... "
        else:
            lines.append(line)
            return "\n".join(lines)
