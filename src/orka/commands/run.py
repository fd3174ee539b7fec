"""orka run — execute a single master turn."""

from __future__ import annotations

import asyncio
import contextlib
import signal

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
from orka.terminal.base import ReadinessTimeoutError


@click.command()
@click.argument("prompt")
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
def run(
    prompt: str,
    config_file: str | None,
    no_config: bool,
    project: str | None,
    session_id: str | None,
    verbose: bool,
) -> None:
    """Send PROMPT to the master CLI and stream its reply."""
    configure_logging(verbose)
    config = resolve_config(config_file, no_config, project)
    exit_code = asyncio.run(_run_turn(config, prompt, session_id))
    if exit_code != 0:
        raise SystemExit(exit_code if exit_code > 0 else 1)


async def _run_turn(config: OrkaConfig, prompt: str, session_id: str | None) -> int:
    recorder = make_recorder(config)
    orchestrator = Orchestrator(config, recorder, session_id=session_id)

    # Ctrl+C interrupts the master's turn instead of killing us.
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel.set)

    try:
        outcome = await orchestrator.handle_prompt(
            prompt,
            on_output=echo_output,
            on_progress=echo_progress,
            cancel=cancel,
        )
    except ReadinessTimeoutError as exc:
        click.echo(f"\nError: {exc}", err=True)
        recorder.end("error")
        return 1
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)
        await orchestrator.close()

    click.echo()
    if outcome.session_id:
        click.echo(f"Session: {outcome.session_id}", err=True)
    recorder.end("ctrl_c" if outcome.cancelled else "complete")
    return outcome.exit_code
