"""Helpers shared by the commands that run the orchestrator."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

import click

from orka.config.models import OrkaConfig
from orka.config.parser import ConfigError, load_config
from orka.session.recorder import SessionRecorder


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def resolve_config(
    config_file: str | None,
    no_config: bool,
    project: str | None,
) -> OrkaConfig:
    """Load orka.yaml (or defaults) and apply the ``--project`` override.

    Exits with status 1 on configuration errors.
    """
    try:
        if no_config:
            config = OrkaConfig()
            config.project_path = str(Path.cwd())
        else:
            config = load_config(Path(config_file) if config_file else None)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if project is not None:
        config.project_path = str(Path(project).resolve())
    return config


def make_recorder(config: OrkaConfig) -> SessionRecorder:
    config_hash = hashlib.sha256(config.model_dump_json().encode()).hexdigest()[:16]
    sessions_dir = Path(config.recording.directory)
    if not sessions_dir.is_absolute() and config.project_path:
        sessions_dir = Path(config.project_path) / sessions_dir
    try:
        return SessionRecorder(
            name=config.name,
            config_hash=config_hash,
            sessions_dir=sessions_dir,
            enabled=config.recording.enabled,
        )
    except (ValueError, OSError) as exc:
        click.echo(f"Error: cannot open session log: {exc}", err=True)
        raise SystemExit(1) from exc


def echo_output(text: str) -> None:
    click.echo(text, nl=False)


def echo_progress(status: str) -> None:
    click.echo(click.style(f"  {status}", dim=True), err=True)
