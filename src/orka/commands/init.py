"""orka init — scaffold an orka.yaml in the current directory."""

from __future__ import annotations

from pathlib import Path

import click

CONFIG_FILENAME = "orka.yaml"

TEMPLATE_YAML = """\
# Orka configuration
version: "1"

# Project name, used in session log filenames
name: my-project

# Directory the agents work in (default: this file's directory)
# project_path: .

# The master CLI plans the work and calls slave agents as tools.
master:
  command: claude
  args: ["-p", "--output-format", "stream-json", "--verbose"]
  resume_flag: --resume
  # model: sonnet          # only used when starting a new session
  # max_turns: 20          # 0 disables the cap
  # tools_flag: --custom-tools

# Slave agents run one-shot commands; the instruction is appended last.
slaves:
  codex:
    command: ["codex", "exec", "--json"]
    description: Coding tasks such as implementation and bug fixes.
  gemini:
    command: ["gemini", "-p"]
    description: Alternative agent for a different approach to a task.

# terminal:
#   readiness_timeout: 10   # seconds
#   shell: /bin/bash

# recording:
#   enabled: true
#   directory: sessions
"""


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing orka.yaml if it exists.",
)
def init(force: bool) -> None:
    """Scaffold an orka.yaml in the current directory."""
    config_path = Path.cwd() / CONFIG_FILENAME

    if config_path.exists() and not force:
        raise click.ClickException(
            f"{CONFIG_FILENAME} already exists. Use --force to overwrite."
        )

    try:
        config_path.write_text(TEMPLATE_YAML, encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(f"Cannot write {CONFIG_FILENAME}: {exc}") from exc
    click.echo(f"  Created {CONFIG_FILENAME}")

    click.echo()
    click.echo("Next steps:")
    click.echo(f"  1. Edit the slave commands in {CONFIG_FILENAME} to match your CLIs")
    click.echo("  2. Run `orka chat` to start a conversation")
