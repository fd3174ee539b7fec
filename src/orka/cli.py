"""Root CLI group and version flag."""

import click

from orka import __version__
from orka.commands.chat import chat
from orka.commands.init import init
from orka.commands.run import run


@click.group()
@click.version_option(version=__version__, prog_name="orka")
def cli() -> None:
    """Orka — orchestrate a master AI CLI and its slave agents."""


cli.add_command(init)
cli.add_command(run)
cli.add_command(chat)
