from orka.cli import cli

cli()
