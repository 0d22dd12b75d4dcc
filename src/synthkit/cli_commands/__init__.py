"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from synthkit.cli_commands.inspect import inspect_cmd
    from synthkit.cli_commands.synth import synth

    cli.add_command(synth)
    cli.add_command(inspect_cmd)
