"""synthkit CLI entrypoint."""

from __future__ import annotations

import click

from synthkit import __version__


@click.group()
@click.version_option(version=__version__, prog_name="synthkit")
def main() -> None:
    """synthkit: synthesize workflow and agent manifests."""


# Register subcommands
from synthkit.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
