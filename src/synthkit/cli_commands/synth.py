"""``synthkit synth``: run a blueprint script and write its manifests."""

from __future__ import annotations

import logging
import os
import runpy
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from synthkit.cli_commands._output import console
from synthkit.config import OUT_DIR_ENV
from synthkit.errors import SynthError
from synthkit.synth.report import print_error


@contextmanager
def _script_environment(script: Path, out_dir: Path | None) -> Iterator[None]:
    """Set the output directory, argv and import path for *script*, then restore them."""
    previous_env = os.environ.get(OUT_DIR_ENV)
    previous_argv = sys.argv
    script_dir = str(script.parent)
    if out_dir is not None:
        os.environ[OUT_DIR_ENV] = str(out_dir)
    sys.argv = [str(script)]
    sys.path.insert(0, script_dir)
    try:
        yield
    finally:
        sys.argv = previous_argv
        if script_dir in sys.path:
            sys.path.remove(script_dir)
        if out_dir is not None:
            if previous_env is None:
                os.environ.pop(OUT_DIR_ENV, None)
            else:
                os.environ[OUT_DIR_ENV] = previous_env


@click.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--out-dir",
    "-o",
    type=click.Path(file_okay=False),
    default=None,
    help=f"Directory for manifests (overrides {OUT_DIR_ENV}; unset means dry run).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--telemetry", is_flag=True, help="Export tracing spans to the console.")
def synth(script: str, out_dir: str | None, verbose: bool, telemetry: bool) -> None:
    """Run SCRIPT, a Python program that declares blueprints and calls synthkit.run()."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if telemetry:
        from synthkit.utils.telemetry import configure_telemetry

        try:
            configure_telemetry()
        except ImportError as exc:
            console.print(f"[red]Telemetry error:[/red] {exc}")
            sys.exit(1)

    script_path = Path(script).resolve()
    target = Path(out_dir).resolve() if out_dir is not None else None

    with _script_environment(script_path, target):
        try:
            runpy.run_path(str(script_path), run_name="__main__")
        except SynthError as exc:
            print_error(exc)
            sys.exit(1)
        except SystemExit as exc:
            if exc.code not in (None, 0):
                raise
        except Exception as exc:
            console.print(f"[red]Script error:[/red] {type(exc).__name__}: {exc}")
            sys.exit(1)
