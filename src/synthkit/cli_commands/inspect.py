"""``synthkit inspect``: inspect a manifest file."""

from __future__ import annotations

import sys

import click
import yaml

from synthkit.cli_commands._output import console, print_agent_manifest, print_workflow_manifest
from synthkit.errors import SynthError
from synthkit.synth.manifest import WorkflowManifest
from synthkit.synth.synthesizer import load_manifest


@click.command("inspect")
@click.argument("manifest_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format.",
)
def inspect_cmd(manifest_file: str, output_format: str) -> None:
    """Inspect a manifest file.

    MANIFEST_FILE is a workflow or agent manifest written by ``synthkit synth``.
    """
    try:
        manifest = load_manifest(manifest_file)
    except SynthError as exc:
        console.print(f"[red]Error loading manifest:[/red] {exc}")
        sys.exit(1)

    if output_format == "json":
        console.print_json(manifest.model_dump_json(by_alias=True, exclude_none=True))
    elif output_format == "yaml":
        data = manifest.model_dump(mode="json", by_alias=True, exclude_none=True)
        click.echo(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
    elif isinstance(manifest, WorkflowManifest):
        print_workflow_manifest(manifest)
    else:
        print_agent_manifest(manifest)
