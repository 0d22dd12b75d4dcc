"""User-facing status lines for synthesis runs."""

from __future__ import annotations

from rich.console import Console

from synthkit.synth.synthesizer import SynthesisResult  # noqa: TC001

console = Console()
err_console = Console(stderr=True)


def print_result(result: SynthesisResult) -> None:
    """Print a one-line summary (plus written paths) for *result*."""
    if result.status == "dry_run":
        console.print(
            f"[green]✓[/green] Dry run complete: {result.workflow_count} workflow(s), "
            f"{result.agent_count} agent(s). Set SYNTHKIT_OUT_DIR to write manifests."
        )
    elif result.status == "empty":
        console.print("[yellow]⚠[/yellow] No workflows or agents defined. Nothing to synthesize.")
    else:
        console.print(
            f"[green]✓[/green] Synthesized {result.workflow_count} workflow(s) and "
            f"{result.agent_count} agent(s)"
        )
        for path in result.paths:
            console.print(f"  → {path}")


def print_error(exc: BaseException) -> None:
    err_console.print(f"[red]✗ Synthesis failed:[/red] {exc}")
