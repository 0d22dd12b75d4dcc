"""Shared CLI output formatters."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

from synthkit.synth.manifest import AgentManifest, TaskRecord, WorkflowManifest  # noqa: TC001

console = Console()


def print_workflow_manifest(manifest: WorkflowManifest) -> None:
    """Pretty-print a workflow manifest: one task table per workflow."""
    _print_sdk(manifest.sdk.language, manifest.sdk.version, manifest.sdk.generated_at)

    for record in manifest.workflows:
        doc = record.document
        table = Table(title=f"{doc.namespace}/{doc.name} v{doc.version}")
        table.add_column("Task", style="cyan")
        table.add_column("Kind")
        table.add_column("Export")
        table.add_column("Flow")

        for task, depth in _walk_records(record.tasks):
            table.add_row(
                "  " * depth + task.name,
                task.kind,
                task.export.as_ if task.export else "-",
                _flow_text(task),
            )

        console.print(table)
        if doc.description:
            console.print(f"  {_truncate(doc.description)}")


def print_agent_manifest(manifest: AgentManifest) -> None:
    """Pretty-print agent blueprints as a table."""
    _print_sdk(manifest.sdk.language, manifest.sdk.version, manifest.sdk.generated_at)

    table = Table(title="Agents")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Skills")
    table.add_column("MCP Servers")
    table.add_column("Sub-agents")

    for agent in manifest.agents:
        table.add_row(
            agent.name,
            _truncate(agent.description),
            ", ".join(s.name for s in agent.skills) or "-",
            ", ".join(s.name for s in agent.mcp_servers) or "-",
            ", ".join(s.name for s in agent.sub_agents) or "-",
        )

    console.print(table)


def _print_sdk(language: str, version: str, generated_at: int) -> None:
    console.print(f"[bold]Generated by[/bold] synthkit {version} ({language}) at {generated_at}")


def _walk_records(tasks: list[TaskRecord], depth: int = 0) -> list[tuple[TaskRecord, int]]:
    """Flatten nested task records (for/fork/try bodies) with their depth."""
    rows: list[tuple[TaskRecord, int]] = []
    for task in tasks:
        rows.append((task, depth))
        for nested in _nested_values(task.task_config):
            rows.extend(_walk_records([TaskRecord.model_validate(n) for n in nested], depth + 1))
    return rows


def _nested_values(config: dict[str, Any]) -> list[list[dict[str, Any]]]:
    lists: list[list[dict[str, Any]]] = []
    for key in ("do", "try"):
        if isinstance(config.get(key), list):
            lists.append(config[key])
    for key in ("branches", "catch"):
        for block in config.get(key) or []:
            if isinstance(block, dict) and isinstance(block.get("do"), list):
                lists.append(block["do"])
    return lists


def _flow_text(task: TaskRecord) -> str:
    if task.flow is None:
        return "-"
    parts = []
    if task.flow.then:
        parts.append(f"then {task.flow.then}")
    if task.flow.depends_on:
        parts.append(f"after {', '.join(task.flow.depends_on)}")
    return "; ".join(parts)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
