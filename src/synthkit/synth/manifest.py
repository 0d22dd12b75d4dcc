"""Manifest wire models.

Each resource category is serialised as one JSON document: SDK metadata
plus a list of blueprint records.  Task configuration is a schema-less
value tree (maps, lists, scalars) so the downstream tool can evolve task
kinds without a schema change here.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from synthkit import __version__

LANGUAGE = "python"


class SdkMetadata(BaseModel):
    """Who produced the manifest, and when (unix seconds)."""

    language: str = LANGUAGE
    version: str = __version__
    generated_at: int = 0


class _Manifest(BaseModel):
    def to_bytes(self) -> bytes:
        """Serialise to UTF-8 JSON bytes."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2).encode()

    @classmethod
    def from_bytes(cls, data: bytes) -> Any:
        """Deserialise a manifest produced by :meth:`to_bytes`."""
        return cls.model_validate_json(data)


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


class TaskExport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    as_: str = Field(alias="as")


class TaskFlow(BaseModel):
    """Explicit successor and/or inferred predecessors of a task."""

    then: str | None = None
    depends_on: list[str] | None = None


class TaskRecord(BaseModel):
    name: str
    kind: str
    task_config: dict[str, Any] = {}
    export: TaskExport | None = None
    flow: TaskFlow | None = None

    def to_value(self) -> dict[str, Any]:
        """Plain value tree, used when a task is nested inside another's config."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WorkflowDocument(BaseModel):
    dsl: str
    namespace: str
    name: str
    version: str
    description: str = ""


class EnvironmentVariableRecord(BaseModel):
    name: str
    secret: bool = False
    description: str = ""
    default_value: str | None = None


class WorkflowRecord(BaseModel):
    document: WorkflowDocument
    org: str = ""
    tasks: list[TaskRecord] = []
    environment_variables: list[EnvironmentVariableRecord] = []


class WorkflowManifest(_Manifest):
    sdk: SdkMetadata
    workflows: list[WorkflowRecord] = []


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


class SkillRecord(BaseModel):
    kind: str
    name: str
    description: str = ""
    markdown: str = ""
    org: str = ""


class MCPServerRecord(BaseModel):
    name: str
    type: str
    enabled_tools: list[str] = []
    stdio: dict[str, Any] | None = None
    http: dict[str, Any] | None = None
    docker: dict[str, Any] | None = None


class SubAgentRecord(BaseModel):
    kind: str
    name: str
    instructions: str = ""
    description: str = ""
    skills: list[SkillRecord] = []
    mcp_servers: list[str] = []
    agent_instance_id: str = ""


class AgentRecord(BaseModel):
    name: str
    instructions: str
    description: str = ""
    icon_url: str | None = None
    org: str = ""
    skills: list[SkillRecord] = []
    mcp_servers: list[MCPServerRecord] = []
    sub_agents: list[SubAgentRecord] = []
    environment_variables: list[EnvironmentVariableRecord] = []


class AgentManifest(_Manifest):
    sdk: SdkMetadata
    agents: list[AgentRecord] = []
