"""Agent blueprint models.

An :class:`Agent` declares everything the platform needs to instantiate an
agent: instructions, skills, MCP servers, sub-agents and the environment
variables it expects.  Constraint failures surface as pydantic
``ValidationError`` at construction time.

Example::

    agent = ctx.agent(
        name="code-reviewer",
        instructions="Review pull requests for style and correctness.",
        skills=[Skill.platform("coding-best-practices")],
        mcp_servers=[MCPServer.stdio("github", "npx", ["-y", "@mcp/github"])],
        environment_variables=[EnvironmentVariable(name="GITHUB_TOKEN", secret=True)],
    )
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

_AGENT_NAME = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
_ENV_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")


class EnvironmentVariable(BaseModel):
    """An environment variable a workflow or agent expects at runtime."""

    name: str
    secret: bool = False
    description: str = ""
    default_value: str | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _ENV_NAME.match(value):
            msg = f"environment variable name '{value}' must be UPPER_SNAKE_CASE"
            raise ValueError(msg)
        return value


class Skill(BaseModel):
    """Knowledge attached to an agent, defined inline or referenced by name."""

    kind: Literal["inline", "platform", "organization"] = "inline"
    name: str = Field(min_length=1)
    description: str = ""
    markdown: str = ""
    org: str = ""

    @classmethod
    def platform(cls, name: str) -> Skill:
        return cls(kind="platform", name=name)

    @classmethod
    def organization(cls, org: str, name: str) -> Skill:
        return cls(kind="organization", org=org, name=name)

    @model_validator(mode="after")
    def _check_kind(self) -> Skill:
        if self.kind == "inline" and not self.markdown.strip():
            msg = f"inline skill '{self.name}' requires markdown content"
            raise ValueError(msg)
        if self.kind == "organization" and not self.org:
            msg = f"organization skill '{self.name}' requires 'org'"
            raise ValueError(msg)
        return self


class MCPServer(BaseModel):
    """An MCP server the agent connects to at runtime."""

    name: str = Field(min_length=1)
    type: Literal["stdio", "http", "docker"] = "stdio"
    command: str | None = None
    args: list[str] = []
    url: str | None = None
    headers: dict[str, str] = {}
    image: str | None = None
    env: dict[str, str] = {}
    enabled_tools: list[str] = []

    @classmethod
    def stdio(
        cls,
        name: str,
        command: str,
        args: list[str] | None = None,
        *,
        env: dict[str, str] | None = None,
        enabled_tools: list[str] | None = None,
    ) -> MCPServer:
        return cls(
            name=name,
            type="stdio",
            command=command,
            args=args or [],
            env=env or {},
            enabled_tools=enabled_tools or [],
        )

    @classmethod
    def http(
        cls,
        name: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        enabled_tools: list[str] | None = None,
    ) -> MCPServer:
        return cls(name=name, type="http", url=url, headers=headers or {}, enabled_tools=enabled_tools or [])

    @classmethod
    def docker(
        cls,
        name: str,
        image: str,
        *,
        env: dict[str, str] | None = None,
        enabled_tools: list[str] | None = None,
    ) -> MCPServer:
        return cls(name=name, type="docker", image=image, env=env or {}, enabled_tools=enabled_tools or [])

    @model_validator(mode="after")
    def _check_transport(self) -> MCPServer:
        if self.type == "stdio" and not self.command:
            msg = f"stdio MCP server '{self.name}' requires 'command'"
            raise ValueError(msg)
        if self.type == "http" and not (self.url and self.url.startswith(("http://", "https://"))):
            msg = f"http MCP server '{self.name}' requires an http(s) 'url'"
            raise ValueError(msg)
        if self.type == "docker" and not self.image:
            msg = f"docker MCP server '{self.name}' requires 'image'"
            raise ValueError(msg)
        return self


class SubAgent(BaseModel):
    """A delegate agent, declared inline or referenced by instance id."""

    kind: Literal["inline", "reference"] = "inline"
    name: str = Field(min_length=1)
    instructions: str = ""
    description: str = ""
    skills: list[Skill] = []
    mcp_servers: list[str] = []
    agent_instance_id: str = ""

    @classmethod
    def reference(cls, name: str, agent_instance_id: str) -> SubAgent:
        return cls(kind="reference", name=name, agent_instance_id=agent_instance_id)

    @model_validator(mode="after")
    def _check_kind(self) -> SubAgent:
        if self.kind == "inline" and len(self.instructions.strip()) < 10:
            msg = f"inline sub-agent '{self.name}' requires instructions of at least 10 characters"
            raise ValueError(msg)
        if self.kind == "reference" and not self.agent_instance_id:
            msg = f"sub-agent reference '{self.name}' requires 'agent_instance_id'"
            raise ValueError(msg)
        return self


def load_instructions(path: str | Path) -> str:
    """Read agent instructions from a text or markdown file."""
    return Path(path).read_text(encoding="utf-8")


class Agent(BaseModel):
    """Validated agent blueprint."""

    name: str = Field(max_length=63)
    instructions: str = Field(min_length=10, max_length=10000)
    description: str = Field(default="", max_length=500)
    icon_url: str | None = None
    org: str = ""
    skills: list[Skill] = []
    mcp_servers: list[MCPServer] = []
    sub_agents: list[SubAgent] = []
    environment_variables: list[EnvironmentVariable] = []

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _AGENT_NAME.match(value):
            msg = f"agent name '{value}' must be lowercase alphanumeric with hyphens"
            raise ValueError(msg)
        return value

    @field_validator("icon_url")
    @classmethod
    def _check_icon(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith(("http://", "https://")):
            msg = f"icon_url '{value}' must be an http(s) URL"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _check_references(self) -> Agent:
        server_names = [s.name for s in self.mcp_servers]
        duplicates = sorted({n for n in server_names if server_names.count(n) > 1})
        if duplicates:
            msg = f"duplicate MCP server names: {', '.join(duplicates)}"
            raise ValueError(msg)
        for sub in self.sub_agents:
            for server in sub.mcp_servers:
                if server not in server_names:
                    msg = f"sub-agent '{sub.name}' references unknown MCP server '{server}'"
                    raise ValueError(msg)
        return self

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def add_skill(self, *skills: Skill) -> Agent:
        self.skills.extend(skills)
        return self

    def add_mcp_server(self, *servers: MCPServer) -> Agent:
        self.mcp_servers.extend(servers)
        return self

    def add_sub_agent(self, *subs: SubAgent) -> Agent:
        self.sub_agents.extend(subs)
        return self

    def add_environment_variable(self, *variables: EnvironmentVariable) -> Agent:
        self.environment_variables.extend(variables)
        return self

    def __str__(self) -> str:
        return f"Agent(name={self.name})"
