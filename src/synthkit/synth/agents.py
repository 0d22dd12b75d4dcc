"""Agent → manifest record conversion."""

from __future__ import annotations

from typing import Any

from synthkit.core.agent.models import Agent, MCPServer, Skill
from synthkit.synth.manifest import (
    AgentRecord,
    EnvironmentVariableRecord,
    MCPServerRecord,
    SkillRecord,
    SubAgentRecord,
)


def _skill(skill: Skill) -> SkillRecord:
    return SkillRecord.model_validate(skill.model_dump())


def _mcp_server(server: MCPServer) -> MCPServerRecord:
    transport: dict[str, Any]
    if server.type == "stdio":
        transport = {"command": server.command, "args": list(server.args), "env": dict(server.env)}
    elif server.type == "http":
        transport = {"url": server.url, "headers": dict(server.headers)}
    else:
        transport = {"image": server.image, "env": dict(server.env)}
    return MCPServerRecord(
        name=server.name,
        type=server.type,
        enabled_tools=list(server.enabled_tools),
        **{server.type: transport},
    )


def convert_agent(agent: Agent) -> AgentRecord:
    return AgentRecord(
        name=agent.name,
        instructions=agent.instructions,
        description=agent.description,
        icon_url=agent.icon_url,
        org=agent.org,
        skills=[_skill(s) for s in agent.skills],
        mcp_servers=[_mcp_server(s) for s in agent.mcp_servers],
        sub_agents=[
            SubAgentRecord(
                kind=sub.kind,
                name=sub.name,
                instructions=sub.instructions,
                description=sub.description,
                skills=[_skill(s) for s in sub.skills],
                mcp_servers=list(sub.mcp_servers),
                agent_instance_id=sub.agent_instance_id,
            )
            for sub in agent.sub_agents
        ],
        environment_variables=[
            EnvironmentVariableRecord.model_validate(v.model_dump()) for v in agent.environment_variables
        ],
    )
