"""Agents: agent blueprints and the skills, servers and variables they use."""

from synthkit.core.agent.models import (
    Agent,
    EnvironmentVariable,
    MCPServer,
    Skill,
    SubAgent,
    load_instructions,
)

__all__ = [
    "Agent",
    "EnvironmentVariable",
    "MCPServer",
    "Skill",
    "SubAgent",
    "load_instructions",
]
