"""Registry of workflows and agents awaiting synthesis."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from synthkit.core.agent.models import Agent
    from synthkit.core.workflow.workflow import Workflow

logger = logging.getLogger(__name__)


class Registry:
    """Append-only, lock-guarded collection of constructed resources.

    Reads return copies, so callers may iterate while other threads keep
    registering.  Pass one registry to several contexts to synthesize
    their resources together.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._workflows: list[Workflow] = []
        self._agents: list[Agent] = []

    def register_workflow(self, workflow: Workflow) -> None:
        with self._lock:
            self._workflows.append(workflow)
        logger.debug("Registered workflow %s", workflow)

    def register_agent(self, agent: Agent) -> None:
        with self._lock:
            self._agents.append(agent)
        logger.debug("Registered agent %s", agent)

    def workflows(self) -> list[Workflow]:
        with self._lock:
            return list(self._workflows)

    def agents(self) -> list[Agent]:
        with self._lock:
            return list(self._agents)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._workflows and not self._agents

    def clear(self) -> None:
        """Drop every registered resource."""
        with self._lock:
            self._workflows.clear()
            self._agents.clear()
