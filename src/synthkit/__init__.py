"""synthkit: declare workflow and agent blueprints in Python, synthesize them into manifests."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from synthkit.core.agent.models import Agent as Agent
    from synthkit.core.context.context import Context as Context
    from synthkit.core.context.context import run as run
    from synthkit.core.context.registry import Registry as Registry
    from synthkit.core.workflow.workflow import Workflow as Workflow

_EXPORTS = {
    "run": "synthkit.core.context.context",
    "Context": "synthkit.core.context.context",
    "Registry": "synthkit.core.context.registry",
    "Workflow": "synthkit.core.workflow.workflow",
    "Agent": "synthkit.core.agent.models",
}


def __getattr__(name: str) -> object:
    module_path = _EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'synthkit' has no attribute {name!r}")
