"""Context & Registry: per-run variables and the resources awaiting synthesis."""

from synthkit.core.context.context import Context, run
from synthkit.core.context.registry import Registry

__all__ = [
    "Context",
    "Registry",
    "run",
]
