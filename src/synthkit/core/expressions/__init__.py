"""Expressions: typed references, constant folding and runtime rendering."""

from synthkit.core.expressions.nodes import UNKNOWN, Operator, render
from synthkit.core.expressions.refs import (
    BoolRef,
    IntRef,
    ObjectRef,
    Ref,
    StringRef,
    derive,
    task_output,
)

__all__ = [
    "UNKNOWN",
    "BoolRef",
    "IntRef",
    "ObjectRef",
    "Operator",
    "Ref",
    "StringRef",
    "derive",
    "render",
    "task_output",
]
