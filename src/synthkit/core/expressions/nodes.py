"""Expression tree: the internal form of every derived configuration value.

A Ref never stores expression text.  It stores a small tree of nodes which
is folded to a Python value when every leaf is known, and rendered to a
runtime filter expression (``${ ... }``) only when the converter needs text.

Leaves:

* :class:`Const`: an anonymous literal supplied by the author.
* :class:`Variable`: a named context variable with a build-time value.
* :class:`TaskOutput`: a field of another task's output (never known).
* :class:`Runtime`: raw runtime expression text (never known).

Interior nodes are :class:`Operation` instances: an :class:`Operator` plus
ordered operands.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from synthkit.errors import ExpressionError, FieldNotFoundError, IntegerOverflowError

if TYPE_CHECKING:
    from synthkit.core.workflow.models import Task

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class _Unknown:
    """Marker for a value that only exists at workflow runtime."""

    _instance: _Unknown | None = None

    def __new__(cls) -> _Unknown:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False


UNKNOWN: Any = _Unknown()


class Operator(str, Enum):
    """Operators understood by both the folder and the renderer."""

    CONCAT = "concat"
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    AND = "and"
    OR = "or"
    NOT = "not"
    UPPER = "upper"
    LOWER = "lower"
    FIELD = "field"


_INFIX: dict[Operator, str] = {
    Operator.CONCAT: "+",
    Operator.ADD: "+",
    Operator.SUBTRACT: "-",
    Operator.MULTIPLY: "*",
    Operator.EQ: "==",
    Operator.NE: "!=",
    Operator.GT: ">",
    Operator.GE: ">=",
    Operator.LT: "<",
    Operator.LE: "<=",
    Operator.AND: "and",
    Operator.OR: "or",
}

_PIPE: dict[Operator, str] = {
    Operator.NOT: "not",
    Operator.UPPER: "ascii_upcase",
    Operator.LOWER: "ascii_downcase",
}


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Const:
    value: Any


@dataclass(frozen=True, eq=False)
class Variable:
    name: str
    value: Any
    secret: bool = False


@dataclass(frozen=True, eq=False)
class TaskOutput:
    task: Task
    path: tuple[str, ...]


@dataclass(frozen=True, eq=False)
class Runtime:
    text: str


@dataclass(frozen=True, eq=False)
class Operation:
    operator: Operator
    operands: tuple[Node, ...]


Node = Const | Variable | TaskOutput | Runtime | Operation


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------


def _check_int(operation: str, result: int) -> int:
    if result < INT64_MIN or result > INT64_MAX:
        raise IntegerOverflowError(operation, result)
    return result


def _ascii_case(text: str, *, upper: bool) -> str:
    # The runtime's ascii_upcase/ascii_downcase leave non-ASCII characters alone.
    convert = str.upper if upper else str.lower
    return "".join(convert(ch) if ch.isascii() else ch for ch in text)


def apply(operator: Operator, values: list[Any], *, label: str = "") -> Any:
    """Compute *operator* over already-known *values*.

    Mirrors the runtime semantics of the rendered expression, including
    floor division and ASCII-only case conversion.

    Raises:
        ExpressionError: Division by zero.
        IntegerOverflowError: Integer result outside the signed 64-bit range.
        FieldNotFoundError: Field access on a missing key.
    """
    if operator is Operator.CONCAT:
        return "".join(values)
    if operator is Operator.ADD:
        return _check_int("add", values[0] + values[1])
    if operator is Operator.SUBTRACT:
        return _check_int("subtract", values[0] - values[1])
    if operator is Operator.MULTIPLY:
        return _check_int("multiply", values[0] * values[1])
    if operator is Operator.DIVIDE:
        if values[1] == 0:
            raise ExpressionError(f"Division by zero in {label or 'divide'}")
        return _check_int("divide", values[0] // values[1])
    if operator is Operator.EQ:
        return values[0] == values[1]
    if operator is Operator.NE:
        return values[0] != values[1]
    if operator is Operator.GT:
        return values[0] > values[1]
    if operator is Operator.GE:
        return values[0] >= values[1]
    if operator is Operator.LT:
        return values[0] < values[1]
    if operator is Operator.LE:
        return values[0] <= values[1]
    if operator is Operator.AND:
        return bool(values[0]) and bool(values[1])
    if operator is Operator.OR:
        return bool(values[0]) or bool(values[1])
    if operator is Operator.NOT:
        return not values[0]
    if operator is Operator.UPPER:
        return _ascii_case(values[0], upper=True)
    if operator is Operator.LOWER:
        return _ascii_case(values[0], upper=False)
    if operator is Operator.FIELD:
        container, key = values
        if not isinstance(container, Mapping):
            raise FieldNotFoundError(label, key)
        if key not in container:
            raise FieldNotFoundError(label, key, sorted(str(k) for k in container))
        return container[key]
    raise ExpressionError(f"Unsupported operator: {operator}")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _segment(key: str) -> str:
    if _IDENTIFIER.match(key):
        return f".{key}"
    return "." + json.dumps(key, ensure_ascii=False)


def _is_path(node: Node) -> bool:
    if isinstance(node, Variable | TaskOutput):
        return True
    if isinstance(node, Operation) and node.operator is Operator.FIELD:
        return _is_path(node.operands[0])
    return False


def _strip_runtime(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("${") and stripped.endswith("}"):
        return stripped[2:-1].strip()
    return stripped


def _render(node: Node, nested: bool) -> str:
    if isinstance(node, Const):
        return json.dumps(node.value, ensure_ascii=False)
    if isinstance(node, Variable):
        return "$context" + _segment(node.name)
    if isinstance(node, TaskOutput):
        return "$context" + _segment(node.task.name) + "".join(_segment(p) for p in node.path)
    if isinstance(node, Runtime):
        inner = _strip_runtime(node.text)
        return f"({inner})" if nested else inner

    op = node.operator
    if op is Operator.FIELD:
        base, key = node.operands
        if not isinstance(key, Const):
            raise ExpressionError(f"Field key must be a literal, got {type(key).__name__}")
        base_text = _render(base, False)
        if not _is_path(base):
            base_text = f"({base_text})"
        return base_text + _segment(key.value)

    if op in _INFIX:
        text = f" {_INFIX[op]} ".join(_render(o, True) for o in node.operands)
    elif op in _PIPE:
        text = f"{_render(node.operands[0], True)} | {_PIPE[op]}"
    elif op is Operator.DIVIDE:
        left, right = node.operands
        text = f"{_render(left, True)} / {_render(right, True)} | floor"
    else:
        raise ExpressionError(f"Unsupported operator: {op}")
    return f"({text})" if nested else text


def render(node: Node) -> str:
    """Render *node* as a runtime expression of the form ``${ <expr> }``."""
    return "${ " + _render(node, False) + " }"


# ---------------------------------------------------------------------------
# Tree walks
# ---------------------------------------------------------------------------


def walk(node: Node) -> Iterator[Node]:
    """Yield *node* and all of its descendants, depth-first, left to right."""
    yield node
    if isinstance(node, Operation):
        for operand in node.operands:
            yield from walk(operand)


def task_outputs(node: Node) -> list[TaskOutput]:
    """Task-output leaves referenced by *node*, in operand order."""
    return [n for n in walk(node) if isinstance(n, TaskOutput)]


def is_secret(node: Node) -> bool:
    """Return ``True`` if any leaf of *node* is a secret variable."""
    return any(isinstance(n, Variable) and n.secret for n in walk(node))
