"""Typed references to configuration values.

A Ref is either *known* (its value is computable at build time) or
*unknown* (its value only exists once the workflow runs).  Every
transformation goes through :func:`derive`, which folds known operands
immediately and otherwise keeps the expression tree for rendering.

Typical usage::

    base = StringRef("base", "https://api.x.com")
    url = base.concat("/users")          # known: "https://api.x.com/users"

    title = fetch.field_as_string("title")
    label = title.prepend("Post: ")      # unknown: ${ "Post: " + $context.fetch.title }
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from synthkit.core.expressions import nodes
from synthkit.core.expressions.nodes import (
    INT64_MAX,
    INT64_MIN,
    UNKNOWN,
    Const,
    Node,
    Operation,
    Operator,
    Runtime,
    TaskOutput,
    Variable,
)
from synthkit.errors import ExpressionError

if TYPE_CHECKING:
    from synthkit.core.workflow.models import Task

R = TypeVar("R", bound="Ref")


class Ref:
    """Base class for all typed references."""

    __slots__ = ("_name", "_node", "_secret", "_value")

    _type_label = "value"

    def __init__(self, name: str, value: Any, *, secret: bool = False) -> None:
        self._validate(value)
        self._name = name
        self._node: Node = Variable(name, value, secret)
        self._value = value
        self._secret = secret

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def _validate(cls, value: Any) -> None:
        """Reject literal values of the wrong Python type."""

    @classmethod
    def _from_node(cls: type[R], name: str, node: Node, value: Any) -> R:
        ref = cls.__new__(cls)
        ref._name = name
        ref._node = node
        ref._value = value
        ref._secret = nodes.is_secret(node)
        return ref

    @classmethod
    def runtime(cls: type[R], name: str, expression: str) -> R:
        """Create an unknown Ref from raw runtime expression text.

        Example::

            user_id = StringRef.runtime("userId", "${ .input.userId }")
        """
        return cls._from_node(name, Runtime(expression), UNKNOWN)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def node(self) -> Node:
        return self._node

    @property
    def is_secret(self) -> bool:
        return self._secret

    @property
    def is_known(self) -> bool:
        return self._value is not UNKNOWN

    @property
    def value(self) -> Any:
        """The build-time value.

        Raises:
            ExpressionError: If the Ref is only resolvable at runtime.
        """
        if self._value is UNKNOWN:
            raise ExpressionError(f"{self._name!r} is not known until runtime")
        return self._value

    def expression(self) -> str:
        """Render the runtime expression for this Ref, known or not."""
        return nodes.render(self._node)

    def resolve(self) -> Any:
        """Return the folded value if known, otherwise the runtime expression."""
        if self.is_known:
            return self._value
        return self.expression()

    def __repr__(self) -> str:
        cls = type(self).__name__
        if not self.is_known:
            return f"{cls}(name={self._name!r}, expression={self.expression()!r})"
        shown = "'***'" if self._secret else repr(self._value)
        return f"{cls}(name={self._name!r}, value={shown})"

    # ------------------------------------------------------------------
    # Equality (available on every type)
    # ------------------------------------------------------------------

    def equals(self, other: Any) -> BoolRef:
        return derive(Operator.EQ, self, _same_type(self, other), result=BoolRef)

    def not_equals(self, other: Any) -> BoolRef:
        return derive(Operator.NE, self, _same_type(self, other), result=BoolRef)


class _Ordered(Ref):
    """Ordering comparisons shared by string and integer refs."""

    __slots__ = ()

    def greater_than(self, other: Any) -> BoolRef:
        return derive(Operator.GT, self, _same_type(self, other), result=BoolRef)

    def greater_or_equal(self, other: Any) -> BoolRef:
        return derive(Operator.GE, self, _same_type(self, other), result=BoolRef)

    def less_than(self, other: Any) -> BoolRef:
        return derive(Operator.LT, self, _same_type(self, other), result=BoolRef)

    def less_or_equal(self, other: Any) -> BoolRef:
        return derive(Operator.LE, self, _same_type(self, other), result=BoolRef)


class StringRef(_Ordered):
    """Reference to a string value."""

    __slots__ = ()

    _type_label = "string"

    @classmethod
    def _validate(cls, value: Any) -> None:
        if not isinstance(value, str):
            raise TypeError(f"StringRef value must be str, got {type(value).__name__}")

    def concat(self, *parts: StringRef | str) -> StringRef:
        """Concatenate *parts* after this string, left to right."""
        return derive(Operator.CONCAT, self, *(_same_type(self, p) for p in parts), result=StringRef)

    def prepend(self, prefix: StringRef | str) -> StringRef:
        return derive(Operator.CONCAT, _same_type(self, prefix), self, result=StringRef)

    def append(self, suffix: StringRef | str) -> StringRef:
        return derive(Operator.CONCAT, self, _same_type(self, suffix), result=StringRef)

    def upper(self) -> StringRef:
        return derive(Operator.UPPER, self, result=StringRef)

    def lower(self) -> StringRef:
        return derive(Operator.LOWER, self, result=StringRef)


class IntRef(_Ordered):
    """Reference to a signed 64-bit integer value."""

    __slots__ = ()

    _type_label = "int"

    @classmethod
    def _validate(cls, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"IntRef value must be int, got {type(value).__name__}")
        if value < INT64_MIN or value > INT64_MAX:
            raise ValueError(f"IntRef value {value} exceeds 64-bit range")

    def add(self, other: IntRef | int) -> IntRef:
        return derive(Operator.ADD, self, _same_type(self, other), result=IntRef)

    def subtract(self, other: IntRef | int) -> IntRef:
        return derive(Operator.SUBTRACT, self, _same_type(self, other), result=IntRef)

    def multiply(self, other: IntRef | int) -> IntRef:
        return derive(Operator.MULTIPLY, self, _same_type(self, other), result=IntRef)

    def divide(self, other: IntRef | int) -> IntRef:
        """Floor division, matching ``a / b | floor`` at runtime."""
        return derive(Operator.DIVIDE, self, _same_type(self, other), result=IntRef)


class BoolRef(Ref):
    """Reference to a boolean value."""

    __slots__ = ()

    _type_label = "bool"

    @classmethod
    def _validate(cls, value: Any) -> None:
        if not isinstance(value, bool):
            raise TypeError(f"BoolRef value must be bool, got {type(value).__name__}")

    def and_(self, other: BoolRef | bool) -> BoolRef:
        return derive(Operator.AND, self, _same_type(self, other), result=BoolRef)

    def or_(self, other: BoolRef | bool) -> BoolRef:
        return derive(Operator.OR, self, _same_type(self, other), result=BoolRef)

    def not_(self) -> BoolRef:
        return derive(Operator.NOT, self, result=BoolRef)


class ObjectRef(Ref):
    """Reference to a mapping (or any nested value reached through one)."""

    __slots__ = ()

    _type_label = "object"

    @classmethod
    def _validate(cls, value: Any) -> None:
        if not isinstance(value, Mapping):
            raise TypeError(f"ObjectRef value must be a mapping, got {type(value).__name__}")

    def field(self, key: str) -> ObjectRef:
        """Access *key* on this object.

        Raises:
            FieldNotFoundError: If the object is known and has no such key.
        """
        return derive(Operator.FIELD, self, key, result=ObjectRef, name=f"{self._name}.{key}")

    def field_as_string(self, *path: str) -> StringRef:
        return self._navigate(path).as_string()

    def field_as_int(self, *path: str) -> IntRef:
        return self._navigate(path).as_int()

    def field_as_bool(self, *path: str) -> BoolRef:
        return self._navigate(path).as_bool()

    def as_string(self) -> StringRef:
        return self._cast(StringRef, str)

    def as_int(self) -> IntRef:
        return self._cast(IntRef, int)

    def as_bool(self) -> BoolRef:
        return self._cast(BoolRef, bool)

    def _navigate(self, path: tuple[str, ...]) -> ObjectRef:
        ref = self
        for key in path:
            ref = ref.field(key)
        return ref

    def _cast(self, target: type[R], py_type: type) -> R:
        if self.is_known:
            value = self._value
            wrong_bool = py_type is int and isinstance(value, bool)
            if wrong_bool or not isinstance(value, py_type):
                raise ExpressionError(
                    f"{self._name!r} is {type(value).__name__}, not {target._type_label}"
                )
        return target._from_node(self._name, self._node, self._value)


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------

_LITERAL_TYPES: dict[type[Ref], tuple[type, ...]] = {
    StringRef: (str,),
    IntRef: (int,),
    BoolRef: (bool,),
    ObjectRef: (Mapping,),
}


def _base_type(ref: Ref) -> type[Ref]:
    for cls in (StringRef, IntRef, BoolRef, ObjectRef):
        if isinstance(ref, cls):
            return cls
    return type(ref)


def _same_type(ref: Ref, operand: Any) -> Any:
    """Check that *operand* is a Ref or literal of the same kind as *ref*."""
    expected = _base_type(ref)
    if isinstance(operand, Ref):
        if not isinstance(operand, expected):
            raise TypeError(
                f"Expected {expected.__name__} operand, got {type(operand).__name__}"
            )
        return operand
    allowed = _LITERAL_TYPES.get(expected, ())
    if expected is IntRef and isinstance(operand, bool):
        raise TypeError("Expected int operand, got bool")
    if not isinstance(operand, allowed):
        raise TypeError(
            f"Expected {expected._type_label} operand, got {type(operand).__name__}"
        )
    return operand


def _as_operand(value: Any) -> tuple[Node, Any]:
    if isinstance(value, Ref):
        return value.node, value._value
    return Const(value), value


def derive(
    operator: Operator,
    *operands: Any,
    result: type[R],
    name: str | None = None,
) -> R:
    """Build a Ref of type *result* from *operator* applied to *operands*.

    Operands may be Refs or plain literals.  When every operand is known the
    result is computed now and the Ref is known; otherwise the Ref keeps the
    expression tree and renders it at serialisation time.
    """
    pairs = [_as_operand(o) for o in operands]
    node = Operation(operator, tuple(n for n, _ in pairs))
    if name is None:
        first = next((o for o in operands if isinstance(o, Ref)), None)
        name = f"{first.name}.{operator.value}" if first is not None else operator.value
    values = [v for _, v in pairs]
    if any(v is UNKNOWN for v in values):
        value = UNKNOWN
    else:
        value = nodes.apply(operator, values, label=_label_for(operands, name))
    return result._from_node(name, node, value)


def _label_for(operands: tuple[Any, ...], fallback: str) -> str:
    first = operands[0] if operands else None
    return first.name if isinstance(first, Ref) else fallback


def task_output(task: Task, *path: str) -> ObjectRef:
    """Reference the output of *task* (optionally a nested field path).

    Task output is never known at build time.
    """
    name = ".".join((task.name, *path))
    return ObjectRef._from_node(name, TaskOutput(task, tuple(path)), UNKNOWN)
