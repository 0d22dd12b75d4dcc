"""Encoding of task configuration values into the manifest value tree.

Two kinds of sites exist:

* **value sites** (URIs, headers, bodies, variables, ...): a known Ref
  becomes its literal value, an unknown Ref becomes ``${ ... }`` text.
* **expression sites** (switch conditions, loop sources): the runtime
  always evaluates the text, so a known Ref becomes ``${ <literal> }``.

Every context variable that survives into a rendered expression is
recorded so the converter can initialise it at workflow start.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel

from synthkit.core.expressions import nodes
from synthkit.core.expressions.nodes import INT64_MAX, INT64_MIN, Variable
from synthkit.core.expressions.refs import Ref
from synthkit.core.workflow.models import Task
from synthkit.errors import ConflictingVariableError, UnencodableConfigError


def iter_refs(value: Any) -> Iterator[Ref]:
    """Yield every Ref reachable from *value*, in field/key/index order.

    Descends into pydantic models, mappings and sequences, but stops at
    :class:`Task` objects: nested tasks own their references.
    """
    if isinstance(value, Ref):
        yield value
    elif isinstance(value, Task):
        return
    elif isinstance(value, BaseModel):
        for field_name in type(value).model_fields:
            yield from iter_refs(getattr(value, field_name))
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_refs(item)
    elif isinstance(value, list | tuple):
        for item in value:
            yield from iter_refs(item)


def _same_binding(a: Variable, b: Variable) -> bool:
    return type(a.value) is type(b.value) and a.value == b.value and a.secret == b.secret


class ValueEncoder:
    """Encodes one task's config values, collecting context variables.

    *variables* and *sites* are shared across every task of a workflow.
    The first occurrence of a name fixes its position and value in the init
    task; *sites* remembers where that occurrence was.
    """

    def __init__(
        self,
        variables: dict[str, Variable],
        *,
        sites: dict[str, str] | None = None,
        workflow: str = "",
        task_path: str = "",
    ) -> None:
        self._variables = variables
        self._sites = sites if sites is not None else {}
        self._workflow = workflow
        self._task_path = task_path

    def value(self, value: Any, field_path: str) -> Any:
        """Encode a value site."""
        if isinstance(value, Ref):
            if value.is_known:
                return self._literal(value.value, field_path)
            return self._deferred(value, field_path)
        return self._literal(value, field_path, refs_allowed=True)

    def expression(self, value: Any, field_path: str) -> str:
        """Encode an expression site; the result is always text."""
        if isinstance(value, Ref):
            if value.is_known:
                literal = self._literal(value.value, field_path)
                return "${ " + json.dumps(literal, ensure_ascii=False) + " }"
            return self._deferred(value, field_path)
        if isinstance(value, str):
            return value
        raise self._error(field_path, value)

    def _deferred(self, ref: Ref, field_path: str) -> str:
        site = f"{self._task_path} {field_path}".strip()
        for node in nodes.walk(ref.node):
            if not isinstance(node, Variable):
                continue
            known = self._variables.get(node.name)
            if known is None:
                self._variables[node.name] = node
                self._sites[node.name] = site
            elif known is not node and not _same_binding(known, node):
                raise ConflictingVariableError(
                    node.name,
                    self._sites.get(node.name, site),
                    site,
                    workflow=self._workflow,
                    task_path=self._task_path,
                )
        return ref.expression()

    def _literal(self, value: Any, field_path: str, *, refs_allowed: bool = False) -> Any:
        if refs_allowed and isinstance(value, Ref):
            return self.value(value, field_path)
        if value is None or isinstance(value, str | bool):
            return value
        if isinstance(value, int):
            if value < INT64_MIN or value > INT64_MAX:
                raise self._error(field_path, value)
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise self._error(field_path, value)
            return value
        if isinstance(value, Mapping):
            encoded: dict[str, Any] = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise self._error(f"{field_path}[{key!r}]", key)
                encoded[key] = self._literal(item, f"{field_path}.{key}", refs_allowed=refs_allowed)
            return encoded
        if isinstance(value, list | tuple):
            return [
                self._literal(item, f"{field_path}[{i}]", refs_allowed=refs_allowed)
                for i, item in enumerate(value)
            ]
        raise self._error(field_path, value)

    def _error(self, field_path: str, value: Any) -> UnencodableConfigError:
        return UnencodableConfigError(
            field_path,
            type(value).__name__,
            workflow=self._workflow,
            task_path=self._task_path,
        )
