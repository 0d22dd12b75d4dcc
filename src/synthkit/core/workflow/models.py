"""Task graph models.

A :class:`Task` is a tagged union: ``kind`` names the variant and ``config``
holds the matching :class:`TaskConfig` subclass.  FOR, FORK and TRY configs
embed ordered task lists of their own, which is the only place the graph
is not flat.

Config fields accept either plain values or :class:`~synthkit.core.expressions.Ref`
instances; the converter decides per site whether a Ref becomes a literal
or a runtime expression.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from synthkit.core.expressions.refs import BoolRef, IntRef, ObjectRef, Ref, StringRef, task_output
from synthkit.errors import InvalidTaskConfigError

C = TypeVar("C", bound="TaskConfig")

RESERVED_PREFIX = "__"
EXPORT_ALL = "${.}"
END = "end"

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")


class TaskKind(str, Enum):
    """Discriminator for the task union."""

    SET = "SET"
    HTTP_CALL = "HTTP_CALL"
    GRPC_CALL = "GRPC_CALL"
    SWITCH = "SWITCH"
    FOR = "FOR"
    FORK = "FORK"
    TRY = "TRY"
    LISTEN = "LISTEN"
    WAIT = "WAIT"
    CALL_ACTIVITY = "CALL_ACTIVITY"
    RAISE = "RAISE"
    RUN = "RUN"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)


class TaskConfig(_ConfigModel):
    """Base class for kind-specific task configuration."""


class Task(BaseModel):
    """A single named step in a workflow.

    ``export_as`` and ``flow_then`` hold the directives the author set
    explicitly.  Implicit exports created by referencing :meth:`field` are
    computed later by the resolver and never written back here.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    kind: TaskKind
    config: TaskConfig
    export_as: str | None = None
    flow_then: str | None = None

    # ------------------------------------------------------------------
    # Export directives
    # ------------------------------------------------------------------

    def export_all(self) -> Task:
        """Make the whole task output visible under the task's name."""
        self.export_as = EXPORT_ALL
        return self

    def export_field(self, field: str) -> Task:
        """Export only *field* of the task output."""
        self.export_as = "${." + field + "}"
        return self

    def export(self, expression: str) -> Task:
        """Set a raw export expression, e.g. ``"${.body.items}"``."""
        self.export_as = expression
        return self

    # ------------------------------------------------------------------
    # Flow control
    # ------------------------------------------------------------------

    def then(self, task_name: str) -> Task:
        self.flow_then = task_name
        return self

    def then_ref(self, task: Task) -> Task:
        self.flow_then = task.name
        return self

    def end(self) -> Task:
        """Mark this task as terminal."""
        self.flow_then = END
        return self

    # ------------------------------------------------------------------
    # Output references
    # ------------------------------------------------------------------

    def field(self, *path: str) -> ObjectRef:
        """Reference this task's output (or a nested field of it).

        The result is always unknown at build time.  Using it in another
        task's config makes that task depend on this one, and exports this
        task's output unless the author already chose an export.
        """
        return task_output(self, *path)

    def field_as_string(self, *path: str) -> StringRef:
        return task_output(self, *path).as_string()

    def field_as_int(self, *path: str) -> IntRef:
        return task_output(self, *path).as_int()

    def field_as_bool(self, *path: str) -> BoolRef:
        return task_output(self, *path).as_bool()

    # ------------------------------------------------------------------
    # Config access
    # ------------------------------------------------------------------

    def config_as(self, config_type: type[C]) -> C:
        """Return ``config`` narrowed to *config_type*.

        Raises:
            InvalidTaskConfigError: If the config is not of that type or does
                not match the task's kind.
        """
        expected = CONFIG_TYPES.get(self.kind)
        if not isinstance(self.config, config_type) or expected is not type(self.config):
            raise InvalidTaskConfigError(self.name, self.kind.value, type(self.config).__name__)
        return self.config


def check_task_names(tasks: list[Task], where: str = "task list") -> list[str]:
    """Return a list of naming problems in *tasks* (empty when valid)."""
    problems: list[str] = []
    seen: set[str] = set()
    for task in tasks:
        if task.name.startswith(RESERVED_PREFIX):
            problems.append(f"task name '{task.name}' in {where} uses reserved prefix '{RESERVED_PREFIX}'")
        if task.name in seen:
            problems.append(f"duplicate task name '{task.name}' in {where}")
        seen.add(task.name)
    return problems


def _validated_tasks(tasks: list[Task], where: str) -> list[Task]:
    problems = check_task_names(tasks, where)
    if problems:
        raise ValueError("; ".join(problems))
    return tasks


# ---------------------------------------------------------------------------
# Leaf configs
# ---------------------------------------------------------------------------


class SetConfig(TaskConfig):
    """Assign variables in workflow state."""

    variables: dict[str, Any] = {}


class HttpCallConfig(TaskConfig):
    """HTTP request.  ``uri`` and header values may be Refs."""

    method: str = "GET"
    uri: str | StringRef
    headers: dict[str, str | StringRef] = {}
    body: dict[str, Any] = {}
    timeout_seconds: int = Field(default=30, gt=0)

    @field_validator("method")
    @classmethod
    def _check_method(cls, value: str) -> str:
        method = value.upper()
        if method not in HTTP_METHODS:
            msg = f"unsupported HTTP method '{value}' (expected one of {', '.join(HTTP_METHODS)})"
            raise ValueError(msg)
        return method


class GrpcCallConfig(TaskConfig):
    service: str = Field(min_length=1)
    method: str = Field(min_length=1)
    body: dict[str, Any] = {}


class ListenConfig(TaskConfig):
    event: str | StringRef


class WaitConfig(TaskConfig):
    """Pause for ``duration`` (e.g. ``"5s"``, ``"1m"``)."""

    duration: str | StringRef


class CallActivityConfig(TaskConfig):
    activity: str = Field(min_length=1)
    input: dict[str, Any] = {}


class RaiseConfig(TaskConfig):
    error: str = Field(min_length=1)
    message: str | StringRef = ""
    data: dict[str, Any] = {}


class RunConfig(TaskConfig):
    """Run another workflow by name."""

    workflow: str = Field(min_length=1)
    input: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Branching and nested configs
# ---------------------------------------------------------------------------


class SwitchCase(_ConfigModel):
    """One ``when``/``then`` pair.  An empty ``when`` matches anything."""

    when: str | BoolRef = ""
    then: str


class SwitchConfig(TaskConfig):
    cases: list[SwitchCase] = []
    default: str | None = None

    def normalized_cases(self) -> list[SwitchCase]:
        """Cases in author order, plus a trailing catch-all for ``default``.

        The catch-all is only added when no existing case already has an
        empty condition.
        """
        cases = list(self.cases)
        if self.default and not any(_is_empty_condition(c.when) for c in cases):
            cases.append(SwitchCase(when="", then=self.default))
        return cases


def _is_empty_condition(when: str | BoolRef) -> bool:
    return isinstance(when, str) and not when.strip()


class ForConfig(TaskConfig):
    """Run ``do`` once per element of ``in_``, binding it as ``each``."""

    each: str = "item"
    in_: str | Ref = Field(alias="in")
    do: list[Task] = []

    @field_validator("do")
    @classmethod
    def _check_do(cls, value: list[Task]) -> list[Task]:
        return _validated_tasks(value, "for body")


class ForkBranch(_ConfigModel):
    name: str = Field(min_length=1)
    do: list[Task] = []

    @field_validator("do")
    @classmethod
    def _check_do(cls, value: list[Task]) -> list[Task]:
        return _validated_tasks(value, "fork branch")


class ForkConfig(TaskConfig):
    """Run branches in parallel; ``compete`` keeps only the first to finish."""

    branches: list[ForkBranch] = []
    compete: bool = False

    @field_validator("branches")
    @classmethod
    def _unique_branches(cls, value: list[ForkBranch]) -> list[ForkBranch]:
        names = [b.name for b in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            msg = f"duplicate fork branch names: {', '.join(duplicates)}"
            raise ValueError(msg)
        return value


class CatchBlock(_ConfigModel):
    """Handler for errors raised inside a TRY body."""

    errors: list[str] = []
    as_: str = Field(default="error", alias="as")
    do: list[Task] = []

    @field_validator("do")
    @classmethod
    def _check_do(cls, value: list[Task]) -> list[Task]:
        return _validated_tasks(value, "catch block")


class TryConfig(TaskConfig):
    do: list[Task] = []
    catch: list[CatchBlock] = Field(min_length=1)

    @field_validator("do")
    @classmethod
    def _check_do(cls, value: list[Task]) -> list[Task]:
        return _validated_tasks(value, "try body")


CONFIG_TYPES: dict[TaskKind, type[TaskConfig]] = {
    TaskKind.SET: SetConfig,
    TaskKind.HTTP_CALL: HttpCallConfig,
    TaskKind.GRPC_CALL: GrpcCallConfig,
    TaskKind.SWITCH: SwitchConfig,
    TaskKind.FOR: ForConfig,
    TaskKind.FORK: ForkConfig,
    TaskKind.TRY: TryConfig,
    TaskKind.LISTEN: ListenConfig,
    TaskKind.WAIT: WaitConfig,
    TaskKind.CALL_ACTIVITY: CallActivityConfig,
    TaskKind.RAISE: RaiseConfig,
    TaskKind.RUN: RunConfig,
}


def nested_task_lists(config: TaskConfig) -> list[tuple[str, list[Task]]]:
    """Return ``(label, tasks)`` for every task list embedded in *config*.

    Labels match the manifest keys: ``do``, ``branches[0].do``, ``try`` or
    ``catch[1].do``.
    """
    if isinstance(config, ForConfig):
        return [("do", config.do)]
    if isinstance(config, ForkConfig):
        return [(f"branches[{i}].do", b.do) for i, b in enumerate(config.branches)]
    if isinstance(config, TryConfig):
        lists = [("try", config.do)]
        lists.extend((f"catch[{i}].do", c.do) for i, c in enumerate(config.catch))
        return lists
    return []
