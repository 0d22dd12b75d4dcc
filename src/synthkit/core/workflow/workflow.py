"""Workflow blueprint: document metadata plus an ordered task list."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from synthkit.core.agent.models import EnvironmentVariable
from synthkit.core.expressions.refs import StringRef
from synthkit.core.workflow.models import Task, check_task_names
from synthkit.core.workflow.tasks import http_call, set_task
from synthkit.errors import WorkflowValidationError

_SEMVER = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)

DEFAULT_VERSION = "0.1.0"
DSL_VERSION = "1.0.0"


class Workflow(BaseModel):
    """A named, versioned task graph.

    Construct workflows through :meth:`Context.workflow
    <synthkit.core.context.context.Context.workflow>` so they are
    registered for synthesis.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)
    version: str = DEFAULT_VERSION
    description: str = ""
    org: str = ""
    dsl: str = DSL_VERSION
    tasks: list[Task] = []
    environment_variables: list[EnvironmentVariable] = []

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not _SEMVER.match(value):
            msg = f"version '{value}' is not a valid semantic version"
            raise ValueError(msg)
        return value

    @field_validator("tasks")
    @classmethod
    def _check_tasks(cls, value: list[Task]) -> list[Task]:
        problems = check_task_names(value, "workflow tasks")
        if problems:
            raise ValueError("; ".join(problems))
        return value

    # ------------------------------------------------------------------
    # Task builders
    # ------------------------------------------------------------------

    def add_task(self, task: Task) -> Task:
        """Append *task* and return it.

        Raises:
            WorkflowValidationError: On a duplicate or reserved task name.
        """
        problems = check_task_names([*self.tasks, task], f"workflow '{self.name}'")
        if problems:
            raise WorkflowValidationError("; ".join(problems))
        self.tasks.append(task)
        return task

    def add_tasks(self, *tasks: Task) -> Workflow:
        for task in tasks:
            self.add_task(task)
        return self

    def http_get(
        self,
        name: str,
        uri: str | StringRef,
        *,
        headers: Mapping[str, str | StringRef] | None = None,
        timeout_seconds: int = 30,
    ) -> Task:
        return self.add_task(http_call(name, "GET", uri, headers=headers, timeout_seconds=timeout_seconds))

    def http_post(
        self,
        name: str,
        uri: str | StringRef,
        body: Mapping[str, Any] | None = None,
        *,
        headers: Mapping[str, str | StringRef] | None = None,
        timeout_seconds: int = 30,
    ) -> Task:
        return self.add_task(
            http_call(name, "POST", uri, headers=headers, body=body, timeout_seconds=timeout_seconds)
        )

    def set_vars(self, name: str, **values: Any) -> Task:
        return self.add_task(set_task(name, **values))

    def add_environment_variable(self, *variables: EnvironmentVariable) -> Workflow:
        self.environment_variables.extend(variables)
        return self

    def __str__(self) -> str:
        return f"Workflow(namespace={self.namespace}, name={self.name}, version={self.version})"
