"""Workflow → manifest record conversion.

Conversion is recursive: FOR, FORK and TRY tasks embed fully converted
child task records in their ``task_config``.  Errors carry the workflow
name and a task path such as ``tasks[1]:loop/do[0]:fan-out`` and abort the
whole workflow.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from synthkit.core.expressions.nodes import Variable
from synthkit.core.workflow.models import (
    CONFIG_TYPES,
    EXPORT_ALL,
    CallActivityConfig,
    ForConfig,
    ForkConfig,
    GrpcCallConfig,
    HttpCallConfig,
    ListenConfig,
    RaiseConfig,
    RunConfig,
    SetConfig,
    SwitchConfig,
    Task,
    TaskKind,
    TryConfig,
    WaitConfig,
)
from synthkit.core.workflow.workflow import Workflow
from synthkit.errors import InvalidTaskConfigError, UnknownTaskKindError
from synthkit.synth.manifest import (
    EnvironmentVariableRecord,
    TaskExport,
    TaskFlow,
    TaskRecord,
    WorkflowDocument,
    WorkflowRecord,
)
from synthkit.synth.resolver import Resolution
from synthkit.synth.values import ValueEncoder
from synthkit.utils.telemetry import ATTR_TASK_COUNT, ATTR_WORKFLOW, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

INIT_TASK_NAME = "__init_context"

ConfigConverter = Callable[[Any, ValueEncoder, str], dict[str, Any]]


def _kind_label(kind: Any) -> str:
    return str(getattr(kind, "value", kind))


class WorkflowConverter:
    """Converts one :class:`Workflow` into a :class:`WorkflowRecord`."""

    def __init__(self, workflow: Workflow, resolution: Resolution) -> None:
        self._workflow = workflow
        self._resolution = resolution
        self._variables: dict[str, Variable] = {}
        self._sites: dict[str, str] = {}
        self._converters: dict[TaskKind, ConfigConverter] = {
            TaskKind.SET: self._set,
            TaskKind.HTTP_CALL: self._http_call,
            TaskKind.GRPC_CALL: self._grpc_call,
            TaskKind.SWITCH: self._switch,
            TaskKind.FOR: self._for,
            TaskKind.FORK: self._fork,
            TaskKind.TRY: self._try,
            TaskKind.LISTEN: self._listen,
            TaskKind.WAIT: self._wait,
            TaskKind.CALL_ACTIVITY: self._call_activity,
            TaskKind.RAISE: self._raise,
            TaskKind.RUN: self._run,
        }

    def convert(self) -> WorkflowRecord:
        wf = self._workflow
        with _tracer.start_as_current_span("synthkit.convert_workflow") as span:
            span.set_attribute(ATTR_WORKFLOW, wf.name)
            tasks = [self.convert_task(task, f"tasks[{i}]") for i, task in enumerate(wf.tasks)]
            if self._variables:
                tasks.insert(0, self._init_task())
            span.set_attribute(ATTR_TASK_COUNT, len(tasks))

        logger.debug("Converted workflow %s (%d tasks, %d context variables)", wf.name, len(tasks), len(self._variables))
        return WorkflowRecord(
            document=WorkflowDocument(
                dsl=wf.dsl,
                namespace=wf.namespace,
                name=wf.name,
                version=wf.version,
                description=wf.description,
            ),
            org=wf.org,
            tasks=tasks,
            environment_variables=[
                EnvironmentVariableRecord.model_validate(v.model_dump()) for v in wf.environment_variables
            ],
        )

    def convert_task(self, task: Task, position: str) -> TaskRecord:
        """Convert *task* (and everything nested in it) at *position*."""
        path = f"{position}:{task.name}"
        converter = self._converters.get(task.kind)
        if converter is None:
            raise UnknownTaskKindError(_kind_label(task.kind), workflow=self._workflow.name, task_path=path)
        try:
            config = task.config_as(CONFIG_TYPES[task.kind])
        except InvalidTaskConfigError as exc:
            raise InvalidTaskConfigError(
                exc.task_name, exc.kind, exc.config_type, workflow=self._workflow.name, task_path=path
            ) from exc

        encoder = ValueEncoder(self._variables, sites=self._sites, workflow=self._workflow.name, task_path=path)
        task_config = converter(config, encoder, path)

        export = self._resolution.export_for(task)
        depends_on = self._resolution.depends_on_for(task)
        flow = None
        if task.flow_then or depends_on:
            flow = TaskFlow(then=task.flow_then, depends_on=depends_on or None)

        return TaskRecord(
            name=task.name,
            kind=_kind_label(task.kind),
            task_config=task_config,
            export=TaskExport(as_=export) if export is not None else None,
            flow=flow,
        )

    def _nested(self, tasks: list[Task], path: str, label: str) -> list[dict[str, Any]]:
        return [self.convert_task(t, f"{path}/{label}[{i}]").to_value() for i, t in enumerate(tasks)]

    def _init_task(self) -> TaskRecord:
        encoder = ValueEncoder({}, workflow=self._workflow.name, task_path=f"tasks[0]:{INIT_TASK_NAME}")
        variables = {
            name: encoder.value(var.value, f"variables.{name}") for name, var in self._variables.items()
        }
        return TaskRecord(
            name=INIT_TASK_NAME,
            kind=TaskKind.SET.value,
            task_config={"variables": variables},
            export=TaskExport(as_=EXPORT_ALL),
        )

    # ------------------------------------------------------------------
    # Per-kind config conversion
    # ------------------------------------------------------------------

    def _set(self, cfg: SetConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {"variables": enc.value(cfg.variables, "variables")}

    def _http_call(self, cfg: HttpCallConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {
            "method": cfg.method,
            "endpoint": {"uri": enc.value(cfg.uri, "endpoint.uri")},
            "headers": enc.value(cfg.headers, "headers"),
            "body": enc.value(cfg.body, "body"),
            "timeout_seconds": cfg.timeout_seconds,
        }

    def _grpc_call(self, cfg: GrpcCallConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {"service": cfg.service, "method": cfg.method, "body": enc.value(cfg.body, "body")}

    def _switch(self, cfg: SwitchConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        cases = cfg.normalized_cases()
        synthetic = len(cases) > len(cfg.cases)
        encoded = []
        for i, case in enumerate(cases):
            is_default = synthetic and i == len(cases) - 1
            encoded.append(
                {
                    "name": "default" if is_default else f"case{i + 1}",
                    "when": enc.expression(case.when, f"cases[{i}].when"),
                    "then": case.then,
                }
            )
        return {"cases": encoded}

    def _for(self, cfg: ForConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {
            "each": cfg.each,
            "in": enc.expression(cfg.in_, "in"),
            "do": self._nested(cfg.do, path, "do"),
        }

    def _fork(self, cfg: ForkConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        branches = [
            {"name": b.name, "do": self._nested(b.do, path, f"branches[{i}].do")}
            for i, b in enumerate(cfg.branches)
        ]
        return {"branches": branches, "compete": cfg.compete}

    def _try(self, cfg: TryConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        catch = [
            {"errors": list(c.errors), "as": c.as_, "do": self._nested(c.do, path, f"catch[{i}].do")}
            for i, c in enumerate(cfg.catch)
        ]
        return {"try": self._nested(cfg.do, path, "try"), "catch": catch}

    def _listen(self, cfg: ListenConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {"event": enc.value(cfg.event, "event")}

    def _wait(self, cfg: WaitConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {"duration": enc.value(cfg.duration, "duration")}

    def _call_activity(self, cfg: CallActivityConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {"activity": cfg.activity, "input": enc.value(cfg.input, "input")}

    def _raise(self, cfg: RaiseConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {
            "error": cfg.error,
            "message": enc.value(cfg.message, "message"),
            "data": enc.value(cfg.data, "data"),
        }

    def _run(self, cfg: RunConfig, enc: ValueEncoder, path: str) -> dict[str, Any]:
        return {"workflow": cfg.workflow, "input": enc.value(cfg.input, "input")}


def convert_workflow(workflow: Workflow, resolution: Resolution) -> WorkflowRecord:
    return WorkflowConverter(workflow, resolution).convert()

