"""Workflows: task kinds, task constructors and workflow blueprints."""

from synthkit.core.workflow.models import (
    CONFIG_TYPES,
    CallActivityConfig,
    CatchBlock,
    ForConfig,
    ForkBranch,
    ForkConfig,
    GrpcCallConfig,
    HttpCallConfig,
    ListenConfig,
    RaiseConfig,
    RunConfig,
    SetConfig,
    SwitchCase,
    SwitchConfig,
    Task,
    TaskConfig,
    TaskKind,
    TryConfig,
    WaitConfig,
)
from synthkit.core.workflow.tasks import (
    call_activity,
    catch_block,
    for_each,
    fork,
    grpc_call,
    http_call,
    listen,
    raise_error,
    run_workflow,
    set_task,
    switch,
    try_catch,
    wait,
)
from synthkit.core.workflow.workflow import Workflow

__all__ = [
    "CONFIG_TYPES",
    "CallActivityConfig",
    "CatchBlock",
    "ForConfig",
    "ForkBranch",
    "ForkConfig",
    "GrpcCallConfig",
    "HttpCallConfig",
    "ListenConfig",
    "RaiseConfig",
    "RunConfig",
    "SetConfig",
    "SwitchCase",
    "SwitchConfig",
    "Task",
    "TaskConfig",
    "TaskKind",
    "TryConfig",
    "WaitConfig",
    "Workflow",
    "call_activity",
    "catch_block",
    "for_each",
    "fork",
    "grpc_call",
    "http_call",
    "listen",
    "raise_error",
    "run_workflow",
    "set_task",
    "switch",
    "try_catch",
    "wait",
]
