"""Task constructors, one per :class:`TaskKind`.

Each constructor returns a :class:`Task` whose config matches its kind::

    fetch = http_call("fetch", "GET", base.concat("/posts/1"))
    store = set_task("store", title=fetch.field("title"))
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from synthkit.core.expressions.refs import BoolRef, Ref, StringRef
from synthkit.core.workflow.models import (
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
    TaskKind,
    TryConfig,
    WaitConfig,
)

Target = str | Task
CaseSpec = SwitchCase | tuple[str | BoolRef, Target]


def _target_name(target: Target) -> str:
    return target.name if isinstance(target, Task) else target


def set_task(name: str, variables: Mapping[str, Any] | None = None, **values: Any) -> Task:
    """Assign variables; keyword arguments are merged after *variables*."""
    merged = dict(variables or {})
    merged.update(values)
    return Task(name=name, kind=TaskKind.SET, config=SetConfig(variables=merged))


def http_call(
    name: str,
    method: str,
    uri: str | StringRef,
    *,
    headers: Mapping[str, str | StringRef] | None = None,
    body: Mapping[str, Any] | None = None,
    timeout_seconds: int = 30,
) -> Task:
    config = HttpCallConfig(
        method=method,
        uri=uri,
        headers=dict(headers or {}),
        body=dict(body or {}),
        timeout_seconds=timeout_seconds,
    )
    return Task(name=name, kind=TaskKind.HTTP_CALL, config=config)


def grpc_call(name: str, service: str, method: str, *, body: Mapping[str, Any] | None = None) -> Task:
    config = GrpcCallConfig(service=service, method=method, body=dict(body or {}))
    return Task(name=name, kind=TaskKind.GRPC_CALL, config=config)


def switch(name: str, cases: Sequence[CaseSpec] = (), *, default: Target | None = None) -> Task:
    """Branch on the first matching condition.

    *cases* holds ``(condition, target)`` pairs or :class:`SwitchCase`
    instances; targets may be task names or tasks.  ``default`` runs when
    nothing matches.
    """
    normalized: list[SwitchCase] = []
    for case in cases:
        if isinstance(case, SwitchCase):
            normalized.append(case)
        else:
            when, target = case
            normalized.append(SwitchCase(when=when, then=_target_name(target)))
    config = SwitchConfig(
        cases=normalized,
        default=_target_name(default) if default is not None else None,
    )
    return Task(name=name, kind=TaskKind.SWITCH, config=config)


def for_each(name: str, in_: str | Ref, do: Sequence[Task], *, each: str = "item") -> Task:
    """Run *do* for every element of the collection *in_*."""
    config = ForConfig(in_=in_, do=list(do), each=each)
    return Task(name=name, kind=TaskKind.FOR, config=config)


def fork(
    name: str,
    branches: Mapping[str, Sequence[Task]] | Sequence[ForkBranch],
    *,
    compete: bool = False,
) -> Task:
    """Run named branches in parallel.

    *branches* is either a mapping of branch name to task list (insertion
    order is kept) or a sequence of :class:`ForkBranch`.
    """
    if isinstance(branches, Mapping):
        items = [ForkBranch(name=n, do=list(tasks)) for n, tasks in branches.items()]
    else:
        items = list(branches)
    return Task(name=name, kind=TaskKind.FORK, config=ForkConfig(branches=items, compete=compete))


def catch_block(
    do: Sequence[Task],
    *,
    errors: Sequence[str] = (),
    as_: str = "error",
) -> CatchBlock:
    """Build a handler for :func:`try_catch`."""
    return CatchBlock(do=list(do), errors=list(errors), as_=as_)


def try_catch(name: str, do: Sequence[Task], *catches: CatchBlock) -> Task:
    return Task(name=name, kind=TaskKind.TRY, config=TryConfig(do=list(do), catch=list(catches)))


def listen(name: str, event: str | StringRef) -> Task:
    return Task(name=name, kind=TaskKind.LISTEN, config=ListenConfig(event=event))


def wait(name: str, duration: str | StringRef) -> Task:
    return Task(name=name, kind=TaskKind.WAIT, config=WaitConfig(duration=duration))


def call_activity(name: str, activity: str, input: Mapping[str, Any] | None = None) -> Task:  # noqa: A002
    config = CallActivityConfig(activity=activity, input=dict(input or {}))
    return Task(name=name, kind=TaskKind.CALL_ACTIVITY, config=config)


def raise_error(
    name: str,
    error: str,
    message: str | StringRef = "",
    *,
    data: Mapping[str, Any] | None = None,
) -> Task:
    config = RaiseConfig(error=error, message=message, data=dict(data or {}))
    return Task(name=name, kind=TaskKind.RAISE, config=config)


def run_workflow(name: str, workflow: str, input: Mapping[str, Any] | None = None) -> Task:  # noqa: A002
    config = RunConfig(workflow=workflow, input=dict(input or {}))
    return Task(name=name, kind=TaskKind.RUN, config=config)
