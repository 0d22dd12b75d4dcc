"""Reference resolution pass.

Runs once over the finished graph, before conversion.  Every task-output
reference found in a task's config produces two facts:

* the referenced task's effective export becomes ``${.}`` unless the
  author already set one;
* the referencing task depends on the referenced task.

Tasks themselves are never modified; the results live in a
:class:`Resolution`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from synthkit.core.expressions import nodes
from synthkit.core.workflow.models import EXPORT_ALL, Task, nested_task_lists
from synthkit.core.workflow.workflow import Workflow
from synthkit.synth.values import iter_refs

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Effective exports and dependency edges, keyed by task identity."""

    exports: dict[int, str] = field(default_factory=dict)
    depends_on: dict[int, list[str]] = field(default_factory=dict)

    def export_for(self, task: Task) -> str | None:
        if task.export_as is not None:
            return task.export_as
        return self.exports.get(id(task))

    def depends_on_for(self, task: Task) -> list[str]:
        return list(self.depends_on.get(id(task), []))


def iter_tasks(tasks: Iterable[Task]) -> Iterator[Task]:
    """Yield *tasks* and every task nested inside them, depth-first."""
    for task in tasks:
        yield task
        for _, children in nested_task_lists(task.config):
            yield from iter_tasks(children)


def resolve(workflows: Iterable[Workflow]) -> Resolution:
    """Compute exports and ``depends_on`` lists for every task in *workflows*."""
    resolution = Resolution()
    for workflow in workflows:
        for consumer in iter_tasks(workflow.tasks):
            for ref in iter_refs(consumer.config):
                for output in nodes.task_outputs(ref.node):
                    _link(resolution, output.task, consumer)
    return resolution


def _link(resolution: Resolution, producer: Task, consumer: Task) -> None:
    if producer.export_as is None and id(producer) not in resolution.exports:
        resolution.exports[id(producer)] = EXPORT_ALL
        logger.debug("Auto-exporting output of task %s", producer.name)
    if producer is consumer:
        return
    deps = resolution.depends_on.setdefault(id(consumer), [])
    if producer.name not in deps:
        deps.append(producer.name)
