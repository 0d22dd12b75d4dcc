"""Per-run context: named variables, resource factories and one-shot synthesis.

Typical usage::

    def build(ctx: Context) -> None:
        base = ctx.set_string("apiBase", "https://api.example.com")
        wf = ctx.workflow(namespace="demo", name="fetch-posts")
        fetch = wf.http_get("fetch", base.concat("/posts/1"))
        wf.set_vars("store", title=fetch.field("title"))

    synthkit.run(build)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from synthkit.config import SynthSettings
from synthkit.core.agent.models import Agent, load_instructions
from synthkit.core.context.registry import Registry
from synthkit.core.expressions.refs import BoolRef, IntRef, ObjectRef, Ref, StringRef
from synthkit.core.workflow.workflow import Workflow
from synthkit.errors import AlreadySynthesizedError, WorkflowValidationError

if TYPE_CHECKING:
    from synthkit.synth.synthesizer import Clock, SynthesisResult

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Ref)


class Context:
    """Owns the variables and resources created during one run."""

    def __init__(self, registry: Registry | None = None, *, clock: Clock | None = None) -> None:
        self._registry = registry if registry is not None else Registry()
        self._clock = clock
        self._variables: dict[str, Ref] = {}
        self._workflows: list[Workflow] = []
        self._agents: list[Agent] = []
        self._lock = threading.RLock()
        self._synthesized = False

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def synthesized(self) -> bool:
        return self._synthesized

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def _store(self, ref: R) -> R:
        if ref.name in self._variables:
            logger.debug("Overwriting context variable %s", ref.name)
        self._variables[ref.name] = ref
        return ref

    def set_string(self, name: str, value: str, *, secret: bool = False) -> StringRef:
        return self._store(StringRef(name, value, secret=secret))

    def set_secret(self, name: str, value: str) -> StringRef:
        """Store a string that must never appear in logs or reprs."""
        return self._store(StringRef(name, value, secret=True))

    def set_int(self, name: str, value: int, *, secret: bool = False) -> IntRef:
        return self._store(IntRef(name, value, secret=secret))

    def set_bool(self, name: str, value: bool, *, secret: bool = False) -> BoolRef:
        return self._store(BoolRef(name, value, secret=secret))

    def set_object(self, name: str, value: Mapping[str, Any], *, secret: bool = False) -> ObjectRef:
        return self._store(ObjectRef(name, dict(value), secret=secret))

    def get(self, name: str) -> Ref | None:
        return self._variables.get(name)

    def _get_as(self, name: str, ref_type: type[R]) -> R | None:
        ref = self._variables.get(name)
        return ref if isinstance(ref, ref_type) else None

    def get_string(self, name: str) -> StringRef | None:
        return self._get_as(name, StringRef)

    def get_int(self, name: str) -> IntRef | None:
        return self._get_as(name, IntRef)

    def get_bool(self, name: str) -> BoolRef | None:
        return self._get_as(name, BoolRef)

    def get_object(self, name: str) -> ObjectRef | None:
        return self._get_as(name, ObjectRef)

    @property
    def variables(self) -> dict[str, Ref]:
        return dict(self._variables)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def workflow(self, **fields: Any) -> Workflow:
        """Create and register a :class:`Workflow`.

        Raises:
            WorkflowValidationError: If the fields fail validation.
        """
        try:
            wf = Workflow(**fields)
        except ValidationError as exc:
            raise WorkflowValidationError(str(exc)) from exc
        self.register_workflow(wf)
        return wf

    def agent(self, *, instructions_file: str | Path | None = None, **fields: Any) -> Agent:
        """Create and register an :class:`Agent`.

        ``instructions_file`` loads the instructions from disk instead of
        passing them inline.
        """
        if instructions_file is not None:
            fields["instructions"] = load_instructions(instructions_file)
        agent = Agent(**fields)
        self.register_agent(agent)
        return agent

    def register_workflow(self, workflow: Workflow) -> None:
        with self._lock:
            if self._synthesized:
                raise AlreadySynthesizedError()
            self._workflows.append(workflow)
            self._registry.register_workflow(workflow)

    def register_agent(self, agent: Agent) -> None:
        with self._lock:
            if self._synthesized:
                raise AlreadySynthesizedError()
            self._agents.append(agent)
            self._registry.register_agent(agent)

    @property
    def workflows(self) -> list[Workflow]:
        return list(self._workflows)

    @property
    def agents(self) -> list[Agent]:
        return list(self._agents)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesize(self, out_dir: str | Path | None = None) -> SynthesisResult:
        """Convert every registered resource and write the manifests once.

        *out_dir* overrides ``SYNTHKIT_OUT_DIR``; with neither set this is a
        dry run.

        Raises:
            AlreadySynthesizedError: On any call after the first.
            SynthError: If conversion or writing fails.
        """
        from synthkit.synth.synthesizer import Synthesizer

        with self._lock:
            if self._synthesized:
                raise AlreadySynthesizedError()
            self._synthesized = True
            settings = SynthSettings.from_env(out_dir)
            synthesizer = Synthesizer(settings, clock=self._clock)
            return synthesizer.synthesize(self._registry.workflows(), self._registry.agents())


def run(
    fn: Callable[[Context], Any],
    *,
    registry: Registry | None = None,
    out_dir: str | Path | None = None,
    report: bool = True,
) -> SynthesisResult:
    """Create a :class:`Context`, call *fn* with it, then synthesize once.

    With *report* set, a status line is printed to the console.  Errors
    propagate to the caller.
    """
    from synthkit.synth.report import print_result

    ctx = Context(registry)
    fn(ctx)
    result = ctx.synthesize(out_dir)
    if report:
        print_result(result)
    return result
