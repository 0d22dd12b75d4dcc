"""Synthesis: registered resources → manifest files.

The synthesizer converts everything first and writes only once every
manifest has been built, so a conversion error never leaves a partial
file behind.  Every file is staged as a temporary sibling and only then
renamed into place, so existing manifests are replaced together or left
untouched.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ValidationError

from synthkit.config import SynthSettings
from synthkit.core.agent.models import Agent
from synthkit.core.workflow.workflow import Workflow
from synthkit.errors import ManifestWriteError, SynthError
from synthkit.synth.agents import convert_agent
from synthkit.synth.converter import convert_workflow
from synthkit.synth.manifest import AgentManifest, SdkMetadata, WorkflowManifest
from synthkit.synth.resolver import resolve
from synthkit.utils.telemetry import (
    ATTR_AGENT_COUNT,
    ATTR_OUT_DIR,
    ATTR_STATUS,
    ATTR_WORKFLOW_COUNT,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

Clock = Callable[[], float]


class SynthesisResult(BaseModel):
    """Outcome of one synthesis run."""

    status: Literal["dry_run", "empty", "written"]
    out_dir: Path | None = None
    paths: list[Path] = []
    workflow_count: int = 0
    agent_count: int = 0
    exit_code: int = 0


class Synthesizer:
    """Builds manifests from resources and writes them per *settings*."""

    def __init__(self, settings: SynthSettings, *, clock: Clock | None = None) -> None:
        self._settings = settings
        self._clock = clock or time.time

    def build(
        self,
        workflows: Sequence[Workflow],
        agents: Sequence[Agent],
    ) -> tuple[WorkflowManifest, AgentManifest]:
        """Convert *workflows* and *agents* into manifest models."""
        sdk = SdkMetadata(generated_at=int(self._clock()))
        resolution = resolve(workflows)
        workflow_manifest = WorkflowManifest(
            sdk=sdk,
            workflows=[convert_workflow(wf, resolution) for wf in workflows],
        )
        agent_manifest = AgentManifest(sdk=sdk, agents=[convert_agent(a) for a in agents])
        return workflow_manifest, agent_manifest

    def synthesize(self, workflows: Sequence[Workflow], agents: Sequence[Agent]) -> SynthesisResult:
        """Run synthesis and report what happened.

        Resources are converted even in a dry run, so authoring errors
        surface without an output directory.

        Raises:
            SynthError: On any conversion or filesystem failure.
        """
        out_dir = self._settings.out_dir
        counts = {"workflow_count": len(workflows), "agent_count": len(agents)}

        with _tracer.start_as_current_span("synthkit.synthesize") as span:
            span.set_attribute(ATTR_WORKFLOW_COUNT, len(workflows))
            span.set_attribute(ATTR_AGENT_COUNT, len(agents))
            if out_dir is not None:
                span.set_attribute(ATTR_OUT_DIR, str(out_dir))

            workflow_manifest, agent_manifest = self.build(workflows, agents)

            if out_dir is None:
                logger.info("Dry run: %d workflow(s), %d agent(s) converted", len(workflows), len(agents))
                result = SynthesisResult(status="dry_run", **counts)
            elif not workflows and not agents:
                logger.warning("No workflows or agents registered; nothing to synthesize")
                result = SynthesisResult(status="empty", out_dir=out_dir)
            else:
                files: list[tuple[Path, bytes]] = []
                if workflows:
                    files.append((out_dir / self._settings.workflow_manifest, workflow_manifest.to_bytes()))
                if agents:
                    files.append((out_dir / self._settings.agent_manifest, agent_manifest.to_bytes()))
                paths = write_manifests(out_dir, files)
                result = SynthesisResult(status="written", out_dir=out_dir, paths=paths, **counts)

            span.set_attribute(ATTR_STATUS, result.status)
        return result


# ---------------------------------------------------------------------------
# File output
# ---------------------------------------------------------------------------


def write_manifests(out_dir: Path, files: Sequence[tuple[Path, bytes]]) -> list[Path]:
    """Create *out_dir* if needed and write every ``(path, data)`` pair.

    Every file is staged as a temporary sibling before any of them is
    renamed into place, so a failed write leaves all existing manifests
    untouched.  A rename that fails part-way leaves the files renamed
    before it in place and discards the rest.
    """
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ManifestWriteError(str(out_dir), f"cannot create output directory: {exc}") from exc

    staged: list[tuple[Path, Path]] = []
    try:
        for path, data in files:
            staged.append((stage_manifest(path, data), path))
    except ManifestWriteError:
        _discard(tmp for tmp, _ in staged)
        raise

    written: list[Path] = []
    for index, (tmp, path) in enumerate(staged):
        try:
            os.replace(tmp, path)
        except OSError as exc:
            _discard(t for t, _ in staged[index:])
            raise ManifestWriteError(str(path), str(exc)) from exc
        logger.info("Wrote %s", path)
        written.append(path)
    return written


def stage_manifest(path: Path, data: bytes) -> Path:
    """Write *data* to a synced temporary sibling of *path* and return it.

    Raises:
        ManifestWriteError: If the temporary file cannot be written.
    """
    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
    except OSError as exc:
        if tmp_name is not None:
            _discard([Path(tmp_name)])
        raise ManifestWriteError(str(path), str(exc)) from exc
    return Path(tmp_name)


def _discard(paths: Iterable[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)


def load_manifest(path: str | Path) -> WorkflowManifest | AgentManifest:
    """Load a manifest file written by :class:`Synthesizer`.

    Raises:
        SynthError: If the file is unreadable or not a manifest.
    """
    try:
        raw = json.loads(Path(path).read_bytes())
    except (OSError, ValueError) as exc:
        raise SynthError(f"Cannot read manifest {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise SynthError(f"Manifest {path} must be a JSON object")
    if "workflows" in raw:
        manifest_type: type[WorkflowManifest] | type[AgentManifest] = WorkflowManifest
    elif "agents" in raw:
        manifest_type = AgentManifest
    else:
        raise SynthError(f"Manifest {path} has neither 'workflows' nor 'agents'")
    try:
        return manifest_type.model_validate(raw)
    except ValidationError as exc:
        raise SynthError(f"Invalid manifest {path}: {exc}") from exc
