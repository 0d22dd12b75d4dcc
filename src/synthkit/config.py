"""Synthesis settings: output directory and manifest file names."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel

OUT_DIR_ENV = "SYNTHKIT_OUT_DIR"


class SynthSettings(BaseModel):
    """Where and under which names manifests are written.

    ``out_dir`` of ``None`` means dry run: everything is converted but no
    file is written.
    """

    out_dir: Path | None = None
    workflow_manifest: str = "workflow-manifest.json"
    agent_manifest: str = "agent-manifest.json"

    @classmethod
    def from_env(
        cls,
        out_dir: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> SynthSettings:
        """Build settings, preferring *out_dir* over ``SYNTHKIT_OUT_DIR``."""
        if out_dir is None:
            env = os.environ if environ is None else environ
            out_dir = env.get(OUT_DIR_ENV) or None
        return cls(out_dir=Path(out_dir) if out_dir is not None else None)

    @property
    def dry_run(self) -> bool:
        return self.out_dir is None
