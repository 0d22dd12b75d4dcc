"""Synthesis: reference resolution, conversion and manifest output."""

from synthkit.synth.converter import INIT_TASK_NAME, WorkflowConverter, convert_workflow
from synthkit.synth.manifest import AgentManifest, SdkMetadata, TaskRecord, WorkflowManifest
from synthkit.synth.resolver import Resolution, resolve
from synthkit.synth.synthesizer import SynthesisResult, Synthesizer, load_manifest

__all__ = [
    "INIT_TASK_NAME",
    "AgentManifest",
    "Resolution",
    "SdkMetadata",
    "SynthesisResult",
    "Synthesizer",
    "TaskRecord",
    "WorkflowConverter",
    "WorkflowManifest",
    "convert_workflow",
    "load_manifest",
    "resolve",
]
