"""Shared error types for expression building and manifest synthesis."""

from __future__ import annotations


class SynthError(Exception):
    """Base error for all synthkit failures."""


# ---------------------------------------------------------------------------
# Build-time (expression) errors
# ---------------------------------------------------------------------------


class ExpressionError(SynthError):
    """A derived value could not be computed from known operands."""


class FieldNotFoundError(ExpressionError):
    """A known object was accessed with a key it does not contain."""

    def __init__(self, ref_name: str, key: str, available: list[str] | None = None) -> None:
        self.ref_name = ref_name
        self.key = key
        self.available = available or []
        msg = f"Field not found: {key!r} on {ref_name!r}"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class IntegerOverflowError(ExpressionError):
    """A folded integer result does not fit in a signed 64-bit integer."""

    def __init__(self, operation: str, result: int) -> None:
        self.operation = operation
        self.result = result
        super().__init__(f"Integer overflow in {operation}: {result} exceeds 64-bit range")


# ---------------------------------------------------------------------------
# Model / usage errors
# ---------------------------------------------------------------------------


class WorkflowValidationError(SynthError):
    """A workflow or task list failed a structural check."""


class AlreadySynthesizedError(SynthError):
    """``synthesize()`` was called on a context that already ran synthesis."""

    def __init__(self) -> None:
        super().__init__("Context already synthesized")


# ---------------------------------------------------------------------------
# Conversion errors
# ---------------------------------------------------------------------------


class TaskConversionError(SynthError):
    """Base error for failures while converting a task to its wire form."""

    def __init__(self, detail: str, *, workflow: str = "", task_path: str = "") -> None:
        self.detail = detail
        self.workflow = workflow
        self.task_path = task_path
        location = ""
        if workflow:
            location = f"workflow {workflow!r}"
        if task_path:
            location += (" " if location else "") + task_path
        super().__init__(f"{location}: {detail}" if location else detail)


class InvalidTaskConfigError(TaskConversionError):
    """A task's config does not match its declared kind."""

    def __init__(
        self,
        task_name: str,
        kind: str,
        config_type: str,
        *,
        workflow: str = "",
        task_path: str = "",
    ) -> None:
        self.task_name = task_name
        self.kind = kind
        self.config_type = config_type
        super().__init__(
            f"task {task_name!r} of kind {kind} has mismatched config {config_type}",
            workflow=workflow,
            task_path=task_path,
        )


class UnknownTaskKindError(TaskConversionError):
    """A task kind has no registered converter."""

    def __init__(self, kind: str, *, workflow: str = "", task_path: str = "") -> None:
        self.kind = kind
        super().__init__(f"unknown task kind: {kind}", workflow=workflow, task_path=task_path)


class UnencodableConfigError(TaskConversionError):
    """A configuration value cannot be represented in the manifest value tree."""

    def __init__(
        self,
        field_path: str,
        value_type: str,
        *,
        workflow: str = "",
        task_path: str = "",
    ) -> None:
        self.field_path = field_path
        self.value_type = value_type
        super().__init__(
            f"cannot encode {value_type} at {field_path}",
            workflow=workflow,
            task_path=task_path,
        )


class ConflictingVariableError(TaskConversionError):
    """One context variable name is referenced with two different bindings."""

    def __init__(self, name: str, first_site: str, site: str, *, workflow: str = "", task_path: str = "") -> None:
        self.name = name
        self.first_site = first_site
        self.site = site
        super().__init__(
            f"context variable {name!r} is bound to different values at {first_site} and {site}",
            workflow=workflow,
            task_path=task_path,
        )


# ---------------------------------------------------------------------------
# Output errors
# ---------------------------------------------------------------------------


class ManifestWriteError(SynthError):
    """Creating the output directory or writing a manifest file failed."""

    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Cannot write manifest {path}" + (f": {detail}" if detail else ""))
