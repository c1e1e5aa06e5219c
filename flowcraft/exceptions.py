"""
Exception hierarchy for workflow parsing, validation and execution.

Validation problems are normally returned as data (see
flowcraft.workflow.validator); the exceptions here cover the cases that
must abort an operation.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowcraft.workflow.validator import ValidationResult


class FlowcraftError(Exception):
    """Base exception for all flowcraft errors."""

    pass


class WorkflowParseError(FlowcraftError):
    """Workflow text is malformed or has an unrecognized top-level structure."""

    def __init__(self, message: str, raw_error: str | None = None):
        super().__init__(message)
        self.message = message
        self.raw_error = raw_error

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.raw_error}


class WorkflowValidationError(FlowcraftError):
    """Raised when a definition with structural errors is saved."""

    def __init__(self, result: "ValidationResult"):
        types = ", ".join(sorted({issue.type for issue in result.errors}))
        super().__init__(f"Workflow failed validation: {types}")
        self.result = result


class WorkflowNotFoundError(FlowcraftError):
    """Requested workflow does not exist."""

    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class InvalidWorkflowStateError(FlowcraftError):
    """Workflow cannot be run, e.g. no resolvable start step."""

    pass


class InvalidWorkflowInputError(FlowcraftError):
    """Supplied inputs violate the workflow's input shape."""

    def __init__(self, issues: list):
        messages = "; ".join(issue.message for issue in issues)
        super().__init__(f"Invalid workflow input: {messages}")
        self.issues = issues


class StepExecutionError(FlowcraftError):
    """A single step failed. Caught by the engine and recorded per step."""

    def __init__(self, step_id: str, message: str):
        super().__init__(message)
        self.step_id = step_id


__all__ = [
    "FlowcraftError",
    "WorkflowParseError",
    "WorkflowValidationError",
    "WorkflowNotFoundError",
    "InvalidWorkflowStateError",
    "InvalidWorkflowInputError",
    "StepExecutionError",
]
