"""
flowcraft - declarative workflow engine.

Build a graph of typed steps, exchange it as YAML, validate it, and run it
with an async interpreter that streams execution events.
"""

from flowcraft.codec import export_workflow, import_workflow
from flowcraft.domain import (
    Edge,
    EdgeGroup,
    EdgeGroupType,
    ExecutionEvent,
    ExecutionEventType,
    ExecutionResult,
    ExecutionStatus,
    Step,
    StepKind,
    Variable,
    WorkflowDefinition,
)
from flowcraft.exceptions import (
    FlowcraftError,
    InvalidWorkflowStateError,
    WorkflowNotFoundError,
    WorkflowParseError,
)
from flowcraft.service import DeclarativeWorkflowService
from flowcraft.workflow import (
    AbortSignal,
    FailurePolicy,
    WorkflowCache,
    WorkflowEngine,
    resolve,
    evaluate_condition,
    validate_workflow,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Model
    "Edge",
    "EdgeGroup",
    "EdgeGroupType",
    "Step",
    "StepKind",
    "Variable",
    "WorkflowDefinition",
    # Execution
    "AbortSignal",
    "ExecutionEvent",
    "ExecutionEventType",
    "ExecutionResult",
    "ExecutionStatus",
    "FailurePolicy",
    "WorkflowCache",
    "WorkflowEngine",
    # Operations
    "evaluate_condition",
    "export_workflow",
    "import_workflow",
    "resolve",
    "validate_workflow",
    "DeclarativeWorkflowService",
    # Errors
    "FlowcraftError",
    "InvalidWorkflowStateError",
    "WorkflowNotFoundError",
    "WorkflowParseError",
]
