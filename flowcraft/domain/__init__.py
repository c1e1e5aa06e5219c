"""
Domain module - Pure domain models with no external dependencies.

This module contains the workflow graph model, execution events and run results.
"""

# Models
from .models import (
    Edge,
    EdgeGroup,
    EdgeGroupType,
    InputSpec,
    JsonSchema,
    OutputSpec,
    Position,
    PropertySchema,
    Step,
    StepKind,
    Variable,
    VariableScope,
    VariableType,
    WorkflowDefinition,
)

# Events
from .events import (
    ExecutionEvent,
    ExecutionEventType,
    ExecutionStatus,
    create_step_completed_event,
    create_step_failed_event,
    create_step_started_event,
    create_workflow_cancelled_event,
    create_workflow_completed_event,
    create_workflow_failed_event,
    create_workflow_started_event,
)

# Run results
from .run import ExecutionResult, StepRecord, TerminationReason

__all__ = [
    # Models
    "Edge",
    "EdgeGroup",
    "EdgeGroupType",
    "InputSpec",
    "JsonSchema",
    "OutputSpec",
    "Position",
    "PropertySchema",
    "Step",
    "StepKind",
    "Variable",
    "VariableScope",
    "VariableType",
    "WorkflowDefinition",
    # Events
    "ExecutionEvent",
    "ExecutionEventType",
    "ExecutionStatus",
    "create_step_completed_event",
    "create_step_failed_event",
    "create_step_started_event",
    "create_workflow_cancelled_event",
    "create_workflow_completed_event",
    "create_workflow_failed_event",
    "create_workflow_started_event",
    # Run results
    "ExecutionResult",
    "StepRecord",
    "TerminationReason",
]
