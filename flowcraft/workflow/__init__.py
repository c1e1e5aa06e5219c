"""
Workflow execution core.

Components:
- validator: structural checks over a WorkflowDefinition
- resolver / condition: template substitution and condition evaluation
- handlers: per-kind step behavior
- engine: the interpreter and its event stream
- cache: compiled workflow lookups with explicit eviction
"""

from .cache import CompiledWorkflow, WorkflowCache
from .condition import ConditionEvaluator, evaluate_condition
from .control import AbortSignal
from .engine import FailurePolicy, WorkflowEngine, resolve_next_step, sse_stream
from .handlers import HandlerRegistry, StepContext, StepOutcome
from .resolver import resolve, resolve_value
from .state import VariableContext
from .validator import (
    IssueType,
    ValidationIssue,
    ValidationResult,
    check_inputs,
    validate_workflow,
)

__all__ = [
    "AbortSignal",
    "CompiledWorkflow",
    "ConditionEvaluator",
    "FailurePolicy",
    "HandlerRegistry",
    "IssueType",
    "StepContext",
    "StepOutcome",
    "ValidationIssue",
    "ValidationResult",
    "VariableContext",
    "WorkflowCache",
    "WorkflowEngine",
    "check_inputs",
    "evaluate_condition",
    "resolve",
    "resolve_next_step",
    "resolve_value",
    "sse_stream",
    "validate_workflow",
]
