"""
Structural validation of workflow definitions.

Validation is advisory: problems are returned as data and never raised.
Callers gate persistence or execution on ``ValidationResult.is_valid``;
warnings never block.
"""

from collections import Counter
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field

from flowcraft.domain.models import StepKind, WorkflowDefinition
from flowcraft.utils.logging import get_logger

logger = get_logger(__name__)


class IssueType(str, Enum):
    MISSING_START = "missing_start"
    INVALID_CONNECTION = "invalid_connection"
    DUPLICATE_STEP = "duplicate_step"
    DUPLICATE_GROUP = "duplicate_group"
    CYCLE = "cycle"
    UNREACHABLE = "unreachable"
    MISSING_INPUT = "missing_input"
    INVALID_INPUT_TYPE = "invalid_input_type"


class ValidationIssue(BaseModel):
    type: IssueType
    message: str
    step_id: str | None = None
    edge_id: str | None = None


class ValidationResult(BaseModel):
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error_types(self) -> set[IssueType]:
        return {issue.type for issue in self.errors}

    def warning_types(self) -> set[IssueType]:
        return {issue.type for issue in self.warnings}


# Three-color DFS markers
_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


def validate_workflow(definition: WorkflowDefinition) -> ValidationResult:
    """
    Run every structural check over a definition.

    Errors: missing_start, invalid_connection, duplicate_step,
    duplicate_group, cycle. Warnings: unreachable.
    """
    result = ValidationResult()
    step_ids = {step.id for step in definition.steps}

    _check_start(definition, step_ids, result)
    _check_duplicates(definition, result)
    _check_connections(definition, step_ids, result)
    _check_reachability(definition, result)
    _check_cycles(definition, step_ids, result)

    logger.debug(
        "workflow_validated",
        workflow_id=definition.id,
        errors=len(result.errors),
        warnings=len(result.warnings),
    )
    return result


def _check_start(definition: WorkflowDefinition, step_ids: set[str], result: ValidationResult):
    if not definition.start_step_id:
        result.errors.append(
            ValidationIssue(type=IssueType.MISSING_START, message="No start step is set")
        )
    elif definition.start_step_id not in step_ids:
        result.errors.append(
            ValidationIssue(
                type=IssueType.MISSING_START,
                message=f"Start step '{definition.start_step_id}' does not exist",
                step_id=definition.start_step_id,
            )
        )


def _check_duplicates(definition: WorkflowDefinition, result: ValidationResult):
    for step_id, count in Counter(step.id for step in definition.steps).items():
        if count > 1:
            result.errors.append(
                ValidationIssue(
                    type=IssueType.DUPLICATE_STEP,
                    message=f"Step id '{step_id}' is used by {count} steps",
                    step_id=step_id,
                )
            )

    sources = Counter(group.source_step_id for group in definition.edge_groups)
    for source_id, count in sources.items():
        if count > 1:
            result.errors.append(
                ValidationIssue(
                    type=IssueType.DUPLICATE_GROUP,
                    message=f"Step '{source_id}' owns {count} outgoing edge groups",
                    step_id=source_id,
                )
            )


def _check_connections(
    definition: WorkflowDefinition, step_ids: set[str], result: ValidationResult
):
    for group in definition.edge_groups:
        if group.source_step_id not in step_ids:
            result.errors.append(
                ValidationIssue(
                    type=IssueType.INVALID_CONNECTION,
                    message=f"Edge group source '{group.source_step_id}' does not exist",
                    step_id=group.source_step_id,
                )
            )
        for edge in group.edges:
            if edge.target_step_id not in step_ids:
                result.errors.append(
                    ValidationIssue(
                        type=IssueType.INVALID_CONNECTION,
                        message=f"Edge target '{edge.target_step_id}' does not exist",
                        step_id=group.source_step_id,
                        edge_id=edge.id,
                    )
                )

    for step in definition.steps_by_kind(StepKind.GOTO):
        target = step.config.get("target_step_id")
        if not target or target not in step_ids:
            result.errors.append(
                ValidationIssue(
                    type=IssueType.INVALID_CONNECTION,
                    message=f"Goto step '{step.display_name}' targets unknown step '{target}'",
                    step_id=step.id,
                )
            )


def _check_reachability(definition: WorkflowDefinition, result: ValidationResult):
    targeted = {
        edge.target_step_id for group in definition.edge_groups for edge in group.edges
    }
    # goto jumps are incoming connections too
    targeted.update(
        step.config.get("target_step_id")
        for step in definition.steps_by_kind(StepKind.GOTO)
        if step.config.get("target_step_id")
    )
    for step in definition.steps:
        if step.id != definition.start_step_id and step.id not in targeted:
            result.warnings.append(
                ValidationIssue(
                    type=IssueType.UNREACHABLE,
                    message=f"Step '{step.display_name}' is unreachable",
                    step_id=step.id,
                )
            )


def _check_cycles(definition: WorkflowDefinition, step_ids: set[str], result: ValidationResult):
    """Three-color DFS rooted at every step so dead cyclic branches are caught."""
    adjacency: dict[str, list[tuple[str, str | None]]] = {step_id: [] for step_id in step_ids}
    for group in definition.edge_groups:
        if group.source_step_id not in adjacency:
            continue
        for edge in group.edges:
            if edge.target_step_id in adjacency:
                adjacency[group.source_step_id].append((edge.target_step_id, edge.id))
    # a goto jump back to an earlier step loops just like an edge
    for step in definition.steps_by_kind(StepKind.GOTO):
        target = step.config.get("target_step_id")
        if step.id in adjacency and target in adjacency:
            adjacency[step.id].append((target, None))

    color = {step_id: _UNVISITED for step_id in adjacency}

    # Iterative to stay clear of the recursion limit on long chains
    for root in (step.id for step in definition.steps):
        if color[root] != _UNVISITED:
            continue
        color[root] = _IN_PROGRESS
        stack = [(root, iter(adjacency[root]))]
        while stack:
            node, children = stack[-1]
            advanced = False
            for target, edge_id in children:
                if color[target] == _IN_PROGRESS:
                    result.errors.append(
                        ValidationIssue(
                            type=IssueType.CYCLE,
                            message=f"Workflow contains a cycle: '{node}' -> '{target}'",
                            step_id=node,
                            edge_id=edge_id,
                        )
                    )
                elif color[target] == _UNVISITED:
                    color[target] = _IN_PROGRESS
                    stack.append((target, iter(adjacency[target])))
                    advanced = True
                    break
            if not advanced:
                color[node] = _DONE
                stack.pop()


# ============================================================================
# Input checks
# ============================================================================

_PRIMITIVE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
}


def check_inputs(
    definition: WorkflowDefinition, inputs: Mapping[str, Any]
) -> list[ValidationIssue]:
    """Check supplied inputs against the declared input shape."""
    shape = definition.input_spec.shape
    issues = []

    for name in shape.required:
        prop = shape.properties.get(name)
        has_default = prop is not None and prop.default is not None
        if inputs.get(name) is None and not has_default:
            issues.append(
                ValidationIssue(
                    type=IssueType.MISSING_INPUT,
                    message=f"Required input '{name}' is missing",
                )
            )

    for name, value in inputs.items():
        prop = shape.properties.get(name)
        if prop is None or value is None:
            continue
        check = _PRIMITIVE_CHECKS.get(prop.type)
        if check is not None and not check(value):
            issues.append(
                ValidationIssue(
                    type=IssueType.INVALID_INPUT_TYPE,
                    message=f"Input '{name}' should be of type {prop.type}",
                )
            )

    return issues


__all__ = [
    "IssueType",
    "ValidationIssue",
    "ValidationResult",
    "validate_workflow",
    "check_inputs",
]
