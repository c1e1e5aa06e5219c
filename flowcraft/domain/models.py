"""
Graph model for declarative workflows.

A WorkflowDefinition owns an ordered list of Steps, the EdgeGroups that
connect them, declared Variables and input/output shape declarations.

Mutation helpers are copy-on-write: each returns a new definition with
updated_at stamped, leaving the receiver untouched. The execution engine
only ever reads a definition.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable
from uuid import uuid4

from pydantic import BaseModel, Field


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepKind(str, Enum):
    """Closed set of step kinds understood by the engine and the codec."""

    AGENT_INVOKE = "agent_invoke"
    SEND_MESSAGE = "send_message"
    SET_VARIABLE = "set_variable"
    ASK_QUESTION = "ask_question"
    CONDITION_GROUP = "condition_group"
    FOREACH = "foreach"
    GOTO = "goto"
    END_WORKFLOW = "end_workflow"
    END_CONVERSATION = "end_conversation"
    CREATE_CONVERSATION = "create_conversation"
    DELETE_CONVERSATION = "delete_conversation"
    COPY_MESSAGES = "copy_messages"
    RESET_VARIABLE = "reset_variable"
    CLEAR_VARIABLES = "clear_variables"
    UNKNOWN = "unknown"  # raw passthrough of an unrecognized textual kind

    @property
    def is_terminal(self) -> bool:
        return self in (StepKind.END_WORKFLOW, StepKind.END_CONVERSATION)


class Position(BaseModel):
    """Canvas coordinates. Layout hint only."""

    x: float = 0.0
    y: float = 0.0


class Step(BaseModel):
    """A single node in the workflow graph."""

    id: str = Field(default_factory=new_id)
    kind: StepKind
    name: str = ""
    description: str = ""
    position: Position = Field(default_factory=Position)
    config: dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def __repr__(self) -> str:
        return f"Step(id={self.id!r}, kind={self.kind.value!r})"


class EdgeGroupType(str, Enum):
    SINGLE = "Single"
    FAN_OUT = "FanOut"
    FAN_IN = "FanIn"
    SWITCH_CASE = "SwitchCase"

    @classmethod
    def classify(cls, edges: Iterable["Edge"]) -> "EdgeGroupType":
        """SwitchCase if any edge is conditional, FanOut if several, else Single."""
        edges = list(edges)
        if any(edge.condition for edge in edges):
            return cls.SWITCH_CASE
        if len(edges) > 1:
            return cls.FAN_OUT
        return cls.SINGLE


class Edge(BaseModel):
    id: str = Field(default_factory=new_id)
    target_step_id: str
    condition: str | None = None
    label: str | None = None


class EdgeGroup(BaseModel):
    """All outgoing edges of one source step. Edge order is significant."""

    id: str = Field(default_factory=new_id)
    type: EdgeGroupType = EdgeGroupType.SINGLE
    source_step_id: str
    edges: list[Edge] = Field(default_factory=list)


class VariableType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class VariableScope(str, Enum):
    """Advisory only; the engine keeps one flat context per run."""

    WORKFLOW = "Workflow"
    CONVERSATION = "Conversation"
    GLOBAL = "Global"


class Variable(BaseModel):
    name: str
    type: VariableType = VariableType.STRING
    scope: VariableScope = VariableScope.WORKFLOW
    default: Any = None
    description: str | None = None


class PropertySchema(BaseModel):
    type: str = "string"
    description: str | None = None
    default: Any = None
    enum: list[str] | None = None
    format: str | None = None
    items: "PropertySchema | None" = None
    properties: "dict[str, PropertySchema] | None" = None


class JsonSchema(BaseModel):
    type: str = "object"
    description: str | None = None
    properties: dict[str, PropertySchema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class InputSpec(BaseModel):
    type_name: str = "WorkflowInput"
    shape: JsonSchema = Field(default_factory=JsonSchema)


class OutputSpec(BaseModel):
    type_name: str = "WorkflowOutput"
    shape: JsonSchema = Field(default_factory=JsonSchema)


class WorkflowDefinition(BaseModel):
    """Aggregate root of a workflow graph."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    start_step_id: str = ""
    max_iterations: int | None = Field(default=None, ge=1)
    steps: list[Step] = Field(default_factory=list)
    edge_groups: list[EdgeGroup] = Field(default_factory=list)
    variables: list[Variable] = Field(default_factory=list)
    input_spec: InputSpec = Field(default_factory=InputSpec)
    output_spec: OutputSpec = Field(default_factory=OutputSpec)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # ------------------------------------------------------------------
    # Structural queries
    # ------------------------------------------------------------------

    def get_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def has_step(self, step_id: str) -> bool:
        return self.get_step(step_id) is not None

    def steps_by_kind(self, kind: StepKind) -> list[Step]:
        return [step for step in self.steps if step.kind == kind]

    def edge_group_for(self, step_id: str) -> EdgeGroup | None:
        """Return the outgoing EdgeGroup owned by ``step_id``, if any."""
        for group in self.edge_groups:
            if group.source_step_id == step_id:
                return group
        return None

    def outgoing_edges(self, step_id: str) -> list[Edge]:
        group = self.edge_group_for(step_id)
        return list(group.edges) if group else []

    def incoming_edges(self, step_id: str) -> list[tuple[str, Edge]]:
        """Return ``(source_step_id, edge)`` pairs targeting ``step_id``."""
        incoming = []
        for group in self.edge_groups:
            for edge in group.edges:
                if edge.target_step_id == step_id:
                    incoming.append((group.source_step_id, edge))
        return incoming

    def get_variable(self, name: str) -> Variable | None:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None

    @property
    def edge_count(self) -> int:
        return sum(len(group.edges) for group in self.edge_groups)

    # ------------------------------------------------------------------
    # Copy-on-write mutations
    # ------------------------------------------------------------------

    def _copy(self) -> "WorkflowDefinition":
        updated = self.model_copy(deep=True)
        updated.updated_at = utcnow()
        return updated

    def add_step(self, step: Step) -> "WorkflowDefinition":
        if self.has_step(step.id):
            raise ValueError(f"Step already exists: {step.id}")
        updated = self._copy()
        updated.steps.append(step.model_copy(deep=True))
        return updated

    def update_step(self, step_id: str, **changes: Any) -> "WorkflowDefinition":
        updated = self._copy()
        for index, step in enumerate(updated.steps):
            if step.id == step_id:
                merged = step.model_dump()
                merged.update(changes)
                updated.steps[index] = Step.model_validate(merged)
                return updated
        raise KeyError(f"Step not found: {step_id}")

    def remove_step(self, step_id: str) -> "WorkflowDefinition":
        if not self.has_step(step_id):
            raise KeyError(f"Step not found: {step_id}")
        updated = self._copy()
        updated.steps = [s for s in updated.steps if s.id != step_id]

        groups = []
        for group in updated.edge_groups:
            if group.source_step_id == step_id:
                continue
            group.edges = [e for e in group.edges if e.target_step_id != step_id]
            if not group.edges:
                continue
            _reclassify(group)
            groups.append(group)
        updated.edge_groups = groups

        if updated.start_step_id == step_id:
            updated.start_step_id = ""
        return updated

    def connect(
        self,
        source_step_id: str,
        target_step_id: str,
        condition: str | None = None,
        label: str | None = None,
    ) -> "WorkflowDefinition":
        """Append an edge to the source's (single) outgoing group."""
        updated = self._copy()
        edge = Edge(target_step_id=target_step_id, condition=condition or None, label=label)
        group = updated.edge_group_for(source_step_id)
        if group is None:
            group = EdgeGroup(source_step_id=source_step_id)
            updated.edge_groups.append(group)
        group.edges.append(edge)
        _reclassify(group)
        return updated

    def disconnect(self, source_step_id: str, target_step_id: str) -> "WorkflowDefinition":
        updated = self._copy()
        group = updated.edge_group_for(source_step_id)
        if group is None:
            return updated
        group.edges = [e for e in group.edges if e.target_step_id != target_step_id]
        if group.edges:
            _reclassify(group)
        else:
            updated.edge_groups = [g for g in updated.edge_groups if g is not group]
        return updated

    def set_variable(self, variable: Variable) -> "WorkflowDefinition":
        updated = self._copy()
        for index, existing in enumerate(updated.variables):
            if existing.name == variable.name:
                updated.variables[index] = variable.model_copy(deep=True)
                return updated
        updated.variables.append(variable.model_copy(deep=True))
        return updated

    def remove_variable(self, name: str) -> "WorkflowDefinition":
        updated = self._copy()
        updated.variables = [v for v in updated.variables if v.name != name]
        return updated

    def with_start(self, step_id: str) -> "WorkflowDefinition":
        updated = self._copy()
        updated.start_step_id = step_id
        return updated

    def __repr__(self) -> str:
        return (
            f"WorkflowDefinition(id={self.id!r}, name={self.name!r}, "
            f"steps={len(self.steps)}, edge_groups={len(self.edge_groups)})"
        )


def _reclassify(group: EdgeGroup) -> None:
    # FanIn is a designer annotation that edge shape cannot express
    if group.type != EdgeGroupType.FAN_IN:
        group.type = EdgeGroupType.classify(group.edges)


__all__ = [
    "StepKind",
    "Position",
    "Step",
    "EdgeGroupType",
    "Edge",
    "EdgeGroup",
    "VariableType",
    "VariableScope",
    "Variable",
    "PropertySchema",
    "JsonSchema",
    "InputSpec",
    "OutputSpec",
    "WorkflowDefinition",
    "new_id",
    "utcnow",
]
