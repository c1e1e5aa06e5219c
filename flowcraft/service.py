"""
DeclarativeWorkflowService - application facade over the workflow core.

Wires the repository, codec, validator, cache and engine together:
- CRUD with a validation gate on save and cache eviction on change
- YAML import/export and preview
- Execution, either to completion or as an event stream
- The step kind catalog for editors
"""

from typing import Any, AsyncIterator, Mapping

from pydantic import BaseModel

from flowcraft.codec import export_workflow, import_workflow
from flowcraft.codec.fields import kind_name
from flowcraft.config import settings
from flowcraft.domain.events import ExecutionEvent, create_workflow_failed_event
from flowcraft.domain.models import StepKind, WorkflowDefinition, utcnow
from flowcraft.domain.run import ExecutionResult
from flowcraft.exceptions import (
    InvalidWorkflowInputError,
    InvalidWorkflowStateError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)
from flowcraft.llm.base import AgentInvoker
from flowcraft.storage import InMemoryWorkflowRepository, WorkflowRepository
from flowcraft.utils.logging import get_logger
from flowcraft.workflow.cache import WorkflowCache
from flowcraft.workflow.control import AbortSignal
from flowcraft.workflow.engine import WorkflowEngine
from flowcraft.workflow.validator import ValidationResult, check_inputs, validate_workflow

logger = get_logger(__name__)


STEP_CATEGORIES: dict[StepKind, str] = {
    StepKind.AGENT_INVOKE: "agents",
    StepKind.CONDITION_GROUP: "controlFlow",
    StepKind.FOREACH: "controlFlow",
    StepKind.GOTO: "controlFlow",
    StepKind.END_WORKFLOW: "controlFlow",
    StepKind.END_CONVERSATION: "controlFlow",
    StepKind.SET_VARIABLE: "stateManagement",
    StepKind.RESET_VARIABLE: "stateManagement",
    StepKind.CLEAR_VARIABLES: "stateManagement",
    StepKind.SEND_MESSAGE: "messages",
    StepKind.CREATE_CONVERSATION: "conversation",
    StepKind.DELETE_CONVERSATION: "conversation",
    StepKind.COPY_MESSAGES: "conversation",
    StepKind.ASK_QUESTION: "humanInput",
}

STEP_DESCRIPTIONS: dict[StepKind, str] = {
    StepKind.AGENT_INVOKE: "Invoke an agent with resolved instructions",
    StepKind.CONDITION_GROUP: "Branch on the first matching condition",
    StepKind.FOREACH: "Iterate over a collection",
    StepKind.GOTO: "Jump to another step",
    StepKind.END_WORKFLOW: "End the current workflow",
    StepKind.END_CONVERSATION: "End the whole conversation",
    StepKind.SET_VARIABLE: "Set a single variable",
    StepKind.RESET_VARIABLE: "Reset a variable",
    StepKind.CLEAR_VARIABLES: "Clear all variables",
    StepKind.SEND_MESSAGE: "Send a message to the user",
    StepKind.CREATE_CONVERSATION: "Create a new conversation",
    StepKind.DELETE_CONVERSATION: "Delete a conversation",
    StepKind.COPY_MESSAGES: "Copy messages between conversations",
    StepKind.ASK_QUESTION: "Ask the user a question",
}


class StepKindInfo(BaseModel):
    kind: StepKind
    name: str
    category: str
    description: str


class WorkflowPreview(BaseModel):
    yaml: str
    validation: ValidationResult
    step_count: int
    edge_count: int
    variable_count: int


class DeclarativeWorkflowService:
    """
    Facade used by outer surfaces (CLI, HTTP adapters).

    The cache is shared with the engine by reference; update and delete
    evict the affected workflow. An engine passed in without a cache gets
    a fresh one.
    """

    def __init__(
        self,
        repository: WorkflowRepository | None = None,
        *,
        engine: WorkflowEngine | None = None,
        invoker: AgentInvoker | None = None,
        validate_on_save: bool | None = None,
    ):
        self.repository = repository or InMemoryWorkflowRepository()
        self.engine = engine or WorkflowEngine(invoker)
        if self.engine.cache is None:
            self.engine.cache = WorkflowCache()
        self.validate_on_save = (
            settings.validate_on_save if validate_on_save is None else validate_on_save
        )

    @property
    def cache(self) -> WorkflowCache:
        return self.engine.cache

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def list_workflows(self, limit: int = 100, offset: int = 0) -> list[WorkflowDefinition]:
        return await self.repository.list(limit=limit, offset=offset)

    async def get_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        return await self.repository.get(workflow_id)

    async def require_workflow(self, workflow_id: str) -> WorkflowDefinition:
        definition = await self.repository.get(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        return definition

    async def create_workflow(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        self._gate(definition)
        await self.repository.save(definition)
        logger.info("workflow_created", workflow_id=definition.id, name=definition.name)
        return definition

    async def update_workflow(
        self, workflow_id: str, definition: WorkflowDefinition
    ) -> WorkflowDefinition:
        existing = await self.require_workflow(workflow_id)
        updated = definition.model_copy(
            update={"id": workflow_id, "created_at": existing.created_at, "updated_at": utcnow()}
        )
        self._gate(updated)
        await self.repository.save(updated)
        self.cache.evict(workflow_id)
        logger.info("workflow_updated", workflow_id=workflow_id)
        return updated

    async def delete_workflow(self, workflow_id: str) -> bool:
        deleted = await self.repository.delete(workflow_id)
        self.cache.evict(workflow_id)
        if deleted:
            logger.info("workflow_deleted", workflow_id=workflow_id)
        return deleted

    def _gate(self, definition: WorkflowDefinition) -> None:
        if not self.validate_on_save:
            return
        result = validate_workflow(definition)
        if not result.is_valid:
            logger.warning(
                "workflow_rejected",
                workflow_id=definition.id,
                errors=[issue.type.value for issue in result.errors],
            )
            raise WorkflowValidationError(result)

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    async def import_yaml(self, text: str, save: bool = True) -> WorkflowDefinition:
        definition = import_workflow(text)
        if save:
            await self.create_workflow(definition)
        return definition

    async def export_yaml(self, workflow_id: str) -> str:
        return export_workflow(await self.require_workflow(workflow_id))

    def validate(self, definition: WorkflowDefinition) -> ValidationResult:
        return validate_workflow(definition)

    def preview_yaml(self, definition: WorkflowDefinition) -> WorkflowPreview:
        return WorkflowPreview(
            yaml=export_workflow(definition),
            validation=validate_workflow(definition),
            step_count=len(definition.steps),
            edge_count=definition.edge_count,
            variable_count=len(definition.variables),
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        workflow_id: str,
        user_input: str = "",
        *,
        parameters: Mapping[str, Any] | None = None,
        abort_signal: AbortSignal | None = None,
    ) -> ExecutionResult:
        """
        Run a stored workflow to completion.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist
            InvalidWorkflowInputError: If parameters violate the input shape
            InvalidWorkflowStateError: If the start step cannot be resolved
        """
        definition = await self.require_workflow(workflow_id)
        self._check_inputs(definition, parameters)
        return await self.engine.run(
            definition, user_input, parameters=parameters, abort_signal=abort_signal
        )

    async def execute_stream(
        self,
        workflow_id: str,
        user_input: str = "",
        *,
        parameters: Mapping[str, Any] | None = None,
        abort_signal: AbortSignal | None = None,
    ) -> AsyncIterator[ExecutionEvent]:
        """Stream a stored workflow's events; run-level errors become a failed event."""
        definition = await self.repository.get(workflow_id)
        if definition is None:
            logger.warning("workflow_not_found", workflow_id=workflow_id)
            yield create_workflow_failed_event(workflow_id, f"Workflow not found: {workflow_id}")
            return

        try:
            self._check_inputs(definition, parameters)
            async for event in self.engine.stream(
                definition, user_input, parameters=parameters, abort_signal=abort_signal
            ):
                yield event
        except (InvalidWorkflowInputError, InvalidWorkflowStateError) as e:
            logger.warning("workflow_rejected", workflow_id=workflow_id, error=str(e))
            yield create_workflow_failed_event(workflow_id, str(e))

    @staticmethod
    def _check_inputs(
        definition: WorkflowDefinition, parameters: Mapping[str, Any] | None
    ) -> None:
        issues = check_inputs(definition, parameters or {})
        if issues:
            raise InvalidWorkflowInputError(issues)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @staticmethod
    def list_step_kinds() -> list[StepKindInfo]:
        return [
            StepKindInfo(
                kind=kind,
                name=kind_name(kind, {}),
                category=STEP_CATEGORIES[kind],
                description=STEP_DESCRIPTIONS[kind],
            )
            for kind in StepKind
            if kind != StepKind.UNKNOWN
        ]


__all__ = [
    "DeclarativeWorkflowService",
    "StepKindInfo",
    "WorkflowPreview",
]
