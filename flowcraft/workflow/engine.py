"""
WorkflowEngine - step-dispatch interpreter for workflow definitions.

Walks steps from the declared start, dispatches each through the handler
table, applies variable updates and computes the next step until an end
step, a dead end, the iteration cap or cancellation.

Streaming Architecture:
- stream() is an async generator of ExecutionEvent, suspended at each yield
- run() consumes stream() into an ExecutionResult
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Mapping
from uuid import uuid4

from flowcraft.config import settings
from flowcraft.domain.events import (
    ExecutionEvent,
    ExecutionStatus,
    create_step_completed_event,
    create_step_failed_event,
    create_step_started_event,
    create_workflow_cancelled_event,
    create_workflow_completed_event,
    create_workflow_failed_event,
    create_workflow_started_event,
)
from flowcraft.domain.models import Edge, Step, StepKind, WorkflowDefinition
from flowcraft.domain.run import ExecutionResult, StepRecord, TerminationReason
from flowcraft.exceptions import InvalidWorkflowStateError
from flowcraft.llm.base import AgentInvoker
from flowcraft.utils.logging import get_logger
from flowcraft.workflow.cache import CompiledWorkflow, WorkflowCache
from flowcraft.workflow.condition import ConditionEvaluator
from flowcraft.workflow.control import AbortSignal
from flowcraft.workflow.handlers import HandlerRegistry, StepContext, StepOutcome
from flowcraft.workflow.state import VariableContext

logger = get_logger(__name__)

DEFAULT_OUTPUT = "Workflow completed"


class FailurePolicy(str, Enum):
    """What the engine does after a step fails."""

    CONTINUE = "continue"  # record the failure, compute next step as if it succeeded
    ABORT = "abort"  # emit workflow_failed and stop


def resolve_next_step(
    step: Step, edges: list[Edge], variables: Mapping[str, Any]
) -> str | None:
    """
    Pick the id of the step to run after ``step``.

    - goto: its configured target, unconditionally
    - condition_group with several edges: first edge whose condition is
      empty or true, else the configured default target
    - condition_group with at most one edge and configured conditions:
      first matching condition's target, else default, else the edge
    - anything else: the first outgoing edge
    """
    if step.kind == StepKind.GOTO:
        return step.config.get("target_step_id") or None

    if step.kind == StepKind.CONDITION_GROUP:
        default_target = step.config.get("default_target") or None

        if len(edges) > 1:
            for edge in edges:
                if not edge.condition or ConditionEvaluator.evaluate(edge.condition, variables):
                    return edge.target_step_id
            return default_target

        conditions = step.config.get("conditions") or []
        if conditions:
            for condition in conditions:
                target = condition.get("target_step_id")
                if target and ConditionEvaluator.evaluate(condition.get("expression"), variables):
                    return target
            if default_target:
                return default_target

    return edges[0].target_step_id if edges else None


@dataclass
class _RunTracker:
    """Bookkeeping shared between stream() and run()."""

    run_id: str
    variables: VariableContext | None = None
    records: list[StepRecord] = field(default_factory=list)
    output: str = ""
    reason: TerminationReason | None = None
    status: ExecutionStatus = ExecutionStatus.PENDING
    error: str | None = None


class WorkflowEngine:
    """
    Workflow interpreter.

    Responsibilities:
    1. Seed a per-run variable context
    2. Dispatch steps through the HandlerRegistry
    3. Resolve branching and enforce the iteration cap
    4. Emit an ordered event stream

    The engine never mutates a WorkflowDefinition; concurrent runs of the
    same definition each own their variables.
    """

    def __init__(
        self,
        invoker: AgentInvoker | None = None,
        *,
        cache: WorkflowCache | None = None,
        handlers: HandlerRegistry | None = None,
        failure_policy: FailurePolicy | str | None = None,
        max_iterations: int | None = None,
    ):
        self.invoker = invoker
        self.cache = cache
        self.handlers = handlers or HandlerRegistry()
        self.failure_policy = FailurePolicy(failure_policy or settings.failure_policy)
        if max_iterations is not None and max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations

    def iteration_limit(self, definition: WorkflowDefinition) -> int:
        if self.max_iterations is not None:
            return self.max_iterations
        if definition.max_iterations is not None:
            return definition.max_iterations
        return settings.default_max_iterations

    def compile(self, definition: WorkflowDefinition) -> CompiledWorkflow:
        """Compiled lookups for a run; uncached when the engine has no cache."""
        if self.cache is None:
            return CompiledWorkflow.compile(definition)
        return self.cache.get_or_compile(definition)

    async def run(
        self,
        definition: WorkflowDefinition,
        user_input: str = "",
        *,
        parameters: Mapping[str, Any] | None = None,
        abort_signal: AbortSignal | None = None,
        run_id: str | None = None,
    ) -> ExecutionResult:
        """
        Execute a workflow to completion.

        Raises:
            InvalidWorkflowStateError: If the start step cannot be resolved
        """
        tracker = _RunTracker(run_id=run_id or str(uuid4()))
        async for _ in self._execute(definition, user_input, parameters, abort_signal, tracker):
            pass

        return ExecutionResult(
            run_id=tracker.run_id,
            workflow_id=definition.id,
            status=tracker.status,
            output=tracker.output,
            termination_reason=tracker.reason,
            steps=tracker.records,
            variables=tracker.variables.snapshot() if tracker.variables else {},
            error=tracker.error,
        )

    async def stream(
        self,
        definition: WorkflowDefinition,
        user_input: str = "",
        *,
        parameters: Mapping[str, Any] | None = None,
        abort_signal: AbortSignal | None = None,
        run_id: str | None = None,
    ) -> AsyncIterator[ExecutionEvent]:
        """
        Execute a workflow, yielding events as steps run.

        Raises:
            InvalidWorkflowStateError: If the start step cannot be resolved;
                raised on the first pull, before any event
        """
        tracker = _RunTracker(run_id=run_id or str(uuid4()))
        async for event in self._execute(
            definition, user_input, parameters, abort_signal, tracker
        ):
            yield event

    async def _execute(
        self,
        definition: WorkflowDefinition,
        user_input: str,
        parameters: Mapping[str, Any] | None,
        abort_signal: AbortSignal | None,
        tracker: _RunTracker,
    ) -> AsyncIterator[ExecutionEvent]:
        compiled = self.compile(definition)
        start_step_id = definition.start_step_id
        if not start_step_id:
            raise InvalidWorkflowStateError(f"Workflow '{definition.id}' has no start step")
        if compiled.get_step(start_step_id) is None:
            raise InvalidWorkflowStateError(
                f"Start step '{start_step_id}' not found in workflow '{definition.id}'"
            )

        workflow_id = definition.id
        run_id = tracker.run_id
        variables = VariableContext.seed(definition, user_input, parameters)
        tracker.variables = variables
        tracker.status = ExecutionStatus.RUNNING
        max_iterations = self.iteration_limit(definition)

        logger.info(
            "workflow_started",
            workflow_id=workflow_id,
            run_id=run_id,
            start_step_id=start_step_id,
            max_iterations=max_iterations,
        )
        yield create_workflow_started_event(workflow_id, run_id, user_input, definition.name)

        current_step_id: str | None = start_step_id
        executed_count = 0
        last_output = ""
        end_output: str | None = None

        while True:
            if not current_step_id:
                tracker.reason = TerminationReason.NO_NEXT_STEP
                break
            if executed_count >= max_iterations:
                tracker.reason = TerminationReason.MAX_ITERATIONS
                logger.warning(
                    "workflow_max_iterations",
                    workflow_id=workflow_id,
                    run_id=run_id,
                    max_iterations=max_iterations,
                )
                break
            if abort_signal is not None and abort_signal.is_aborted():
                tracker.reason = TerminationReason.CANCELLED
                tracker.status = ExecutionStatus.CANCELLED
                tracker.output = last_output
                logger.info(
                    "workflow_cancelled",
                    workflow_id=workflow_id,
                    run_id=run_id,
                    reason=abort_signal.reason,
                )
                yield create_workflow_cancelled_event(
                    workflow_id, run_id, abort_signal.reason, executed_count
                )
                return

            step = compiled.get_step(current_step_id)
            if step is None:
                tracker.reason = TerminationReason.STEP_NOT_FOUND
                logger.warning("step_not_found", workflow_id=workflow_id, step_id=current_step_id)
                break

            record = StepRecord(
                step_id=step.id,
                step_name=step.display_name,
                kind=step.kind,
                status=ExecutionStatus.RUNNING,
            )
            tracker.records.append(record)
            executed_count += 1
            yield create_step_started_event(
                workflow_id, run_id, step.id, step.display_name, step.kind.value
            )

            handler = self.handlers.get(step.kind)
            context = StepContext(
                variables=variables,
                invoker=self.invoker,
                workflow_id=workflow_id,
                run_id=run_id,
            )
            try:
                outcome = await handler(step, context)
            except Exception as e:
                error = str(e) or type(e).__name__
                record.status = ExecutionStatus.FAILED
                record.error = error
                record.finished_at = datetime.now(timezone.utc)
                logger.warning(
                    "step_failed",
                    workflow_id=workflow_id,
                    run_id=run_id,
                    step_id=step.id,
                    error=error,
                    error_type=type(e).__name__,
                )
                yield create_step_failed_event(
                    workflow_id, run_id, step.id, step.display_name, step.kind.value, error
                )
                if self.failure_policy == FailurePolicy.ABORT:
                    tracker.reason = TerminationReason.STEP_FAILED
                    tracker.status = ExecutionStatus.FAILED
                    tracker.error = error
                    tracker.output = last_output
                    logger.error(
                        "workflow_failed",
                        workflow_id=workflow_id,
                        run_id=run_id,
                        step_id=step.id,
                        error=error,
                    )
                    yield create_workflow_failed_event(workflow_id, error, run_id, step.id)
                    return
            else:
                self._apply(outcome, variables)
                record.status = ExecutionStatus.COMPLETED
                record.output = outcome.output
                record.finished_at = datetime.now(timezone.utc)
                if outcome.output:
                    last_output = outcome.output
                logger.debug(
                    "step_completed",
                    workflow_id=workflow_id,
                    step_id=step.id,
                    kind=step.kind.value,
                )
                yield create_step_completed_event(
                    workflow_id,
                    run_id,
                    step.id,
                    step.display_name,
                    step.kind.value,
                    outcome.output,
                )
                if outcome.terminate:
                    end_output = outcome.output
                    tracker.reason = TerminationReason.END_STEP
                    break

            current_step_id = resolve_next_step(
                step, compiled.outgoing_edges(step.id), variables.snapshot()
            )

        output = end_output if end_output is not None else (last_output or DEFAULT_OUTPUT)
        tracker.output = output
        tracker.status = ExecutionStatus.COMPLETED

        logger.info(
            "workflow_completed",
            workflow_id=workflow_id,
            run_id=run_id,
            executed_steps=executed_count,
            termination_reason=tracker.reason.value,
        )
        yield create_workflow_completed_event(
            workflow_id, run_id, output, tracker.reason.value, executed_count
        )

    @staticmethod
    def _apply(outcome: StepOutcome, variables: VariableContext) -> None:
        if outcome.clear_variables:
            variables.clear()
        for name in outcome.removals:
            variables.remove(name)
        variables.update(outcome.updates)


async def sse_stream(events: AsyncIterator[ExecutionEvent]) -> AsyncIterator[str]:
    """Frame an event stream as Server-Sent Events lines."""
    async for event in events:
        yield event.to_sse()


__all__ = ["WorkflowEngine", "FailurePolicy", "resolve_next_step", "sse_stream"]
