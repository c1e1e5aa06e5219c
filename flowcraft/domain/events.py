"""
Event protocol for streaming workflow execution.

Events are emitted in strict step order by the engine and can be framed
as Server-Sent Events for delivery to clients.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ExecutionEventType(str, Enum):
    """Event types for workflow streaming"""

    # Run-level events
    WORKFLOW_STARTED = "workflow-started"
    WORKFLOW_COMPLETED = "workflow-completed"
    WORKFLOW_FAILED = "workflow-failed"
    WORKFLOW_CANCELLED = "workflow-cancelled"

    # Step-level events
    STEP_STARTED = "step-started"
    STEP_COMPLETED = "step-completed"
    STEP_FAILED = "step-failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ExecutionEventType.WORKFLOW_COMPLETED,
            ExecutionEventType.WORKFLOW_FAILED,
            ExecutionEventType.WORKFLOW_CANCELLED,
        )


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionEvent(BaseModel):
    """
    Unified event for workflow streaming.

    Serialized with camelCase keys; fields left as None are omitted
    from the wire form.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: ExecutionEventType
    status: ExecutionStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    workflow_id: str | None = None
    run_id: str | None = None

    # Step-level context
    step_id: str | None = None
    step_name: str | None = None
    step_kind: str | None = None

    message: str | None = None
    data: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_sse(self) -> str:
        """
        Convert to Server-Sent Events format.

        Returns:
            str: SSE-formatted string ready to send to client
        """
        return f"data: {json.dumps(self.to_wire())}\n\n"


# ============================================================================
# Event Factory Functions
# ============================================================================


def create_workflow_started_event(
    workflow_id: str, run_id: str, user_input: str, workflow_name: str = ""
) -> ExecutionEvent:
    return ExecutionEvent(
        type=ExecutionEventType.WORKFLOW_STARTED,
        status=ExecutionStatus.RUNNING,
        workflow_id=workflow_id,
        run_id=run_id,
        message=f"Workflow '{workflow_name or workflow_id}' started",
        data={"input": user_input},
    )


def create_workflow_completed_event(
    workflow_id: str,
    run_id: str,
    output: str,
    termination_reason: str,
    executed_steps: int,
) -> ExecutionEvent:
    return ExecutionEvent(
        type=ExecutionEventType.WORKFLOW_COMPLETED,
        status=ExecutionStatus.COMPLETED,
        workflow_id=workflow_id,
        run_id=run_id,
        message=output,
        data={
            "output": output,
            "termination_reason": termination_reason,
            "executed_steps": executed_steps,
        },
    )


def create_workflow_failed_event(
    workflow_id: str,
    error: str,
    run_id: str | None = None,
    step_id: str | None = None,
) -> ExecutionEvent:
    return ExecutionEvent(
        type=ExecutionEventType.WORKFLOW_FAILED,
        status=ExecutionStatus.FAILED,
        workflow_id=workflow_id,
        run_id=run_id,
        step_id=step_id,
        message=error,
        data={"error": error},
    )


def create_workflow_cancelled_event(
    workflow_id: str, run_id: str, reason: str | None, executed_steps: int
) -> ExecutionEvent:
    return ExecutionEvent(
        type=ExecutionEventType.WORKFLOW_CANCELLED,
        status=ExecutionStatus.CANCELLED,
        workflow_id=workflow_id,
        run_id=run_id,
        message=reason or "Workflow cancelled",
        data={"executed_steps": executed_steps},
    )


def create_step_started_event(
    workflow_id: str, run_id: str, step_id: str, step_name: str, step_kind: str
) -> ExecutionEvent:
    return ExecutionEvent(
        type=ExecutionEventType.STEP_STARTED,
        status=ExecutionStatus.RUNNING,
        workflow_id=workflow_id,
        run_id=run_id,
        step_id=step_id,
        step_name=step_name,
        step_kind=step_kind,
    )


def create_step_completed_event(
    workflow_id: str,
    run_id: str,
    step_id: str,
    step_name: str,
    step_kind: str,
    output: str,
) -> ExecutionEvent:
    return ExecutionEvent(
        type=ExecutionEventType.STEP_COMPLETED,
        status=ExecutionStatus.COMPLETED,
        workflow_id=workflow_id,
        run_id=run_id,
        step_id=step_id,
        step_name=step_name,
        step_kind=step_kind,
        message=output,
        data={"output": output},
    )


def create_step_failed_event(
    workflow_id: str,
    run_id: str,
    step_id: str,
    step_name: str,
    step_kind: str,
    error: str,
) -> ExecutionEvent:
    return ExecutionEvent(
        type=ExecutionEventType.STEP_FAILED,
        status=ExecutionStatus.FAILED,
        workflow_id=workflow_id,
        run_id=run_id,
        step_id=step_id,
        step_name=step_name,
        step_kind=step_kind,
        message=error,
        data={"error": error},
    )


__all__ = [
    "ExecutionEventType",
    "ExecutionStatus",
    "ExecutionEvent",
    "create_workflow_started_event",
    "create_workflow_completed_event",
    "create_workflow_failed_event",
    "create_workflow_cancelled_event",
    "create_step_started_event",
    "create_step_completed_event",
    "create_step_failed_event",
]
