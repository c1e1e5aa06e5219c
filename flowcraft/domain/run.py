from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .events import ExecutionStatus
from .models import StepKind


class TerminationReason(str, Enum):
    END_STEP = "end_step"
    NO_NEXT_STEP = "no_next_step"
    STEP_NOT_FOUND = "step_not_found"
    MAX_ITERATIONS = "max_iterations"
    CANCELLED = "cancelled"
    STEP_FAILED = "step_failed"  # only under the abort failure policy


class StepRecord(BaseModel):
    """Outcome of one executed step."""

    step_id: str
    step_name: str = ""
    kind: StepKind
    status: ExecutionStatus
    output: str = ""
    error: str | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED


class ExecutionResult(BaseModel):
    run_id: str
    workflow_id: str
    status: ExecutionStatus
    output: str = ""
    termination_reason: TerminationReason | None = None
    steps: list[StepRecord] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None

    @property
    def executed_count(self) -> int:
        return len(self.steps)

    @property
    def failed_steps(self) -> list[StepRecord]:
        return [record for record in self.steps if record.status == ExecutionStatus.FAILED]


__all__ = ["TerminationReason", "StepRecord", "ExecutionResult"]
