from abc import ABC, abstractmethod

from flowcraft.domain.models import WorkflowDefinition


class WorkflowRepository(ABC):
    """
    Workflow definition repository interface.

    Durable backends live outside this package; only the in-memory
    implementation ships here.
    """

    @abstractmethod
    async def get(self, workflow_id: str) -> WorkflowDefinition | None:
        """Get a definition by id."""
        pass

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> list[WorkflowDefinition]:
        """List definitions, most recently updated first."""
        pass

    @abstractmethod
    async def save(self, definition: WorkflowDefinition) -> None:
        """Insert or replace a definition."""
        pass

    @abstractmethod
    async def delete(self, workflow_id: str) -> bool:
        """Delete a definition. Returns True if it existed."""
        pass


class InMemoryWorkflowRepository(WorkflowRepository):
    """
    In-memory implementation (for tests and development)
    """

    def __init__(self):
        self.workflows: dict[str, WorkflowDefinition] = {}

    async def get(self, workflow_id: str) -> WorkflowDefinition | None:
        return self.workflows.get(workflow_id)

    async def list(self, limit: int = 100, offset: int = 0) -> list[WorkflowDefinition]:
        workflows = sorted(self.workflows.values(), key=lambda w: w.updated_at, reverse=True)
        return workflows[offset : offset + limit]

    async def save(self, definition: WorkflowDefinition) -> None:
        self.workflows[definition.id] = definition

    async def delete(self, workflow_id: str) -> bool:
        return self.workflows.pop(workflow_id, None) is not None
