"""
WorkflowCache - compiled lookup tables for definitions being executed.

The cache is an explicit object handed to the engine by reference; an
engine without one compiles per run. An entry is reused only for the very
definition object it was compiled from, so a copy with the same id and
timestamp but different steps is always recompiled. Owners of the
definitions (the service) evict entries on update and delete, and the
least recently used entry is dropped once the cache is full.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from flowcraft.config import settings
from flowcraft.domain.models import Edge, Step, WorkflowDefinition
from flowcraft.utils.logging import get_logger

logger = get_logger(__name__)

EvictionCallback = Callable[[str], None]


@dataclass
class CompiledWorkflow:
    """A definition plus O(1) step and outgoing-edge lookups."""

    definition: WorkflowDefinition
    steps: dict[str, Step] = field(default_factory=dict)
    outgoing: dict[str, list[Edge]] = field(default_factory=dict)

    @classmethod
    def compile(cls, definition: WorkflowDefinition) -> "CompiledWorkflow":
        steps = {}
        for step in definition.steps:
            # first declaration wins, matching WorkflowDefinition.get_step
            steps.setdefault(step.id, step)
        outgoing = {}
        for group in definition.edge_groups:
            outgoing.setdefault(group.source_step_id, list(group.edges))
        return cls(definition=definition, steps=steps, outgoing=outgoing)

    @property
    def workflow_id(self) -> str:
        return self.definition.id

    def get_step(self, step_id: str) -> Step | None:
        return self.steps.get(step_id)

    def outgoing_edges(self, step_id: str) -> list[Edge]:
        return self.outgoing.get(step_id, [])


class WorkflowCache:
    """
    Bounded cache of compiled workflows keyed by workflow id.

    Examples:
        >>> cache = WorkflowCache(max_entries=32)
        >>> compiled = cache.get_or_compile(definition)
        >>> cache.evict(definition.id)
    """

    def __init__(self, max_entries: int | None = None):
        self.max_entries = max_entries or settings.workflow_cache_size
        self._entries: OrderedDict[str, CompiledWorkflow] = OrderedDict()
        self._on_evict: list[EvictionCallback] = []

    def on_evict(self, callback: EvictionCallback) -> None:
        """Register a callback invoked with the workflow id on eviction."""
        self._on_evict.append(callback)

    def get(self, workflow_id: str) -> CompiledWorkflow | None:
        return self._entries.get(workflow_id)

    def get_or_compile(self, definition: WorkflowDefinition) -> CompiledWorkflow:
        entry = self._entries.get(definition.id)
        if entry is not None and entry.definition is definition:
            self._entries.move_to_end(definition.id)
            return entry

        if entry is not None:
            logger.debug("workflow_cache_stale", workflow_id=definition.id)

        compiled = CompiledWorkflow.compile(definition)
        self._entries[definition.id] = compiled
        self._entries.move_to_end(definition.id)
        logger.debug("workflow_compiled", workflow_id=definition.id, steps=len(compiled.steps))

        while len(self._entries) > self.max_entries:
            self.evict(next(iter(self._entries)))
        return compiled

    def evict(self, workflow_id: str) -> bool:
        """Drop a workflow's entry. Returns True if one was cached."""
        removed = self._entries.pop(workflow_id, None) is not None
        if removed:
            logger.debug("workflow_cache_evicted", workflow_id=workflow_id)
            for callback in self._on_evict:
                callback(workflow_id)
        return removed

    def clear(self) -> None:
        for workflow_id in list(self._entries):
            self.evict(workflow_id)

    def __contains__(self, workflow_id: str) -> bool:
        return workflow_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CompiledWorkflow", "WorkflowCache"]
