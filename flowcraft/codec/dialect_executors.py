"""
Decoder for the graph-native "executors" dialect.

    kind: Workflow
    metadata: {name: ..., startExecutorId: a}
    executors:            # "steps" is accepted as well
      - id: a
        type: InvokeAzureAgent
        properties: {...}
        edges:
          - targetId: b
            condition: "=Local.ok == true"
          - c             # bare target id
      - id: b
        ...

Each entry declares its own outgoing edges; the decoder rebuilds
adjacency, picks the start step and classifies each edge group.
"""

from typing import Any

from pydantic import ValidationError

from flowcraft.codec.fields import build_definition, decode_fields, decode_header, kind_from_name
from flowcraft.codec.layout import compute_levels, grid_positions
from flowcraft.domain.models import (
    Edge,
    EdgeGroup,
    EdgeGroupType,
    Position,
    Step,
    StepKind,
    WorkflowDefinition,
    new_id,
)
from flowcraft.exceptions import WorkflowParseError
from flowcraft.utils.logging import get_logger

logger = get_logger(__name__)

# Entry keys the decoder consumes itself
STRUCTURAL_KEYS = frozenset(
    {"id", "type", "kind", "name", "description", "position", "edges", "edgeType", "properties"}
)


def decode_executors(document: dict[str, Any]) -> WorkflowDefinition:
    entries = document.get("executors")
    if entries is None:
        entries = document.get("steps")
    if not isinstance(entries, list):
        raise WorkflowParseError("'executors' must be a list")

    header = decode_header(document)

    # Pass 1: adjacency from declared edges, in declaration order
    declared: list[dict[str, Any]] = []
    outgoing: dict[str, list[Edge]] = {}
    incoming: dict[str, int] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise WorkflowParseError("Each executor must be a mapping")
        step_id = entry.get("id")
        if step_id is None or str(step_id) == "":
            raise WorkflowParseError("Executor is missing an 'id'")
        step_id = str(step_id)
        declared.append(entry)
        incoming.setdefault(step_id, 0)
        edges = outgoing.setdefault(step_id, [])
        for raw_edge in entry.get("edges") or []:
            edge = _decode_edge(raw_edge, step_id)
            edges.append(edge)
            incoming[edge.target_step_id] = incoming.get(edge.target_step_id, 0) + 1

    # Pass 2: steps
    steps = []
    explicit_positions: dict[str, Position] = {}
    for entry in declared:
        step = _decode_step(entry)
        steps.append(step)
        if isinstance(entry.get("position"), dict):
            try:
                explicit_positions[step.id] = Position.model_validate(entry["position"])
            except ValidationError as e:
                raise WorkflowParseError(f"Invalid position for '{step.id}'", str(e)) from e

    step_ids = [step.id for step in steps]
    start_candidates = [step_id for step_id in step_ids if incoming.get(step_id, 0) == 0]
    start_step_id = header.get("start_step_id")
    if not start_step_id or str(start_step_id) not in step_ids:
        start_step_id = start_candidates[0] if start_candidates else ""

    levels = compute_levels(
        start_candidates,
        {source: [e.target_step_id for e in edges] for source, edges in outgoing.items()},
    )
    layout = grid_positions(step_ids, levels)
    for step in steps:
        step.position = explicit_positions.get(step.id, layout[step.id])

    # Pass 3: one edge group per source with edges
    groups = []
    for entry in declared:
        source_id = str(entry["id"])
        edges = outgoing.get(source_id) or []
        if not edges:
            continue
        group_type = _group_type(entry.get("edgeType"), edges)
        groups.append(EdgeGroup(type=group_type, source_step_id=source_id, edges=edges))
        # a repeated id would otherwise emit the same group twice
        outgoing[source_id] = []

    definition = build_definition(
        header,
        start_step_id=str(start_step_id),
        steps=steps,
        edge_groups=groups,
    )
    logger.info(
        "workflow_imported",
        dialect="executors",
        workflow_id=definition.id,
        steps=len(definition.steps),
        edge_groups=len(definition.edge_groups),
    )
    return definition


def _decode_edge(raw_edge: Any, source_id: str) -> Edge:
    if isinstance(raw_edge, str):
        return Edge(target_step_id=raw_edge)
    if not isinstance(raw_edge, dict):
        raise WorkflowParseError(f"Invalid edge on '{source_id}'")
    target = raw_edge.get("targetId") or raw_edge.get("target")
    if not target:
        raise WorkflowParseError(f"Edge on '{source_id}' is missing 'targetId'")
    condition = raw_edge.get("condition")
    label = raw_edge.get("label")
    return Edge(
        id=str(raw_edge.get("id") or new_id()),
        target_step_id=str(target),
        condition=str(condition) if condition not in (None, "") else None,
        label=str(label) if label is not None else None,
    )


def _decode_step(entry: dict[str, Any]) -> Step:
    raw_kind = entry.get("type", entry.get("kind"))
    kind = kind_from_name(raw_kind)
    properties = entry.get("properties") or {}
    if not isinstance(properties, dict):
        raise WorkflowParseError(f"'properties' of '{entry['id']}' must be a mapping")
    if kind == StepKind.UNKNOWN:
        logger.warning("unknown_step_kind", step_id=entry["id"], kind=raw_kind)
        # keep sibling keys too; properties win on a clash
        extras = {k: v for k, v in entry.items() if k not in STRUCTURAL_KEYS}
        properties = {**extras, **properties}
    return Step(
        id=str(entry["id"]),
        kind=kind,
        name=str(entry.get("name") or ""),
        description=str(entry.get("description") or ""),
        config=decode_fields(kind, "" if raw_kind is None else str(raw_kind), properties),
    )


def _group_type(explicit: Any, edges: list[Edge]) -> EdgeGroupType:
    if explicit:
        try:
            return EdgeGroupType(explicit)
        except ValueError as e:
            raise WorkflowParseError(f"Unknown edge group type: {explicit}") from e
    return EdgeGroupType.classify(edges)


__all__ = ["decode_executors"]
