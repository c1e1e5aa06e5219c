"""
Canonical encoder: every definition is exported in the executors dialect.

The linear actions dialect cannot express fan-out or conditional edges,
so it is import-only.
"""

from typing import Any

import yaml

from flowcraft.codec.fields import encode_fields, encode_header, kind_name
from flowcraft.domain.models import EdgeGroupType, Step, WorkflowDefinition


def to_document(definition: WorkflowDefinition, include_positions: bool = True) -> dict[str, Any]:
    """Build the plain-data document for a definition."""
    document = encode_header(definition)
    document["executors"] = [
        _encode_step(step, definition, include_positions) for step in definition.steps
    ]
    return document


def export_workflow(definition: WorkflowDefinition, include_positions: bool = True) -> str:
    return yaml.safe_dump(
        to_document(definition, include_positions),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def _encode_step(
    step: Step, definition: WorkflowDefinition, include_positions: bool
) -> dict[str, Any]:
    entry: dict[str, Any] = {"id": step.id}
    type_name = kind_name(step.kind, step.config)
    if type_name:
        entry["type"] = type_name
    if step.name:
        entry["name"] = step.name
    if step.description:
        entry["description"] = step.description
    if include_positions:
        entry["position"] = {"x": step.position.x, "y": step.position.y}

    properties = encode_fields(step.kind, step.config)
    if properties:
        entry["properties"] = properties

    group = definition.edge_group_for(step.id)
    if group is not None and group.edges:
        edges = []
        for edge in group.edges:
            encoded: dict[str, Any] = {"id": edge.id, "targetId": edge.target_step_id}
            if edge.condition:
                encoded["condition"] = edge.condition
            if edge.label is not None:
                encoded["label"] = edge.label
            edges.append(encoded)
        entry["edges"] = edges
        # only annotations the edges themselves cannot imply are written out
        if group.type != EdgeGroupType.classify(group.edges):
            entry["edgeType"] = group.type.value

    return entry


__all__ = ["export_workflow", "to_document"]
