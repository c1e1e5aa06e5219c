"""
Decoder for the linear "trigger/actions" dialect.

    kind: Workflow
    trigger:
      kind: OnConversationStart
      id: my_workflow
      actions:
        - kind: SetVariable
          id: set_topic
          variable: Local.topic
          value: =System.LastMessage.Text
        - kind: InvokeAzureAgent
          id: writer
          agent: {name: Writer, instructions: "Write about ${Local_topic}"}

Actions form a chain: each action becomes a step linked to the next by a
Single edge group, and the first action is the start step.
"""

from typing import Any

from flowcraft.codec.fields import build_definition, decode_fields, decode_header, kind_from_name
from flowcraft.codec.layout import linear_position
from flowcraft.domain.models import (
    Edge,
    EdgeGroup,
    EdgeGroupType,
    Step,
    StepKind,
    WorkflowDefinition,
    new_id,
)
from flowcraft.exceptions import WorkflowParseError
from flowcraft.utils.logging import get_logger

logger = get_logger(__name__)

# Agent settings nested under "agent" in this dialect
AGENT_KEYS = (("name", "agentId"), ("instructions", "instructions"), ("model", "model"),
              ("temperature", "temperature"))


def decode_actions(document: dict[str, Any]) -> WorkflowDefinition:
    trigger = document.get("trigger")
    if not isinstance(trigger, dict):
        raise WorkflowParseError("'trigger' must be a mapping")
    actions = trigger.get("actions")
    if actions is None:
        actions = []
    if not isinstance(actions, list):
        raise WorkflowParseError("'trigger.actions' must be a list")

    header = decode_header(document)
    if not header["name"] and trigger.get("id"):
        header["name"] = str(trigger["id"])
    if trigger.get("kind"):
        header["metadata"].setdefault("triggerKind", trigger["kind"])

    steps: list[Step] = []
    groups: list[EdgeGroup] = []
    for index, action in enumerate(actions):
        if not isinstance(action, dict):
            raise WorkflowParseError(f"Action #{index + 1} must be a mapping")
        step = _decode_action(action)
        step.position = linear_position(index)
        if steps:
            groups.append(
                EdgeGroup(
                    type=EdgeGroupType.SINGLE,
                    source_step_id=steps[-1].id,
                    edges=[Edge(target_step_id=step.id)],
                )
            )
        steps.append(step)

    definition = build_definition(
        header,
        start_step_id=steps[0].id if steps else "",
        steps=steps,
        edge_groups=groups,
    )
    logger.info(
        "workflow_imported",
        dialect="actions",
        workflow_id=definition.id,
        steps=len(definition.steps),
    )
    return definition


def _decode_action(action: dict[str, Any]) -> Step:
    raw_kind = action.get("kind")
    kind = kind_from_name(raw_kind)
    step_id = str(action.get("id") or new_id())
    fields = {k: v for k, v in action.items() if k not in ("kind", "id", "displayName")}

    if kind == StepKind.UNKNOWN:
        logger.warning("unknown_step_kind", step_id=step_id, kind=raw_kind)
    elif kind == StepKind.AGENT_INVOKE and isinstance(fields.get("agent"), dict):
        agent = fields.pop("agent")
        for agent_key, field_key in AGENT_KEYS:
            if agent_key in agent:
                fields[field_key] = agent[agent_key]

    return Step(
        id=step_id,
        kind=kind,
        name=str(action.get("displayName") or ""),
        config=decode_fields(kind, "" if raw_kind is None else str(raw_kind), fields),
    )


__all__ = ["decode_actions"]
