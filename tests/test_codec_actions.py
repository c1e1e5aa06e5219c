"""
Tests for importing the linear trigger/actions dialect.
"""

import pytest

from flowcraft.codec import import_workflow
from flowcraft.domain.models import EdgeGroupType, StepKind
from flowcraft.exceptions import WorkflowParseError

ACTIONS_YAML = """
kind: Workflow
trigger:
  kind: OnConversationStart
  id: writer_flow
  actions:
    - kind: SetVariable
      id: set_topic
      variable: Local.topic
      value: =System.LastMessage.Text
    - kind: InvokeAzureAgent
      id: writer
      displayName: Writer
      agent:
        name: WriterAgent
        instructions: "Write about ${Local_topic}"
        model: gpt-4o-mini
    - kind: SendActivity
      id: reply
      activity: "=agent_response"
    - kind: EndConversation
      id: stop
"""


def test_actions_form_a_linear_chain():
    definition = import_workflow(ACTIONS_YAML)

    assert [s.id for s in definition.steps] == ["set_topic", "writer", "reply", "stop"]
    assert definition.start_step_id == "set_topic"
    assert [(g.source_step_id, g.edges[0].target_step_id) for g in definition.edge_groups] == [
        ("set_topic", "writer"),
        ("writer", "reply"),
        ("reply", "stop"),
    ]
    assert all(g.type == EdgeGroupType.SINGLE for g in definition.edge_groups)


def test_trigger_supplies_name_and_metadata():
    definition = import_workflow(ACTIONS_YAML)

    assert definition.name == "writer_flow"
    assert definition.metadata["triggerKind"] == "OnConversationStart"


def test_agent_settings_are_flattened():
    definition = import_workflow(ACTIONS_YAML)

    writer = definition.get_step("writer")
    assert writer.kind == StepKind.AGENT_INVOKE
    assert writer.name == "Writer"
    assert writer.config == {
        "agent_name": "WriterAgent",
        "instructions_template": "Write about ${Local_topic}",
        "model": "gpt-4o-mini",
    }


def test_variable_and_message_fields():
    definition = import_workflow(ACTIONS_YAML)

    assert definition.get_step("set_topic").config == {
        "variable_name": "Local.topic",
        "value": "=System.LastMessage.Text",
    }
    assert definition.get_step("reply").config == {"message": "=agent_response"}
    assert definition.get_step("stop").kind == StepKind.END_CONVERSATION


def test_positions_run_down_one_column():
    definition = import_workflow(ACTIONS_YAML)

    xs = {s.position.x for s in definition.steps}
    ys = [s.position.y for s in definition.steps]
    assert len(xs) == 1
    assert ys == sorted(ys)
    assert len(set(ys)) == len(ys)


def test_actions_without_ids_get_generated_ids():
    definition = import_workflow(
        """
kind: Workflow
trigger:
  actions:
    - kind: SendActivity
      activity: hi
    - kind: EndWorkflow
"""
    )

    first, second = definition.steps
    assert first.id and second.id and first.id != second.id
    assert definition.start_step_id == first.id


def test_empty_actions_list():
    definition = import_workflow("kind: Workflow\ntrigger:\n  actions: []\n")

    assert definition.steps == []
    assert definition.start_step_id == ""


def test_unknown_action_kind_is_passthrough():
    definition = import_workflow(
        """
trigger:
  actions:
    - kind: LogCustomTelemetryEvent
      id: telemetry
      eventName: started
"""
    )

    step = definition.get_step("telemetry")
    assert step.kind == StepKind.UNKNOWN
    assert step.config == {"raw_kind": "LogCustomTelemetryEvent", "fields": {"eventName": "started"}}


@pytest.mark.parametrize(
    "text",
    [
        "kind: Workflow\ntrigger: [a, b]\n",
        "kind: Workflow\ntrigger:\n  actions: {kind: SendActivity}\n",
        "kind: Workflow\ntrigger:\n  actions:\n    - just text\n",
    ],
)
def test_malformed_trigger_raises(text):
    with pytest.raises(WorkflowParseError):
        import_workflow(text)
