"""
Export/import round trips: export writes the executors dialect and
re-importing it yields an isomorphic graph.
"""

import yaml

from conftest import make_step, make_workflow
from flowcraft.codec import export_workflow, import_workflow, to_document
from flowcraft.domain.models import (
    EdgeGroupType,
    InputSpec,
    JsonSchema,
    PropertySchema,
    StepKind,
    Variable,
    VariableType,
    WorkflowDefinition,
)


def graph_shape(definition: WorkflowDefinition):
    """Everything that defines the graph except layout and timestamps."""
    steps = [(s.id, s.kind, s.name, s.description, s.config) for s in definition.steps]
    edges = {
        group.source_step_id: (
            group.type,
            [(e.id, e.target_step_id, e.condition, e.label) for e in group.edges],
        )
        for group in definition.edge_groups
    }
    return definition.start_step_id, steps, edges


def _rich_workflow() -> WorkflowDefinition:
    definition = make_workflow(
        [
            make_step(
                "ask",
                StepKind.AGENT_INVOKE,
                agent_name="researcher",
                instructions_template="Research ${topic}",
                temperature=0.3,
                result_variable="answer",
            ),
            make_step(
                "route",
                StepKind.CONDITION_GROUP,
                conditions=[{"expression": "${answer} == 'ok'", "target_step_id": "reply"}],
                default_target="stop",
            ),
            make_step("reply", StepKind.SEND_MESSAGE, message="Answer: ${answer}"),
            make_step("loop", StepKind.FOREACH, items_expression="=items", item_variable_name="it"),
            make_step("jump", StepKind.GOTO, target_step_id="stop"),
            make_step("stop", StepKind.END_WORKFLOW, output="=answer"),
            make_step("custom", StepKind.UNKNOWN, raw_kind="HttpRequest", fields={"url": "x"}),
        ],
        links=[
            ("ask", "route"),
            ("route", "reply", "${answer} == 'ok'"),
            ("route", "stop"),
            ("reply", "loop"),
            ("reply", "custom"),
            ("loop", "jump"),
        ],
        name="rich",
        max_iterations=12,
    )
    definition.steps[0].description = "Looks things up"
    definition.edge_groups[0].edges[0].label = "next"
    definition.variables = [Variable(name="topic", type=VariableType.STRING, default="AI")]
    definition.input_spec = InputSpec(
        type_name="ResearchInput",
        shape=JsonSchema(properties={"topic": PropertySchema(type="string")}, required=["topic"]),
    )
    return definition


def test_round_trip_is_isomorphic():
    original = _rich_workflow()

    restored = import_workflow(export_workflow(original))

    assert graph_shape(restored) == graph_shape(original)
    assert restored.id == original.id
    assert restored.name == original.name
    assert restored.max_iterations == 12
    assert restored.variables == original.variables
    assert restored.input_spec == original.input_spec


def test_round_trip_keeps_positions():
    original = _rich_workflow()
    original.steps[2].position.x = 999

    restored = import_workflow(export_workflow(original))

    assert restored.get_step("reply").position.x == 999


def test_round_trip_is_stable_across_two_passes():
    once = export_workflow(import_workflow(export_workflow(_rich_workflow())))
    twice = export_workflow(import_workflow(once))
    assert once == twice


def test_fan_in_annotation_survives_round_trip():
    definition = make_workflow([make_step("a"), make_step("b")], links=[("a", "b")])
    definition.edge_groups[0].type = EdgeGroupType.FAN_IN

    restored = import_workflow(export_workflow(definition))

    assert restored.edge_group_for("a").type == EdgeGroupType.FAN_IN


def test_actions_dialect_converts_to_executors():
    text = """
kind: Workflow
trigger:
  id: greeter
  actions:
    - {kind: SendActivity, id: hello, activity: "Hi ${user_input}"}
    - {kind: EndWorkflow, id: bye}
"""
    original = import_workflow(text)

    document = yaml.safe_load(export_workflow(original))

    assert document["kind"] == "Workflow"
    assert "trigger" not in document
    assert [e["id"] for e in document["executors"]] == ["hello", "bye"]
    assert graph_shape(import_workflow(export_workflow(original))) == graph_shape(original)


def test_document_layout():
    document = to_document(_rich_workflow(), include_positions=False)

    assert document["metadata"]["startExecutorId"] == "ask"
    assert document["metadata"]["maxIterations"] == 12
    ask = document["executors"][0]
    assert ask["type"] == "InvokeAzureAgent"
    assert "position" not in ask
    assert ask["properties"]["agentId"] == "researcher"
    assert ask["edges"][0]["targetId"] == "route"
    assert "edgeType" not in ask

    custom = next(e for e in document["executors"] if e["id"] == "custom")
    assert custom["type"] == "HttpRequest"
    assert custom["properties"] == {"url": "x"}


def test_defaults_are_not_written():
    definition = make_workflow([make_step("only", StepKind.END_WORKFLOW)])

    document = to_document(definition)

    assert "variables" not in document
    assert "inputs" not in document
    assert "outputs" not in document
    assert "maxIterations" not in document["metadata"]


def test_unknown_executor_keys_survive_round_trip():
    original = import_workflow(
        """
executors:
  - {id: a, type: HttpRequest, url: "http://x", method: GET}
"""
    )

    exported = export_workflow(original)
    reimported = import_workflow(exported)

    assert reimported.get_step("a").config == {
        "raw_kind": "HttpRequest",
        "fields": {"url": "http://x", "method": "GET"},
    }
    assert graph_shape(reimported) == graph_shape(original)
