"""
Tests for the workflow graph model and its copy-on-write mutations.
"""

import pytest

from conftest import make_step, make_workflow
from flowcraft.domain.models import (
    Edge,
    EdgeGroupType,
    Step,
    StepKind,
    Variable,
    VariableType,
    WorkflowDefinition,
)


def test_edge_group_classification():
    assert EdgeGroupType.classify([Edge(target_step_id="a")]) == EdgeGroupType.SINGLE
    assert (
        EdgeGroupType.classify([Edge(target_step_id="a"), Edge(target_step_id="b")])
        == EdgeGroupType.FAN_OUT
    )
    assert (
        EdgeGroupType.classify(
            [Edge(target_step_id="a", condition="=ok"), Edge(target_step_id="b")]
        )
        == EdgeGroupType.SWITCH_CASE
    )


def test_step_kind_terminal():
    assert StepKind.END_WORKFLOW.is_terminal
    assert StepKind.END_CONVERSATION.is_terminal
    assert not StepKind.GOTO.is_terminal


def test_structural_queries(linear_workflow):
    assert linear_workflow.get_step("remember").kind == StepKind.SET_VARIABLE
    assert linear_workflow.get_step("missing") is None
    assert [e.target_step_id for e in linear_workflow.outgoing_edges("greet")] == ["remember"]
    assert linear_workflow.outgoing_edges("done") == []
    assert [src for src, _ in linear_workflow.incoming_edges("done")] == ["remember"]
    assert linear_workflow.edge_count == 2
    assert [s.id for s in linear_workflow.steps_by_kind(StepKind.END_WORKFLOW)] == ["done"]


def test_add_step_is_copy_on_write(linear_workflow):
    updated = linear_workflow.add_step(make_step("extra"))

    assert updated is not linear_workflow
    assert updated.has_step("extra")
    assert not linear_workflow.has_step("extra")
    assert updated.updated_at >= linear_workflow.updated_at


def test_add_step_rejects_duplicate_id(linear_workflow):
    with pytest.raises(ValueError):
        linear_workflow.add_step(make_step("greet"))


def test_update_step(linear_workflow):
    updated = linear_workflow.update_step("greet", name="Welcome")

    assert updated.get_step("greet").name == "Welcome"
    assert linear_workflow.get_step("greet").name == "Greet"

    with pytest.raises(KeyError):
        linear_workflow.update_step("missing", name="x")


def test_remove_step_drops_its_edges():
    definition = make_workflow(
        [make_step("a"), make_step("b"), make_step("c")],
        links=[("a", "b"), ("a", "c"), ("b", "c")],
    )

    updated = definition.remove_step("b")

    assert not updated.has_step("b")
    assert updated.edge_group_for("b") is None
    group = updated.edge_group_for("a")
    assert [e.target_step_id for e in group.edges] == ["c"]
    assert group.type == EdgeGroupType.SINGLE


def test_remove_start_step_clears_start(linear_workflow):
    updated = linear_workflow.remove_step("greet")
    assert updated.start_step_id == ""


def test_connect_and_disconnect():
    definition = make_workflow([make_step("a"), make_step("b"), make_step("c")])

    definition = definition.connect("a", "b")
    assert definition.edge_group_for("a").type == EdgeGroupType.SINGLE

    definition = definition.connect("a", "c")
    assert definition.edge_group_for("a").type == EdgeGroupType.FAN_OUT

    definition = definition.connect("b", "c", condition="=done")
    assert definition.edge_group_for("b").type == EdgeGroupType.SWITCH_CASE

    definition = definition.disconnect("b", "c")
    assert definition.edge_group_for("b") is None
    assert len(definition.edge_groups) == 1


def test_connect_keeps_one_group_per_source():
    definition = make_workflow([make_step("a"), make_step("b"), make_step("c")])
    definition = definition.connect("a", "b").connect("a", "c")

    assert len([g for g in definition.edge_groups if g.source_step_id == "a"]) == 1


def test_variables():
    definition = WorkflowDefinition(name="vars")
    definition = definition.set_variable(Variable(name="count", type=VariableType.NUMBER, default=1))
    definition = definition.set_variable(Variable(name="count", type=VariableType.NUMBER, default=2))

    assert len(definition.variables) == 1
    assert definition.get_variable("count").default == 2

    definition = definition.remove_variable("count")
    assert definition.get_variable("count") is None


def test_with_start():
    definition = make_workflow([make_step("a"), make_step("b")])
    assert definition.with_start("b").start_step_id == "b"
    assert definition.start_step_id == "a"


def test_max_iterations_must_be_positive():
    with pytest.raises(ValueError):
        WorkflowDefinition(max_iterations=0)


def test_step_display_name():
    assert Step(id="x", kind=StepKind.GOTO).display_name == "x"
    assert Step(id="x", kind=StepKind.GOTO, name="Jump").display_name == "Jump"
