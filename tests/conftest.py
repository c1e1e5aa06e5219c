"""
Shared builders for workflow tests.
"""

import logging

import pytest
import structlog

from flowcraft.domain.models import (
    Edge,
    EdgeGroup,
    EdgeGroupType,
    Step,
    StepKind,
    WorkflowDefinition,
)


def make_step(step_id: str, kind: StepKind = StepKind.SEND_MESSAGE, **config) -> Step:
    return Step(id=step_id, kind=kind, name=step_id.title(), config=config)


def make_workflow(steps, links=(), start=None, **kwargs) -> WorkflowDefinition:
    """
    Build a definition from steps and ``(source, target[, condition])`` links.

    Links sharing a source end up in one edge group, in the given order.
    """
    definition = WorkflowDefinition(
        name=kwargs.pop("name", "test"),
        steps=list(steps),
        start_step_id=start if start is not None else (steps[0].id if steps else ""),
        **kwargs,
    )
    groups: dict[str, EdgeGroup] = {}
    for link in links:
        source, target = link[0], link[1]
        condition = link[2] if len(link) > 2 else None
        group = groups.get(source)
        if group is None:
            group = groups[source] = EdgeGroup(source_step_id=source)
            definition.edge_groups.append(group)
        group.edges.append(Edge(target_step_id=target, condition=condition))
        group.type = EdgeGroupType.classify(group.edges)
    return definition


@pytest.fixture
def linear_workflow():
    """greet -> remember -> done"""
    return make_workflow(
        [
            make_step("greet", StepKind.SEND_MESSAGE, message="Hello ${user_input}"),
            make_step("remember", StepKind.SET_VARIABLE, variable_name="topic", value="=user_input"),
            make_step("done", StepKind.END_WORKFLOW, output="Topic: ${topic}"),
        ],
        links=[("greet", "remember"), ("remember", "done")],
        name="linear",
    )


@pytest.fixture
def restore_logging():
    """Undo configure_logging() so later tests keep pytest's handlers."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
