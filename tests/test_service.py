"""
Tests for DeclarativeWorkflowService - CRUD, text, execution and catalog.
"""

import asyncio

import pytest

from conftest import make_step, make_workflow
from flowcraft.domain.events import ExecutionEventType, ExecutionStatus
from flowcraft.domain.models import InputSpec, JsonSchema, PropertySchema, StepKind
from flowcraft.exceptions import (
    InvalidWorkflowInputError,
    InvalidWorkflowStateError,
    WorkflowNotFoundError,
    WorkflowParseError,
    WorkflowValidationError,
)
from flowcraft.service import DeclarativeWorkflowService
from flowcraft.storage import InMemoryWorkflowRepository
from flowcraft.workflow.cache import WorkflowCache
from flowcraft.workflow.engine import WorkflowEngine
from flowcraft.workflow.validator import IssueType

GREETER_YAML = """
kind: Workflow
metadata: {id: greeter, name: Greeter}
executors:
  - id: hello
    type: SendActivity
    properties: {activity: "Hello ${user_input}"}
    edges: [bye]
  - id: bye
    type: EndWorkflow
    properties: {output: "Bye ${user_input}"}
"""


@pytest.fixture
def service():
    return DeclarativeWorkflowService(InMemoryWorkflowRepository())


@pytest.mark.asyncio
async def test_create_get_list_delete(service, linear_workflow):
    await service.create_workflow(linear_workflow)

    assert await service.get_workflow(linear_workflow.id) == linear_workflow
    assert [w.id for w in await service.list_workflows()] == [linear_workflow.id]

    assert await service.delete_workflow(linear_workflow.id) is True
    assert await service.get_workflow(linear_workflow.id) is None
    assert await service.delete_workflow(linear_workflow.id) is False


@pytest.mark.asyncio
async def test_list_is_most_recently_updated_first(service):
    first = make_workflow([make_step("a")], name="first")
    await service.create_workflow(first)
    await asyncio.sleep(0.01)
    second = make_workflow([make_step("a")], name="second")
    await service.create_workflow(second)

    names = [w.name for w in await service.list_workflows()]
    assert names == ["second", "first"]
    assert [w.name for w in await service.list_workflows(limit=1, offset=1)] == ["first"]


@pytest.mark.asyncio
async def test_save_is_gated_on_validation(service):
    broken = make_workflow([make_step("a")], links=[("a", "ghost")])

    with pytest.raises(WorkflowValidationError) as exc_info:
        await service.create_workflow(broken)

    assert IssueType.INVALID_CONNECTION in exc_info.value.result.error_types()
    assert await service.get_workflow(broken.id) is None


@pytest.mark.asyncio
async def test_gate_can_be_disabled():
    service = DeclarativeWorkflowService(validate_on_save=False)
    broken = make_workflow([make_step("a")], links=[("a", "ghost")])

    await service.create_workflow(broken)

    assert await service.get_workflow(broken.id) is not None


@pytest.mark.asyncio
async def test_warnings_do_not_block_save(service):
    definition = make_workflow([make_step("a"), make_step("orphan")])
    assert await service.create_workflow(definition) is definition


@pytest.mark.asyncio
async def test_update_keeps_identity_and_evicts_cache(service, linear_workflow):
    await service.create_workflow(linear_workflow)
    await service.execute(linear_workflow.id, "AI")
    assert linear_workflow.id in service.cache

    edited = linear_workflow.update_step("done", config={"output": "Changed ${topic}"})
    edited = edited.model_copy(update={"id": "something-else"})
    updated = await service.update_workflow(linear_workflow.id, edited)

    assert updated.id == linear_workflow.id
    assert updated.created_at == linear_workflow.created_at
    assert updated.updated_at > linear_workflow.updated_at
    assert linear_workflow.id not in service.cache

    result = await service.execute(linear_workflow.id, "AI")
    assert result.output == "Changed AI"


@pytest.mark.asyncio
async def test_update_unknown_workflow(service, linear_workflow):
    with pytest.raises(WorkflowNotFoundError):
        await service.update_workflow("ghost", linear_workflow)


@pytest.mark.asyncio
async def test_delete_evicts_cache(service, linear_workflow):
    await service.create_workflow(linear_workflow)
    await service.execute(linear_workflow.id)
    evicted = []
    service.cache.on_evict(evicted.append)

    await service.delete_workflow(linear_workflow.id)

    assert evicted == [linear_workflow.id]


# ============================================================================
# Text
# ============================================================================


@pytest.mark.asyncio
async def test_import_and_export_yaml(service):
    imported = await service.import_yaml(GREETER_YAML)

    assert imported.id == "greeter"
    assert await service.get_workflow("greeter") is not None

    text = await service.export_yaml("greeter")
    assert "executors:" in text
    assert "SendActivity" in text


@pytest.mark.asyncio
async def test_import_without_saving(service):
    await service.import_yaml(GREETER_YAML, save=False)
    assert await service.get_workflow("greeter") is None


@pytest.mark.asyncio
async def test_import_invalid_yaml(service):
    with pytest.raises(WorkflowParseError):
        await service.import_yaml("executors: [")


@pytest.mark.asyncio
async def test_export_unknown_workflow(service):
    with pytest.raises(WorkflowNotFoundError):
        await service.export_yaml("ghost")


def test_preview(service, linear_workflow):
    preview = service.preview_yaml(linear_workflow)

    assert preview.step_count == 3
    assert preview.edge_count == 2
    assert preview.variable_count == 0
    assert preview.validation.is_valid
    assert "executors:" in preview.yaml


def test_validate(service):
    result = service.validate(make_workflow([make_step("a")], start=""))
    assert IssueType.MISSING_START in result.error_types()


# ============================================================================
# Execution
# ============================================================================


@pytest.mark.asyncio
async def test_execute_stored_workflow(service):
    await service.import_yaml(GREETER_YAML)

    result = await service.execute("greeter", "Ada")

    assert result.status == ExecutionStatus.COMPLETED
    assert result.output == "Bye Ada"


@pytest.mark.asyncio
async def test_execute_unknown_workflow(service):
    with pytest.raises(WorkflowNotFoundError):
        await service.execute("ghost")


@pytest.mark.asyncio
async def test_execute_checks_inputs():
    service = DeclarativeWorkflowService()
    definition = make_workflow([make_step("say", message="${topic}")])
    definition.input_spec = InputSpec(
        shape=JsonSchema(properties={"topic": PropertySchema(type="string")}, required=["topic"])
    )
    await service.create_workflow(definition)

    with pytest.raises(InvalidWorkflowInputError):
        await service.execute(definition.id)

    result = await service.execute(definition.id, parameters={"topic": "bees"})
    assert result.output == "bees"


@pytest.mark.asyncio
async def test_execute_without_start_raises():
    service = DeclarativeWorkflowService(validate_on_save=False)
    definition = make_workflow([make_step("a")], start="")
    await service.create_workflow(definition)

    with pytest.raises(InvalidWorkflowStateError):
        await service.execute(definition.id)


@pytest.mark.asyncio
async def test_execute_stream(service):
    await service.import_yaml(GREETER_YAML)

    events = [e async for e in service.execute_stream("greeter", "Ada")]

    assert events[0].type == ExecutionEventType.WORKFLOW_STARTED
    assert events[-1].type == ExecutionEventType.WORKFLOW_COMPLETED
    assert events[-1].data["output"] == "Bye Ada"


@pytest.mark.asyncio
async def test_execute_stream_reports_run_errors_as_events():
    service = DeclarativeWorkflowService(validate_on_save=False)
    definition = make_workflow([make_step("a")], start="")
    await service.create_workflow(definition)

    missing = [e async for e in service.execute_stream("ghost")]
    no_start = [e async for e in service.execute_stream(definition.id)]

    assert [e.type for e in missing] == [ExecutionEventType.WORKFLOW_FAILED]
    assert "ghost" in missing[0].message
    assert [e.type for e in no_start] == [ExecutionEventType.WORKFLOW_FAILED]


# ============================================================================
# Catalog
# ============================================================================


def test_step_kind_catalog():
    catalog = DeclarativeWorkflowService.list_step_kinds()

    kinds = {info.kind for info in catalog}
    assert StepKind.UNKNOWN not in kinds
    assert len(kinds) == len(StepKind) - 1

    agent = next(info for info in catalog if info.kind == StepKind.AGENT_INVOKE)
    assert agent.name == "InvokeAzureAgent"
    assert agent.category == "agents"
    assert agent.description


def test_service_attaches_cache_to_uncached_engine():
    engine = WorkflowEngine()

    service = DeclarativeWorkflowService(engine=engine)

    assert isinstance(service.cache, WorkflowCache)
    assert engine.cache is service.cache


def test_service_keeps_engine_cache():
    cache = WorkflowCache(max_entries=4)

    service = DeclarativeWorkflowService(engine=WorkflowEngine(cache=cache))

    assert service.cache is cache
