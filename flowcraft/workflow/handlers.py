"""
Step handlers - per-kind behavior dispatched by the engine.

Each handler is ``async (step, StepContext) -> StepOutcome``. Handlers
read the variable context but never write it; variable changes are
returned in the outcome and applied by the engine. Branch selection is
not a handler concern, see ``flowcraft.workflow.engine.resolve_next_step``.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import uuid4

from flowcraft.domain.models import Step, StepKind
from flowcraft.exceptions import StepExecutionError
from flowcraft.llm.base import AgentInvoker
from flowcraft.utils.logging import get_logger
from flowcraft.workflow.resolver import render_value
from flowcraft.workflow.state import VariableContext

logger = get_logger(__name__)


@dataclass
class StepContext:
    """Everything a handler may read while executing one step."""

    variables: VariableContext
    invoker: AgentInvoker | None = None
    workflow_id: str = ""
    run_id: str = ""


@dataclass
class StepOutcome:
    """
    Result of one handler call.

    The engine applies ``clear_variables`` first, then ``removals``,
    then ``updates``.
    """

    output: str = ""
    updates: dict[str, Any] = field(default_factory=dict)
    removals: list[str] = field(default_factory=list)
    clear_variables: bool = False
    terminate: bool = False


class StepHandler(Protocol):
    async def __call__(self, step: Step, context: StepContext) -> StepOutcome:
        ...


def _require(step: Step, key: str) -> Any:
    value = step.config.get(key)
    if value is None or value == "":
        raise StepExecutionError(step.id, f"Step '{step.display_name}' is missing '{key}'")
    return value


# ============================================================================
# Variable handlers
# ============================================================================


async def handle_set_variable(step: Step, context: StepContext) -> StepOutcome:
    name = _require(step, "variable_name")
    value = context.variables.resolve_value(step.config.get("value", ""))
    return StepOutcome(output=f"{name} = {render_value(value)}", updates={name: value})


async def handle_reset_variable(step: Step, context: StepContext) -> StepOutcome:
    name = _require(step, "variable_name")
    return StepOutcome(output=f"{name} reset", updates={name: None})


async def handle_clear_variables(step: Step, context: StepContext) -> StepOutcome:
    return StepOutcome(output="Variables cleared", clear_variables=True)


# ============================================================================
# Messaging handlers
# ============================================================================


async def handle_send_message(step: Step, context: StepContext) -> StepOutcome:
    return StepOutcome(output=context.variables.resolve(step.config.get("message", "")))


async def handle_ask_question(step: Step, context: StepContext) -> StepOutcome:
    # The run has a single up-front input; it answers every question.
    prompt = context.variables.resolve(step.config.get("prompt", ""))
    updates = {}
    result_variable = step.config.get("result_variable")
    if result_variable:
        updates[result_variable] = context.variables.user_input
    return StepOutcome(output=prompt, updates=updates)


async def handle_agent_invoke(step: Step, context: StepContext) -> StepOutcome:
    agent_name = step.config.get("agent_name") or step.display_name
    if context.invoker is None:
        raise StepExecutionError(step.id, f"No agent capability configured for '{agent_name}'")

    instructions = context.variables.resolve(step.config.get("instructions_template", ""))
    message_template = step.config.get("message")
    if message_template:
        user_message = context.variables.resolve(message_template)
    else:
        user_message = context.variables.user_input

    logger.debug("agent_invoke_started", step_id=step.id, agent_name=agent_name)
    try:
        response = await context.invoker.invoke(
            instructions,
            user_message,
            model=step.config.get("model") or None,
            temperature=step.config.get("temperature"),
        )
    except StepExecutionError:
        raise
    except Exception as e:
        raise StepExecutionError(step.id, f"Agent '{agent_name}' failed: {e}") from e

    updates = {"agent_response": response, "result": response}
    result_variable = step.config.get("result_variable")
    if result_variable:
        updates[result_variable] = response
    return StepOutcome(output=response, updates=updates)


# ============================================================================
# Control-flow handlers
# ============================================================================


async def handle_condition_group(step: Step, context: StepContext) -> StepOutcome:
    conditions = step.config.get("conditions") or []
    return StepOutcome(output=f"Evaluating {len(conditions)} condition(s)")


async def handle_foreach(step: Step, context: StepContext) -> StepOutcome:
    items = context.variables.resolve_value(step.config.get("items_expression", ""))
    item_name = step.config.get("item_variable_name") or "item"
    if isinstance(items, (list, tuple)):
        return StepOutcome(output=f"Iterating {len(items)} item(s) as '{item_name}'")
    return StepOutcome(output=f"Iterating '{render_value(items)}' as '{item_name}'")


async def handle_goto(step: Step, context: StepContext) -> StepOutcome:
    return StepOutcome()


async def handle_end(step: Step, context: StepContext) -> StepOutcome:
    template = step.config.get("output")
    if template:
        output = context.variables.resolve(template)
    elif step.kind == StepKind.END_CONVERSATION:
        output = "Conversation ended"
    else:
        output = "Workflow ended"
    return StepOutcome(output=output, terminate=True)


# ============================================================================
# Conversation handlers
# ============================================================================


async def handle_create_conversation(step: Step, context: StepContext) -> StepOutcome:
    conversation_id = str(uuid4())
    result_variable = step.config.get("result_variable") or "conversation_id"
    return StepOutcome(
        output=f"Created conversation {conversation_id}",
        updates={result_variable: conversation_id},
    )


async def handle_delete_conversation(step: Step, context: StepContext) -> StepOutcome:
    conversation_id = context.variables.resolve(_require(step, "conversation_id"))
    return StepOutcome(output=f"Deleted conversation {conversation_id}")


async def handle_copy_messages(step: Step, context: StepContext) -> StepOutcome:
    source = context.variables.resolve(_require(step, "source_conversation_id"))
    target = context.variables.resolve(_require(step, "target_conversation_id"))
    return StepOutcome(output=f"Copied messages from {source} to {target}")


async def handle_unknown(step: Step, context: StepContext) -> StepOutcome:
    raw_kind = step.config.get("raw_kind") or step.kind.value
    return StepOutcome(output=f"{raw_kind} completed")


class HandlerRegistry:
    """
    Strategy table from step kind to handler.

    Kinds without a registered handler fall back to the generic
    passthrough handler.
    """

    def __init__(self):
        self._handlers: dict[StepKind, StepHandler] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self.register(StepKind.SET_VARIABLE, handle_set_variable)
        self.register(StepKind.RESET_VARIABLE, handle_reset_variable)
        self.register(StepKind.CLEAR_VARIABLES, handle_clear_variables)
        self.register(StepKind.SEND_MESSAGE, handle_send_message)
        self.register(StepKind.ASK_QUESTION, handle_ask_question)
        self.register(StepKind.AGENT_INVOKE, handle_agent_invoke)
        self.register(StepKind.CONDITION_GROUP, handle_condition_group)
        self.register(StepKind.FOREACH, handle_foreach)
        self.register(StepKind.GOTO, handle_goto)
        self.register(StepKind.END_WORKFLOW, handle_end)
        self.register(StepKind.END_CONVERSATION, handle_end)
        self.register(StepKind.CREATE_CONVERSATION, handle_create_conversation)
        self.register(StepKind.DELETE_CONVERSATION, handle_delete_conversation)
        self.register(StepKind.COPY_MESSAGES, handle_copy_messages)
        self.register(StepKind.UNKNOWN, handle_unknown)

    def register(self, kind: StepKind, handler: StepHandler) -> None:
        self._handlers[kind] = handler

    def get(self, kind: StepKind) -> StepHandler:
        return self._handlers.get(kind, handle_unknown)

    def has(self, kind: StepKind) -> bool:
        return kind in self._handlers

    def list_kinds(self) -> list[StepKind]:
        return list(self._handlers.keys())


__all__ = [
    "StepContext",
    "StepOutcome",
    "StepHandler",
    "HandlerRegistry",
]
