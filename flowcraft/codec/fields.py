"""
Field mapping between step configs and their textual form.

Both dialects share the kind names and most per-kind field names; the
places where they diverge (agent settings, activity text, condition
lists) have dedicated helpers. Every mapping here is symmetric so that
decode(encode(config)) == config.
"""

from typing import Any

from pydantic import ValidationError

from flowcraft.domain.models import (
    InputSpec,
    JsonSchema,
    OutputSpec,
    StepKind,
    Variable,
    WorkflowDefinition,
    new_id,
)
from flowcraft.exceptions import WorkflowParseError

# Canonical textual names, used on export
KIND_NAMES: dict[StepKind, str] = {
    StepKind.AGENT_INVOKE: "InvokeAzureAgent",
    StepKind.SEND_MESSAGE: "SendActivity",
    StepKind.SET_VARIABLE: "SetVariable",
    StepKind.ASK_QUESTION: "Question",
    StepKind.CONDITION_GROUP: "ConditionGroup",
    StepKind.FOREACH: "Foreach",
    StepKind.GOTO: "GotoAction",
    StepKind.END_WORKFLOW: "EndWorkflow",
    StepKind.END_CONVERSATION: "EndConversation",
    StepKind.CREATE_CONVERSATION: "CreateConversation",
    StepKind.DELETE_CONVERSATION: "DeleteConversation",
    StepKind.COPY_MESSAGES: "CopyConversationMessages",
    StepKind.RESET_VARIABLE: "ResetVariable",
    StepKind.CLEAR_VARIABLES: "ClearAllVariables",
}

# Extra spellings accepted on import
KIND_ALIASES: dict[str, StepKind] = {
    "SetTextVariable": StepKind.SET_VARIABLE,
    "InvokeAgent": StepKind.AGENT_INVOKE,
    "SendMessage": StepKind.SEND_MESSAGE,
    "Goto": StepKind.GOTO,
    "ForEach": StepKind.FOREACH,
}

_NAME_TO_KIND: dict[str, StepKind] = {name: kind for kind, name in KIND_NAMES.items()}
_NAME_TO_KIND.update(KIND_ALIASES)
# the enum values themselves ("agent_invoke", ...) are accepted too
_NAME_TO_KIND.update({kind.value: kind for kind in StepKind if kind != StepKind.UNKNOWN})

# (text key, config key) pairs per kind, shared by both dialects
SIMPLE_FIELDS: dict[StepKind, list[tuple[str, str]]] = {
    StepKind.AGENT_INVOKE: [
        ("agentId", "agent_name"),
        ("instructions", "instructions_template"),
        ("model", "model"),
        ("temperature", "temperature"),
        ("message", "message"),
        ("conversationId", "conversation_id"),
        ("result", "result_variable"),
    ],
    StepKind.SET_VARIABLE: [("variable", "variable_name"), ("value", "value")],
    StepKind.ASK_QUESTION: [("prompt", "prompt"), ("variable", "result_variable")],
    StepKind.FOREACH: [
        ("items", "items_expression"),
        ("item", "item_variable_name"),
        ("index", "index_variable_name"),
    ],
    StepKind.GOTO: [("actionId", "target_step_id")],
    StepKind.END_WORKFLOW: [("output", "output")],
    StepKind.END_CONVERSATION: [("output", "output")],
    StepKind.CREATE_CONVERSATION: [("variable", "result_variable")],
    StepKind.DELETE_CONVERSATION: [("conversationId", "conversation_id")],
    StepKind.COPY_MESSAGES: [
        ("sourceConversationId", "source_conversation_id"),
        ("targetConversationId", "target_conversation_id"),
    ],
    StepKind.RESET_VARIABLE: [("variable", "variable_name")],
    StepKind.CLEAR_VARIABLES: [],
}

# Alternative text keys accepted on import only
FIELD_ALIASES: dict[StepKind, dict[str, str]] = {
    StepKind.AGENT_INVOKE: {"agentName": "agent_name", "name": "agent_name"},
    StepKind.SET_VARIABLE: {"property": "variable_name"},
    StepKind.ASK_QUESTION: {"property": "result_variable"},
    StepKind.FOREACH: {"itemsProperty": "items_expression"},
    StepKind.GOTO: {"target": "target_step_id", "targetId": "target_step_id"},
}


def kind_from_name(name: Any) -> StepKind:
    if not isinstance(name, str):
        return StepKind.UNKNOWN
    return _NAME_TO_KIND.get(name.strip(), StepKind.UNKNOWN)


def kind_name(kind: StepKind, config: dict[str, Any]) -> str:
    if kind == StepKind.UNKNOWN:
        return config.get("raw_kind") or ""
    return KIND_NAMES[kind]


# ============================================================================
# Step fields
# ============================================================================


def decode_fields(kind: StepKind, raw_kind: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Turn a step's textual field bag into its config."""
    if kind == StepKind.UNKNOWN:
        return {"raw_kind": raw_kind, "fields": dict(fields)}

    config: dict[str, Any] = {}
    for text_key, config_key in SIMPLE_FIELDS.get(kind, []):
        if text_key in fields:
            config[config_key] = fields[text_key]
    for text_key, config_key in FIELD_ALIASES.get(kind, {}).items():
        if text_key in fields and config_key not in config:
            config[config_key] = fields[text_key]

    if kind == StepKind.SEND_MESSAGE:
        message = decode_activity(fields.get("activity", fields.get("message")))
        if message is not None:
            config["message"] = message
    elif kind == StepKind.CONDITION_GROUP:
        config.update(decode_conditions(fields))

    return config


def encode_fields(kind: StepKind, config: dict[str, Any]) -> dict[str, Any]:
    """Turn a step config into its textual field bag."""
    if kind == StepKind.UNKNOWN:
        return dict(config.get("fields") or {})

    fields: dict[str, Any] = {}
    for text_key, config_key in SIMPLE_FIELDS.get(kind, []):
        if config.get(config_key) is not None:
            fields[text_key] = config[config_key]

    if kind == StepKind.SEND_MESSAGE and config.get("message") is not None:
        fields["activity"] = config["message"]
    elif kind == StepKind.CONDITION_GROUP:
        fields.update(encode_conditions(config))

    return fields


def decode_activity(activity: Any) -> str | None:
    """Activity is either plain text or a mapping with a ``text`` entry."""
    if activity is None:
        return None
    if isinstance(activity, dict):
        text = activity.get("text")
        return "" if text is None else str(text)
    return str(activity)


def decode_conditions(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Read a condition list in either the flat or the nested form.

    Flat:   conditions: [{condition: expr, targetId: id}], default: id
    Nested: conditions: [{condition: expr, actions: [{kind: GotoAction, actionId: id}]}],
            elseActions: [{kind: GotoAction, actionId: id}]
    """
    config: dict[str, Any] = {}
    raw_conditions = fields.get("conditions")
    if raw_conditions is not None:
        if not isinstance(raw_conditions, list):
            raise WorkflowParseError("'conditions' must be a list")
        conditions = []
        for item in raw_conditions:
            if not isinstance(item, dict):
                raise WorkflowParseError("Each condition must be a mapping")
            expression = item.get("condition", item.get("expression", ""))
            target = item.get("targetId") or item.get("target") or _goto_target(
                item.get("actions")
            )
            conditions.append(
                {"expression": "" if expression is None else str(expression),
                 "target_step_id": target or ""}
            )
        config["conditions"] = conditions

    default = fields.get("default") or _goto_target(fields.get("elseActions"))
    if default:
        config["default_target"] = default
    return config


def encode_conditions(config: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if config.get("conditions") is not None:
        fields["conditions"] = [
            {
                "condition": condition.get("expression", ""),
                "actions": [{"kind": "GotoAction", "actionId": condition.get("target_step_id", "")}],
            }
            for condition in config["conditions"]
        ]
    if config.get("default_target"):
        fields["elseActions"] = [{"kind": "GotoAction", "actionId": config["default_target"]}]
    return fields


def _goto_target(actions: Any) -> str | None:
    if not isinstance(actions, list):
        return None
    for action in actions:
        if isinstance(action, dict) and kind_from_name(action.get("kind")) == StepKind.GOTO:
            return action.get("actionId") or action.get("target")
    return None


# ============================================================================
# Workflow-level fields
# ============================================================================

_HEADER_KEYS = {"id", "name", "description", "version", "startExecutorId", "maxIterations"}


def decode_header(document: dict[str, Any]) -> dict[str, Any]:
    """Read workflow-level attributes shared by both dialects."""
    metadata = document.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise WorkflowParseError("'metadata' must be a mapping")

    def pick(key: str, default: Any = None) -> Any:
        if metadata.get(key) is not None:
            return metadata[key]
        if document.get(key) is not None:
            return document[key]
        return default

    header: dict[str, Any] = {
        "id": str(pick("id") or new_id()),
        "name": str(pick("name", "")),
        "description": str(pick("description", "")),
        "version": str(pick("version", "1.0.0")),
        "metadata": {k: v for k, v in metadata.items() if k not in _HEADER_KEYS},
        "start_step_id": pick("startExecutorId"),
        "max_iterations": pick("maxIterations"),
    }

    try:
        header["variables"] = [
            Variable.model_validate(item) for item in document.get("variables") or []
        ]
        inputs = document.get("inputs")
        if inputs:
            header["input_spec"] = InputSpec(
                type_name=inputs.get("typeName", "WorkflowInput"),
                shape=JsonSchema.model_validate(inputs.get("schema") or {}),
            )
        outputs = document.get("outputs")
        if outputs:
            header["output_spec"] = OutputSpec(
                type_name=outputs.get("typeName", "WorkflowOutput"),
                shape=JsonSchema.model_validate(outputs.get("schema") or {}),
            )
    except (ValidationError, AttributeError, TypeError) as e:
        raise WorkflowParseError("Invalid workflow declarations", str(e)) from e

    return header


def build_definition(header: dict[str, Any], **parts: Any) -> WorkflowDefinition:
    values = {k: v for k, v in header.items() if k not in ("start_step_id", "max_iterations")}
    values.update(parts)
    if header.get("max_iterations") is not None:
        values["max_iterations"] = header["max_iterations"]
    try:
        return WorkflowDefinition(**values)
    except ValidationError as e:
        raise WorkflowParseError("Invalid workflow definition", str(e)) from e


def encode_header(definition: WorkflowDefinition) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "id": definition.id,
        "name": definition.name,
        "description": definition.description,
        "version": definition.version,
    }
    if definition.start_step_id:
        metadata["startExecutorId"] = definition.start_step_id
    if definition.max_iterations is not None:
        metadata["maxIterations"] = definition.max_iterations
    for key, value in definition.metadata.items():
        metadata.setdefault(key, value)

    document: dict[str, Any] = {"kind": "Workflow", "metadata": metadata}
    if definition.variables:
        document["variables"] = [
            variable.model_dump(mode="json", exclude_none=True)
            for variable in definition.variables
        ]
    if definition.input_spec != InputSpec():
        document["inputs"] = {
            "typeName": definition.input_spec.type_name,
            "schema": definition.input_spec.shape.model_dump(mode="json", exclude_none=True),
        }
    if definition.output_spec != OutputSpec():
        document["outputs"] = {
            "typeName": definition.output_spec.type_name,
            "schema": definition.output_spec.shape.model_dump(mode="json", exclude_none=True),
        }
    return document


__all__ = [
    "KIND_NAMES",
    "kind_from_name",
    "kind_name",
    "decode_fields",
    "encode_fields",
    "decode_activity",
    "decode_conditions",
    "encode_conditions",
    "decode_header",
    "encode_header",
    "build_definition",
]
