"""
Textual codec for workflow definitions.

Import auto-detects one of two dialects from the top-level structure:
- executors dialect: ``kind: Workflow`` plus an ``executors`` (or ``steps``) list
- actions dialect: ``kind: Workflow`` plus a ``trigger`` with an ``actions`` list

Export always writes the executors dialect.
"""

from typing import Any

import yaml

from flowcraft.codec.dialect_actions import decode_actions
from flowcraft.codec.dialect_executors import decode_executors
from flowcraft.codec.encoder import export_workflow, to_document
from flowcraft.domain.models import WorkflowDefinition
from flowcraft.exceptions import WorkflowParseError

WORKFLOW_KIND = "Workflow"


def import_workflow(text: str) -> WorkflowDefinition:
    """
    Parse workflow text (YAML, or JSON as a YAML subset).

    Raises:
        WorkflowParseError: If the text is malformed or matches neither dialect
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise WorkflowParseError("Invalid YAML", str(e)) from e
    return import_document(document)


def import_document(document: Any) -> WorkflowDefinition:
    if not isinstance(document, dict):
        raise WorkflowParseError("Workflow document must be a mapping")

    kind = document.get("kind")
    if kind is not None and kind != WORKFLOW_KIND:
        raise WorkflowParseError(f"Unsupported document kind: {kind}")

    dialect = detect_dialect(document)
    if dialect == "executors":
        return decode_executors(document)
    if dialect == "actions":
        return decode_actions(document)

    raise WorkflowParseError(
        "Unrecognized workflow structure: expected 'executors', 'steps' or 'trigger'"
    )


def detect_dialect(document: Any) -> str | None:
    """Return "executors", "actions" or None."""
    if not isinstance(document, dict):
        return None
    if isinstance(document.get("executors"), list) or isinstance(document.get("steps"), list):
        return "executors"
    if "trigger" in document:
        return "actions"
    return None


__all__ = [
    "import_workflow",
    "import_document",
    "export_workflow",
    "to_document",
    "detect_dialect",
    "decode_actions",
    "decode_executors",
]
