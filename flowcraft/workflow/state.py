"""
VariableContext - the mutable key/value map threaded through one run.

Each run owns its own context; the workflow definition is never touched.
Well-known keys written by the engine:
- user_input / input  - the external input supplied for the run
- agent_response / result - the latest agent invocation result
"""

from typing import Any, Iterator, Mapping

from flowcraft.domain.models import InputSpec, Variable, WorkflowDefinition
from flowcraft.workflow.resolver import lookup, resolve, resolve_value

USER_INPUT_KEYS = ("user_input", "input")


class VariableContext:
    """In-memory variable store for a single workflow run."""

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._values: dict[str, Any] = dict(initial or {})

    @classmethod
    def seed(
        cls,
        definition: WorkflowDefinition,
        user_input: str = "",
        parameters: Mapping[str, Any] | None = None,
    ) -> "VariableContext":
        """
        Build the initial context for a run.

        Later sources win: declared variable defaults, then input-shape
        defaults, then caller parameters, then the user input keys.
        """
        context = cls()
        context._apply_declared(definition.variables)
        context._apply_input_defaults(definition.input_spec)
        if parameters:
            context.update(parameters)
        for key in USER_INPUT_KEYS:
            context.set(key, user_input)
        return context

    def _apply_declared(self, variables: list[Variable]) -> None:
        for variable in variables:
            self._values[variable.name] = variable.default

    def _apply_input_defaults(self, input_spec: InputSpec) -> None:
        for name, prop in input_spec.shape.properties.items():
            if prop.default is not None:
                self._values[name] = prop.default

    @property
    def user_input(self) -> str:
        return str(self._values.get("user_input") or "")

    def get(self, name: str, default: Any = None) -> Any:
        return lookup(name, self._values, default=default)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def update(self, values: Mapping[str, Any]) -> None:
        self._values.update(values)

    def remove(self, name: str) -> None:
        self._values.pop(name, None)

    def clear(self, keep: tuple[str, ...] = USER_INPUT_KEYS) -> None:
        """Drop every variable except the preserved keys."""
        self._values = {k: v for k, v in self._values.items() if k in keep}

    def resolve(self, template: str | None) -> str:
        return resolve(template, self._values)

    def resolve_value(self, expression: Any) -> Any:
        return resolve_value(expression, self._values)

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableContext(keys={sorted(self._values)})"


__all__ = ["VariableContext", "USER_INPUT_KEYS"]
