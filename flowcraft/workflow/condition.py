"""
ConditionEvaluator for edge and condition-group expressions.

Supports:
- Boolean constants: true, false (case-insensitive)
- A single equality: <left> == <right>, quotes stripped from both operands

Variable references are resolved before evaluation. Any other expression
evaluates to True.
"""

from typing import Any, Mapping

from flowcraft.workflow.resolver import resolve

QUOTES = "'\""


class ConditionEvaluator:
    """
    Minimal condition evaluator.

    Examples:
        evaluate("true", {})                                  # True
        evaluate("FALSE", {})                                 # False
        evaluate("${status} == 'done'", {"status": "done"})  # True
        evaluate("=flag", {"flag": False})                    # False
        evaluate("${score} > 3", {"score": 1})                # True (unsupported)
    """

    @classmethod
    def evaluate(cls, condition: str | None, variables: Mapping[str, Any]) -> bool:
        resolved = resolve(condition or "", variables).strip()

        lowered = resolved.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False

        if resolved.count("==") == 1:
            left, _, right = resolved.partition("==")
            return cls._operand(left) == cls._operand(right)

        return True

    @staticmethod
    def _operand(text: str) -> str:
        return text.strip().strip(QUOTES)


def evaluate_condition(condition: str | None, variables: Mapping[str, Any]) -> bool:
    return ConditionEvaluator.evaluate(condition, variables)


__all__ = ["ConditionEvaluator", "evaluate_condition"]
