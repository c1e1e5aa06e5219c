"""
Tests for template resolution and condition evaluation.
"""

import pytest

from flowcraft.workflow.condition import ConditionEvaluator, evaluate_condition
from flowcraft.workflow.resolver import find_references, lookup, resolve, resolve_value


@pytest.mark.parametrize("template", ["=name", "=${name}", "${name}", "$(name)"])
def test_every_reference_syntax_yields_the_value(template):
    assert resolve(template, {"name": "Ada"}) == "Ada"


def test_embedded_references():
    variables = {"first": "Ada", "last": "Lovelace"}
    assert resolve("Hello ${first} $(last)!", variables) == "Hello Ada Lovelace!"


def test_unresolved_references_stay_verbatim():
    assert resolve("Hi ${missing} and $(other)", {}) == "Hi ${missing} and $(other)"
    assert resolve("=missing", {}) == "=missing"


def test_dot_and_case_fallbacks():
    assert resolve("=Local.topic", {"Local_topic": "AI"}) == "AI"
    assert resolve("${USER_INPUT}", {"user_input": "hi"}) == "hi"


def test_exact_name_wins_over_fallbacks():
    variables = {"Local.topic": "exact", "Local_topic": "normalized"}
    assert lookup("Local.topic", variables) == "exact"


def test_lookup_raises_without_default():
    with pytest.raises(KeyError):
        lookup("missing", {})
    assert lookup("missing", {}, default=None) is None


def test_value_rendering():
    variables = {"flag": True, "nothing": None, "items": [1, 2], "n": 3}
    assert resolve("${flag}", variables) == "true"
    assert resolve("[${nothing}]", variables) == "[]"
    assert resolve("${items}", variables) == "[1, 2]"
    assert resolve("n=${n}", variables) == "n=3"


def test_substituted_values_are_not_rescanned():
    assert resolve("${a}", {"a": "${b}", "b": "no"}) == "${b}"


def test_empty_template():
    assert resolve("", {"a": 1}) == ""
    assert resolve(None, {"a": 1}) == ""


def test_resolve_value_keeps_raw_types():
    variables = {"items": [1, 2, 3], "count": 4}
    assert resolve_value("=items", variables) == [1, 2, 3]
    assert resolve_value("${count}", variables) == 4
    assert resolve_value("count: ${count}", variables) == "count: 4"
    assert resolve_value(7, variables) == 7
    assert resolve_value("=missing", variables) == "=missing"


def test_find_references():
    assert find_references("=Local.name") == ["Local.name"]
    assert find_references("${a} $(b) ${a}") == ["a", "b"]
    assert find_references("") == []


# ============================================================================
# Conditions
# ============================================================================


@pytest.mark.parametrize(
    "condition, expected",
    [
        ("true", True),
        ("TRUE", True),
        ("false", False),
        (" False ", False),
        ("'a' == 'a'", True),
        ("'a' == \"b\"", False),
        ("${score} > 3", True),
        ("", True),
        (None, True),
    ],
)
def test_condition_constants_and_equality(condition, expected):
    assert ConditionEvaluator.evaluate(condition, {"score": 1}) is expected


def test_condition_resolves_variables_first():
    variables = {"status": "done", "flag": False}
    assert evaluate_condition("${status} == 'done'", variables)
    assert not evaluate_condition("${status} == pending", variables)
    assert not evaluate_condition("=flag", variables)
