import logging

import pytest

from formbuilder_app.questionnaires.dependencies import (
    dependents_of,
    describe_rule,
    evaluate_rule,
    is_truthy,
    is_visible,
    normalize_rules,
    visible_controls,
)
from formbuilder_app.questionnaires.models import Control


def rule(condition, value=None, target="src"):
    r = {"controlId": target, "condition": condition}
    if value is not None:
        r["value"] = value
    return r


def control(uid, rules=None):
    return Control(uid=uid, type="textInput", properties={"dependencies": rules or []})


@pytest.mark.parametrize(
    "answer, expected, result",
    [
        ("yes", "yes", True),
        ("yes", "no", False),
        (5, "5", False),
        (5, 5.0, True),
        (True, "true", False),
    ],
)
def test_equals_is_strict(answer, expected, result):
    assert evaluate_rule(rule("equals", expected), {"src": answer}) is result


def test_not_equals_on_missing_answer():
    assert evaluate_rule(rule("not_equals", "x"), {}) is True


def test_contains_on_lists_and_strings():
    assert evaluate_rule(rule("contains", "B"), {"src": ["A", "B"]})
    assert evaluate_rule(rule("contains", "ell"), {"src": "hello"})
    assert not evaluate_rule(rule("contains", "x"), {"src": ""})
    assert not evaluate_rule(rule("contains", "x"), {})


def test_numeric_comparisons_coerce_strings():
    assert evaluate_rule(rule("greater_than", "10"), {"src": "11"})
    assert not evaluate_rule(rule("greater_than", "10"), {"src": "abc"})
    assert evaluate_rule(rule("less_than", 3), {"src": ""})
    assert not evaluate_rule(rule("less_than", 3), {})


def test_empty_checks():
    assert evaluate_rule(rule("is_empty"), {})
    assert evaluate_rule(rule("is_empty"), {"src": None})
    assert evaluate_rule(rule("is_empty"), {"src": ""})
    assert not evaluate_rule(rule("is_empty"), {"src": []})
    assert not evaluate_rule(rule("is_not_empty"), {"src": 0})
    assert evaluate_rule(rule("is_not_empty"), {"src": "x"})


def test_unchecked_toggle_counts_as_empty():
    assert evaluate_rule(rule("is_empty"), {"src": False})
    assert evaluate_rule(rule("is_empty"), {"src": 0})
    assert not evaluate_rule(rule("is_not_empty"), {"src": False})
    assert evaluate_rule(rule("is_not_empty"), {"src": True})


def test_unknown_condition_is_satisfied_and_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="formbuilder_app.questionnaires.dependencies"):
        assert evaluate_rule(rule("sounds_like", "x"), {})
    assert "sounds_like" in caplog.text


def test_visibility_requires_every_rule():
    target = control("t", [rule("equals", "a"), rule("is_not_empty", target="other")])
    assert not is_visible(target, {"src": "a"})
    assert is_visible(target, {"src": "a", "other": "x"})
    assert is_visible(control("free"), {})


def test_chains_are_evaluated_per_link():
    first = control("first")
    second = control("second", [rule("equals", "go", target="first")])
    third = control("third", [rule("is_empty", target="second")])
    shown = visible_controls([first, second, third], {})
    # "third" only looks at the raw answer of "second", not its visibility
    assert [c.uid for c in shown] == ["first", "third"]


def test_dependents_of():
    a = control("a")
    b = control("b", [rule("equals", "x", target="a")])
    c = control("c", [rule("equals", "x", target="b")])
    assert [d.uid for d in dependents_of("a", [a, b, c])] == ["b"]


def test_normalize_rules_drops_targetless_entries():
    cleaned = normalize_rules(
        [
            {"controlId": " a ", "condition": "equals"},
            {"condition": "equals", "value": 1},
            "junk",
            {"controlId": "b", "condition": "is_empty"},
            {"controlId": "c"},
        ]
    )
    assert cleaned == [
        {"controlId": "a", "condition": "equals", "value": ""},
        {"controlId": "b", "condition": "is_empty"},
        {"controlId": "c", "condition": "equals", "value": ""},
    ]
    assert normalize_rules("nope") == []


def test_describe_rule_uses_labels():
    text = describe_rule(rule("equals", "yes", target="a"), {"a": "Subscribe"})
    assert text == "Subscribe equals 'yes'"


def test_truthiness():
    assert is_truthy([])
    assert is_truthy({})
    assert not is_truthy("")
    assert not is_truthy(0)
    assert not is_truthy(None)
