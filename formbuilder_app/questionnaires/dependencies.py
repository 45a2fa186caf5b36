"""Visibility rules: whether a control is shown given the current answers.

A control's ``properties["dependencies"]`` holds an ordered list of rules::

    {"controlId": "<uid>", "condition": "equals", "value": "yes"}

The control is visible when every rule holds. Rules only look at raw answer
values, never at whether the referenced control is itself visible, so chains
of dependencies are evaluated link by link.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, Mapping

from django.db import models

from .values import properties_of

logger = logging.getLogger(__name__)


class Condition(models.TextChoices):
    EQUALS = "equals", "Equals"
    NOT_EQUALS = "not_equals", "Does not equal"
    CONTAINS = "contains", "Contains"
    GREATER_THAN = "greater_than", "Greater than"
    LESS_THAN = "less_than", "Less than"
    IS_EMPTY = "is_empty", "Is empty"
    IS_NOT_EMPTY = "is_not_empty", "Is not empty"
    # Unrecognised conditions are satisfied (fail-open)
    UNKNOWN = "unknown", "Unknown condition"


CONDITIONS_REQUIRING_VALUE = {
    Condition.EQUALS,
    Condition.NOT_EQUALS,
    Condition.CONTAINS,
    Condition.GREATER_THAN,
    Condition.LESS_THAN,
}

# Sentinel for "this control has never been answered".
MISSING = object()

_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def coerce_condition(raw: Any) -> Condition:
    if isinstance(raw, str) and raw in Condition.values and raw != Condition.UNKNOWN:
        return Condition(raw)
    return Condition.UNKNOWN


def rules_of(control: Any) -> list[Any]:
    rules = properties_of(control).get("dependencies")
    return list(rules) if isinstance(rules, (list, tuple)) else []


def has_rules(control: Any) -> bool:
    return bool(rules_of(control))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strictly_equal(left: Any, right: Any) -> bool:
    if left is MISSING or right is MISSING:
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def _to_text(value: Any) -> str:
    if value is MISSING or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(_to_text(item) for item in value)
    return str(value)


def _to_number(value: Any) -> float:
    """Numeric coercion following JavaScript's ``Number()``.

    Absent values are NaN, ``None`` and blank strings are 0, and anything
    that is not a well-formed decimal literal is NaN.
    """
    if value is MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if _NUMERIC.match(text):
            return float(text)
        return math.nan
    if isinstance(value, (list, tuple)):
        if not value:
            return 0.0
        if len(value) == 1:
            return _to_number(value[0])
    return math.nan


def is_truthy(value: Any) -> bool:
    if value is MISSING:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (list, tuple, dict)):
        # Containers are truthy in the browser even when empty
        return True
    return bool(value)


def evaluate_rule(rule: Any, answers: Mapping[str, Any] | None) -> bool:
    """Evaluate a single dependency rule against raw answers."""
    if not isinstance(rule, Mapping):
        logger.warning("Ignoring malformed dependency rule: %r", rule)
        return True
    source = answers if isinstance(answers, Mapping) else {}
    target = str(rule.get("controlId") or "")
    actual = source.get(target, MISSING) if target else MISSING
    expected = rule.get("value")
    condition = coerce_condition(rule.get("condition"))

    if condition == Condition.EQUALS:
        return _strictly_equal(actual, expected)
    if condition == Condition.NOT_EQUALS:
        return not _strictly_equal(actual, expected)
    if condition == Condition.CONTAINS:
        if not is_truthy(actual):
            return False
        return _to_text(expected) in _to_text(actual)
    if condition == Condition.GREATER_THAN:
        # NaN on either side makes the comparison false
        return _to_number(actual) > _to_number(expected)
    if condition == Condition.LESS_THAN:
        return _to_number(actual) < _to_number(expected)
    if condition == Condition.IS_EMPTY:
        return not is_truthy(actual)
    if condition == Condition.IS_NOT_EMPTY:
        return is_truthy(actual)

    logger.warning(
        "Unknown dependency condition %r on control %s; treating as satisfied",
        rule.get("condition"),
        target or "?",
    )
    return True


def is_visible(control: Any, answers: Mapping[str, Any] | None) -> bool:
    """True when every dependency rule of ``control`` holds."""
    return all(evaluate_rule(rule, answers) for rule in rules_of(control))


def visible_controls(controls: Iterable[Any], answers: Mapping[str, Any] | None) -> list[Any]:
    return [c for c in controls if is_visible(c, answers)]


def dependents_of(uid: str, controls: Iterable[Any]) -> list[Any]:
    """Controls with at least one rule pointing at ``uid``."""
    found = []
    for control in controls:
        for rule in rules_of(control):
            if isinstance(rule, Mapping) and str(rule.get("controlId") or "") == str(uid):
                found.append(control)
                break
    return found


def normalize_rules(raw: Any) -> list[dict[str, Any]]:
    """Clean a rule list coming from a form, the API or an import.

    Drops entries without a target, keeps unknown conditions as written so
    the fail-open behaviour stays visible in the stored data.
    """
    if not isinstance(raw, (list, tuple)):
        return []
    cleaned: list[dict[str, Any]] = []
    for rule in raw:
        if not isinstance(rule, Mapping):
            continue
        target = str(rule.get("controlId") or "").strip()
        if not target:
            continue
        entry: dict[str, Any] = {
            "controlId": target,
            "condition": str(rule.get("condition") or Condition.EQUALS),
        }
        if coerce_condition(entry["condition"]) in CONDITIONS_REQUIRING_VALUE:
            entry["value"] = rule.get("value", "")
        elif "value" in rule:
            entry["value"] = rule.get("value")
        cleaned.append(entry)
    return cleaned


def describe_rule(rule: Mapping[str, Any], labels: Mapping[str, str] | None = None) -> str:
    target = str(rule.get("controlId") or "")
    name = (labels or {}).get(target, target)
    condition = coerce_condition(rule.get("condition"))
    text = f"{name} {condition.label.lower()}"
    if condition in CONDITIONS_REQUIRING_VALUE:
        text = f"{text} {_to_text(rule.get('value'))!r}"
    return text
