"""Reading and writing control values in an answer set.

An answer set is a plain ``dict`` keyed by control uid. Functions here never
mutate the mapping they are given: every write returns a new dict, so callers
can keep the previous state around or discard it. None of them raise on a
missing or malformed property; they fall back to the catalog default instead.

Controls are duck-typed: anything with ``uid``, ``type`` and ``properties``
attributes works, which includes unsaved ``Control`` model instances.
"""

from __future__ import annotations

import logging
import math
import re
from copy import deepcopy
from typing import Any, Mapping

from django.db import models

from .catalog import ControlKind, kind_of

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#3B82F6"
DEFAULT_SLIDER_VALUE = 50
DEFAULT_RATING_MAX = 5
RATING_MAX_CEILING = 100

# Shown when a list-valued property is missing entirely.
OPTION_FALLBACKS: dict[str, list[str]] = {
    "options": [],
    "rowLabels": ["Row 1", "Row 2"],
    "columnOptions": ["Col 1", "Col 2"],
    "questions": ["Question 1", "Question 2"],
    "answers": ["Strongly Agree", "Agree", "Neutral", "Disagree", "Strongly Disagree"],
    "items": ["Item 1", "Item 2", "Item 3"],
    "columnHeaders": ["Column 1", "Column 2"],
}


class ValueShape(models.TextChoices):
    SCALAR = "scalar", "Scalar"
    SEQUENCE = "sequence", "Sequence"
    GRID = "grid", "Row/column map"
    RECORD = "record", "Named fields"
    NONE = "none", "No value"


VALUE_SHAPES: dict[str, str] = {
    ControlKind.TEXT_INPUT: ValueShape.SCALAR,
    ControlKind.TEXTAREA: ValueShape.SCALAR,
    ControlKind.NUMBER_INPUT: ValueShape.SCALAR,
    ControlKind.EMAIL_INPUT: ValueShape.SCALAR,
    ControlKind.PHONE_INPUT: ValueShape.SCALAR,
    ControlKind.URL_INPUT: ValueShape.SCALAR,
    ControlKind.PASSWORD_INPUT: ValueShape.SCALAR,
    ControlKind.RICH_TEXT_EDITOR: ValueShape.SCALAR,
    ControlKind.DROPDOWN: ValueShape.SCALAR,
    ControlKind.MULTI_SELECT_DROPDOWN: ValueShape.SEQUENCE,
    ControlKind.RADIO_GROUP: ValueShape.SCALAR,
    ControlKind.CHECKBOX_GROUP: ValueShape.SEQUENCE,
    # single or multiple, see shape_of()
    ControlKind.BUTTON_GROUP: ValueShape.SCALAR,
    ControlKind.RATING_SCALE: ValueShape.SCALAR,
    ControlKind.SLIDER: ValueShape.SCALAR,
    ControlKind.TOGGLE_SWITCH: ValueShape.SCALAR,
    ControlKind.TAG_INPUT: ValueShape.SEQUENCE,
    ControlKind.COLOR_PICKER: ValueShape.SCALAR,
    ControlKind.DATE_PICKER: ValueShape.SCALAR,
    ControlKind.TIME_PICKER: ValueShape.SCALAR,
    ControlKind.DATE_RANGE_PICKER: ValueShape.RECORD,
    ControlKind.SINGLE_SELECTIVE_GRID: ValueShape.GRID,
    ControlKind.MULTI_SELECTIVE_GRID: ValueShape.GRID,
    ControlKind.MATRIX_QUESTIONS: ValueShape.GRID,
    ControlKind.RANKING_CONTROL: ValueShape.SEQUENCE,
    ControlKind.TABLE_INPUT: ValueShape.SEQUENCE,
    ControlKind.FILE_UPLOAD: ValueShape.SEQUENCE,
    ControlKind.IMAGE_UPLOAD: ValueShape.SEQUENCE,
    ControlKind.SIGNATURE_PAD: ValueShape.SCALAR,
    ControlKind.ADDRESS_LINE_1: ValueShape.SCALAR,
    ControlKind.ADDRESS_LINE_2: ValueShape.SCALAR,
    ControlKind.CITY: ValueShape.SCALAR,
    ControlKind.STATE_PROVINCE: ValueShape.SCALAR,
    ControlKind.ZIP_POSTAL: ValueShape.SCALAR,
    ControlKind.COUNTRY: ValueShape.SCALAR,
    ControlKind.COMPLETE_ADDRESS: ValueShape.RECORD,
    ControlKind.HEADING: ValueShape.NONE,
    ControlKind.SECTION_DIVIDER: ValueShape.NONE,
    ControlKind.PROGRESS_BAR: ValueShape.NONE,
    ControlKind.CAPTCHA: ValueShape.SCALAR,
    ControlKind.TERMS_CONDITIONS: ValueShape.SCALAR,
    ControlKind.UNKNOWN: ValueShape.SCALAR,
}

ADDRESS_FIELDS = ("line1", "line2", "city", "state", "zip", "country")
DATE_RANGE_FIELDS = ("start", "end")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def properties_of(control: Any) -> dict[str, Any]:
    props = getattr(control, "properties", None)
    return props if isinstance(props, dict) else {}


def answer_key(control: Any) -> str:
    return str(getattr(control, "uid", "") or "")


def is_multiple_button_group(control: Any) -> bool:
    return properties_of(control).get("selectionType") == "multiple"


def shape_of(control: Any) -> str:
    kind = kind_of(getattr(control, "type", None))
    if kind == ControlKind.BUTTON_GROUP and is_multiple_button_group(control):
        return ValueShape.SEQUENCE
    return VALUE_SHAPES[kind]


def structural_empty(control: Any) -> Any:
    shape = shape_of(control)
    if shape == ValueShape.SEQUENCE:
        return []
    if shape in (ValueShape.GRID, ValueShape.RECORD):
        return {}
    return ""


# -------------------- Option lists --------------------


def parse_options(raw: Any, fallback: list[str] | None = None) -> list[str]:
    """Split a comma-joined option string into trimmed entries.

    Empty segments survive as empty strings, so ``"A,B,"`` yields
    ``["A", "B", ""]``. A blank string means "no options". Lists (as sent by
    the API or the Excel importer) are trimmed item by item; anything else
    yields ``fallback``.
    """
    if isinstance(raw, str):
        if not raw.strip():
            return []
        return [segment.strip() for segment in raw.split(",")]
    if isinstance(raw, (list, tuple)):
        return ["" if item is None else str(item).strip() for item in raw]
    return list(fallback or [])


def options_for(control: Any, prop: str = "options") -> list[str]:
    props = properties_of(control)
    return parse_options(props.get(prop), OPTION_FALLBACKS.get(prop, []))


def join_options(options: list[str]) -> str:
    return ",".join(str(o).strip() for o in options)


# -------------------- Defaults and reads --------------------


def initial_ranking(control: Any) -> list[dict[str, Any]]:
    return [
        {"item": item, "rank": index + 1}
        for index, item in enumerate(options_for(control, "items"))
    ]


def default_value(control: Any) -> Any:
    """The value a control shows before it has received any input."""
    kind = kind_of(getattr(control, "type", None))
    props = properties_of(control)
    if kind == ControlKind.SLIDER:
        return props.get("defaultValue") or DEFAULT_SLIDER_VALUE
    if kind == ControlKind.COLOR_PICKER:
        return props.get("defaultColor") or DEFAULT_COLOR
    if kind in (ControlKind.TOGGLE_SWITCH, ControlKind.TERMS_CONDITIONS):
        return False
    if kind == ControlKind.RATING_SCALE:
        return 0
    if kind == ControlKind.RANKING_CONTROL:
        return initial_ranking(control)
    if kind == ControlKind.TABLE_INPUT:
        return [{}]
    if kind == ControlKind.DATE_RANGE_PICKER:
        return {name: "" for name in DATE_RANGE_FIELDS}
    if kind == ControlKind.COUNTRY:
        return props.get("defaultCountry") or ""
    return structural_empty(control)


def has_answer(answers: Mapping[str, Any] | None, control: Any) -> bool:
    return bool(answers) and answer_key(control) in answers  # type: ignore[operator]


def read_value(answers: Mapping[str, Any] | None, control: Any) -> Any:
    """Stored value for ``control``, or its structural empty when unanswered."""
    if not isinstance(answers, Mapping):
        return structural_empty(control)
    key = answer_key(control)
    if key in answers:
        return answers[key]
    return structural_empty(control)


def display_value(answers: Mapping[str, Any] | None, control: Any) -> Any:
    """Like ``read_value`` but falls back to ``default_value`` for display."""
    value = read_value(answers, control)
    kind = kind_of(getattr(control, "type", None))
    if kind == ControlKind.SLIDER:
        return value or default_value(control)
    if kind == ControlKind.COLOR_PICKER:
        return value or default_value(control)
    if kind == ControlKind.RATING_SCALE:
        return rating_of(value)
    if kind in (ControlKind.TOGGLE_SWITCH, ControlKind.TERMS_CONDITIONS):
        return bool(value)
    if kind == ControlKind.RANKING_CONTROL:
        return value if isinstance(value, list) and value else initial_ranking(control)
    if kind == ControlKind.TABLE_INPUT:
        return value if isinstance(value, list) else [{}]
    if kind == ControlKind.DATE_RANGE_PICKER:
        return _date_range_record(value)
    if not has_answer(answers, control):
        return default_value(control)
    return value


# -------------------- Writes --------------------


def _store(answers: Mapping[str, Any] | None, control: Any, value: Any) -> dict[str, Any]:
    updated = dict(answers or {})
    updated[answer_key(control)] = value
    return updated


def _date_range_record(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return {**{name: "" for name in DATE_RANGE_FIELDS}, **value}
    if isinstance(value, (list, tuple)):
        padded = list(value) + ["", ""]
        return {"start": padded[0] or "", "end": padded[1] or ""}
    return {name: "" for name in DATE_RANGE_FIELDS}


def _merge_rows(existing: Any, incoming: list[Any]) -> list[Any]:
    rows = deepcopy(existing) if isinstance(existing, list) else []
    for index, row in enumerate(incoming):
        if index < len(rows) and isinstance(rows[index], dict) and isinstance(row, Mapping):
            rows[index] = {**rows[index], **row}
        elif index < len(rows):
            rows[index] = deepcopy(row)
        else:
            rows.append(deepcopy(row))
    return rows


def write_value(answers: Mapping[str, Any] | None, control: Any, value: Any) -> dict[str, Any]:
    """Return a new answer set with ``value`` written for ``control``.

    Composite controls (complete address, date range, table input) merge the
    written fields into what is already stored rather than replacing it.
    """
    kind = kind_of(getattr(control, "type", None))
    existing = read_value(answers, control)
    if kind == ControlKind.COMPLETE_ADDRESS and isinstance(value, Mapping):
        base = existing if isinstance(existing, Mapping) else {}
        return _store(answers, control, {**base, **deepcopy(dict(value))})
    if kind == ControlKind.DATE_RANGE_PICKER and isinstance(value, (Mapping, list, tuple)):
        incoming = (
            dict(value) if isinstance(value, Mapping) else _date_range_record(value)
        )
        base = existing if isinstance(existing, Mapping) else {}
        return _store(answers, control, {**base, **incoming})
    if kind == ControlKind.TABLE_INPUT and isinstance(value, list):
        return _store(answers, control, _merge_rows(existing, value))
    return _store(answers, control, deepcopy(value))


# -------------------- Multi-choice --------------------


def selected_options(answers: Mapping[str, Any] | None, control: Any) -> list[Any]:
    value = read_value(answers, control)
    return list(value) if isinstance(value, list) else []


def toggle_option(
    answers: Mapping[str, Any] | None,
    control: Any,
    option: str,
    checked: bool | None = None,
) -> dict[str, Any]:
    """Toggle ``option`` in a multi-choice control, keeping toggle order.

    ``checked`` forces the state; ``None`` flips it. Single-mode button
    groups simply store the option.
    """
    if shape_of(control) != ValueShape.SEQUENCE:
        return write_value(answers, control, option)
    current = selected_options(answers, control)
    present = option in current
    want = (not present) if checked is None else checked
    if want and not present:
        current.append(option)
    elif not want:
        current = [v for v in current if v != option]
    return _store(answers, control, current)


# -------------------- Tags --------------------


def add_tag(answers: Mapping[str, Any] | None, control: Any, text: Any) -> dict[str, Any]:
    tag = str(text or "").strip()
    if not tag:
        return dict(answers or {})
    tags = selected_options(answers, control)
    limit = _safe_int(properties_of(control).get("maxTags"))
    if limit is not None and limit > 0 and len(tags) >= limit:
        return dict(answers or {})
    return _store(answers, control, tags + [tag])


def remove_tag(answers: Mapping[str, Any] | None, control: Any, index: Any) -> dict[str, Any]:
    tags = selected_options(answers, control)
    position = _safe_int(index)
    if position is None or not 0 <= position < len(tags):
        return dict(answers or {})
    return _store(answers, control, [t for i, t in enumerate(tags) if i != position])


# -------------------- Grids --------------------


def _row_key(row: Any) -> str | None:
    value = _safe_int(row)
    return None if value is None else str(value)


def grid_value(answers: Mapping[str, Any] | None, control: Any) -> dict[str, Any]:
    value = read_value(answers, control)
    if not isinstance(value, Mapping):
        return {}
    return {str(k): deepcopy(v) for k, v in value.items()}


def grid_selection(value: Any, row: Any) -> Any:
    """Selection stored for ``row``; tolerates int or str keys."""
    if not isinstance(value, Mapping):
        return None
    if row in value:
        return value[row]
    return value.get(str(row))


def select_grid_cell(
    answers: Mapping[str, Any] | None,
    control: Any,
    row: Any,
    column: Any,
    checked: bool | None = None,
) -> dict[str, Any]:
    """Record a click on grid cell (row, column).

    ``singleSelectiveGrid`` keeps one column per row and unchecking clears the
    row to ``None``. ``multiSelectiveGrid`` toggles membership (``checked``
    forces it). ``matrixQuestions`` always stores the clicked column.
    """
    kind = kind_of(getattr(control, "type", None))
    key = _row_key(row)
    col = _safe_int(column)
    if key is None or col is None:
        return dict(answers or {})
    grid = grid_value(answers, control)
    if kind == ControlKind.SINGLE_SELECTIVE_GRID:
        grid[key] = col if checked is not False else None
    elif kind == ControlKind.MULTI_SELECTIVE_GRID:
        current = grid.get(key)
        selected = list(current) if isinstance(current, list) else []
        present = col in selected
        want = (not present) if checked is None else checked
        if want and not present:
            selected.append(col)
        elif not want:
            selected = [c for c in selected if c != col]
        grid[key] = selected
    elif kind == ControlKind.MATRIX_QUESTIONS:
        grid[key] = col
    else:
        logger.debug("Grid cell selection ignored for control type %s", kind)
        return dict(answers or {})
    return _store(answers, control, grid)


# -------------------- Table input --------------------


def table_rows(answers: Mapping[str, Any] | None, control: Any) -> list[dict[str, Any]]:
    value = read_value(answers, control) if has_answer(answers, control) else None
    if not isinstance(value, list):
        return [{}]
    return [dict(row) if isinstance(row, Mapping) else {} for row in value]


def add_table_row(answers: Mapping[str, Any] | None, control: Any) -> dict[str, Any]:
    rows = table_rows(answers, control)
    limit = _safe_int(properties_of(control).get("maxRows"))
    if limit is not None and limit > 0 and len(rows) >= limit:
        return dict(answers or {})
    return _store(answers, control, rows + [{}])


def remove_table_row(answers: Mapping[str, Any] | None, control: Any, index: Any) -> dict[str, Any]:
    rows = table_rows(answers, control)
    position = _safe_int(index)
    if position is None or not 0 <= position < len(rows):
        return dict(answers or {})
    return _store(answers, control, rows[:position] + rows[position + 1 :])


def set_table_cell(
    answers: Mapping[str, Any] | None,
    control: Any,
    row: Any,
    header: str,
    value: Any,
) -> dict[str, Any]:
    rows = table_rows(answers, control)
    position = _safe_int(row)
    if position is None or not 0 <= position < len(rows):
        return dict(answers or {})
    rows[position] = {**rows[position], str(header).strip(): value}
    return _store(answers, control, rows)


# -------------------- Ranking --------------------


def ranked_items(answers: Mapping[str, Any] | None, control: Any) -> list[dict[str, Any]]:
    value = read_value(answers, control)
    if isinstance(value, list) and value:
        return deepcopy(value)
    return initial_ranking(control)


def move_ranked_item(
    answers: Mapping[str, Any] | None,
    control: Any,
    index: Any,
    direction: str,
) -> dict[str, Any]:
    """Swap the item at ``index`` with its neighbour.

    Moving the first item up or the last item down leaves the answers as
    they were. Rank labels are positional, so nothing is renumbered.
    """
    items = ranked_items(answers, control)
    position = _safe_int(index)
    if position is None or not 0 <= position < len(items):
        return dict(answers or {})
    other = position - 1 if direction == "up" else position + 1
    if direction not in ("up", "down") or not 0 <= other < len(items):
        return dict(answers or {})
    items[position], items[other] = items[other], items[position]
    return _store(answers, control, items)


# -------------------- Rating --------------------


def star_value(index: Any) -> int:
    """Rating stored when the star at zero-based ``index`` is clicked."""
    position = _safe_int(index)
    return 0 if position is None else position + 1


def rating_of(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    match = _LEADING_INT.match(str(value))
    return (_safe_int(match.group(1)) or 0) if match else 0


def rating_max(control: Any) -> int:
    value = _safe_int(properties_of(control).get("maxValue"))
    if not value or value <= 0:
        return DEFAULT_RATING_MAX
    return min(value, RATING_MAX_CEILING)


def _safe_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return None
