"""Per-type dispatch from a control to what the designer and preview show.

``present`` turns a control plus the current answers into a ``Presentation``
the templates (and the preview API) render. ``edit`` describes the property
panel for a control. ``handle_input`` routes a preview input event back
through the value layer and returns the updated answers.

Nothing here touches the database; callers persist whatever comes back.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Mapping

from . import values
from .catalog import ControlKind, default_properties, kind_of
from .dependencies import has_rules, normalize_rules

logger = logging.getLogger(__name__)

STATE_CHOICES = [
    ("CA", "California"),
    ("NY", "New York"),
    ("TX", "Texas"),
    ("FL", "Florida"),
]
COUNTRY_CHOICES = [
    ("US", "United States"),
    ("CA", "Canada"),
    ("UK", "United Kingdom"),
    ("AU", "Australia"),
]
ADDRESS_COUNTRY_CHOICES = [("US", "United States"), ("CA", "Canada")]

HEADING_LEVELS = ("h1", "h2", "h3", "h4", "h5", "h6")
HEADING_FONT_SIZES = {"small": "14px", "medium": "18px", "large": "24px", "xl": "32px"}
DIVIDER_SPACING = {"small": "8px 0", "medium": "16px 0", "large": "24px 0"}

TRUTHY = {"on", "true", "1", "yes"}

# Widgets that carry their own text instead of a field label
UNLABELLED_WIDGETS = {"heading", "divider", "progress", "terms", "placeholder"}


@dataclass
class Presentation:
    uid: str
    kind: str
    widget: str
    name: str = ""
    label: str = ""
    required: bool = False
    conditional: bool = False
    value: Any = None
    options: list[dict[str, Any]] = field(default_factory=list)
    rows: list[Any] = field(default_factory=list)
    columns: list[Any] = field(default_factory=list)
    attrs: dict[str, Any] = field(default_factory=dict)
    actions: tuple[str, ...] = ()
    placeholder_text: str = ""

    @property
    def template_name(self) -> str:
        return f"questionnaires/controls/{self.widget}.html"

    @property
    def shows_label(self) -> bool:
        return self.widget not in UNLABELLED_WIDGETS

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["actions"] = list(self.actions)
        return data


@dataclass
class PropertyField:
    name: str
    label: str
    input: str
    value: Any = None
    choices: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class PropertyEditor:
    uid: str
    kind: str
    fields: list[PropertyField] = field(default_factory=list)

    def field(self, name: str) -> PropertyField | None:
        for entry in self.fields:
            if entry.name == name:
                return entry
        return None


# -------------------- Presentation --------------------


def _base(control: Any, widget: str, actions: tuple[str, ...] = ("set",)) -> Presentation:
    props = values.properties_of(control)
    return Presentation(
        uid=values.answer_key(control),
        kind=kind_of(getattr(control, "type", None)).value,
        widget=widget,
        name=str(getattr(control, "name", "") or ""),
        label=str(props.get("label") or ""),
        required=bool(props.get("required")),
        conditional=has_rules(control),
        actions=actions,
    )


def _choices(options: list[str], selected: Callable[[str], bool]) -> list[dict[str, Any]]:
    return [
        {"index": i, "value": option, "label": option, "selected": selected(option)}
        for i, option in enumerate(options)
    ]


def _text_input(input_type: str) -> Callable[[Any, Mapping[str, Any]], Presentation]:
    def present_text(control: Any, answers: Mapping[str, Any]) -> Presentation:
        props = values.properties_of(control)
        p = _base(control, "text")
        p.value = values.display_value(answers, control)
        p.attrs = {"type": input_type, "placeholder": props.get("placeholder") or ""}
        if props.get("maxLength"):
            p.attrs["maxlength"] = props.get("maxLength")
        return p

    return present_text


def _present_textarea(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "textarea")
    p.value = values.display_value(answers, control)
    p.attrs = {
        "placeholder": props.get("placeholder") or "",
        "rows": props.get("rows") or 4,
    }
    return p


def _present_rich_text(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "textarea")
    p.value = values.display_value(answers, control)
    p.attrs = {
        "placeholder": props.get("placeholder") or "Enter formatted text...",
        "rows": 6,
        "rich": True,
    }
    return p


def _present_number(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "text")
    p.value = values.display_value(answers, control)
    p.attrs = {
        "type": "number",
        "min": props.get("min"),
        "max": props.get("max"),
        "step": props.get("step"),
        "placeholder": props.get("placeholder") or "",
    }
    return p


def _present_dropdown(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "select")
    current = values.read_value(answers, control)
    p.value = current
    p.options = _choices(values.options_for(control), lambda o: o == current)
    p.attrs = {"empty_label": "Select an option..."}
    return p


def _present_multi(widget: str) -> Callable[[Any, Mapping[str, Any]], Presentation]:
    def present_multi(control: Any, answers: Mapping[str, Any]) -> Presentation:
        p = _base(control, widget, ("toggle",))
        selected = values.selected_options(answers, control)
        p.value = selected
        p.options = _choices(values.options_for(control), lambda o: o in selected)
        return p

    return present_multi


def _present_radio(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "radio")
    current = values.read_value(answers, control)
    p.value = current
    p.options = _choices(values.options_for(control), lambda o: o == current)
    return p


def _present_button_group(control: Any, answers: Mapping[str, Any]) -> Presentation:
    multiple = values.is_multiple_button_group(control)
    p = _base(control, "buttons", ("toggle",) if multiple else ("set", "toggle"))
    if multiple:
        selected = values.selected_options(answers, control)
        p.value = selected
        p.options = _choices(values.options_for(control), lambda o: o in selected)
    else:
        current = values.read_value(answers, control)
        p.value = current
        p.options = _choices(values.options_for(control), lambda o: o == current)
    p.attrs = {"multiple": multiple}
    return p


def _present_rating(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "rating", ("star", "set"))
    rating = values.display_value(answers, control)
    stars = props.get("scaleType") == "stars"
    p.value = rating
    p.options = [
        {
            "index": i,
            "value": i + 1,
            "label": "★" if stars else str(i + 1),
            "selected": i < rating,
        }
        for i in range(values.rating_max(control))
    ]
    p.attrs = {"stars": stars}
    return p


def _present_slider(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "slider")
    p.value = values.display_value(answers, control)
    p.attrs = {
        "min": props.get("min") or 0,
        "max": props.get("max") or 100,
        "step": props.get("step") or 1,
    }
    return p


def _present_toggle(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "toggle", ("toggle", "set"))
    p.value = values.display_value(answers, control)
    p.attrs = {
        "on_label": props.get("onLabel") or "On",
        "off_label": props.get("offLabel") or "Off",
    }
    return p


def _present_tags(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "tags", ("add_tag", "remove_tag"))
    tags = values.selected_options(answers, control)
    p.value = tags
    p.options = [{"index": i, "value": t, "label": t} for i, t in enumerate(tags)]
    p.attrs = {"placeholder": "Type and press Enter to add tags"}
    return p


def _present_color(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "color")
    p.value = values.display_value(answers, control)
    return p


def _present_date_range(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "daterange", ("merge",))
    p.value = values.display_value(answers, control)
    p.attrs = {
        "start_label": props.get("startLabel") or "Start date",
        "end_label": props.get("endLabel") or "End date",
    }
    return p


def _present_grid(control: Any, answers: Mapping[str, Any]) -> Presentation:
    kind = kind_of(getattr(control, "type", None))
    multiple = kind == ControlKind.MULTI_SELECTIVE_GRID
    p = _base(control, "grid", ("select_cell",))
    grid = values.grid_value(answers, control)
    columns = values.options_for(control, "columnOptions")
    p.value = grid
    p.columns = columns
    rows = []
    for r, label in enumerate(values.options_for(control, "rowLabels")):
        picked = values.grid_selection(grid, r)
        cells = []
        for c in range(len(columns)):
            checked = (c in picked) if multiple and isinstance(picked, list) else picked == c
            cells.append({"column": c, "checked": bool(checked)})
        rows.append({"index": r, "label": label, "cells": cells})
    p.rows = rows
    p.attrs = {"input_type": "checkbox" if multiple else "radio"}
    return p


def _present_matrix(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "grid", ("select_cell",))
    grid = values.grid_value(answers, control)
    answers_row = values.options_for(control, "answers")
    p.value = grid
    p.columns = answers_row
    p.rows = [
        {
            "index": q,
            "label": question,
            "cells": [
                {"column": a, "checked": values.grid_selection(grid, q) == a}
                for a in range(len(answers_row))
            ],
        }
        for q, question in enumerate(values.options_for(control, "questions"))
    ]
    p.attrs = {"input_type": "radio", "row_heading": "Question"}
    return p


def _present_ranking(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "ranking", ("move_up", "move_down"))
    items = values.ranked_items(answers, control)
    p.value = items
    p.rows = [
        {
            "index": i,
            "position": i + 1,
            "item": entry.get("item") if isinstance(entry, Mapping) else entry,
            "first": i == 0,
            "last": i == len(items) - 1,
        }
        for i, entry in enumerate(items)
    ]
    return p


def _present_table(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "table", ("add_row", "remove_row", "set_cell"))
    headers = values.options_for(control, "columnHeaders")
    rows = values.table_rows(answers, control)
    p.value = rows
    p.columns = headers
    p.rows = [
        {
            "index": i,
            "cells": [{"header": h, "value": row.get(h, "")} for h in headers],
        }
        for i, row in enumerate(rows)
    ]
    return p


def _present_upload(default_accept: str, default_max: int, prompt: str):
    def present_upload(control: Any, answers: Mapping[str, Any]) -> Presentation:
        props = values.properties_of(control)
        p = _base(control, "upload")
        p.value = values.selected_options(answers, control)
        p.attrs = {
            "accept": props.get("accept") or default_accept,
            "multiple": bool(props.get("multiple")),
            "max_size": props.get("maxSize") or default_max,
            "prompt": prompt,
        }
        return p

    return present_upload


def _present_signature(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "signature")
    p.value = values.read_value(answers, control)
    p.attrs = {"height": props.get("canvasHeight") or 200}
    return p


def _present_state(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    if props.get("inputType") == "dropdown":
        p = _base(control, "select")
        current = values.read_value(answers, control)
        p.value = current
        p.options = [
            {"index": i, "value": code, "label": name, "selected": code == current}
            for i, (code, name) in enumerate(STATE_CHOICES)
        ]
        p.attrs = {"empty_label": "Select state..."}
        return p
    p = _base(control, "text")
    p.value = values.display_value(answers, control)
    p.attrs = {"type": "text", "placeholder": "Enter state/province"}
    return p


def _present_country(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "select")
    current = values.display_value(answers, control)
    p.value = current
    p.options = [
        {"index": i, "value": code, "label": name, "selected": code == current}
        for i, (code, name) in enumerate(COUNTRY_CHOICES)
    ]
    p.attrs = {"empty_label": "Select country..."}
    return p


def _present_address(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "address", ("merge",))
    record = values.read_value(answers, control)
    record = dict(record) if isinstance(record, Mapping) else {}
    fields = [("line1", "Street address")]
    if props.get("includeAddressLine2"):
        fields.append(("line2", "Apartment, suite, etc."))
    fields += [("city", "City"), ("state", "State"), ("zip", "ZIP Code")]
    p.value = record
    p.rows = [
        {"field": name, "placeholder": placeholder, "value": record.get(name, "")}
        for name, placeholder in fields
    ]
    p.options = [
        {
            "index": i,
            "value": code,
            "label": name,
            "selected": code == record.get("country"),
        }
        for i, (code, name) in enumerate(ADDRESS_COUNTRY_CHOICES)
    ]
    return p


def _present_heading(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "heading", ())
    level = props.get("level")
    p.value = props.get("text") or "Heading Text"
    p.attrs = {
        "level": level if level in HEADING_LEVELS else "h2",
        "font_size": HEADING_FONT_SIZES.get(props.get("fontSize"), "18px"),
        "alignment": props.get("alignment") or "left",
        "color": props.get("color") or "",
    }
    return p


def _present_divider(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "divider", ())
    p.attrs = {
        "style": props.get("style") or "solid",
        "thickness": props.get("thickness") or 1,
        "color": props.get("color") or "#e5e7eb",
        "margin": DIVIDER_SPACING.get(props.get("spacing"), "16px 0"),
    }
    return p


def _present_progress(control: Any, answers: Mapping[str, Any], progress: int = 0) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "progress", ())
    p.value = max(0, min(100, int(progress)))
    p.attrs = {
        "label": props.get("label") or "Progress",
        "show_percentage": bool(props.get("showPercentage")),
        "color": props.get("color") or values.DEFAULT_COLOR,
    }
    return p


def _present_captcha(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "captcha")
    p.value = values.display_value(answers, control)
    p.attrs = {"placeholder": "Enter code"}
    return p


def _present_terms(control: Any, answers: Mapping[str, Any]) -> Presentation:
    props = values.properties_of(control)
    p = _base(control, "terms", ("toggle", "set"))
    p.value = values.display_value(answers, control)
    p.attrs = {
        "text": props.get("text") or "I agree to the terms and conditions",
        "link_text": props.get("linkText") or "",
        "link_url": props.get("linkUrl") or "#",
    }
    return p


def _present_placeholder(control: Any, answers: Mapping[str, Any]) -> Presentation:
    p = _base(control, "placeholder", ())
    p.placeholder_text = p.name or str(getattr(control, "type", "") or "")
    return p


PRESENTERS: dict[str, Callable[[Any, Mapping[str, Any]], Presentation]] = {
    ControlKind.TEXT_INPUT: _text_input("text"),
    ControlKind.TEXTAREA: _present_textarea,
    ControlKind.NUMBER_INPUT: _present_number,
    ControlKind.EMAIL_INPUT: _text_input("email"),
    ControlKind.PHONE_INPUT: _text_input("tel"),
    ControlKind.URL_INPUT: _text_input("url"),
    ControlKind.PASSWORD_INPUT: _text_input("password"),
    ControlKind.RICH_TEXT_EDITOR: _present_rich_text,
    ControlKind.DROPDOWN: _present_dropdown,
    ControlKind.MULTI_SELECT_DROPDOWN: _present_multi("multiselect"),
    ControlKind.RADIO_GROUP: _present_radio,
    ControlKind.CHECKBOX_GROUP: _present_multi("checkbox"),
    ControlKind.BUTTON_GROUP: _present_button_group,
    ControlKind.RATING_SCALE: _present_rating,
    ControlKind.SLIDER: _present_slider,
    ControlKind.TOGGLE_SWITCH: _present_toggle,
    ControlKind.TAG_INPUT: _present_tags,
    ControlKind.COLOR_PICKER: _present_color,
    ControlKind.DATE_PICKER: _text_input("date"),
    ControlKind.TIME_PICKER: _text_input("time"),
    ControlKind.DATE_RANGE_PICKER: _present_date_range,
    ControlKind.SINGLE_SELECTIVE_GRID: _present_grid,
    ControlKind.MULTI_SELECTIVE_GRID: _present_grid,
    ControlKind.MATRIX_QUESTIONS: _present_matrix,
    ControlKind.RANKING_CONTROL: _present_ranking,
    ControlKind.TABLE_INPUT: _present_table,
    ControlKind.FILE_UPLOAD: _present_upload("", 10, "Click to upload or drag files here"),
    ControlKind.IMAGE_UPLOAD: _present_upload("image/*", 5, "Click to upload images"),
    ControlKind.SIGNATURE_PAD: _present_signature,
    ControlKind.ADDRESS_LINE_1: _text_input("text"),
    ControlKind.ADDRESS_LINE_2: _text_input("text"),
    ControlKind.CITY: _text_input("text"),
    ControlKind.STATE_PROVINCE: _present_state,
    ControlKind.ZIP_POSTAL: _text_input("text"),
    ControlKind.COUNTRY: _present_country,
    ControlKind.COMPLETE_ADDRESS: _present_address,
    ControlKind.HEADING: _present_heading,
    ControlKind.SECTION_DIVIDER: _present_divider,
    ControlKind.PROGRESS_BAR: _present_progress,
    ControlKind.CAPTCHA: _present_captcha,
    ControlKind.TERMS_CONDITIONS: _present_terms,
    ControlKind.UNKNOWN: _present_placeholder,
}


def present(control: Any, answers: Mapping[str, Any] | None = None, *, progress: int = 0) -> Presentation:
    """Describe how ``control`` should be shown given ``answers``.

    Unknown types come back as the ``placeholder`` widget showing the
    control's name.
    """
    kind = kind_of(getattr(control, "type", None))
    if kind == ControlKind.UNKNOWN:
        logger.warning(
            "Unknown control type %r for control %s; rendering placeholder",
            getattr(control, "type", None),
            values.answer_key(control) or "?",
        )
    source = answers if isinstance(answers, Mapping) else {}
    if kind == ControlKind.PROGRESS_BAR:
        return _present_progress(control, source, progress)
    return PRESENTERS[kind](control, source)


# -------------------- Property editor --------------------

OPTION_PROPERTIES = {
    "options",
    "rowLabels",
    "columnOptions",
    "questions",
    "answers",
    "items",
    "columnHeaders",
}
COLOR_PROPERTIES = {"defaultColor", "penColor", "color"}
NUMERIC_PROPERTIES = {
    "min",
    "max",
    "step",
    "rows",
    "maxLength",
    "maxTags",
    "maxRows",
    "maxValue",
    "maxSize",
    "defaultValue",
    "thickness",
    "canvasHeight",
}
LONG_TEXT_PROPERTIES = {"text"}

PROPERTY_CHOICES: dict[str, list[tuple[str, str]]] = {
    "scaleType": [("stars", "Stars"), ("numbers", "Numbers")],
    "selectionType": [("single", "Single"), ("multiple", "Multiple")],
    "level": [(lvl, lvl.upper()) for lvl in HEADING_LEVELS],
    "fontSize": [(k, k.title()) for k in HEADING_FONT_SIZES],
    "alignment": [("left", "Left"), ("center", "Center"), ("right", "Right")],
    "style": [("solid", "Solid"), ("dashed", "Dashed"), ("dotted", "Dotted")],
    "spacing": [(k, k.title()) for k in DIVIDER_SPACING],
    "inputType": [("text", "Text"), ("dropdown", "Dropdown")],
    "format": [("12h", "12-hour"), ("24h", "24-hour")],
    "difficulty": [("easy", "Easy"), ("medium", "Medium"), ("hard", "Hard")],
    "defaultCountry": [("", "None")] + COUNTRY_CHOICES,
}

COMMON_PROPERTIES = ("label", "required", "dependencies")


def _humanize(name: str) -> str:
    out = []
    for ch in name:
        if ch.isupper() and out:
            out.append(" ")
        out.append(ch.lower() if out else ch.upper())
    return "".join(out)


def _input_for(name: str, default: Any) -> str:
    if name == "dependencies":
        return "dependencies"
    if name in PROPERTY_CHOICES:
        return "select"
    if name in OPTION_PROPERTIES:
        return "options"
    if name in COLOR_PROPERTIES:
        return "color"
    if isinstance(default, bool):
        return "checkbox"
    if name in NUMERIC_PROPERTIES or isinstance(default, (int, float)):
        return "number"
    if name in LONG_TEXT_PROPERTIES:
        return "textarea"
    return "text"


def edit(control: Any) -> PropertyEditor:
    """Describe the property panel for ``control``."""
    kind = kind_of(getattr(control, "type", None))
    defaults = default_properties(getattr(control, "type", "") or "")
    props = values.properties_of(control)
    names = list(COMMON_PROPERTIES) + [n for n in defaults if n not in COMMON_PROPERTIES]
    editor = PropertyEditor(uid=values.answer_key(control), kind=kind.value)
    for name in names:
        default = defaults.get(name)
        current = props.get(name, default)
        input_kind = _input_for(name, default)
        if input_kind == "options" and isinstance(current, list):
            current = values.join_options(current)
        editor.fields.append(
            PropertyField(
                name=name,
                label=_humanize(name),
                input=input_kind,
                value=current,
                choices=list(PROPERTY_CHOICES.get(name, [])),
            )
        )
    return editor


def _coerce_number(raw: Any, previous: Any) -> Any:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        return previous
    if isinstance(raw, int):
        return raw
    try:
        number = float(raw if isinstance(raw, float) else str(raw).strip())
    except (ValueError, OverflowError):
        return previous
    if not math.isfinite(number):
        return previous
    return int(number) if number.is_integer() else number


def _coerce_options(raw: Any) -> str:
    if isinstance(raw, (list, tuple)):
        return values.join_options([str(o) for o in raw])
    text = str(raw or "")
    if "\n" in text:
        return values.join_options([line.strip() for line in text.splitlines() if line.strip()])
    return text.strip()


def _coerce_rules(raw: Any, previous: Any) -> list[dict[str, Any]]:
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.info("Rejected malformed dependency JSON: %s", raw[:200])
            return previous if isinstance(previous, list) else []
    return normalize_rules(raw)


def apply_property_edit(control: Any, name: str, raw: Any) -> dict[str, Any]:
    """Return a new property bag with ``name`` set from form input ``raw``."""
    props = dict(values.properties_of(control))
    defaults = default_properties(getattr(control, "type", "") or "")
    previous = props.get(name, defaults.get(name))
    input_kind = _input_for(name, defaults.get(name))
    if input_kind == "checkbox":
        props[name] = raw if isinstance(raw, bool) else str(raw or "").lower() in TRUTHY
    elif input_kind == "number":
        props[name] = _coerce_number(raw, previous)
    elif input_kind == "options":
        props[name] = _coerce_options(raw)
    elif input_kind == "dependencies":
        props[name] = _coerce_rules(raw, previous)
    elif input_kind == "select":
        allowed = {value for value, _ in PROPERTY_CHOICES[name]}
        props[name] = raw if raw in allowed else previous
    else:
        props[name] = "" if raw is None else str(raw)
    return props


# -------------------- Input events --------------------


def _flag(raw: Any) -> bool | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        return raw
    return str(raw).lower() in TRUTHY


def _coerce_set_value(control: Any, raw: Any) -> Any:
    kind = kind_of(getattr(control, "type", None))
    if kind == ControlKind.SLIDER:
        parsed = values.rating_of(raw)
        return parsed if raw not in (None, "") else values.default_value(control)
    if kind == ControlKind.RATING_SCALE:
        return values.rating_of(raw)
    if kind in (ControlKind.TOGGLE_SWITCH, ControlKind.TERMS_CONDITIONS):
        return bool(_flag(raw))
    return raw


def handle_input(
    control: Any,
    answers: Mapping[str, Any] | None,
    action: str,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Apply one preview input event and return the new answers."""
    data = payload if isinstance(payload, Mapping) else {}
    current = dict(answers or {})
    allowed = present(control, current).actions
    if action not in allowed:
        logger.info(
            "Ignoring %r input for control %s of type %s",
            action,
            values.answer_key(control),
            getattr(control, "type", None),
        )
        return current

    if action == "set":
        return values.write_value(current, control, _coerce_set_value(control, data.get("value")))
    if action == "toggle":
        kind = kind_of(getattr(control, "type", None))
        if kind in (ControlKind.TOGGLE_SWITCH, ControlKind.TERMS_CONDITIONS):
            forced = _flag(data.get("checked"))
            state = (not bool(values.read_value(current, control))) if forced is None else forced
            return values.write_value(current, control, state)
        return values.toggle_option(
            current, control, str(data.get("option", "")), _flag(data.get("checked"))
        )
    if action == "select_cell":
        return values.select_grid_cell(
            current, control, data.get("row"), data.get("column"), _flag(data.get("checked"))
        )
    if action == "star":
        return values.write_value(current, control, values.star_value(data.get("index")))
    if action == "add_tag":
        return values.add_tag(current, control, data.get("value"))
    if action == "remove_tag":
        return values.remove_tag(current, control, data.get("index"))
    if action == "add_row":
        return values.add_table_row(current, control)
    if action == "remove_row":
        return values.remove_table_row(current, control, data.get("index"))
    if action == "set_cell":
        return values.set_table_cell(
            current, control, data.get("row"), str(data.get("header", "")), data.get("value", "")
        )
    if action in ("move_up", "move_down"):
        return values.move_ranked_item(
            current, control, data.get("index"), "up" if action == "move_up" else "down"
        )
    if action == "merge":
        fragment = data.get("value")
        if not isinstance(fragment, Mapping) and data.get("field"):
            fragment = {str(data["field"]): data.get("value", "")}
        if isinstance(fragment, Mapping):
            return values.write_value(current, control, dict(fragment))
    return current
