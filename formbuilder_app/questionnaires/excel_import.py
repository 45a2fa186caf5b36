"""Bulk import of controls from an Excel workbook.

The ``Controls`` sheet has one header row followed by one control per row.
Rows are validated independently: a bad row is reported as
``"Row N: message"`` and the others are still imported.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Iterable

from django.conf import settings
from django.db import transaction
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font

from .catalog import ControlType, Tier, all_types, available_types, lookup
from .dependencies import normalize_rules
from .models import Control, Questionnaire, Section, next_row_y

logger = logging.getLogger(__name__)

CONTROLS_SHEET = "Controls"
REFERENCES_SHEET = "References"

COLUMNS = (
    "Section",
    "Control Type",
    "Label",
    "Required",
    "Options",
    "Placeholder",
    "Properties (JSON)",
    "Dependencies (JSON)",
)
COLUMN_KEYS = {
    "section": "section",
    "control type": "type",
    "type": "type",
    "label": "label",
    "required": "required",
    "options": "options",
    "placeholder": "placeholder",
    "properties (json)": "properties",
    "properties": "properties",
    "dependencies (json)": "dependencies",
    "dependencies": "dependencies",
}

# Which list property the Options column fills, in order of preference
OPTION_TARGETS = ("options", "items", "columnHeaders", "rowLabels", "questions")

SHOWN_ERRORS_PARTIAL = 3
SHOWN_ERRORS_FAILED = 5
ROW_SPACING = 80


class ImportFileError(Exception):
    """The uploaded file could not be read as a control workbook."""


@dataclass
class ProposedControl:
    section: str
    type: str
    name: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class ImportReport:
    success: int = 0
    total: int = 0
    errors: list[str] = field(default_factory=list)
    controls: list[ProposedControl] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.total - self.success

    @property
    def is_partial(self) -> bool:
        return 0 < self.success < self.total

    def summary(self) -> dict[str, Any]:
        title = "Import Completed" if self.success > 0 else "Import Failed"
        if self.total == 0:
            message = "The workbook contained no control rows."
        elif self.failed == 0:
            message = f"All {self.total} controls were imported."
        else:
            message = f"{self.success} of {self.total} controls were imported."
        return {
            "title": title,
            "message": message,
            "success": self.success,
            "total": self.total,
            "failed": self.failed,
        }

    def shown_errors(self) -> list[str]:
        limit = SHOWN_ERRORS_PARTIAL if self.success > 0 else SHOWN_ERRORS_FAILED
        shown = list(self.errors[:limit])
        hidden = len(self.errors) - limit
        if hidden > 0:
            shown.append(f"... and {hidden} more")
        return shown

    def as_dict(self) -> dict[str, Any]:
        return {"success": self.success, "total": self.total, "errors": list(self.errors)}


# -------------------- Template --------------------


def build_template_workbook() -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = CONTROLS_SHEET
    ws.append(COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    ws.append(("General", "textInput", "Full name", "TRUE", "", "Enter your name", "", ""))
    ws.append(
        (
            "General",
            "radioGroup",
            "Contact preference",
            "FALSE",
            "Email,Phone",
            "",
            "",
            "",
        )
    )
    for column, width in zip("ABCDEFGH", (18, 22, 30, 10, 30, 24, 30, 40)):
        ws.column_dimensions[column].width = width

    refs = wb.create_sheet(REFERENCES_SHEET)
    refs.append(("Control Type", "Label", "Category", "Minimum plan"))
    for cell in refs[1]:
        cell.font = Font(bold=True)
    for entry in all_types():
        refs.append((entry.id, entry.label, entry.category, entry.tier))
    return wb


def template_bytes() -> bytes:
    buffer = BytesIO()
    build_template_workbook().save(buffer)
    return buffer.getvalue()


# -------------------- Parsing --------------------


def parse_boolean(value: Any) -> bool | None:
    """TRUE/YES/1 and FALSE/NO/0 in any case; blank is False, else ``None``."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return {1: True, 0: False}.get(value)
    text = str(value).strip().upper()
    if not text:
        return False
    if text in ("TRUE", "YES", "Y", "1"):
        return True
    if text in ("FALSE", "NO", "N", "0"):
        return False
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _json_cell(value: Any, expected: type, column: str) -> Any:
    text = _text(value)
    if not text:
        return expected()
    try:
        parsed = json.loads(text)
    except ValueError as exc:
        raise ValueError(f"{column} is not valid JSON ({exc.msg})") from exc
    if not isinstance(parsed, expected):
        kind = "an object" if expected is dict else "a list"
        raise ValueError(f"{column} must be {kind}")
    return parsed


def build_proposed_control(
    row: dict[str, Any], allowed: set[str] | None = None
) -> ProposedControl:
    """Validate one row and turn it into a ``ProposedControl``.

    Raises ``ValueError`` with a user-facing message.
    """
    type_id = _text(row.get("type"))
    entry: ControlType | None = lookup(type_id)
    if entry is None:
        raise ValueError(
            f"Unknown control type '{type_id}'" if type_id else "Control Type is required"
        )
    if allowed is not None and entry.id not in allowed:
        raise ValueError(f"Control type '{entry.id}' requires the {entry.tier} plan")

    label = _text(row.get("label"))
    if not label:
        raise ValueError("Label is required")

    required = parse_boolean(row.get("required"))
    if required is None:
        raise ValueError("Required must be TRUE or FALSE")

    extra = _json_cell(row.get("properties"), dict, "Properties (JSON)")
    rules = _json_cell(row.get("dependencies"), list, "Dependencies (JSON)")

    properties = entry.default_properties()
    properties.update(extra)
    properties["label"] = label
    properties["required"] = required

    options = _text(row.get("options"))
    if options:
        target = next((p for p in OPTION_TARGETS if p in properties), None)
        if target is None:
            raise ValueError(f"Options are not supported for '{entry.id}'")
        properties[target] = options
    placeholder = _text(row.get("placeholder"))
    if placeholder and "placeholder" in properties:
        properties["placeholder"] = placeholder
    properties["dependencies"] = normalize_rules(rules or properties.get("dependencies"))

    return ProposedControl(
        section=_text(row.get("section")),
        type=entry.id,
        name=label,
        properties=properties,
    )


def _header_keys(header_row: Iterable[Any]) -> list[str | None]:
    return [COLUMN_KEYS.get(_text(cell).lower()) for cell in header_row]


def parse_control_workbook(file, allowed_types: set[str] | None = None) -> ImportReport:
    """Read the control rows of an uploaded workbook into an ``ImportReport``."""
    try:
        wb = load_workbook(file, read_only=True, data_only=True)
    except Exception as exc:
        logger.warning("Unreadable control workbook: %s", exc)
        raise ImportFileError(
            "Unable to read the file. Please upload a valid .xlsx workbook."
        ) from exc

    try:
        ws = wb[CONTROLS_SHEET] if CONTROLS_SHEET in wb.sheetnames else wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise ImportFileError("The workbook is empty.")
        keys = _header_keys(header)
        if "type" not in keys or "label" not in keys:
            raise ImportFileError(
                "The first row must contain the 'Control Type' and 'Label' headers."
            )

        limit = getattr(settings, "FORMBUILDER_IMPORT_MAX_ROWS", 500)
        report = ImportReport()
        for number, values in enumerate(rows, start=2):
            if all(v is None or _text(v) == "" for v in values):
                continue
            if report.total >= limit:
                report.errors.append(
                    f"Row {number}: import is limited to {limit} rows; remaining rows were skipped"
                )
                break
            report.total += 1
            row = {key: value for key, value in zip(keys, values) if key}
            try:
                proposed = build_proposed_control(row, allowed_types)
            except ValueError as exc:
                report.errors.append(f"Row {number}: {exc}")
                continue
            report.controls.append(proposed)
            report.success += 1
    finally:
        wb.close()

    logger.info(
        "Parsed control workbook: %s/%s rows valid", report.success, report.total
    )
    return report


def allowed_types_for(tier: str | None) -> set[str]:
    return {t.id for t in available_types(tier or Tier.FREE)}


# -------------------- Applying --------------------


def apply_import(questionnaire: Questionnaire, report: ImportReport) -> list[Control]:
    """Create the report's controls below the existing ones.

    Missing sections are created by name; a blank section name means the
    default section. Dependency targets may name a control by the label of
    an earlier row in the same import.
    """
    created: list[Control] = []
    if not report.controls:
        return created
    with transaction.atomic():
        sections = {s.name.strip().lower(): s for s in questionnaire.sections.all()}
        default = questionnaire.default_section
        y = next_row_y(questionnaire, gap=ROW_SPACING)
        by_label: dict[str, str] = {}
        for proposed in report.controls:
            key = proposed.section.strip().lower()
            if not key:
                section = default
            elif key in sections:
                section = sections[key]
            else:
                section = Section.objects.create(
                    questionnaire=questionnaire, name=proposed.section.strip()
                )
                sections[key] = section
            properties = dict(proposed.properties)
            rules = properties.get("dependencies") or []
            properties["dependencies"] = [
                {**rule, "controlId": by_label.get(rule["controlId"], rule["controlId"])}
                for rule in rules
            ]
            control = Control.objects.create(
                questionnaire=questionnaire,
                section=section,
                type=proposed.type,
                name=proposed.name,
                x=0,
                y=y,
                properties=properties,
            )
            by_label.setdefault(proposed.name, control.uid)
            created.append(control)
            y += ROW_SPACING
    logger.info(
        "Bulk import created %s controls in questionnaire %s",
        len(created),
        questionnaire.slug,
    )
    return created
