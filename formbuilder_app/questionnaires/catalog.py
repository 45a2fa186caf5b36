"""Static registry of the control types a designer can place on a form.

Each entry carries the default property bag a freshly placed control starts
with. The value layer (``values.py``) and the renderer (``rendering.py``) read
those same property names, so a new kind needs a branch in all three modules;
``tests/test_catalog.py`` fails until it has one.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from django.db import models


class Category(models.TextChoices):
    BASIC = "basic", "Basic inputs"
    SELECTION = "selection", "Selection"
    INTERACTIVE = "interactive", "Interactive"
    DATETIME = "datetime", "Date & time"
    GRID = "grid", "Grid & matrix"
    MEDIA = "media", "File & media"
    ADDRESS = "address", "Address"
    LAYOUT = "layout", "Layout"
    SECURITY = "security", "Security"


class Tier(models.TextChoices):
    FREE = "free", "Free"
    PRO = "pro", "Pro"
    ENTERPRISE = "enterprise", "Enterprise"


TIER_RANK: dict[str, int] = {Tier.FREE: 0, Tier.PRO: 1, Tier.ENTERPRISE: 2}


class ControlKind(models.TextChoices):
    # Basic inputs
    TEXT_INPUT = "textInput", "Text input"
    TEXTAREA = "textarea", "Text area"
    NUMBER_INPUT = "numberInput", "Number input"
    EMAIL_INPUT = "emailInput", "Email input"
    PHONE_INPUT = "phoneInput", "Phone input"
    URL_INPUT = "urlInput", "URL input"
    PASSWORD_INPUT = "passwordInput", "Password input"
    RICH_TEXT_EDITOR = "richTextEditor", "Rich text editor"
    # Selection
    DROPDOWN = "dropdown", "Dropdown"
    MULTI_SELECT_DROPDOWN = "multiSelectDropdown", "Multi-select dropdown"
    RADIO_GROUP = "radioGroup", "Radio group"
    CHECKBOX_GROUP = "checkboxGroup", "Checkbox group"
    BUTTON_GROUP = "buttonGroup", "Button group"
    # Interactive
    RATING_SCALE = "ratingScale", "Rating scale"
    SLIDER = "slider", "Slider"
    TOGGLE_SWITCH = "toggleSwitch", "Toggle switch"
    TAG_INPUT = "tagInput", "Tag input"
    COLOR_PICKER = "colorPicker", "Color picker"
    # Date & time
    DATE_PICKER = "datePicker", "Date picker"
    TIME_PICKER = "timePicker", "Time picker"
    DATE_RANGE_PICKER = "dateRangePicker", "Date range picker"
    # Grid & matrix
    SINGLE_SELECTIVE_GRID = "singleSelectiveGrid", "Single-select grid"
    MULTI_SELECTIVE_GRID = "multiSelectiveGrid", "Multi-select grid"
    MATRIX_QUESTIONS = "matrixQuestions", "Matrix questions"
    RANKING_CONTROL = "rankingControl", "Ranking"
    TABLE_INPUT = "tableInput", "Table input"
    # File & media
    FILE_UPLOAD = "fileUpload", "File upload"
    IMAGE_UPLOAD = "imageUpload", "Image upload"
    SIGNATURE_PAD = "signaturePad", "Signature pad"
    # Address
    ADDRESS_LINE_1 = "addressLine1", "Address line 1"
    ADDRESS_LINE_2 = "addressLine2", "Address line 2"
    CITY = "city", "City"
    STATE_PROVINCE = "stateProvince", "State / province"
    ZIP_POSTAL = "zipPostal", "ZIP / postal code"
    COUNTRY = "country", "Country"
    COMPLETE_ADDRESS = "completeAddress", "Complete address"
    # Layout
    HEADING = "heading", "Heading"
    SECTION_DIVIDER = "sectionDivider", "Section divider"
    PROGRESS_BAR = "progressBar", "Progress bar"
    # Security
    CAPTCHA = "captcha", "CAPTCHA"
    TERMS_CONDITIONS = "termsConditions", "Terms & conditions"
    # Anything the catalog does not know about renders as a placeholder
    UNKNOWN = "unknown", "Unknown control"


@dataclass(frozen=True)
class ControlType:
    id: str
    category: str
    label: str
    defaults: Mapping[str, Any] = field(default_factory=dict)
    tier: str = Tier.FREE

    def default_properties(self) -> dict[str, Any]:
        return deepcopy(dict(self.defaults))


def _entry(
    kind: ControlKind,
    category: Category,
    defaults: dict[str, Any],
    tier: Tier = Tier.FREE,
) -> ControlType:
    # Every control can carry a label, a required flag and a dependency list.
    props: dict[str, Any] = {
        "label": kind.label,
        "required": False,
        "dependencies": [],
    }
    props.update(defaults)
    return ControlType(
        id=kind.value,
        category=category.value,
        label=kind.label,
        defaults=MappingProxyType(props),
        tier=tier.value,
    )


_TEXT_DEFAULTS = {"placeholder": "", "maxLength": None}

_ENTRIES: tuple[ControlType, ...] = (
    # Basic inputs
    _entry(ControlKind.TEXT_INPUT, Category.BASIC, {"placeholder": "Enter text..."}),
    _entry(
        ControlKind.TEXTAREA,
        Category.BASIC,
        {"placeholder": "Enter text...", "rows": 4},
    ),
    _entry(
        ControlKind.NUMBER_INPUT,
        Category.BASIC,
        {"placeholder": "", "min": None, "max": None, "step": 1},
    ),
    _entry(ControlKind.EMAIL_INPUT, Category.BASIC, {"placeholder": "name@example.com"}),
    _entry(ControlKind.PHONE_INPUT, Category.BASIC, {"placeholder": "+1 (555) 000-0000"}),
    _entry(ControlKind.URL_INPUT, Category.BASIC, {"placeholder": "https://"}),
    _entry(ControlKind.PASSWORD_INPUT, Category.BASIC, dict(_TEXT_DEFAULTS)),
    _entry(
        ControlKind.RICH_TEXT_EDITOR,
        Category.BASIC,
        {"placeholder": "Enter formatted text..."},
        Tier.PRO,
    ),
    # Selection
    _entry(
        ControlKind.DROPDOWN,
        Category.SELECTION,
        {"options": "Option 1,Option 2,Option 3"},
    ),
    _entry(
        ControlKind.MULTI_SELECT_DROPDOWN,
        Category.SELECTION,
        {"options": "Option 1,Option 2,Option 3"},
    ),
    _entry(
        ControlKind.RADIO_GROUP,
        Category.SELECTION,
        {"options": "Option 1,Option 2,Option 3"},
    ),
    _entry(
        ControlKind.CHECKBOX_GROUP,
        Category.SELECTION,
        {"options": "Option 1,Option 2,Option 3"},
    ),
    _entry(
        ControlKind.BUTTON_GROUP,
        Category.SELECTION,
        {"options": "Option 1,Option 2,Option 3", "selectionType": "single"},
    ),
    # Interactive
    _entry(
        ControlKind.RATING_SCALE,
        Category.INTERACTIVE,
        {"maxValue": 5, "scaleType": "stars"},
    ),
    _entry(
        ControlKind.SLIDER,
        Category.INTERACTIVE,
        {"min": 0, "max": 100, "step": 1, "defaultValue": 50},
    ),
    _entry(
        ControlKind.TOGGLE_SWITCH,
        Category.INTERACTIVE,
        {"onLabel": "On", "offLabel": "Off"},
    ),
    _entry(ControlKind.TAG_INPUT, Category.INTERACTIVE, {"maxTags": None}, Tier.PRO),
    _entry(
        ControlKind.COLOR_PICKER,
        Category.INTERACTIVE,
        {"defaultColor": "#3B82F6"},
        Tier.PRO,
    ),
    # Date & time
    _entry(ControlKind.DATE_PICKER, Category.DATETIME, {"minDate": "", "maxDate": ""}),
    _entry(ControlKind.TIME_PICKER, Category.DATETIME, {"format": "24h"}),
    _entry(
        ControlKind.DATE_RANGE_PICKER,
        Category.DATETIME,
        {"startLabel": "Start date", "endLabel": "End date"},
        Tier.PRO,
    ),
    # Grid & matrix
    _entry(
        ControlKind.SINGLE_SELECTIVE_GRID,
        Category.GRID,
        {"rowLabels": "Row 1,Row 2", "columnOptions": "Col 1,Col 2"},
        Tier.PRO,
    ),
    _entry(
        ControlKind.MULTI_SELECTIVE_GRID,
        Category.GRID,
        {"rowLabels": "Row 1,Row 2", "columnOptions": "Col 1,Col 2"},
        Tier.PRO,
    ),
    _entry(
        ControlKind.MATRIX_QUESTIONS,
        Category.GRID,
        {
            "questions": "Question 1,Question 2",
            "answers": "Strongly Agree,Agree,Neutral,Disagree,Strongly Disagree",
        },
        Tier.PRO,
    ),
    _entry(
        ControlKind.RANKING_CONTROL,
        Category.GRID,
        {"items": "Item 1,Item 2,Item 3"},
        Tier.PRO,
    ),
    _entry(
        ControlKind.TABLE_INPUT,
        Category.GRID,
        {"columnHeaders": "Column 1,Column 2", "maxRows": None},
        Tier.ENTERPRISE,
    ),
    # File & media
    _entry(
        ControlKind.FILE_UPLOAD,
        Category.MEDIA,
        {"accept": "", "multiple": False, "maxSize": 10},
    ),
    _entry(
        ControlKind.IMAGE_UPLOAD,
        Category.MEDIA,
        {"accept": "image/*", "multiple": False, "maxSize": 5},
    ),
    _entry(
        ControlKind.SIGNATURE_PAD,
        Category.MEDIA,
        {"canvasHeight": 200, "penColor": "#000000"},
        Tier.ENTERPRISE,
    ),
    # Address
    _entry(ControlKind.ADDRESS_LINE_1, Category.ADDRESS, {"placeholder": "Street address"}),
    _entry(
        ControlKind.ADDRESS_LINE_2,
        Category.ADDRESS,
        {"placeholder": "Apartment, suite, etc."},
    ),
    _entry(ControlKind.CITY, Category.ADDRESS, {"placeholder": "City"}),
    _entry(ControlKind.STATE_PROVINCE, Category.ADDRESS, {"inputType": "text"}),
    _entry(ControlKind.ZIP_POSTAL, Category.ADDRESS, {"placeholder": "ZIP code"}),
    _entry(ControlKind.COUNTRY, Category.ADDRESS, {"defaultCountry": ""}),
    _entry(
        ControlKind.COMPLETE_ADDRESS,
        Category.ADDRESS,
        {"includeAddressLine2": True},
        Tier.PRO,
    ),
    # Layout
    _entry(
        ControlKind.HEADING,
        Category.LAYOUT,
        {
            "text": "Heading Text",
            "level": "h2",
            "fontSize": "medium",
            "alignment": "left",
            "color": "",
        },
    ),
    _entry(
        ControlKind.SECTION_DIVIDER,
        Category.LAYOUT,
        {"style": "solid", "thickness": 1, "color": "#e5e7eb", "spacing": "medium"},
    ),
    _entry(
        ControlKind.PROGRESS_BAR,
        Category.LAYOUT,
        {"label": "Progress", "showPercentage": True, "color": "#3B82F6"},
    ),
    # Security
    _entry(ControlKind.CAPTCHA, Category.SECURITY, {"difficulty": "medium"}, Tier.ENTERPRISE),
    _entry(
        ControlKind.TERMS_CONDITIONS,
        Category.SECURITY,
        {
            "text": "I agree to the terms and conditions",
            "linkText": "",
            "linkUrl": "",
        },
    ),
)

CATALOG: Mapping[str, ControlType] = MappingProxyType({t.id: t for t in _ENTRIES})


def lookup(type_id: str | None) -> ControlType | None:
    """Return the catalog entry for ``type_id`` or ``None`` when unknown."""
    if not type_id:
        return None
    return CATALOG.get(type_id)


def kind_of(type_id: str | None) -> ControlKind:
    if type_id and type_id in CATALOG:
        return ControlKind(type_id)
    return ControlKind.UNKNOWN


def all_types() -> list[ControlType]:
    return list(_ENTRIES)


def default_properties(type_id: str) -> dict[str, Any]:
    entry = lookup(type_id)
    if entry is None:
        return {"label": "", "required": False, "dependencies": []}
    return entry.default_properties()


def tier_allows(user_tier: str | None, control_type: ControlType) -> bool:
    rank = TIER_RANK.get(user_tier or Tier.FREE, 0)
    return rank >= TIER_RANK.get(control_type.tier, 0)


def available_types(user_tier: str | None) -> list[ControlType]:
    return [t for t in _ENTRIES if tier_allows(user_tier, t)]


def by_category(types: Iterable[ControlType] | None = None) -> list[tuple[str, str, list[ControlType]]]:
    """Group catalog entries by category, preserving the category order.

    Returns ``(category_value, category_label, entries)`` tuples, skipping
    categories with no entries, which is the shape the designer palette wants.
    """
    pool = list(types) if types is not None else list(_ENTRIES)
    grouped: list[tuple[str, str, list[ControlType]]] = []
    for value, label in Category.choices:
        entries = [t for t in pool if t.category == value]
        if entries:
            grouped.append((value, label, entries))
    return grouped
