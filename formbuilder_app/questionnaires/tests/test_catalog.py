import pytest

from formbuilder_app.questionnaires.catalog import (
    Category,
    ControlKind,
    Tier,
    all_types,
    available_types,
    by_category,
    default_properties,
    kind_of,
    lookup,
    tier_allows,
)
from formbuilder_app.questionnaires.rendering import PRESENTERS
from formbuilder_app.questionnaires.values import VALUE_SHAPES


KNOWN_KINDS = [k for k in ControlKind if k != ControlKind.UNKNOWN]


def test_every_kind_has_a_catalog_entry():
    ids = {t.id for t in all_types()}
    assert ids == {k.value for k in KNOWN_KINDS}


@pytest.mark.parametrize("kind", KNOWN_KINDS)
def test_every_kind_is_handled_by_values_and_rendering(kind):
    assert kind in VALUE_SHAPES
    assert kind in PRESENTERS


def test_defaults_are_fresh_copies():
    first = default_properties("checkboxGroup")
    first["options"] = "changed"
    first["dependencies"].append({"controlId": "x"})
    second = default_properties("checkboxGroup")
    assert second["options"] == "Option 1,Option 2,Option 3"
    assert second["dependencies"] == []


def test_every_entry_has_common_properties():
    for entry in all_types():
        props = entry.default_properties()
        assert "label" in props
        assert props["required"] is False
        assert props["dependencies"] == []


def test_unknown_type_lookup():
    assert lookup("hologram") is None
    assert lookup("") is None
    assert kind_of("hologram") == ControlKind.UNKNOWN
    assert default_properties("hologram") == {
        "label": "",
        "required": False,
        "dependencies": [],
    }


def test_tier_gating():
    rich = lookup("richTextEditor")
    table = lookup("tableInput")
    assert not tier_allows(Tier.FREE, rich)
    assert tier_allows(Tier.PRO, rich)
    assert not tier_allows(Tier.PRO, table)
    assert tier_allows(Tier.ENTERPRISE, table)
    # Missing tier falls back to free
    assert tier_allows(None, lookup("textInput"))


def test_available_types_grow_with_tier():
    free = {t.id for t in available_types(Tier.FREE)}
    pro = {t.id for t in available_types(Tier.PRO)}
    enterprise = {t.id for t in available_types(Tier.ENTERPRISE)}
    assert free < pro < enterprise
    assert len(enterprise) == len(KNOWN_KINDS)


def test_by_category_keeps_category_order():
    grouped = by_category()
    order = [value for value, _, _ in grouped]
    assert order == [c for c in Category.values if c in order]
    assert order[0] == Category.BASIC
    assert sum(len(entries) for _, _, entries in grouped) == len(all_types())


def test_by_category_skips_empty_groups():
    grouped = by_category([lookup("heading")])
    assert [value for value, _, _ in grouped] == [Category.LAYOUT]
