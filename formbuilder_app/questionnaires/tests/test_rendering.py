import logging

import pytest

from formbuilder_app.questionnaires.catalog import ControlKind, default_properties
from formbuilder_app.questionnaires.dependencies import is_visible
from formbuilder_app.questionnaires.models import Control
from formbuilder_app.questionnaires.rendering import (
    apply_property_edit,
    edit,
    handle_input,
    present,
)


def make(type_id, uid="ctl_a", **props):
    properties = default_properties(type_id)
    properties.update(props)
    return Control(uid=uid, type=type_id, name=properties.get("label", ""), properties=properties)


@pytest.mark.parametrize("kind", [k for k in ControlKind if k != ControlKind.UNKNOWN])
def test_every_kind_presents_with_empty_answers(kind):
    p = present(make(kind.value), {})
    assert p.uid == "ctl_a"
    assert p.kind == kind.value
    assert p.template_name == f"questionnaires/controls/{p.widget}.html"


def test_unknown_type_renders_placeholder(caplog):
    control = Control(uid="x", type="hologram", name="Mystery", properties={})
    with caplog.at_level(logging.WARNING):
        p = present(control)
    assert p.widget == "placeholder"
    assert p.placeholder_text == "Mystery"
    assert "hologram" in caplog.text


def test_dropdown_marks_selected_option():
    p = present(make("dropdown"), {"ctl_a": "Option 2"})
    assert [o["selected"] for o in p.options] == [False, True, False]
    assert p.required is False
    assert p.shows_label


def test_state_province_switches_to_select():
    assert present(make("stateProvince")).widget == "text"
    assert present(make("stateProvince", inputType="dropdown")).widget == "select"


def test_progress_bar_gets_completion():
    p = present(make("progressBar"), {}, progress=140)
    assert p.value == 100
    assert not p.shows_label


def test_conditional_flag():
    rule = {"controlId": "other", "condition": "is_not_empty"}
    assert present(make("textInput", dependencies=[rule])).conditional
    assert not present(make("textInput")).conditional


def test_handle_input_set_and_toggle():
    text = make("textInput")
    assert handle_input(text, {}, "set", {"value": "hi"}) == {"ctl_a": "hi"}

    toggle = make("toggleSwitch")
    answers = handle_input(toggle, {}, "toggle")
    assert answers == {"ctl_a": True}
    assert handle_input(toggle, answers, "toggle") == {"ctl_a": False}


def test_handle_input_ignores_actions_the_widget_does_not_offer():
    answers = {"ctl_a": "kept"}
    assert handle_input(make("textInput"), answers, "add_row") == answers
    assert handle_input(make("heading"), {}, "set", {"value": "x"}) == {}


def test_handle_input_rating_star_and_slider_set():
    assert handle_input(make("ratingScale"), {}, "star", {"index": "3"}) == {"ctl_a": 4}
    assert handle_input(make("slider"), {}, "set", {"value": "72"}) == {"ctl_a": 72}


def test_handle_input_grid_and_table():
    grid = make("singleSelectiveGrid")
    answers = handle_input(grid, {}, "select_cell", {"row": "0", "column": "1"})
    assert answers == {"ctl_a": {"0": 1}}

    table = make("tableInput", uid="ctl_t")
    answers = handle_input(table, {}, "set_cell", {"row": "0", "header": "Column 1", "value": "v"})
    answers = handle_input(table, answers, "add_row")
    assert answers["ctl_t"] == [{"Column 1": "v"}, {}]


def test_handle_input_merge_single_field():
    address = make("completeAddress")
    answers = handle_input(address, {}, "merge", {"field": "city", "value": "Leeds"})
    answers = handle_input(address, answers, "merge", {"field": "zip", "value": "LS1"})
    assert answers == {"ctl_a": {"city": "Leeds", "zip": "LS1"}}


def test_editor_lists_common_fields_first():
    editor = edit(make("dropdown"))
    names = [f.name for f in editor.fields]
    assert names[:3] == ["label", "required", "dependencies"]
    assert editor.field("options").input == "options"
    assert editor.field("required").input == "checkbox"


def test_apply_property_edit_coerces_input():
    control = make("numberInput")
    assert apply_property_edit(control, "required", "on")["required"] is True
    assert apply_property_edit(control, "required", "")["required"] is False
    assert apply_property_edit(control, "min", "2.5")["min"] == 2.5
    assert apply_property_edit(control, "step", "3")["step"] == 3


def test_apply_property_edit_options_from_lines():
    control = make("radioGroup")
    props = apply_property_edit(control, "options", "Red\nGreen\n\nBlue")
    assert props["options"] == "Red,Green,Blue"


def test_apply_property_edit_rejects_bad_rule_json():
    rule = {"controlId": "a", "condition": "is_empty"}
    control = make("textInput", dependencies=[rule])
    assert apply_property_edit(control, "dependencies", "{not json")["dependencies"] == [rule]
    assert apply_property_edit(control, "dependencies", "")["dependencies"] == []


def test_apply_property_edit_select_must_be_known():
    control = make("heading")
    assert apply_property_edit(control, "alignment", "center")["alignment"] == "center"
    assert apply_property_edit(control, "alignment", "diagonal")["alignment"] == control.properties["alignment"]


def test_star_click_reveals_dependent():
    rating = make("ratingScale")
    follow_up = make(
        "textarea",
        uid="ctl_b",
        dependencies=[{"controlId": "ctl_a", "condition": "greater_than", "value": 3}],
    )
    answers = handle_input(rating, {}, "star", {"index": 3})
    assert answers == {"ctl_a": 4}
    assert is_visible(follow_up, answers)
    assert not is_visible(follow_up, handle_input(rating, {}, "star", {"index": 2}))


def test_out_of_range_numbers_keep_previous_value():
    control = make("ratingScale", maxValue=7)
    assert apply_property_edit(control, "maxValue", "1e400")["maxValue"] == 7
    assert apply_property_edit(control, "maxValue", "nan")["maxValue"] == 7
    assert apply_property_edit(control, "maxValue", float("inf"))["maxValue"] == 7
    assert apply_property_edit(control, "maxValue", "10")["maxValue"] == 10


def test_rating_with_stored_infinity_still_presents():
    control = make("ratingScale", maxValue=float("inf"))
    p = present(control, {"ctl_a": float("inf")})
    assert p.value == 0
    assert len(p.options) == 5
    assert len(present(make("ratingScale", maxValue=10**9)).options) == 100
