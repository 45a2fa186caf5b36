from formbuilder_app.questionnaires.catalog import default_properties
from formbuilder_app.questionnaires.models import Control
from formbuilder_app.questionnaires.preview import (
    PreviewSession,
    SectionStatus,
    build_section_views,
    clamp_index,
    completion_percent,
    section_status,
)


def make(uid, type_id="textInput", **props):
    properties = default_properties(type_id)
    properties.update(props)
    return Control(uid=uid, type=type_id, properties=properties)


class FakeSection:
    def __init__(self, pk, name):
        self.pk = pk
        self.name = name


def test_section_without_required_controls_is_completed():
    assert section_status([make("a")], {}) == SectionStatus.COMPLETED
    assert section_status([], {}) == SectionStatus.COMPLETED


def test_section_status_counts_required_answers():
    controls = [make("a", required=True), make("b", required=True)]
    assert section_status(controls, {}) == SectionStatus.EMPTY
    assert section_status(controls, {"a": "x"}) == SectionStatus.PARTIAL
    assert section_status(controls, {"a": "x", "b": "y"}) == SectionStatus.COMPLETED


def test_hidden_required_controls_are_not_counted():
    hidden = make(
        "b",
        required=True,
        dependencies=[{"controlId": "a", "condition": "equals", "value": "yes"}],
    )
    assert section_status([make("a"), hidden], {"a": "no"}) == SectionStatus.COMPLETED


def test_empty_list_answer_counts_as_answered():
    controls = [make("a", "checkboxGroup", required=True)]
    assert section_status(controls, {"a": []}) == SectionStatus.COMPLETED


def test_clamp_and_percent():
    assert clamp_index("7", 3) == 2
    assert clamp_index(-1, 3) == 0
    assert clamp_index("nope", 3) == 0
    assert clamp_index(4, 0) == 0
    assert completion_percent([]) == 0
    assert completion_percent(["completed", "empty", "completed"]) == 67


def test_build_section_views_hides_invisible_controls():
    rule = {"controlId": "a", "condition": "is_not_empty"}
    first = (FakeSection(1, "One"), [make("a"), make("b", dependencies=[rule])])
    second = (FakeSection(2, "Two"), [make("bar", "progressBar")])
    views = build_section_views([first, second], {})
    assert [p.uid for p in views[0].controls] == ["a"]
    # Both sections have no required controls, so both are complete
    assert views[1].controls[0].value == 100
    data = views[0].as_dict()
    assert data["name"] == "One"
    assert data["status"] == "completed"


def test_preview_session_keeps_state_per_slug():
    store = {}
    one = PreviewSession(store, "one")
    two = PreviewSession(store, "two")
    one.save_answers({"a": 1})
    assert one.answers == {"a": 1}
    assert two.answers == {}
    assert one.step("next", 3) == 1
    assert one.step("next", 3) == 2
    assert one.step("next", 3) == 2
    assert one.step("previous", 3) == 1
    assert one.go_to(10, 3) == 2
    one.reset()
    assert one.answers == {}
    assert one.section_index == 0
    assert "preview:one" not in store
