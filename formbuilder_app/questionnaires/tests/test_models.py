import pytest
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from formbuilder_app.questionnaires.models import (
    Control,
    Questionnaire,
    Section,
    next_row_y,
)


@pytest.fixture
def owner(db):
    return User.objects.create_user(username="owner", password="pass12345678")


@pytest.fixture
def questionnaire(owner):
    return Questionnaire.objects.create(owner=owner, name="Customer Survey")


def test_new_questionnaire_gets_default_section(questionnaire):
    sections = list(questionnaire.sections.all())
    assert len(sections) == 1
    assert sections[0].is_default
    assert sections[0].name == "General"
    assert questionnaire.slug == "customer-survey"


def test_slugs_are_unique(owner, questionnaire):
    again = Questionnaire.objects.create(owner=owner, name="Customer Survey")
    assert again.slug == "customer-survey-2"


def test_default_section_cannot_be_deleted(questionnaire):
    with pytest.raises(ValidationError):
        questionnaire.default_section.delete()


def test_only_one_default_section(questionnaire):
    with pytest.raises(IntegrityError), transaction.atomic():
        Section.objects.create(questionnaire=questionnaire, name="Other", is_default=True)


def test_new_sections_are_appended(questionnaire):
    a = Section.objects.create(questionnaire=questionnaire, name="A")
    b = Section.objects.create(questionnaire=questionnaire, name="B")
    assert (a.order, b.order) == (1, 2)
    assert [s.name for s in questionnaire.ordered_sections()] == ["General", "A", "B"]


def test_control_save_fills_defaults(questionnaire):
    control = Control.objects.create(section=questionnaire.default_section, type="dropdown")
    assert control.questionnaire == questionnaire
    assert control.uid.startswith("ctl_")
    assert control.properties["options"] == "Option 1,Option 2,Option 3"
    assert control.name == "Dropdown"
    assert control.label == "Dropdown"


def test_controls_by_section_orders_by_position(questionnaire):
    section = questionnaire.default_section
    low = Control.objects.create(section=section, type="textInput", y=200)
    high = Control.objects.create(section=section, type="textInput", y=0)
    other = Section.objects.create(questionnaire=questionnaire, name="Second")
    moved = Control.objects.create(section=other, type="textInput")
    grouped = questionnaire.controls_by_section()
    assert [(s.name, [c.pk for c in cs]) for s, cs in grouped] == [
        ("General", [high.pk, low.pk]),
        ("Second", [moved.pk]),
    ]


def test_next_row_y(questionnaire):
    assert next_row_y(questionnaire) == 0
    Control.objects.create(section=questionnaire.default_section, type="textInput", y=120)
    assert next_row_y(questionnaire) == 200


def test_deleting_questionnaire_cascades(questionnaire):
    Control.objects.create(section=questionnaire.default_section, type="textInput")
    questionnaire.delete()
    assert Section.objects.count() == 0
    assert Control.objects.count() == 0


def test_route_names_are_never_used_as_slugs(owner):
    q = Questionnaire.objects.create(owner=owner, name="Create")
    assert q.slug == "create-2"
