"""Preview mode driven through the HTML views, with answers in the session."""

import pytest
from django.contrib.auth.models import User
from django.urls import reverse

from formbuilder_app.questionnaires.models import Control, Questionnaire, Section


@pytest.fixture
def user(db):
    return User.objects.create_user(username="testuser", password="testpass-12345")


@pytest.fixture
def questionnaire(db, user):
    q = Questionnaire.objects.create(owner=user, name="Preview Form")
    general = q.default_section
    Control.objects.create(
        section=general,
        uid="ctl_pets",
        type="checkboxGroup",
        properties={"label": "Pets", "options": "Cat,Dog", "required": True, "dependencies": []},
    )
    Control.objects.create(
        section=general,
        uid="ctl_dogname",
        type="textInput",
        y=80,
        properties={
            "label": "Dog's name",
            "dependencies": [{"controlId": "ctl_pets", "condition": "contains", "value": "Dog"}],
        },
    )
    second = Section.objects.create(questionnaire=q, name="Wrap up")
    Control.objects.create(
        section=second,
        uid="ctl_terms",
        type="termsConditions",
        properties={"label": "Terms", "required": True, "dependencies": []},
    )
    return q


def preview_url(q):
    return reverse("questionnaires:preview", kwargs={"slug": q.slug})


def answers(client, q):
    return client.session.get(f"preview:{q.slug}", {}).get("answers", {})


@pytest.mark.django_db
def test_preview_renders_first_section(client, user, questionnaire):
    client.force_login(user)
    resp = client.get(preview_url(questionnaire))
    assert resp.status_code == 200
    assert b"Pets" in resp.content
    assert b"Dog&#x27;s name" not in resp.content
    assert b"Wrap up" in resp.content


@pytest.mark.django_db
def test_input_events_update_session_answers(client, user, questionnaire):
    client.force_login(user)
    url = preview_url(questionnaire)
    resp = client.post(url, {"control": "ctl_pets", "action": "toggle", "option": "Dog"})
    assert resp.status_code == 302
    assert answers(client, questionnaire) == {"ctl_pets": ["Dog"]}

    resp = client.get(url)
    assert b"Dog&#x27;s name" in resp.content

    client.post(url, {"control": "ctl_dogname", "action": "set", "value": "Rex"})
    assert answers(client, questionnaire)["ctl_dogname"] == "Rex"


@pytest.mark.django_db
def test_navigation_is_clamped(client, user, questionnaire):
    client.force_login(user)
    url = preview_url(questionnaire)
    client.post(url, {"navigate": "next"})
    client.post(url, {"navigate": "next"})
    assert client.session[f"preview:{questionnaire.slug}"]["section"] == 1
    client.post(url, {"navigate": "0"})
    assert client.session[f"preview:{questionnaire.slug}"]["section"] == 0
    resp = client.get(url)
    assert b"Pets" in resp.content


@pytest.mark.django_db
def test_reset_clears_answers(client, user, questionnaire):
    client.force_login(user)
    url = preview_url(questionnaire)
    client.post(url, {"control": "ctl_terms", "action": "toggle"})
    assert answers(client, questionnaire) == {"ctl_terms": True}
    resp = client.post(reverse("questionnaires:preview_reset", kwargs={"slug": questionnaire.slug}))
    assert resp.status_code == 302
    assert answers(client, questionnaire) == {}


@pytest.mark.django_db
def test_unknown_control_event_is_reported(client, user, questionnaire):
    client.force_login(user)
    resp = client.post(
        preview_url(questionnaire),
        {"control": "ctl_gone", "action": "set", "value": "x"},
        follow=True,
    )
    assert b"That control no longer exists." in resp.content


@pytest.mark.django_db
def test_preview_is_private_to_owner(client, questionnaire):
    stranger = User.objects.create_user(username="stranger", password="testpass-12345")
    client.force_login(stranger)
    resp = client.get(preview_url(questionnaire))
    assert resp.status_code == 403
