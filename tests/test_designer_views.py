from io import BytesIO

import pytest
from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from openpyxl import Workbook

from formbuilder_app.core.models import AccountTier
from formbuilder_app.questionnaires.excel_import import COLUMNS, CONTROLS_SHEET
from formbuilder_app.questionnaires.models import Control, Questionnaire, Section


@pytest.fixture
def user(db):
    return User.objects.create_user(username="designer", password="testpass-12345")


@pytest.fixture
def questionnaire(user):
    return Questionnaire.objects.create(owner=user, name="Designer Form")


def url(name, q, **kwargs):
    return reverse(f"questionnaires:{name}", kwargs={"slug": q.slug, **kwargs})


@pytest.mark.django_db
def test_create_questionnaire_redirects_to_designer(client, user):
    client.force_login(user)
    resp = client.post(reverse("questionnaires:create"), {"name": "Brand New", "description": ""})
    assert resp.status_code == 302
    created = Questionnaire.objects.get(name="Brand New")
    assert resp["Location"] == reverse("questionnaires:designer", kwargs={"slug": created.slug})
    assert created.owner == user


@pytest.mark.django_db
def test_designer_renders_palette_for_tier(client, user, questionnaire):
    client.force_login(user)
    resp = client.get(url("designer", questionnaire))
    assert resp.status_code == 200
    palette = {t.id for _, _, entries in resp.context["palette"] for t in entries}
    assert "textInput" in palette
    assert "tableInput" not in palette


@pytest.mark.django_db
def test_designer_is_owner_only(client, questionnaire):
    other = User.objects.create_user(username="other", password="testpass-12345")
    client.force_login(other)
    assert client.get(url("designer", questionnaire)).status_code == 403


@pytest.mark.django_db
def test_add_control_respects_tier(client, user, questionnaire):
    client.force_login(user)
    client.post(url("control_create", questionnaire), {"type": "tableInput"})
    assert not questionnaire.controls.exists()

    AccountTier.objects.create(user=user, tier="enterprise")
    client.post(url("control_create", questionnaire), {"type": "tableInput"})
    client.post(url("control_create", questionnaire), {"type": "textInput"})
    table, text = questionnaire.controls.order_by("id")
    assert table.section.is_default
    assert (table.y, text.y) == (0, 80)


@pytest.mark.django_db
def test_edit_control_properties(client, user, questionnaire):
    client.force_login(user)
    control = Control.objects.create(section=questionnaire.default_section, type="dropdown")
    resp = client.post(
        url("control_edit", questionnaire, uid=control.uid),
        {
            "label": "Favourite colour",
            "options": "Red\nGreen",
            "dependencies": '[{"controlId": "ctl_missing", "condition": "is_empty"}]',
        },
        follow=True,
    )
    control.refresh_from_db()
    assert control.properties["label"] == "Favourite colour"
    assert control.properties["options"] == "Red,Green"
    # Unchecked checkbox means not required
    assert control.properties["required"] is False
    assert control.properties["dependencies"] == [
        {"controlId": "ctl_missing", "condition": "is_empty"}
    ]
    assert b"Dependency targets not found: ctl_missing" in resp.content


@pytest.mark.django_db
def test_move_and_duplicate_control(client, user, questionnaire):
    client.force_login(user)
    other = Section.objects.create(questionnaire=questionnaire, name="Second")
    control = Control.objects.create(section=questionnaire.default_section, type="textInput")
    client.post(
        url("control_move", questionnaire, uid=control.uid),
        {"section": other.id, "x": "40", "y": "120", "width": "-5"},
    )
    control.refresh_from_db()
    assert (control.section_id, control.x, control.y, control.width) == (other.id, 40, 120, 0)

    client.post(url("control_duplicate", questionnaire, uid=control.uid))
    copy = questionnaire.controls.exclude(pk=control.pk).get()
    assert copy.uid != control.uid
    assert (copy.x, copy.y) == (60, 140)
    assert copy.name.endswith("(copy)")


@pytest.mark.django_db
def test_delete_control_strips_dependent_rules(client, user, questionnaire):
    client.force_login(user)
    section = questionnaire.default_section
    source = Control.objects.create(section=section, type="textInput")
    keep = {"controlId": "ctl_elsewhere", "condition": "is_empty"}
    dependent = Control.objects.create(
        section=section,
        type="textInput",
        properties={
            "label": "Dependent",
            "dependencies": [{"controlId": source.uid, "condition": "is_not_empty"}, keep],
        },
    )
    client.post(url("control_delete", questionnaire, uid=source.uid))
    dependent.refresh_from_db()
    assert not Control.objects.filter(pk=source.pk).exists()
    assert dependent.properties["dependencies"] == [keep]


@pytest.mark.django_db
def test_section_lifecycle(client, user, questionnaire):
    client.force_login(user)
    client.post(url("section_create", questionnaire), {"name": "Contact", "color": "#10B981"})
    section = questionnaire.sections.get(name="Contact")
    assert section.order == 1

    client.post(url("section_edit", questionnaire, sid=section.id), {"name": "Contact details"})
    section.refresh_from_db()
    assert section.name == "Contact details"
    assert section.color == "#10B981"

    default = questionnaire.default_section
    client.post(url("section_reorder", questionnaire), {"order": f"{section.id},{default.id}"})
    assert [s.name for s in questionnaire.ordered_sections()] == ["Contact details", "General"]

    resp = client.post(url("section_delete", questionnaire, sid=default.id), follow=True)
    assert b"The default section cannot be deleted." in resp.content
    client.post(url("section_delete", questionnaire, sid=section.id))
    assert list(questionnaire.sections.values_list("name", flat=True)) == ["General"]


@pytest.mark.django_db
def test_delete_questionnaire_requires_matching_name(client, user, questionnaire):
    client.force_login(user)
    resp = client.post(url("delete", questionnaire), {"confirm_name": "wrong"})
    assert resp.status_code == 400
    assert Questionnaire.objects.filter(pk=questionnaire.pk).exists()
    resp = client.post(url("delete", questionnaire), {"confirm_name": "Designer Form"})
    assert resp.status_code == 302
    assert not Questionnaire.objects.filter(pk=questionnaire.pk).exists()


@pytest.mark.django_db
def test_export_json_download(client, user, questionnaire):
    client.force_login(user)
    resp = client.get(url("export_json", questionnaire))
    assert resp.status_code == 200
    assert "attachment" in resp["Content-Disposition"]
    assert resp.json()["sections"][0]["isDefault"] is True


def _xlsx(rows):
    wb = Workbook()
    ws = wb.active
    ws.title = CONTROLS_SHEET
    ws.append(COLUMNS)
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return SimpleUploadedFile(
        "controls.xlsx",
        buffer.getvalue(),
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


@pytest.mark.django_db
def test_bulk_upload_shows_partial_summary(client, user, questionnaire):
    client.force_login(user)
    upload = _xlsx(
        [
            ("", "textInput", "Name", "TRUE", "", "", "", ""),
            ("", "tableInput", "Needs enterprise", "", "", "", "", ""),
        ]
    )
    resp = client.post(url("bulk_upload", questionnaire), {"file": upload})
    assert resp.status_code == 200
    assert resp.context["summary"]["title"] == "Import Completed"
    assert resp.context["report"].success == 1
    assert "Row 3:" in resp.context["shown_errors"][0]
    assert questionnaire.controls.count() == 1


@pytest.mark.django_db
def test_bulk_upload_rejects_other_extensions(client, user, questionnaire):
    client.force_login(user)
    upload = SimpleUploadedFile("controls.csv", b"a,b\n", content_type="text/csv")
    resp = client.post(url("bulk_upload", questionnaire), {"file": upload})
    assert resp.status_code == 200
    assert "report" not in resp.context
    assert resp.context["form"].errors["file"]


@pytest.mark.django_db
def test_import_template_download(client, user):
    client.force_login(user)
    resp = client.get(reverse("questionnaires:import_template"))
    assert resp.status_code == 200
    assert resp.content[:2] == b"PK"
