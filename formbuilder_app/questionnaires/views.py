from __future__ import annotations

import json
import logging
from copy import deepcopy
from typing import Any

from django import forms
from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count
from django.http import HttpRequest, HttpResponse, JsonResponse, QueryDict
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.views.decorators.http import require_http_methods
from django_ratelimit.decorators import ratelimit

from formbuilder_app.core.models import AccountTier

from .catalog import available_types, by_category, lookup, tier_allows
from .dependencies import dependents_of, describe_rule, rules_of
from .excel_import import (
    ImportFileError,
    allowed_types_for,
    apply_import,
    parse_control_workbook,
    template_bytes,
)
from .export import export_questionnaire
from .models import RESERVED_SLUGS, Control, Questionnaire, Section, next_row_y
from .permissions import require_can_edit, require_can_view
from .preview import PreviewSession, build_section_views
from .rendering import apply_property_edit, edit, handle_input, present

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Preview event fields forwarded to handle_input
EVENT_FIELDS = ("value", "option", "checked", "row", "column", "index", "header", "field")


def _safe_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _designer_url(questionnaire: Questionnaire, **params: Any) -> str:
    url = reverse("questionnaires:designer", kwargs={"slug": questionnaire.slug})
    query = "&".join(f"{k}={v}" for k, v in params.items() if v not in (None, ""))
    return f"{url}?{query}" if query else url


# -------------------- Dashboard --------------------


class QuestionnaireCreateForm(forms.ModelForm):
    slug = forms.SlugField(
        required=False, help_text="Leave blank to auto-generate from name"
    )

    class Meta:
        model = Questionnaire
        fields = ["name", "slug", "description"]

    def clean_slug(self):
        slug = self.cleaned_data.get("slug")
        if slug in RESERVED_SLUGS:
            raise forms.ValidationError("That slug is reserved")
        if slug and Questionnaire.objects.filter(slug=slug).exists():
            raise forms.ValidationError("Slug already in use")
        return slug


@login_required
def questionnaire_list(request: HttpRequest) -> HttpResponse:
    questionnaires = Questionnaire.objects.filter(owner=request.user).annotate(
        section_count=Count("sections", distinct=True),
        control_count=Count("controls", distinct=True),
    )
    return render(
        request,
        "questionnaires/list.html",
        {"questionnaires": questionnaires},
    )


@login_required
@require_http_methods(["GET", "POST"])
def questionnaire_create(request: HttpRequest) -> HttpResponse:
    if request.method == "POST":
        form = QuestionnaireCreateForm(request.POST)
        if form.is_valid():
            questionnaire: Questionnaire = form.save(commit=False)
            questionnaire.owner = request.user
            questionnaire.save()
            logger.info("Questionnaire %s created by %s", questionnaire.slug, request.user.pk)
            messages.success(request, "Form created.")
            return redirect("questionnaires:designer", slug=questionnaire.slug)
    else:
        form = QuestionnaireCreateForm()
    return render(request, "questionnaires/create.html", {"form": form})


@login_required
@require_http_methods(["GET", "POST"])
def questionnaire_delete(request: HttpRequest, slug: str) -> HttpResponse:
    """
    Delete a form with confirmation.

    GET: Show confirmation page
    POST: Delete if the typed name matches. Sections and controls go with it.
    """
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)

    if request.method == "GET":
        return render(
            request,
            "questionnaires/delete_confirm.html",
            {"questionnaire": questionnaire},
        )

    confirm_name = request.POST.get("confirm_name", "").strip()
    if confirm_name != questionnaire.name:
        messages.error(
            request,
            f"Name does not match. Please type '{questionnaire.name}' exactly to confirm deletion.",
        )
        return render(
            request,
            "questionnaires/delete_confirm.html",
            {"questionnaire": questionnaire, "confirm_name": confirm_name},
            status=400,
        )

    name = questionnaire.name
    questionnaire.delete()
    logger.info("Questionnaire %s deleted by %s", slug, request.user.pk)
    messages.success(request, f"Form '{name}' has been permanently deleted.")
    return redirect("questionnaires:list")


# -------------------- Designer --------------------


def _canvas(questionnaire: Questionnaire) -> list[dict[str, Any]]:
    labels = {c.uid: c.label for c in questionnaire.controls.all()}
    canvas = []
    for section, controls in questionnaire.controls_by_section():
        canvas.append(
            {
                "section": section,
                "controls": [
                    {
                        "control": c,
                        "presentation": present(c, {}),
                        "rules": [describe_rule(r, labels) for r in rules_of(c) if isinstance(r, dict)],
                    }
                    for c in controls
                ],
            }
        )
    return canvas


@login_required
@require_http_methods(["GET"])
def designer(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    tier = AccountTier.tier_for(request.user)

    selected = None
    editor = None
    uid = request.GET.get("control")
    if uid:
        selected = questionnaire.controls.filter(uid=uid).first()
        if selected is not None:
            editor = edit(selected)

    active_section = _safe_int(request.GET.get("section"))
    sections = questionnaire.ordered_sections()
    if active_section not in {s.pk for s in sections}:
        active_section = questionnaire.default_section.pk

    return render(
        request,
        "questionnaires/designer.html",
        {
            "questionnaire": questionnaire,
            "canvas": _canvas(questionnaire),
            "sections": sections,
            "active_section": active_section,
            "palette": by_category(available_types(tier)),
            "tier": tier,
            "selected": selected,
            "editor": editor,
            "targets": [c for c in questionnaire.controls.all() if c != selected],
        },
    )


class SectionForm(forms.ModelForm):
    class Meta:
        model = Section
        fields = ["name", "description", "color"]

    def clean_color(self):
        color = (self.cleaned_data.get("color") or "").strip()
        if len(color) != 7 or not color.startswith("#"):
            raise forms.ValidationError("Use a #RRGGBB colour")
        return color


@login_required
@require_http_methods(["POST"])
def section_create(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    name = request.POST.get("name", "").strip() or "New Section"
    section = Section(questionnaire=questionnaire, name=name)
    color = request.POST.get("color", "").strip()
    if color:
        section.color = color[:7]
    section.description = request.POST.get("description", "")
    section.save()
    messages.success(request, "Section created.")
    return redirect(_designer_url(questionnaire, section=section.pk))


@login_required
@require_http_methods(["POST"])
def section_edit(request: HttpRequest, slug: str, sid: int) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    section = get_object_or_404(Section, id=sid, questionnaire=questionnaire)
    data = request.POST.copy()
    for name in SectionForm.Meta.fields:
        data.setdefault(name, getattr(section, name))
    form = SectionForm(data, instance=section)
    if form.is_valid():
        form.save()
        messages.success(request, "Section updated.")
    else:
        for errors in form.errors.values():
            messages.error(request, "; ".join(errors))
    return redirect(_designer_url(questionnaire, section=section.pk))


@login_required
@require_http_methods(["POST"])
def section_delete(request: HttpRequest, slug: str, sid: int) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    section = get_object_or_404(Section, id=sid, questionnaire=questionnaire)
    try:
        section.delete()
    except ValidationError as exc:
        messages.error(request, " ".join(exc.messages))
    else:
        messages.success(request, "Section deleted.")
    return redirect("questionnaires:designer", slug=slug)


@login_required
@require_http_methods(["POST"])
def section_reorder(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    order_csv = request.POST.get("order", "")  # expects comma-separated ids
    ids = [int(i) for i in order_csv.split(",") if i.isdigit()]
    with transaction.atomic():
        for idx, sid in enumerate(ids):
            Section.objects.filter(id=sid, questionnaire=questionnaire).update(order=idx)
    messages.success(request, "Section order updated.")
    return redirect("questionnaires:designer", slug=slug)


# -------------------- Controls --------------------


@login_required
@require_http_methods(["POST"])
def control_create(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    type_id = request.POST.get("type", "")
    entry = lookup(type_id)
    if entry is None:
        messages.error(request, f"Unknown control type '{type_id}'.")
        return redirect("questionnaires:designer", slug=slug)
    if not tier_allows(AccountTier.tier_for(request.user), entry):
        messages.error(request, f"{entry.label} requires the {entry.tier} plan.")
        return redirect("questionnaires:designer", slug=slug)

    sid = _safe_int(request.POST.get("section"))
    section = (
        get_object_or_404(Section, id=sid, questionnaire=questionnaire)
        if sid is not None
        else questionnaire.default_section
    )
    x = _safe_int(request.POST.get("x"))
    y = _safe_int(request.POST.get("y"))
    control = Control.objects.create(
        questionnaire=questionnaire,
        section=section,
        type=entry.id,
        name=entry.label,
        x=x if x is not None else 0,
        y=y if y is not None else next_row_y(questionnaire, section),
        properties=entry.default_properties(),
    )
    messages.success(request, f"{entry.label} added.")
    return redirect(_designer_url(questionnaire, section=section.pk, control=control.uid))


@login_required
@require_http_methods(["POST"])
def control_edit(request: HttpRequest, slug: str, uid: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    control = get_object_or_404(Control, uid=uid, questionnaire=questionnaire)

    for field in edit(control).fields:
        if field.input == "checkbox":
            # Unchecked boxes are not submitted
            raw = request.POST.get(field.name, "")
        elif field.name in request.POST:
            raw = request.POST.get(field.name)
        else:
            continue
        control.properties = apply_property_edit(control, field.name, raw)

    known = set(questionnaire.controls.values_list("uid", flat=True))
    missing = [
        r["controlId"]
        for r in rules_of(control)
        if isinstance(r, dict) and r.get("controlId") not in known
    ]
    if missing:
        messages.warning(
            request, f"Dependency targets not found: {', '.join(sorted(set(missing)))}"
        )
    name = request.POST.get("name", "").strip()
    if name:
        control.name = name
    control.save(update_fields=["properties", "name"])
    messages.success(request, "Control updated.")
    return redirect(_designer_url(questionnaire, section=control.section_id, control=control.uid))


@login_required
@require_http_methods(["POST"])
def control_move(request: HttpRequest, slug: str, uid: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    control = get_object_or_404(Control, uid=uid, questionnaire=questionnaire)
    sid = _safe_int(request.POST.get("section"))
    if sid is not None:
        control.section = get_object_or_404(Section, id=sid, questionnaire=questionnaire)
    for attr in ("x", "y", "width", "height"):
        value = _safe_int(request.POST.get(attr))
        if value is not None:
            setattr(control, attr, max(value, 0) if attr in ("width", "height") else value)
    control.save(update_fields=["section", "x", "y", "width", "height"])
    return redirect(_designer_url(questionnaire, section=control.section_id, control=control.uid))


@login_required
@require_http_methods(["POST"])
def control_duplicate(request: HttpRequest, slug: str, uid: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    control = get_object_or_404(Control, uid=uid, questionnaire=questionnaire)
    copy = Control.objects.create(
        questionnaire=questionnaire,
        section=control.section,
        type=control.type,
        name=f"{control.name} (copy)",
        x=control.x + 20,
        y=control.y + 20,
        width=control.width,
        height=control.height,
        properties=deepcopy(control.properties),
    )
    messages.success(request, "Control duplicated.")
    return redirect(_designer_url(questionnaire, section=copy.section_id, control=copy.uid))


@login_required
@require_http_methods(["POST"])
def control_delete(request: HttpRequest, slug: str, uid: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    control = get_object_or_404(Control, uid=uid, questionnaire=questionnaire)
    section_id = control.section_id
    with transaction.atomic():
        dependents = dependents_of(uid, questionnaire.controls.exclude(pk=control.pk))
        for other in dependents:
            props = dict(other.properties)
            props["dependencies"] = [
                r
                for r in rules_of(other)
                if not (isinstance(r, dict) and r.get("controlId") == uid)
            ]
            other.properties = props
            other.save(update_fields=["properties"])
        control.delete()
    if dependents:
        messages.info(
            request, f"Removed rules pointing at the deleted control from {len(dependents)} control(s)."
        )
    messages.success(request, "Control deleted.")
    return redirect(_designer_url(questionnaire, section=section_id))


# -------------------- Preview --------------------


def _event_payload(data: QueryDict) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for name in EVENT_FIELDS:
        if name not in data:
            continue
        values = data.getlist(name)
        payload[name] = values if len(values) > 1 else values[0]
    return payload


@login_required
@require_http_methods(["GET", "POST"])
@ratelimit(key="ip", rate="120/m", block=True)
def preview(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_view(request.user, questionnaire)
    session = PreviewSession(request.session, questionnaire.slug)
    grouped = questionnaire.controls_by_section()

    if request.method == "POST":
        navigate = request.POST.get("navigate")
        if navigate in ("next", "previous"):
            session.step(navigate, len(grouped))
        elif navigate is not None:
            session.go_to(navigate, len(grouped))
        else:
            uid = request.POST.get("control", "")
            control = questionnaire.controls.filter(uid=uid).first()
            if control is None:
                messages.error(request, "That control no longer exists.")
            else:
                answers = handle_input(
                    control,
                    session.answers,
                    request.POST.get("action", "set"),
                    _event_payload(request.POST),
                )
                session.save_answers(answers)
        return redirect("questionnaires:preview", slug=slug)

    views = build_section_views(grouped, session.answers)
    index = session.go_to(session.section_index, len(views))
    return render(
        request,
        "questionnaires/preview.html",
        {
            "questionnaire": questionnaire,
            "sections": views,
            "current": views[index] if views else None,
            "index": index,
            "has_previous": index > 0,
            "has_next": index < len(views) - 1,
        },
    )


@login_required
@require_http_methods(["POST"])
def preview_reset(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_view(request.user, questionnaire)
    PreviewSession(request.session, questionnaire.slug).reset()
    messages.info(request, "Preview answers cleared.")
    return redirect("questionnaires:preview", slug=slug)


# -------------------- Export / import --------------------


@login_required
@require_http_methods(["GET"])
def export_json(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_view(request.user, questionnaire)
    response = JsonResponse(export_questionnaire(questionnaire), json_dumps_params={"indent": 2})
    response["Content-Disposition"] = f'attachment; filename="{questionnaire.slug}.json"'
    return response


class BulkUploadForm(forms.Form):
    file = forms.FileField(help_text="Excel workbook (.xlsx) based on the template")

    def clean_file(self):
        upload = self.cleaned_data["file"]
        if not upload.name.lower().endswith(".xlsx"):
            raise forms.ValidationError("Please upload an .xlsx workbook.")
        limit = getattr(settings, "FORMBUILDER_IMPORT_MAX_BYTES", 5 * 1024 * 1024)
        if upload.size > limit:
            raise forms.ValidationError("The file is too large.")
        return upload


@login_required
@require_http_methods(["GET", "POST"])
@ratelimit(key="ip", rate="10/m", block=True)
def bulk_upload(request: HttpRequest, slug: str) -> HttpResponse:
    questionnaire = get_object_or_404(Questionnaire, slug=slug)
    require_can_edit(request.user, questionnaire)
    context: dict[str, Any] = {"questionnaire": questionnaire}
    if request.method == "POST":
        form = BulkUploadForm(request.POST, request.FILES)
        if form.is_valid():
            allowed = allowed_types_for(AccountTier.tier_for(request.user))
            try:
                report = parse_control_workbook(form.cleaned_data["file"], allowed)
            except ImportFileError as e:
                form.add_error("file", str(e))
            else:
                created = apply_import(questionnaire, report)
                logger.info(
                    "Bulk upload for %s: %s created, %s errors",
                    slug,
                    len(created),
                    len(report.errors),
                )
                context.update(
                    {
                        "report": report,
                        "summary": report.summary(),
                        "shown_errors": report.shown_errors(),
                    }
                )
    else:
        form = BulkUploadForm()
    context["form"] = form
    return render(request, "questionnaires/bulk_upload.html", context)


@login_required
@require_http_methods(["GET"])
def import_template(request: HttpRequest) -> HttpResponse:
    response = HttpResponse(template_bytes(), content_type=XLSX_CONTENT_TYPE)
    response["Content-Disposition"] = 'attachment; filename="form-controls-template.xlsx"'
    return response
