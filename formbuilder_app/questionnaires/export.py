"""JSON export and re-import of a questionnaire's sections and controls."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Mapping

from django.db import transaction
from django.utils import timezone

from .catalog import kind_of
from .models import Control, Questionnaire, Section

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class DocumentError(ValueError):
    """Raised when an import document does not have the exported shape."""


def export_control(control: Control) -> dict[str, Any]:
    return {
        "id": control.uid,
        "type": control.type,
        "name": control.name,
        "x": control.x,
        "y": control.y,
        "width": control.width,
        "height": control.height,
        "properties": deepcopy(control.properties or {}),
    }


def export_questionnaire(questionnaire: Questionnaire) -> dict[str, Any]:
    sections = []
    for section, controls in questionnaire.controls_by_section():
        sections.append(
            {
                "name": section.name,
                "description": section.description,
                "color": section.color,
                "order": section.order,
                "isDefault": section.is_default,
                "controls": [export_control(c) for c in controls],
            }
        )
    return {
        "formatVersion": FORMAT_VERSION,
        "exportedAt": timezone.now().isoformat(),
        "questionnaire": {
            "name": questionnaire.name,
            "slug": questionnaire.slug,
            "description": questionnaire.description,
            "status": questionnaire.status,
        },
        "sections": sections,
    }


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def import_document(questionnaire: Questionnaire, document: Mapping[str, Any]) -> int:
    """Replace the questionnaire's content with ``document``.

    Non-default sections and every control are dropped first. The default
    section is kept and takes the attributes of the document's default
    section. Returns the number of controls created.
    """
    if not isinstance(document, Mapping) or not isinstance(document.get("sections"), list):
        raise DocumentError("Document must contain a 'sections' list.")

    created = 0
    with transaction.atomic():
        questionnaire.controls.all().delete()
        questionnaire.sections.filter(is_default=False).delete()
        default = questionnaire.default_section
        default_used = False
        for position, entry in enumerate(document["sections"]):
            if not isinstance(entry, Mapping):
                raise DocumentError(f"Section {position + 1} is not an object.")
            if entry.get("isDefault") and not default_used:
                section = default
                section.name = str(entry.get("name") or section.name)
                section.description = str(entry.get("description") or "")
                section.color = str(entry.get("color") or section.color)[:7]
                section.save()
                default_used = True
            else:
                section = Section.objects.create(
                    questionnaire=questionnaire,
                    name=str(entry.get("name") or f"Section {position + 1}"),
                    description=str(entry.get("description") or ""),
                    color=str(entry.get("color") or default.color)[:7],
                    order=_int(entry.get("order"), position),
                )
            for item in entry.get("controls") or []:
                if not isinstance(item, Mapping):
                    continue
                type_id = str(item.get("type") or "")
                if kind_of(type_id).value != type_id:
                    logger.warning("Importing control of unknown type %r", type_id)
                props = item.get("properties")
                control = Control(
                    questionnaire=questionnaire,
                    section=section,
                    type=type_id,
                    name=str(item.get("name") or ""),
                    x=_int(item.get("x"), 0),
                    y=_int(item.get("y"), 0),
                    width=_int(item.get("width"), 300),
                    height=_int(item.get("height"), 60),
                    properties=deepcopy(props) if isinstance(props, dict) else {},
                )
                uid = str(item.get("id") or "")
                if uid and not Control.objects.filter(uid=uid).exists():
                    control.uid = uid
                control.save()
                created += 1
    logger.info(
        "Imported %s controls into questionnaire %s", created, questionnaire.slug
    )
    return created
