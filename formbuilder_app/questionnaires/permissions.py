from __future__ import annotations

from django.core.exceptions import PermissionDenied

from .models import Questionnaire


def can_view_questionnaire(user, questionnaire: Questionnaire) -> bool:
    if not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return questionnaire.owner_id == getattr(user, "id", None)


def can_edit_questionnaire(user, questionnaire: Questionnaire) -> bool:
    # Only the owner edits; superusers may step in from the admin
    if not user.is_authenticated:
        return False
    if questionnaire.owner_id == getattr(user, "id", None):
        return True
    return bool(user.is_superuser)


def require_can_view(user, questionnaire: Questionnaire) -> None:
    if not can_view_questionnaire(user, questionnaire):
        raise PermissionDenied("You do not have permission to view this form.")


def require_can_edit(user, questionnaire: Questionnaire) -> None:
    if not can_edit_questionnaire(user, questionnaire):
        raise PermissionDenied("You do not have permission to edit this form.")
