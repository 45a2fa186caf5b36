"""Preview-mode state: answers kept in the Django session, per questionnaire."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, MutableMapping, Sequence

from django.db import models

from .dependencies import is_truthy, is_visible, visible_controls
from .rendering import Presentation, present
from .values import answer_key, properties_of

logger = logging.getLogger(__name__)

SESSION_PREFIX = "preview:"


class SectionStatus(models.TextChoices):
    COMPLETED = "completed", "Completed"
    PARTIAL = "partial", "Partially completed"
    EMPTY = "empty", "Not started"


def section_status(controls: Iterable[Any], answers: Mapping[str, Any] | None) -> str:
    """Completion of one section, counting only visible required controls."""
    source = answers if isinstance(answers, Mapping) else {}
    required = [
        c
        for c in controls
        if is_visible(c, source) and properties_of(c).get("required")
    ]
    if not required:
        return SectionStatus.COMPLETED
    answered = sum(1 for c in required if is_truthy(source.get(answer_key(c))))
    if answered == len(required):
        return SectionStatus.COMPLETED
    if answered:
        return SectionStatus.PARTIAL
    return SectionStatus.EMPTY


def clamp_index(index: Any, total: int) -> int:
    try:
        value = int(index)
    except (TypeError, ValueError, OverflowError):
        value = 0
    if total <= 0:
        return 0
    return max(0, min(value, total - 1))


def completion_percent(statuses: Sequence[str]) -> int:
    if not statuses:
        return 0
    done = sum(1 for s in statuses if s == SectionStatus.COMPLETED)
    return round(100 * done / len(statuses))


@dataclass
class SectionView:
    section: Any
    status: str
    controls: list[Presentation] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": getattr(self.section, "pk", None),
            "name": getattr(self.section, "name", ""),
            "status": str(self.status),
            "controls": [p.as_dict() for p in self.controls],
        }


def build_section_views(
    sections: Sequence[tuple[Any, Sequence[Any]]],
    answers: Mapping[str, Any] | None,
) -> list[SectionView]:
    """Presentations of the visible controls of each section, in order.

    ``sections`` holds ``(section, controls)`` pairs with the controls already
    in display order.
    """
    source = dict(answers or {})
    statuses = [section_status(controls, source) for _, controls in sections]
    progress = completion_percent(statuses)
    views = []
    for (section, controls), status in zip(sections, statuses):
        shown = [present(c, source, progress=progress) for c in visible_controls(controls, source)]
        views.append(SectionView(section=section, status=status, controls=shown))
    return views


class PreviewSession:
    """Answers and the active section for one questionnaire's preview.

    Stored under ``preview:<slug>`` in the user's session, so two browser
    sessions never see each other's answers.
    """

    def __init__(self, session: MutableMapping[str, Any], slug: str):
        self.session = session
        self.key = f"{SESSION_PREFIX}{slug}"

    def _state(self) -> dict[str, Any]:
        state = self.session.get(self.key)
        return dict(state) if isinstance(state, Mapping) else {}

    @property
    def answers(self) -> dict[str, Any]:
        answers = self._state().get("answers")
        return dict(answers) if isinstance(answers, Mapping) else {}

    @property
    def section_index(self) -> int:
        return clamp_index(self._state().get("section", 0), 1 << 30)

    def _write(self, **changes: Any) -> None:
        state = self._state()
        state.update(changes)
        self.session[self.key] = state
        if hasattr(self.session, "modified"):
            self.session.modified = True

    def save_answers(self, answers: Mapping[str, Any]) -> None:
        self._write(answers=dict(answers))

    def go_to(self, index: Any, total: int) -> int:
        position = clamp_index(index, total)
        self._write(section=position)
        return position

    def step(self, direction: str, total: int) -> int:
        offset = {"next": 1, "previous": -1}.get(direction, 0)
        return self.go_to(self.section_index + offset, total)

    def reset(self) -> None:
        if self.key in self.session:
            del self.session[self.key]
            logger.debug("Preview answers discarded for %s", self.key)
