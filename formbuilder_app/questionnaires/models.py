from __future__ import annotations

import uuid

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Max, Q
from django.utils.text import slugify

from .catalog import ControlKind, default_properties

User = get_user_model()

DEFAULT_SECTION_NAME = "General"
DEFAULT_SECTION_COLOR = "#3B82F6"
# Taken by fixed routes under forms/
RESERVED_SLUGS = {"create"}


def new_control_uid() -> str:
    return f"ctl_{uuid.uuid4().hex[:12]}"


class Questionnaire(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"

    owner = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="questionnaires"
    )
    name = models.CharField(max_length=255)
    slug = models.SlugField(unique=True)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.DRAFT
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self._unique_slug()
        creating = self._state.adding
        with transaction.atomic():
            super().save(*args, **kwargs)
            if creating:
                Section.objects.create(
                    questionnaire=self,
                    name=DEFAULT_SECTION_NAME,
                    is_default=True,
                    order=0,
                )

    def _unique_slug(self) -> str:
        base = slugify(self.name)[:40] or "form"
        slug = base
        n = 2
        while slug in RESERVED_SLUGS or Questionnaire.objects.filter(slug=slug).exists():
            slug = f"{base}-{n}"
            n += 1
        return slug

    @property
    def default_section(self) -> "Section":
        return self.sections.get(is_default=True)

    def ordered_sections(self) -> list["Section"]:
        return list(self.sections.all())

    def controls_by_section(self) -> list[tuple["Section", list["Control"]]]:
        """``(section, controls)`` pairs with controls in display order."""
        sections = self.ordered_sections()
        grouped: dict[int, list[Control]] = {s.pk: [] for s in sections}
        for control in self.controls.all():
            grouped.setdefault(control.section_id, []).append(control)
        return [(s, grouped.get(s.pk, [])) for s in sections]


class Section(models.Model):
    questionnaire = models.ForeignKey(
        Questionnaire, on_delete=models.CASCADE, related_name="sections"
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    order = models.PositiveIntegerField(default=0)
    color = models.CharField(max_length=7, default=DEFAULT_SECTION_COLOR)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["order", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["questionnaire"],
                condition=Q(is_default=True),
                name="one_default_section_per_questionnaire",
            )
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name

    def save(self, *args, **kwargs):
        if self._state.adding and not self.is_default and not self.order:
            top = self.questionnaire.sections.aggregate(m=Max("order"))["m"]
            self.order = 0 if top is None else top + 1
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.is_default:
            raise ValidationError("The default section cannot be deleted.")
        return super().delete(*args, **kwargs)


class Control(models.Model):
    questionnaire = models.ForeignKey(
        Questionnaire, on_delete=models.CASCADE, related_name="controls"
    )
    section = models.ForeignKey(
        Section, on_delete=models.CASCADE, related_name="controls"
    )
    # Answer-set key and dependency target
    uid = models.CharField(max_length=32, unique=True, default=new_control_uid)
    type = models.CharField(max_length=40, choices=ControlKind.choices)
    name = models.CharField(max_length=255, blank=True)
    x = models.IntegerField(default=0)
    y = models.IntegerField(default=0)
    width = models.PositiveIntegerField(default=300)
    height = models.PositiveIntegerField(default=60)
    properties = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["y", "x", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name or self.uid

    def save(self, *args, **kwargs):
        if not self.properties:
            self.properties = default_properties(self.type)
        if not self.name:
            self.name = str(self.properties.get("label") or self.type)
        if self.section_id and not self.questionnaire_id:
            self.questionnaire_id = self.section.questionnaire_id
        super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        if self.section_id and self.section.questionnaire_id != self.questionnaire_id:
            raise ValidationError(
                {"section": "Section must belong to the same questionnaire."}
            )
        if not isinstance(self.properties, dict):
            raise ValidationError({"properties": "Properties must be a JSON object."})

    @property
    def label(self) -> str:
        return str((self.properties or {}).get("label") or self.name)


def next_row_y(questionnaire: Questionnaire, section: Section | None = None, gap: int = 80) -> int:
    """A ``y`` just below the lowest control, for appended controls."""
    qs = questionnaire.controls.all()
    if section is not None:
        qs = qs.filter(section=section)
    bottom = qs.aggregate(m=Max("y"))["m"]
    return 0 if bottom is None else bottom + gap
