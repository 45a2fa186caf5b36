import json

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import permissions, serializers, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from formbuilder_app.core.models import AccountTier
from formbuilder_app.questionnaires.catalog import available_types, lookup, tier_allows
from formbuilder_app.questionnaires.dependencies import normalize_rules
from formbuilder_app.questionnaires.excel_import import (
    ImportReport,
    allowed_types_for,
    apply_import,
    build_proposed_control,
)
from formbuilder_app.questionnaires.export import (
    DocumentError,
    export_questionnaire,
    import_document,
)
from formbuilder_app.questionnaires.models import (
    RESERVED_SLUGS,
    Control,
    Questionnaire,
    Section,
)
from formbuilder_app.questionnaires.permissions import (
    can_edit_questionnaire,
    can_view_questionnaire,
)
from formbuilder_app.questionnaires.preview import build_section_views
from formbuilder_app.questionnaires.rendering import handle_input


class QuestionnaireSerializer(serializers.ModelSerializer):
    slug = serializers.SlugField(required=False)

    class Meta:
        model = Questionnaire
        fields = ["id", "name", "slug", "description", "status", "created_at", "updated_at"]
        read_only_fields = ["created_at", "updated_at"]


class SectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Section
        fields = ["id", "questionnaire", "name", "description", "order", "color", "is_default"]
        read_only_fields = ["is_default"]


class ControlSerializer(serializers.ModelSerializer):
    class Meta:
        model = Control
        fields = [
            "id",
            "uid",
            "questionnaire",
            "section",
            "type",
            "name",
            "x",
            "y",
            "width",
            "height",
            "properties",
        ]
        read_only_fields = ["uid", "questionnaire"]
        extra_kwargs = {"name": {"required": False}, "properties": {"required": False}}

    def validate_type(self, value):
        if lookup(value) is None:
            raise serializers.ValidationError(f"Unknown control type '{value}'.")
        return value

    def validate_properties(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Properties must be a JSON object.")
        if "dependencies" in value:
            value = {**value, "dependencies": normalize_rules(value["dependencies"])}
        return value


def _questionnaire_of(obj):
    return obj if isinstance(obj, Questionnaire) else obj.questionnaire


class QuestionnaireOwnerPermission(permissions.BasePermission):
    """Object-level permission that mirrors SSR rules using questionnaires.permissions.

    - SAFE methods require can_view_questionnaire
    - Unsafe methods require can_edit_questionnaire
    """

    def has_object_permission(self, request, view, obj):
        questionnaire = _questionnaire_of(obj)
        if request.method in permissions.SAFE_METHODS:
            return can_view_questionnaire(request.user, questionnaire)
        return can_edit_questionnaire(request.user, questionnaire)


class OwnedObjectMixin:
    """Fetch objects unscoped, then run object permissions.

    Authenticated users get 403 (Forbidden) rather than 404 (Not Found)
    when they lack permission on an existing object.
    """

    model = None

    def get_object(self):
        lookup_url_kwarg = self.lookup_url_kwarg or self.lookup_field
        lookup_value = self.kwargs.get(lookup_url_kwarg)
        try:
            obj = self.model.objects.get(**{self.lookup_field: lookup_value})
        except (self.model.DoesNotExist, ValueError):
            raise Http404
        self.check_object_permissions(self.request, obj)
        return obj


class QuestionnaireViewSet(OwnedObjectMixin, viewsets.ModelViewSet):
    model = Questionnaire
    serializer_class = QuestionnaireSerializer
    permission_classes = [permissions.IsAuthenticated, QuestionnaireOwnerPermission]

    def get_queryset(self):
        return Questionnaire.objects.filter(owner=self.request.user)

    def perform_create(self, serializer):
        slug = serializer.validated_data.get("slug")
        if slug in RESERVED_SLUGS:
            raise ValidationError({"slug": ["That slug is reserved."]})
        if slug and Questionnaire.objects.filter(slug=slug).exists():
            raise ValidationError({"slug": ["Slug already in use."]})
        serializer.save(owner=self.request.user)

    @action(detail=True, methods=["get"])
    def export(self, request, pk=None):
        return Response(export_questionnaire(self.get_object()))

    @action(detail=True, methods=["post"], url_path="import")
    def import_json(self, request, pk=None):
        questionnaire = self.get_object()
        try:
            created = import_document(questionnaire, request.data)
        except DocumentError as e:
            raise ValidationError({"detail": str(e)})
        return Response({"created": created})

    @action(detail=True, methods=["post"])
    def seed(self, request, pk=None):
        questionnaire = self.get_object()
        payload = request.data
        # JSON schema: [{section, type, label, required, options, placeholder, properties, dependencies}]
        items = payload if isinstance(payload, list) else payload.get("items", [])
        allowed = allowed_types_for(AccountTier.tier_for(request.user))
        report = ImportReport()
        for number, item in enumerate(items, start=1):
            report.total += 1
            if not isinstance(item, dict):
                report.errors.append(f"Item {number}: expected an object")
                continue
            row = dict(item)
            row.setdefault("label", item.get("name"))
            for key in ("properties", "dependencies"):
                if isinstance(row.get(key), (dict, list)):
                    row[key] = json.dumps(row[key])
            if isinstance(row.get("options"), list):
                row["options"] = ",".join(str(o) for o in row["options"])
            try:
                report.controls.append(build_proposed_control(row, allowed))
            except ValueError as e:
                report.errors.append(f"Item {number}: {e}")
                continue
            report.success += 1
        apply_import(questionnaire, report)
        return Response(report.as_dict())

    @action(detail=True, methods=["post"])
    def preview(self, request, pk=None):
        questionnaire = self.get_object()
        if not isinstance(request.data, dict):
            raise ValidationError({"detail": "Expected a JSON object."})
        answers = request.data.get("answers") or {}
        if not isinstance(answers, dict):
            raise ValidationError({"answers": ["Must be an object keyed by control id."]})
        events = request.data.get("events") or []
        if not isinstance(events, list):
            raise ValidationError({"events": ["Must be a list of events."]})
        controls = {c.uid: c for c in questionnaire.controls.all()}
        errors = []
        for number, event in enumerate(events, start=1):
            if not isinstance(event, dict):
                errors.append(f"Event {number}: expected an object")
                continue
            payload = event.get("payload") or {}
            if not isinstance(payload, dict):
                errors.append(f"Event {number}: payload must be an object")
                continue
            control = controls.get(str(event.get("control", "")))
            if control is None:
                errors.append(f"Event {number}: unknown control")
                continue
            answers = handle_input(control, answers, str(event.get("action", "set")), payload)
        views = build_section_views(questionnaire.controls_by_section(), answers)
        return Response(
            {
                "answers": answers,
                "sections": [v.as_dict() for v in views],
                "errors": errors,
            }
        )


class SectionViewSet(OwnedObjectMixin, viewsets.ModelViewSet):
    model = Section
    serializer_class = SectionSerializer
    permission_classes = [permissions.IsAuthenticated, QuestionnaireOwnerPermission]

    def get_queryset(self):
        qs = Section.objects.filter(questionnaire__owner=self.request.user)
        questionnaire = self.request.query_params.get("questionnaire")
        if questionnaire and questionnaire.isdigit():
            qs = qs.filter(questionnaire_id=int(questionnaire))
        return qs

    def perform_create(self, serializer):
        questionnaire = serializer.validated_data["questionnaire"]
        if not can_edit_questionnaire(self.request.user, questionnaire):
            raise PermissionDenied("You do not have permission to edit this form.")
        serializer.save()

    def perform_update(self, serializer):
        questionnaire = serializer.validated_data.get("questionnaire")
        if questionnaire is not None and questionnaire != serializer.instance.questionnaire:
            raise ValidationError({"questionnaire": ["Sections cannot move between forms."]})
        serializer.save()

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except DjangoValidationError as e:
            raise ValidationError({"detail": e.messages})


class ControlViewSet(OwnedObjectMixin, viewsets.ModelViewSet):
    model = Control
    serializer_class = ControlSerializer
    permission_classes = [permissions.IsAuthenticated, QuestionnaireOwnerPermission]

    def get_queryset(self):
        qs = Control.objects.filter(questionnaire__owner=self.request.user)
        section = self.request.query_params.get("section")
        if section and section.isdigit():
            qs = qs.filter(section_id=int(section))
        return qs

    def _check_section(self, section):
        if not can_edit_questionnaire(self.request.user, section.questionnaire):
            raise PermissionDenied("You do not have permission to edit this form.")

    def _check_tier(self, type_id):
        entry = lookup(type_id)
        if entry is not None and not tier_allows(AccountTier.tier_for(self.request.user), entry):
            raise PermissionDenied(f"{entry.label} requires the {entry.tier} plan.")

    def perform_create(self, serializer):
        section = serializer.validated_data["section"]
        self._check_section(section)
        self._check_tier(serializer.validated_data["type"])
        serializer.save(questionnaire=section.questionnaire)

    def perform_update(self, serializer):
        section = serializer.validated_data.get("section")
        if section is not None and section.questionnaire_id != serializer.instance.questionnaire_id:
            raise ValidationError({"section": ["Section must belong to the same form."]})
        if "type" in serializer.validated_data:
            self._check_tier(serializer.validated_data["type"])
        serializer.save()


@api_view(["GET"])
def catalog(request):
    tier = AccountTier.tier_for(request.user)
    return Response(
        {
            "tier": tier,
            "types": [
                {
                    "id": t.id,
                    "label": t.label,
                    "category": t.category,
                    "tier": t.tier,
                    "defaults": t.default_properties(),
                }
                for t in available_types(tier)
            ],
        }
    )


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def healthcheck(request):
    return Response({"status": "ok"})
