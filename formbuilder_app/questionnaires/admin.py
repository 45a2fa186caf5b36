from django.contrib import admin

from .models import Control, Questionnaire, Section


class SectionInline(admin.TabularInline):
    model = Section
    extra = 0
    fields = ("name", "order", "color", "is_default")
    readonly_fields = ("is_default",)


@admin.register(Questionnaire)
class QuestionnaireAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "owner", "status", "updated_at")
    list_filter = ("status",)
    search_fields = ("name", "slug", "owner__username")
    inlines = [SectionInline]


@admin.register(Control)
class ControlAdmin(admin.ModelAdmin):
    list_display = ("uid", "name", "type", "section", "questionnaire")
    list_filter = ("type",)
    search_fields = ("uid", "name", "questionnaire__slug")
    raw_id_fields = ("questionnaire", "section")
