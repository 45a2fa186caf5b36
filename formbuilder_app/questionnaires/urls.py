from django.urls import path
from . import views

app_name = "questionnaires"

urlpatterns = [
    path("", views.questionnaire_list, name="list"),
    path("create/", views.questionnaire_create, name="create"),
    path("import-template.xlsx", views.import_template, name="import_template"),
    path("<slug:slug>/", views.designer, name="designer"),
    path("<slug:slug>/delete/", views.questionnaire_delete, name="delete"),
    # Sections
    path("<slug:slug>/sections/create", views.section_create, name="section_create"),
    path("<slug:slug>/sections/reorder", views.section_reorder, name="section_reorder"),
    path("<slug:slug>/sections/<int:sid>/edit", views.section_edit, name="section_edit"),
    path("<slug:slug>/sections/<int:sid>/delete", views.section_delete, name="section_delete"),
    # Controls
    path("<slug:slug>/controls/create", views.control_create, name="control_create"),
    path("<slug:slug>/controls/<str:uid>/edit", views.control_edit, name="control_edit"),
    path("<slug:slug>/controls/<str:uid>/move", views.control_move, name="control_move"),
    path("<slug:slug>/controls/<str:uid>/duplicate", views.control_duplicate, name="control_duplicate"),
    path("<slug:slug>/controls/<str:uid>/delete", views.control_delete, name="control_delete"),
    # Preview
    path("<slug:slug>/preview/", views.preview, name="preview"),
    path("<slug:slug>/preview/reset", views.preview_reset, name="preview_reset"),
    # Export / import
    path("<slug:slug>/export.json", views.export_json, name="export_json"),
    path("<slug:slug>/bulk-upload/", views.bulk_upload, name="bulk_upload"),
]
