from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import formbuilder_app.questionnaires.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Questionnaire",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(unique=True)),
                ("description", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("published", "Published")],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="questionnaires",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-updated_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="Section",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("order", models.PositiveIntegerField(default=0)),
                ("color", models.CharField(default="#3B82F6", max_length=7)),
                ("is_default", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "questionnaire",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sections",
                        to="questionnaires.questionnaire",
                    ),
                ),
            ],
            options={
                "ordering": ["order", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_default", True)),
                        fields=("questionnaire",),
                        name="one_default_section_per_questionnaire",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Control",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "uid",
                    models.CharField(
                        default=formbuilder_app.questionnaires.models.new_control_uid,
                        max_length=32,
                        unique=True,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("textInput", "Text input"),
                            ("textarea", "Text area"),
                            ("numberInput", "Number input"),
                            ("emailInput", "Email input"),
                            ("phoneInput", "Phone input"),
                            ("urlInput", "URL input"),
                            ("passwordInput", "Password input"),
                            ("richTextEditor", "Rich text editor"),
                            ("dropdown", "Dropdown"),
                            ("multiSelectDropdown", "Multi-select dropdown"),
                            ("radioGroup", "Radio group"),
                            ("checkboxGroup", "Checkbox group"),
                            ("buttonGroup", "Button group"),
                            ("ratingScale", "Rating scale"),
                            ("slider", "Slider"),
                            ("toggleSwitch", "Toggle switch"),
                            ("tagInput", "Tag input"),
                            ("colorPicker", "Color picker"),
                            ("datePicker", "Date picker"),
                            ("timePicker", "Time picker"),
                            ("dateRangePicker", "Date range picker"),
                            ("singleSelectiveGrid", "Single-select grid"),
                            ("multiSelectiveGrid", "Multi-select grid"),
                            ("matrixQuestions", "Matrix questions"),
                            ("rankingControl", "Ranking"),
                            ("tableInput", "Table input"),
                            ("fileUpload", "File upload"),
                            ("imageUpload", "Image upload"),
                            ("signaturePad", "Signature pad"),
                            ("addressLine1", "Address line 1"),
                            ("addressLine2", "Address line 2"),
                            ("city", "City"),
                            ("stateProvince", "State / province"),
                            ("zipPostal", "ZIP / postal code"),
                            ("country", "Country"),
                            ("completeAddress", "Complete address"),
                            ("heading", "Heading"),
                            ("sectionDivider", "Section divider"),
                            ("progressBar", "Progress bar"),
                            ("captcha", "CAPTCHA"),
                            ("termsConditions", "Terms & conditions"),
                            ("unknown", "Unknown control"),
                        ],
                        max_length=40,
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=255)),
                ("x", models.IntegerField(default=0)),
                ("y", models.IntegerField(default=0)),
                ("width", models.PositiveIntegerField(default=300)),
                ("height", models.PositiveIntegerField(default=60)),
                ("properties", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "questionnaire",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="controls",
                        to="questionnaires.questionnaire",
                    ),
                ),
                (
                    "section",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="controls",
                        to="questionnaires.section",
                    ),
                ),
            ],
            options={
                "ordering": ["y", "x", "id"],
            },
        ),
    ]
