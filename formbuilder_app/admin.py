from django.conf import settings
from django.contrib.admin import AdminSite
from django.contrib.admin.apps import AdminConfig


def _brand() -> str:
    return getattr(settings, "BRAND_TITLE", "Form Builder")


class FormBuilderAdminSite(AdminSite):
    site_header = f"{_brand()} Admin"
    site_title = f"{_brand()} Admin"
    index_title = "Forms, plans and accounts"
    site_url = "/forms/"

    def has_permission(self, request):  # type: ignore[override]
        # Superusers only; owners manage their forms from the designer
        return bool(
            request.user and request.user.is_active and request.user.is_superuser
        )


class FormBuilderAdminConfig(AdminConfig):
    default_site = "formbuilder_app.admin.FormBuilderAdminSite"
