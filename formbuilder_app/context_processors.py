from django.conf import settings

from formbuilder_app.core.models import AccountTier


def branding(request):
    """Inject site branding and the signed-in user's plan into all templates."""
    user = getattr(request, "user", None)
    tier = None
    if user is not None and user.is_authenticated:
        tier = AccountTier.tier_for(user)
    brand = {"title": getattr(settings, "BRAND_TITLE", "Form Builder")}
    return {"brand": brand, "account_tier": tier}
