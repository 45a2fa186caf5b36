from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import models

from formbuilder_app.questionnaires.catalog import Tier

User = get_user_model()


class AccountTier(models.Model):
    """Plan a user is on; decides which control types the designer offers.

    Users without a row fall back to ``settings.FORMBUILDER_DEFAULT_TIER``.
    """

    user = models.OneToOneField(
        User, on_delete=models.CASCADE, related_name="account_tier"
    )
    tier = models.CharField(max_length=20, choices=Tier.choices, default=Tier.FREE)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Account tier"
        verbose_name_plural = "Account tiers"

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.user.username}: {self.get_tier_display()}"

    @classmethod
    def tier_for(cls, user) -> str:
        """The effective tier for ``user``, including the site default."""
        default = getattr(settings, "FORMBUILDER_DEFAULT_TIER", Tier.FREE)
        if not getattr(user, "is_authenticated", False):
            return default
        row = cls.objects.filter(user=user).only("tier").first()
        return row.tier if row else default
