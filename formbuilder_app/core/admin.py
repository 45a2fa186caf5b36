from django.contrib import admin

from .models import AccountTier


@admin.register(AccountTier)
class AccountTierAdmin(admin.ModelAdmin):
    list_display = ("user", "tier", "updated_at")
    list_filter = ("tier",)
    search_fields = ("user__username", "user__email")
