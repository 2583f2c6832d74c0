from __future__ import annotations

from django.contrib import admin

from apps.payments.models import PayeeAccount


@admin.register(PayeeAccount)
class PayeeAccountAdmin(admin.ModelAdmin):
    list_display = ("user", "provider", "account_id", "payouts_enabled", "details_submitted", "updated_at")
    list_filter = ("provider", "payouts_enabled")
    search_fields = ("user__email", "user__handle", "account_id")
    readonly_fields = ("created_at", "updated_at")
