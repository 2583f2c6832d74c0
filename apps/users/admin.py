from __future__ import annotations

from django.contrib import admin

from apps.users.models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "handle", "email", "is_staff", "is_active", "created_at")
    list_filter = ("is_staff", "is_active")
    search_fields = ("email", "handle", "name")
    readonly_fields = ("created_at", "updated_at", "last_login")
    exclude = ("password",)
