from __future__ import annotations

from django.contrib import admin

from apps.payables.models import (
    ContributionMetrics,
    ContributorProfile,
    PayoutConfig,
    PayoutRecord,
    PointTransferRecord,
)


class ImmutableAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):  # type: ignore[override]
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore[override]
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore[override]
        return False


@admin.register(ContributorProfile)
class ContributorProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "github_username", "updated_at")
    search_fields = ("user__email", "user__handle", "github_username")


@admin.register(ContributionMetrics)
class ContributionMetricsAdmin(admin.ModelAdmin):
    list_display = ("username", "total_points", "github_repo_points", "peer_review_points", "win_probability", "win_count")
    search_fields = ("username", "user__email")
    readonly_fields = ("user", "win_probability", "win_count", "last_calculated", "created_at", "updated_at")


@admin.register(PayoutConfig)
class PayoutConfigAdmin(admin.ModelAdmin):
    list_display = ("id", "total_pool", "batch_size", "last_updated", "next_scheduled_run")
    readonly_fields = ("last_updated", "created_at", "updated_at")

    def has_add_permission(self, request):  # type: ignore[override]
        return not PayoutConfig.objects.exists()

    def has_delete_permission(self, request, obj=None):  # type: ignore[override]
        return False


@admin.register(PayoutRecord)
class PayoutRecordAdmin(ImmutableAdmin):
    list_display = ("batch_id", "username", "amount", "status", "timestamp", "expires_at")
    list_filter = ("status",)
    search_fields = ("batch_id", "username", "processor_transfer_id")
    readonly_fields = (
        "batch_id",
        "user",
        "username",
        "amount",
        "probability",
        "timestamp",
        "status",
        "processor_transfer_id",
        "processor_error",
        "expires_at",
        "retry_of",
        "created_at",
    )


@admin.register(PointTransferRecord)
class PointTransferRecordAdmin(ImmutableAdmin):
    list_display = ("sender_username", "recipient_username", "point_type", "amount", "timestamp")
    list_filter = ("point_type",)
    search_fields = ("sender_username", "recipient_username", "memo")
    readonly_fields = (
        "sender",
        "sender_username",
        "recipient",
        "recipient_username",
        "point_type",
        "amount",
        "memo",
        "timestamp",
        "created_at",
    )
