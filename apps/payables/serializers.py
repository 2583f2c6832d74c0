from __future__ import annotations

import re

from django.conf import settings
from rest_framework import serializers

from apps.payables.models import ContributionMetrics, ContributorProfile, PayoutConfig, PayoutRecord, PointTransferRecord

GITHUB_USERNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,37})$")


class ContributionMetricsSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContributionMetrics
        fields = (
            "user_id",
            "username",
            "code_contributions",
            "content_creation",
            "community_engagement",
            "game_publication_points",
            "github_repo_points",
            "peer_review_points",
            "total_points",
            "win_probability",
            "win_count",
            "last_calculated",
        )
        read_only_fields = fields


class TopContributorSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContributionMetrics
        fields = ("user_id", "username", "total_points", "github_repo_points", "peer_review_points", "win_probability", "win_count")
        read_only_fields = fields


class PayoutConfigSerializer(serializers.ModelSerializer):
    github_repo_details = serializers.SerializerMethodField()

    class Meta:
        model = PayoutConfig
        fields = (
            "total_pool",
            "batch_size",
            "game_publication_weight",
            "community_weight",
            "code_weight",
            "content_weight",
            "github_platform_weight",
            "peer_review_weight",
            "other_contributions_weight",
            "github_repo_details",
            "last_updated",
            "next_scheduled_run",
        )
        read_only_fields = fields

    def get_github_repo_details(self, obj: PayoutConfig) -> dict:
        return {
            "owner": obj.github_owner,
            "repo": obj.github_repo,
            "points_per_commit": obj.points_per_commit,
            "points_per_line_changed": obj.points_per_line_changed,
        }


class PayoutRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutRecord
        fields = (
            "id",
            "batch_id",
            "user_id",
            "username",
            "amount",
            "probability",
            "timestamp",
            "status",
            "processor_transfer_id",
            "processor_error",
            "expires_at",
            "retry_of_id",
        )
        read_only_fields = fields


class RecentPayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutRecord
        fields = ("username", "amount", "status", "timestamp")
        read_only_fields = fields


class PointTransferRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = PointTransferRecord
        fields = (
            "id",
            "sender_id",
            "sender_username",
            "recipient_id",
            "recipient_username",
            "point_type",
            "amount",
            "memo",
            "timestamp",
        )
        read_only_fields = fields


class AllocationSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    username = serializers.CharField()
    dollars = serializers.IntegerField()


def _max_payout() -> int:
    return int(getattr(settings, "PAYABLES_MAX_PAYOUT_DOLLARS", 10000))


class PayoutAmountSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)

    def validate_amount(self, value: int) -> int:
        limit = _max_payout()
        if value > limit:
            raise serializers.ValidationError(f"Amount must be between 1 and {limit}.")
        return value


class SimulateSerializer(PayoutAmountSerializer):
    seed = serializers.IntegerField(required=False)
    include_zero = serializers.BooleanField(required=False, default=False)


class PointTransferSerializer(serializers.Serializer):
    recipient_username = serializers.CharField(required=False, allow_blank=False, max_length=64)
    recipient_id = serializers.IntegerField(required=False, min_value=1)
    point_type = serializers.CharField(max_length=32)
    amount = serializers.FloatField()
    memo = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")

    def validate(self, attrs: dict) -> dict:
        if not attrs.get("recipient_username") and not attrs.get("recipient_id"):
            raise serializers.ValidationError({"recipient_username": "A recipient is required."})
        return attrs


class RecalculateSerializer(serializers.Serializer):
    run_async = serializers.BooleanField(required=False, default=False)


class ContributorProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContributorProfile
        fields = ("github_username", "updated_at")
        read_only_fields = ("updated_at",)

    def validate_github_username(self, value: str) -> str:
        value = (value or "").strip().lstrip("@")
        if value and not GITHUB_USERNAME_RE.match(value):
            raise serializers.ValidationError("Invalid GitHub username.")
        return value
