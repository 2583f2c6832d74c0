from __future__ import annotations

from rest_framework import serializers

from .models import PayeeAccount


class PayeeAccountSerializer(serializers.ModelSerializer):
    setup_complete = serializers.BooleanField(read_only=True)

    class Meta:
        model = PayeeAccount
        fields = ["provider", "payouts_enabled", "details_submitted", "setup_complete", "updated_at"]
        read_only_fields = fields


class OnboardingSerializer(serializers.Serializer):
    refresh_url = serializers.URLField()
    return_url = serializers.URLField()
