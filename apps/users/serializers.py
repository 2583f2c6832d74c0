from __future__ import annotations

import re

from django.contrib.auth import authenticate
from rest_framework import serializers

from .models import User

HANDLE_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "email", "handle", "name", "is_staff", "created_at"]
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = User
        fields = ["email", "handle", "name", "password"]
        extra_kwargs = {
            "name": {"required": False, "allow_blank": True},
        }

    def validate_handle(self, value: str) -> str:
        handle = value.strip().lstrip("@")
        if not HANDLE_RE.match(handle):
            raise serializers.ValidationError("Handle may only contain letters, numbers, '_' and '-'.")
        if User.objects.filter(handle__iexact=handle).exists():
            raise serializers.ValidationError("Handle is already taken.")
        return handle

    def create(self, validated_data: dict) -> User:
        password = validated_data.pop("password")
        return User.objects.create_user(password=password, **validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs: dict) -> dict:
        user = authenticate(request=self.context.get("request"), email=attrs.get("email"), password=attrs.get("password"))
        if not user:
            raise serializers.ValidationError("Invalid credentials")
        attrs["user"] = user
        return attrs
