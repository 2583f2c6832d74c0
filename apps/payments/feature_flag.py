from __future__ import annotations

from django.conf import settings


def feature_enabled(name: str, default: bool = False) -> bool:
    flags = getattr(settings, "FEATURE_FLAGS", {}) or {}
    return bool(flags.get(name, default))


def payments_enabled() -> bool:
    """Real money movement and payee onboarding are gated behind the ``payments`` flag."""
    return feature_enabled("payments")
