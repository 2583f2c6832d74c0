from __future__ import annotations

import math
from typing import Any, Mapping

from django.db import transaction
from django.utils import timezone

from apps.payables.domain import PayoutConfigSnapshot
from apps.payables.exceptions import InvalidConfiguration
from apps.payables.models import PayoutConfig

WEIGHT_FIELDS = (
    "game_publication_weight",
    "community_weight",
    "code_weight",
    "content_weight",
    "github_platform_weight",
    "peer_review_weight",
    "other_contributions_weight",
)
RATE_FIELDS = ("points_per_commit", "points_per_line_changed")
INTEGER_FIELDS = ("total_pool", "batch_size")
TEXT_FIELDS = ("github_owner", "github_repo")
EDITABLE_FIELDS = WEIGHT_FIELDS + RATE_FIELDS + INTEGER_FIELDS + TEXT_FIELDS + ("next_scheduled_run",)

# Nested keys accepted for repository details, mirroring the stored fields.
REPOSITORY_KEYS = {
    "owner": "github_owner",
    "repo": "github_repo",
    "points_per_commit": "points_per_commit",
    "points_per_line_changed": "points_per_line_changed",
}


def get_config() -> PayoutConfig:
    return PayoutConfig.load()


def get_snapshot() -> PayoutConfigSnapshot:
    return get_config().to_snapshot()


def _flatten(changes: Mapping[str, Any]) -> dict[str, Any]:
    flat = {key: value for key, value in changes.items() if key != "github_repo_details"}
    details = changes.get("github_repo_details")
    if details is not None:
        if not isinstance(details, Mapping):
            raise InvalidConfiguration("github_repo_details must be an object.")
        for key, value in details.items():
            if key not in REPOSITORY_KEYS:
                raise InvalidConfiguration(f"Unknown repository setting: {key}")
            flat[REPOSITORY_KEYS[key]] = value
    unknown = sorted(set(flat) - set(EDITABLE_FIELDS))
    if unknown:
        raise InvalidConfiguration(f"Unknown configuration fields: {', '.join(unknown)}")
    return flat


def _coerce(field: str, value: Any) -> Any:
    if field in TEXT_FIELDS:
        return str(value or "").strip()
    if field == "next_scheduled_run":
        return value
    if isinstance(value, bool):
        raise InvalidConfiguration(f"{field} must be a number.")
    if field in INTEGER_FIELDS:
        if isinstance(value, float) and not value.is_integer():
            raise InvalidConfiguration(f"{field} must be an integer.")
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"{field} must be an integer.") from None
        if number < 0:
            raise InvalidConfiguration(f"{field} must be non-negative.")
        return number
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{field} must be a number.") from None
    if not math.isfinite(number) or number < 0:
        raise InvalidConfiguration(f"{field} must be a non-negative number.")
    return number


def update_config(changes: Mapping[str, Any]) -> PayoutConfig:
    """
    Apply a partial update to the singleton configuration.

    Weights are relative values and are not required to sum to one; they are
    renormalised wherever they are used.
    """
    values = {field: _coerce(field, value) for field, value in _flatten(changes).items()}
    with transaction.atomic():
        config = PayoutConfig.load()
        config = PayoutConfig.objects.select_for_update().get(pk=config.pk)
        for field, value in values.items():
            setattr(config, field, value)
        config.last_updated = timezone.now()
        config.save()
    return config
