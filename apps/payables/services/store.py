from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from apps.payables.categories import PointType
from apps.payables.domain import UserScores
from apps.payables.models import NON_NEGATIVE_METRIC_FIELDS, ContributionMetrics, PointTransferRecord
from apps.users.models import User


def get_or_create_metrics(user: User) -> ContributionMetrics:
    metrics, created = ContributionMetrics.objects.get_or_create(
        user=user,
        defaults={"username": user.handle},
    )
    if not created and metrics.username != user.handle:
        ContributionMetrics.objects.filter(pk=metrics.pk).update(username=user.handle)
        metrics.username = user.handle
    return metrics


def locked_metrics(user_ids: Iterable[int]) -> Dict[int, ContributionMetrics]:
    """
    Lock the metrics rows of the given users in ascending user id order.

    Must be called inside transaction.atomic(); locks are held until it exits.
    """
    ordered = sorted(set(user_ids))
    locked: Dict[int, ContributionMetrics] = {}
    for user_id in ordered:
        row = ContributionMetrics.objects.select_for_update().filter(user_id=user_id).first()
        if row is not None:
            locked[user_id] = row
    return locked


def _validate(metrics: ContributionMetrics) -> None:
    negative = sorted(name for name in NON_NEGATIVE_METRIC_FIELDS if getattr(metrics, name) < 0)
    if negative:
        raise ValidationError(f"Contribution metrics cannot be negative: {', '.join(negative)}")


def update_metrics(user: User, mutate: Callable[[ContributionMetrics], None]) -> ContributionMetrics:
    """Atomic read-modify-write of a single user's metrics row."""
    get_or_create_metrics(user)
    with transaction.atomic():
        metrics = ContributionMetrics.objects.select_for_update().get(user_id=user.id)
        mutate(metrics)
        _validate(metrics)
        metrics.save()
    return metrics


def increment_win_count(user_id: int, by: int = 1) -> None:
    ContributionMetrics.objects.filter(user_id=user_id).update(win_count=F("win_count") + by)


def save_probabilities(probabilities: Mapping[int, float], calculated_at: datetime | None = None) -> int:
    """Persist win probabilities, zeroing every user absent from the map."""
    calculated_at = calculated_at or timezone.now()
    with transaction.atomic():
        ContributionMetrics.objects.exclude(user_id__in=list(probabilities)).update(
            win_probability=0.0,
            last_calculated=calculated_at,
        )
        rows = list(ContributionMetrics.objects.filter(user_id__in=list(probabilities)))
        for row in rows:
            row.win_probability = probabilities[row.user_id]
            row.last_calculated = calculated_at
        ContributionMetrics.objects.bulk_update(rows, ["win_probability", "last_calculated"])
    return len(rows)


def net_transfers(user_id: int) -> Dict[str, float]:
    """Points received minus points sent, per transferable point type."""
    totals: Dict[str, float] = {point_type: 0.0 for point_type in PointType.values}
    received = (
        PointTransferRecord.objects.filter(recipient_id=user_id)
        .order_by()
        .values("point_type")
        .annotate(total=Sum("amount"))
    )
    sent = (
        PointTransferRecord.objects.filter(sender_id=user_id)
        .order_by()
        .values("point_type")
        .annotate(total=Sum("amount"))
    )
    for row in received:
        totals[row["point_type"]] += float(row["total"] or 0)
    for row in sent:
        totals[row["point_type"]] -= float(row["total"] or 0)
    return totals


def load_scores() -> List[UserScores]:
    return [UserScores.from_metrics(row) for row in ContributionMetrics.objects.order_by("user_id")]
