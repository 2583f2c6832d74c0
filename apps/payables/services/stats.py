from __future__ import annotations

from typing import Any, Dict

from django.db.models import Q, Sum

from apps.payables.models import ContributionMetrics, PayoutConfig, PayoutRecord, PayoutStatus
from apps.users.models import User

SCORED = (
    Q(total_points__gt=0)
    | Q(github_repo_points__gt=0)
    | Q(peer_review_points__gt=0)
)


def _paid_total(queryset) -> int:
    return int(queryset.filter(status=PayoutStatus.COMPLETED).aggregate(total=Sum("amount"))["total"] or 0)


def payables_stats(limit: int = 10) -> Dict[str, Any]:
    config = PayoutConfig.load()
    top = ContributionMetrics.objects.filter(SCORED).order_by("-win_probability", "-total_points", "user_id")[:limit]
    recent = PayoutRecord.objects.order_by("-timestamp", "-id")[:limit]
    return {
        "total_contributors": ContributionMetrics.objects.filter(SCORED).count(),
        "total_paid_out": _paid_total(PayoutRecord.objects.all()),
        "current_pool_size": config.total_pool,
        "top_contributors": list(top),
        "recent_payouts": list(recent),
    }


def user_summary(user: User, recent: int = 10) -> Dict[str, Any]:
    metrics = ContributionMetrics.objects.filter(user=user).first()
    payouts = PayoutRecord.objects.filter(user=user)
    return {
        "user_id": user.id,
        "username": user.handle,
        "metrics": metrics,
        "win_probability": metrics.win_probability if metrics else 0.0,
        "win_count": metrics.win_count if metrics else 0,
        "total_paid": _paid_total(payouts),
        "pending_setup": payouts.filter(status=PayoutStatus.REQUIRES_PROCESSOR_SETUP).count(),
        "recent_payouts": list(payouts.order_by("-timestamp", "-id")[:recent]),
    }
