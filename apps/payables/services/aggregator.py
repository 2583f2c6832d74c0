from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set, Tuple

import requests
from django.utils import timezone

from apps.payables.categories import ACTIVITY_POINTS, OTHER_CATEGORIES, ContributionCategory, PointType
from apps.payables.domain import ActivityCounts, PayoutConfigSnapshot, counters_for
from apps.payables.exceptions import ActivitySourceUnreachable
from apps.payables.models import ContributionMetrics
from apps.payables.services import store
from apps.payables.services.activity import ActivitySource, get_activity_sources
from apps.payables.services.config import get_snapshot
from apps.users.models import User

logger = logging.getLogger(__name__)

CATEGORY_FIELDS: Dict[str, str] = {
    ContributionCategory.CODE: "code_contributions",
    ContributionCategory.CONTENT: "content_creation",
    ContributionCategory.COMMUNITY: "community_engagement",
    ContributionCategory.GAME_PUBLICATION: "game_publication_points",
    ContributionCategory.GITHUB_REPO: "github_repo_points",
    ContributionCategory.PEER_REVIEW: "peer_review_points",
}

# Categories stored directly in a transferable balance.
BALANCE_CATEGORIES: Dict[str, str] = {
    ContributionCategory.GITHUB_REPO: PointType.GITHUB_REPO,
    ContributionCategory.PEER_REVIEW: PointType.PEER_REVIEW,
}


@dataclass
class AggregationReport:
    updated: int = 0
    warnings: List[str] = field(default_factory=list)


def category_points(counts: ActivityCounts, config: PayoutConfigSnapshot) -> Dict[str, float]:
    """Convert raw counters into points per category."""
    points = {category: 0.0 for category in ContributionCategory.values}
    for counter, rule in ACTIVITY_POINTS.items():
        points[rule.category] += getattr(counts, counter) * rule.points
    points[ContributionCategory.GITHUB_REPO] += (
        counts.commits * config.points_per_commit + counts.lines_changed * config.points_per_line_changed
    )
    return points


def weighted_total(metrics: ContributionMetrics, config: PayoutConfigSnapshot) -> float:
    weights = config.other_weights()
    return math.fsum(float(getattr(metrics, row.metrics_field)) * weights[row.category] for row in OTHER_CATEGORIES)


def collect_activity(user: User, sources: Sequence[ActivitySource]) -> Tuple[ActivityCounts, Set[str], List[str]]:
    """
    Query every source for one user.

    Returns the merged counts, the categories that were refreshed and one
    warning per unreachable source.
    """
    counts = ActivityCounts()
    fresh: Set[str] = set()
    warnings: List[str] = []
    for source in sources:
        try:
            result = source.fetch(user)
        except (ActivitySourceUnreachable, requests.RequestException) as exc:
            message = f"{source.name} unreachable for user {user.id}: {exc}"
            logger.warning("Activity source %s unreachable for user %s: %s", source.name, user.id, exc)
            warnings.append(message)
            continue
        counts.merge(result, counters_for(source.categories))
        fresh.update(source.categories)
    return counts, fresh, warnings


def _clamped(value: float, user: User, label: str) -> float:
    if value < 0:
        logger.warning("Clamping negative %s for user %s (%s) to 0", label, user.id, value)
        return 0.0
    return value


def aggregate_user(
    user: User,
    config: PayoutConfigSnapshot | None = None,
    sources: Sequence[ActivitySource] | None = None,
) -> List[str]:
    """
    Recompute one user's sub-scores and balances.

    Categories whose source failed keep their stored value. Net point
    transfers are re-applied so transferred points survive recomputation.
    """
    config = config or get_snapshot()
    if sources is None:
        sources = get_activity_sources(config)
    counts, fresh, warnings = collect_activity(user, sources)
    points = category_points(counts, config)

    def mutate(metrics: ContributionMetrics) -> None:
        net = store.net_transfers(user.id)
        for category in fresh:
            field_name = CATEGORY_FIELDS[category]
            value = points[category]
            if category in BALANCE_CATEGORIES:
                value = _clamped(value + net[BALANCE_CATEGORIES[category]], user, field_name)
            setattr(metrics, field_name, value)
        metrics.total_points = _clamped(weighted_total(metrics, config) + net[PointType.TOTAL], user, "total_points")
        metrics.username = user.handle
        metrics.last_calculated = timezone.now()

    store.update_metrics(user, mutate)
    return warnings


def aggregate_all(
    config: PayoutConfigSnapshot | None = None,
    sources: Sequence[ActivitySource] | None = None,
    users: Iterable[User] | None = None,
) -> AggregationReport:
    config = config or get_snapshot()
    if sources is None:
        sources = get_activity_sources(config)
    if users is None:
        users = User.objects.filter(is_active=True).select_related("contributor_profile").order_by("id")
    report = AggregationReport()
    for user in users:
        report.warnings.extend(aggregate_user(user, config, sources))
        report.updated += 1
    logger.info(
        "payables.aggregation.finished",
        extra={"updated": report.updated, "warning_count": len(report.warnings)},
    )
    return report


def record_activity(
    user: User,
    counter: str,
    quantity: int = 1,
    config: PayoutConfigSnapshot | None = None,
) -> ContributionMetrics:
    """Apply a single activity event incrementally, e.g. from a content hook."""
    if counter not in ACTIVITY_POINTS:
        raise ValueError(f"Unknown activity counter: {counter}")
    config = config or get_snapshot()
    rule = ACTIVITY_POINTS[counter]
    delta = rule.points * quantity
    field_name = CATEGORY_FIELDS[rule.category]
    weights = config.other_weights()

    def mutate(metrics: ContributionMetrics) -> None:
        current = float(getattr(metrics, field_name))
        updated = max(current + delta, 0.0)
        setattr(metrics, field_name, updated)
        if rule.category in weights:
            metrics.total_points = max(metrics.total_points + (updated - current) * weights[rule.category], 0.0)

    return store.update_metrics(user, mutate)
