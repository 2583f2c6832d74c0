from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List

from django.conf import settings
from django.utils import timezone

from apps.payables.categories import Bucket
from apps.payables.domain import PayoutConfigSnapshot, ProbabilitySnapshot, UserScores
from apps.payables.exceptions import ProbabilityInvariantError
from apps.payables.services import store
from apps.payables.services.config import get_snapshot

logger = logging.getLogger(__name__)


def _tolerance() -> float:
    return float(getattr(settings, "PAYABLES_PROBABILITY_TOLERANCE", 1e-9))


def bucket_weights(bucket_totals: Dict[str, float], config: PayoutConfigSnapshot) -> Dict[str, float]:
    """
    Normalised top-level weights for the buckets that can carry probability mass.

    A bucket with no scores has its weight redistributed proportionally over
    the remaining buckets. Non-positive configured weights fall back to an
    even split.
    """
    configured = {bucket: max(weight, 0.0) for bucket, weight in config.top_level_weights().items()}
    if math.fsum(configured.values()) <= 0:
        logger.warning("payables.probability.weights_unset", extra={"weights": configured})
        configured = {bucket: 1.0 for bucket in configured}

    active = {
        bucket: weight
        for bucket, weight in configured.items()
        if weight > 0 and bucket_totals.get(bucket, 0.0) > 0
    }
    if not active:
        non_empty = [bucket for bucket, total in bucket_totals.items() if total > 0]
        if not non_empty:
            return {}
        logger.warning(
            "payables.probability.zero_weight_buckets",
            extra={"buckets": non_empty},
        )
        active = {bucket: 1.0 for bucket in non_empty}

    total_weight = math.fsum(active.values())
    return {bucket: weight / total_weight for bucket, weight in active.items()}


def calculate_probabilities(scores: Iterable[UserScores], config: PayoutConfigSnapshot) -> Dict[int, float]:
    """Map user id -> win probability for every user with a non-zero score."""
    score_list: List[UserScores] = list(scores)
    bucket_totals = {
        bucket: math.fsum(row.bucket_score(bucket) for row in score_list) for bucket in Bucket.values
    }
    weights = bucket_weights(bucket_totals, config)
    if not weights:
        return {}

    probabilities: Dict[int, float] = {}
    for row in score_list:
        probability = math.fsum(
            weight * row.bucket_score(bucket) / bucket_totals[bucket] for bucket, weight in weights.items()
        )
        if probability > 0:
            # Normalised weights can sum to 1 + ulp for a user present in every bucket.
            probabilities[row.user_id] = min(probability, 1.0)

    total = math.fsum(probabilities.values())
    if abs(total - 1.0) > _tolerance():
        logger.error(
            "payables.probability.invariant_violated",
            extra={"total": total, "users": len(probabilities)},
        )
        raise ProbabilityInvariantError(f"Probabilities sum to {total!r}, expected 1.")
    return probabilities


def refresh_probabilities(config: PayoutConfigSnapshot | None = None) -> Dict[int, float]:
    """Recompute probabilities from stored scores and persist them."""
    config = config or get_snapshot()
    probabilities = calculate_probabilities(store.load_scores(), config)
    store.save_probabilities(probabilities, calculated_at=timezone.now())
    logger.info("payables.probability.refreshed", extra={"users": len(probabilities)})
    return probabilities


def take_snapshot(config: PayoutConfigSnapshot | None = None) -> ProbabilitySnapshot:
    """
    Compute one consistent probability view from current scores.

    Probabilities are recomputed from the stored scores instead of trusting
    the persisted win_probability column, so a batch never mixes stale and
    fresh values.
    """
    config = config or get_snapshot()
    scores = store.load_scores()
    probabilities = calculate_probabilities(scores, config)
    return ProbabilitySnapshot(
        probabilities=probabilities,
        usernames={row.user_id: row.username for row in scores},
        config=config,
        taken_at=timezone.now(),
        scores={row.user_id: row for row in scores},
    )
