"""
Closed set of contribution categories and point balances.

Adding a new "other contributions" category means adding a member to
ContributionCategory, a metrics field on ContributionMetrics, a weight field on
PayoutConfig and one row in OTHER_CATEGORIES. Weighting and renormalisation
iterate these tables, never ad-hoc string keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from django.db import models


class PointType(models.TextChoices):
    TOTAL = "totalPoints", "Other contributions"
    GITHUB_REPO = "githubRepoPoints", "GitHub repository"
    PEER_REVIEW = "peerReviewPoints", "Peer review"

    @property
    def field_name(self) -> str:
        return POINT_TYPE_FIELDS[self]


class Bucket(models.TextChoices):
    GITHUB_PLATFORM = "github_platform", "GitHub platform"
    PEER_REVIEW = "peer_review", "Peer review"
    OTHER_CONTRIBUTIONS = "other_contributions", "Other contributions"


class ContributionCategory(models.TextChoices):
    CODE = "code_contributions", "Code contributions"
    CONTENT = "content_creation", "Content creation"
    COMMUNITY = "community_engagement", "Community engagement"
    GAME_PUBLICATION = "game_publication", "Game publication"
    GITHUB_REPO = "github_repo", "GitHub repository"
    PEER_REVIEW = "peer_review", "Peer review"


# ContributionMetrics column holding each transferable balance.
POINT_TYPE_FIELDS: Dict[str, str] = {
    PointType.TOTAL: "total_points",
    PointType.GITHUB_REPO: "github_repo_points",
    PointType.PEER_REVIEW: "peer_review_points",
}

BUCKET_POINT_TYPES: Dict[str, str] = {
    Bucket.GITHUB_PLATFORM: PointType.GITHUB_REPO,
    Bucket.PEER_REVIEW: PointType.PEER_REVIEW,
    Bucket.OTHER_CONTRIBUTIONS: PointType.TOTAL,
}

# PayoutConfig column holding each top-level bucket weight.
BUCKET_WEIGHT_FIELDS: Dict[str, str] = {
    Bucket.GITHUB_PLATFORM: "github_platform_weight",
    Bucket.PEER_REVIEW: "peer_review_weight",
    Bucket.OTHER_CONTRIBUTIONS: "other_contributions_weight",
}


@dataclass(frozen=True)
class OtherCategory:
    category: str
    metrics_field: str
    weight_field: str


OTHER_CATEGORIES: Tuple[OtherCategory, ...] = (
    OtherCategory(ContributionCategory.GAME_PUBLICATION, "game_publication_points", "game_publication_weight"),
    OtherCategory(ContributionCategory.COMMUNITY, "community_engagement", "community_weight"),
    OtherCategory(ContributionCategory.CODE, "code_contributions", "code_weight"),
    OtherCategory(ContributionCategory.CONTENT, "content_creation", "content_weight"),
)


@dataclass(frozen=True)
class ActivityRule:
    category: str
    points: float


# Raw activity counter -> (category, points per item).
ACTIVITY_POINTS: Dict[str, ActivityRule] = {
    "sketches": ActivityRule(ContributionCategory.CODE, 10),
    "visualizations": ActivityRule(ContributionCategory.CONTENT, 8),
    "instruments": ActivityRule(ContributionCategory.CONTENT, 8),
    "questions": ActivityRule(ContributionCategory.COMMUNITY, 5),
    "answers": ActivityRule(ContributionCategory.COMMUNITY, 3),
    "published_games": ActivityRule(ContributionCategory.GAME_PUBLICATION, 50),
    "game_updates": ActivityRule(ContributionCategory.GAME_PUBLICATION, 10),
    "merged_peer_reviews": ActivityRule(ContributionCategory.PEER_REVIEW, 25),
}

# Counters converted with PayoutConfig repository rates instead of fixed points.
REPOSITORY_COUNTERS: Tuple[str, ...] = ("commits", "lines_changed")
