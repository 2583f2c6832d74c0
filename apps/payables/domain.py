from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Dict, Iterable, Mapping

from apps.payables.categories import (
    ACTIVITY_POINTS,
    BUCKET_POINT_TYPES,
    BUCKET_WEIGHT_FIELDS,
    OTHER_CATEGORIES,
    POINT_TYPE_FIELDS,
    Bucket,
)


@dataclass(frozen=True)
class PayoutConfigSnapshot:
    """Immutable copy of PayoutConfig threaded through one calculation."""

    total_pool: int = 1000
    batch_size: int = 100
    game_publication_weight: float = 0.25
    community_weight: float = 0.15
    code_weight: float = 0.05
    content_weight: float = 0.05
    github_platform_weight: float = 0.4
    peer_review_weight: float = 0.4
    other_contributions_weight: float = 0.2
    github_owner: str = ""
    github_repo: str = ""
    points_per_commit: float = 10.0
    points_per_line_changed: float = 0.1

    def other_weights(self) -> Dict[str, float]:
        return {row.category: float(getattr(self, row.weight_field)) for row in OTHER_CATEGORIES}

    def top_level_weights(self) -> Dict[str, float]:
        return {bucket: float(getattr(self, weight_field)) for bucket, weight_field in BUCKET_WEIGHT_FIELDS.items()}


@dataclass(frozen=True)
class UserScores:
    user_id: int
    username: str
    github_repo_points: float = 0.0
    peer_review_points: float = 0.0
    total_points: float = 0.0

    @classmethod
    def from_metrics(cls, metrics) -> "UserScores":
        return cls(
            user_id=metrics.user_id,
            username=metrics.username,
            github_repo_points=float(metrics.github_repo_points),
            peer_review_points=float(metrics.peer_review_points),
            total_points=float(metrics.total_points),
        )

    def bucket_score(self, bucket: str) -> float:
        point_field = POINT_TYPE_FIELDS[BUCKET_POINT_TYPES[Bucket(bucket)]]
        return max(float(getattr(self, point_field)), 0.0)


@dataclass
class ActivityCounts:
    """Raw per-user activity counters reported by activity sources."""

    sketches: int = 0
    visualizations: int = 0
    instruments: int = 0
    questions: int = 0
    answers: int = 0
    published_games: int = 0
    game_updates: int = 0
    merged_peer_reviews: int = 0
    commits: int = 0
    lines_changed: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, int] | "ActivityCounts" | None) -> "ActivityCounts":
        if data is None:
            return cls()
        if isinstance(data, ActivityCounts):
            return cls(**{f.name: getattr(data, f.name) for f in fields(cls)})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown activity counters: {', '.join(unknown)}")
        return cls(**{key: int(value or 0) for key, value in data.items()})

    def merge(self, other: "ActivityCounts", counters: Iterable[str]) -> None:
        for name in counters:
            setattr(self, name, getattr(other, name))


def counters_for(categories: Iterable[str]) -> set[str]:
    """Counter names feeding the given categories."""
    wanted = set(categories)
    names = {name for name, rule in ACTIVITY_POINTS.items() if rule.category in wanted}
    if "github_repo" in wanted:
        names.update(("commits", "lines_changed"))
    return names


@dataclass(frozen=True)
class Allocation:
    user_id: int
    username: str
    dollars: int


@dataclass(frozen=True)
class ProbabilitySnapshot:
    """One consistent view of win probabilities, used for a whole simulate/execute call."""

    probabilities: Dict[int, float]
    usernames: Dict[int, str]
    config: PayoutConfigSnapshot
    taken_at: datetime
    scores: Dict[int, UserScores] = field(default_factory=dict)

    def probability_for(self, user_id: int) -> float:
        return self.probabilities.get(user_id, 0.0)
