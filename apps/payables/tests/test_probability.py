from __future__ import annotations

import math
import random

import pytest

from apps.payables.domain import PayoutConfigSnapshot, UserScores
from apps.payables.exceptions import ProbabilityInvariantError
from apps.payables.models import ContributionMetrics
from apps.payables.services import probability
from apps.payables.services.config import update_config
from apps.payables.services.probability import (
    bucket_weights,
    calculate_probabilities,
    refresh_probabilities,
    take_snapshot,
)
from apps.users.models import User


def _scores(user_id: int, **points: float) -> UserScores:
    return UserScores(user_id=user_id, username=f"user{user_id}", **points)


def test_default_weights_split_mass_across_buckets():
    scores = [
        _scores(1, github_repo_points=30, total_points=10),
        _scores(2, github_repo_points=10, peer_review_points=5),
        _scores(3, total_points=30),
    ]

    result = calculate_probabilities(scores, PayoutConfigSnapshot())

    assert result[1] == pytest.approx(0.35)
    assert result[2] == pytest.approx(0.5)
    assert result[3] == pytest.approx(0.15)
    assert math.fsum(result.values()) == pytest.approx(1.0, abs=1e-12)


def test_empty_bucket_weight_is_redistributed():
    scores = [_scores(1, total_points=10), _scores(2, total_points=30)]

    result = calculate_probabilities(scores, PayoutConfigSnapshot())

    assert result == {1: pytest.approx(0.25), 2: pytest.approx(0.75)}


def test_zero_score_users_are_excluded():
    scores = [_scores(1, peer_review_points=4), _scores(2)]

    result = calculate_probabilities(scores, PayoutConfigSnapshot())

    assert result == {1: pytest.approx(1.0)}


def test_no_scores_means_empty_pool():
    assert calculate_probabilities([_scores(1), _scores(2)], PayoutConfigSnapshot()) == {}
    assert calculate_probabilities([], PayoutConfigSnapshot()) == {}


def test_all_zero_weights_fall_back_to_equal_split():
    config = PayoutConfigSnapshot(github_platform_weight=0, peer_review_weight=0, other_contributions_weight=0)
    scores = [_scores(1, github_repo_points=10), _scores(2, peer_review_points=10)]

    result = calculate_probabilities(scores, config)

    assert result == {1: pytest.approx(0.5), 2: pytest.approx(0.5)}


def test_scores_only_in_zero_weight_bucket_still_carry_mass(caplog):
    config = PayoutConfigSnapshot(github_platform_weight=0, peer_review_weight=0, other_contributions_weight=1)
    scores = [_scores(1, github_repo_points=10), _scores(2, github_repo_points=30)]

    with caplog.at_level("WARNING", logger="apps.payables.services.probability"):
        result = calculate_probabilities(scores, config)

    assert result == {1: pytest.approx(0.25), 2: pytest.approx(0.75)}
    assert "payables.probability.zero_weight_buckets" in caplog.text


def test_bucket_weights_renormalise_over_active_buckets():
    weights = bucket_weights(
        {"github_platform": 5.0, "peer_review": 0.0, "other_contributions": 2.0},
        PayoutConfigSnapshot(),
    )

    assert weights == {"github_platform": pytest.approx(2 / 3), "other_contributions": pytest.approx(1 / 3)}


def test_invariant_violation_is_raised(monkeypatch):
    monkeypatch.setattr(probability, "bucket_weights", lambda totals, config: {"github_platform": 0.5})

    with pytest.raises(ProbabilityInvariantError):
        calculate_probabilities([_scores(1, github_repo_points=1)], PayoutConfigSnapshot())


@pytest.mark.django_db
def test_refresh_persists_and_zeroes_absent_users():
    alice = User.objects.create_user(email="alice@example.com", password="pass1234", handle="alice")
    bob = User.objects.create_user(email="bob@example.com", password="pass1234", handle="bob")
    ContributionMetrics.objects.create(user=alice, username="alice", total_points=10)
    ContributionMetrics.objects.create(user=bob, username="bob", win_probability=0.9)

    result = refresh_probabilities()

    assert result == {alice.id: pytest.approx(1.0)}
    alice_row = ContributionMetrics.objects.get(user=alice)
    bob_row = ContributionMetrics.objects.get(user=bob)
    assert alice_row.win_probability == pytest.approx(1.0)
    assert bob_row.win_probability == 0.0
    assert alice_row.last_calculated is not None
    assert bob_row.last_calculated is not None


@pytest.mark.django_db
def test_snapshot_ignores_stale_stored_probabilities():
    alice = User.objects.create_user(email="alice@example.com", password="pass1234", handle="alice")
    bob = User.objects.create_user(email="bob@example.com", password="pass1234", handle="bob")
    ContributionMetrics.objects.create(user=alice, username="alice", total_points=10, win_probability=0.1)
    ContributionMetrics.objects.create(user=bob, username="bob", total_points=30, win_probability=0.9)

    snapshot = take_snapshot()

    assert snapshot.probability_for(alice.id) == pytest.approx(0.25)
    assert snapshot.probability_for(bob.id) == pytest.approx(0.75)
    assert snapshot.usernames[bob.id] == "bob"
    assert snapshot.config.total_pool == 1000


def test_ninety_ten_scores_give_ninety_ten_probabilities():
    result = calculate_probabilities(
        [_scores(1, total_points=90), _scores(2, total_points=10)], PayoutConfigSnapshot()
    )

    assert result == {1: pytest.approx(0.9), 2: pytest.approx(0.1)}


@pytest.mark.django_db
def test_sole_contributor_in_every_bucket_stays_within_bounds():
    alice = User.objects.create_user(email="alice@example.com", password="pass1234", handle="alice")
    ContributionMetrics.objects.create(
        user=alice, username="alice", total_points=5, github_repo_points=5, peer_review_points=5
    )
    update_config({"github_platform_weight": 0.6, "peer_review_weight": 0.33, "other_contributions_weight": 0.2})

    result = refresh_probabilities()

    assert result == {alice.id: pytest.approx(1.0)}
    assert 0.0 <= ContributionMetrics.objects.get(user=alice).win_probability <= 1.0


@pytest.mark.django_db
def test_randomised_weights_and_scores_persist_valid_probabilities():
    rng = random.Random(20240601)
    users = [
        User.objects.create_user(email=f"user{index}@example.com", password="pass1234", handle=f"user{index}")
        for index in range(6)
    ]
    rows = [ContributionMetrics.objects.create(user=user, username=user.handle) for user in users]

    for _ in range(40):
        for row in rows:
            row.total_points = rng.choice([0.0, rng.uniform(0, 500)])
            row.github_repo_points = rng.choice([0.0, rng.uniform(0, 500)])
            row.peer_review_points = rng.choice([0.0, rng.uniform(0, 500)])
        ContributionMetrics.objects.bulk_update(rows, ["total_points", "github_repo_points", "peer_review_points"])
        update_config(
            {
                "github_platform_weight": rng.choice([0.0, rng.random()]),
                "peer_review_weight": rng.choice([0.0, rng.random()]),
                "other_contributions_weight": rng.random(),
            }
        )

        result = refresh_probabilities()

        stored = list(ContributionMetrics.objects.values_list("win_probability", flat=True))
        assert all(0.0 <= value <= 1.0 for value in stored)
        if result:
            assert abs(math.fsum(result.values()) - 1.0) <= 1e-9
            assert abs(math.fsum(stored) - 1.0) <= 1e-9
        else:
            assert all(value == 0.0 for value in stored)
