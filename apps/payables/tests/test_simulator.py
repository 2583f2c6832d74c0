from __future__ import annotations

import random

import pytest
from django.utils import timezone

from apps.payables.domain import PayoutConfigSnapshot, ProbabilitySnapshot
from apps.payables.models import ContributionMetrics, PayoutConfig, PayoutRecord
from apps.payables.services.simulator import simulate
from apps.users.models import User


def _snapshot(probabilities: dict[int, float]) -> ProbabilitySnapshot:
    return ProbabilitySnapshot(
        probabilities=probabilities,
        usernames={user_id: f"user{user_id}" for user_id in probabilities},
        config=PayoutConfigSnapshot(),
        taken_at=timezone.now(),
    )


def test_allocations_are_sorted_by_dollars_then_user():
    allocations = simulate(300, snapshot=_snapshot({1: 0.1, 2: 0.3, 3: 0.6}), rng=random.Random(11))

    assert sum(row.dollars for row in allocations) == 300
    keys = [(-row.dollars, row.user_id) for row in allocations]
    assert keys == sorted(keys)
    assert {row.username for row in allocations} <= {"user1", "user2", "user3"}


def test_include_zero_lists_contributors_without_winnings():
    allocations = simulate(1, snapshot=_snapshot({1: 0.5, 2: 0.5}), rng=random.Random(0), include_zero=True)

    assert [row.dollars for row in allocations] == [1, 0]
    assert {row.user_id for row in allocations} == {1, 2}


def test_empty_pool_returns_no_allocations():
    assert simulate(10, snapshot=_snapshot({})) == []


@pytest.mark.django_db
def test_simulation_writes_nothing():
    user = User.objects.create_user(email="sim@example.com", password="pass1234", handle="sim")
    ContributionMetrics.objects.create(user=user, username="sim", peer_review_points=5)
    pool_before = PayoutConfig.load().total_pool

    allocations = simulate(25, rng=random.Random(5))

    assert [(row.user_id, row.dollars) for row in allocations] == [(user.id, 25)]
    assert PayoutRecord.objects.count() == 0
    metrics = ContributionMetrics.objects.get(user=user)
    assert metrics.win_count == 0
    assert metrics.win_probability == 0.0
    assert PayoutConfig.load().total_pool == pool_before


def test_ninety_ten_split_averages_out():
    probabilities = {1: 0.9, 2: 0.1}
    snapshot = _snapshot(probabilities)
    rng = random.Random(90)
    totals = {1: 0, 2: 0}

    for _ in range(200):
        for row in simulate(100, snapshot=snapshot, rng=rng):
            totals[row.user_id] += row.dollars

    assert totals[1] / 200 == pytest.approx(90, abs=1.5)
    assert totals[2] / 200 == pytest.approx(10, abs=1.5)


@pytest.mark.parametrize("seed", [1, 2, 3, 99])
def test_any_seed_distributes_exact_amount(seed):
    allocations = simulate(37, snapshot=_snapshot({1: 0.2, 2: 0.5, 3: 0.3}), rng=random.Random(seed))

    assert sum(row.dollars for row in allocations) == 37
