from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from apps.payables.categories import ContributionCategory, PointType
from apps.payables.domain import ActivityCounts, PayoutConfigSnapshot
from apps.payables.exceptions import ActivitySourceUnreachable
from apps.payables.models import ContributionMetrics, ContributorProfile, PointTransferRecord
from apps.payables.services.activity import (
    GitHubRepoActivitySource,
    LocalContentSource,
    StaticActivitySource,
    get_activity_sources,
)
from apps.payables.services.aggregator import (
    aggregate_all,
    aggregate_user,
    category_points,
    collect_activity,
    record_activity,
)
from apps.users.models import User


def _user(handle: str, **extra) -> User:
    return User.objects.create_user(email=f"{handle}@example.com", password="pass1234", handle=handle, **extra)


class UnreachableSource:
    name = "flaky"

    def __init__(self, categories=(ContributionCategory.GITHUB_REPO,), error: Exception | None = None) -> None:
        self.categories = frozenset(categories)
        self.error = error or ActivitySourceUnreachable("timed out")

    def fetch(self, user):
        raise self.error


def _response(payload) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def test_category_points_uses_fixed_rules_and_repository_rates():
    counts = ActivityCounts(
        sketches=2,
        questions=1,
        answers=2,
        published_games=1,
        game_updates=1,
        merged_peer_reviews=2,
        commits=3,
        lines_changed=50,
    )

    points = category_points(counts, PayoutConfigSnapshot())

    assert points == {
        ContributionCategory.CODE: pytest.approx(20),
        ContributionCategory.CONTENT: 0,
        ContributionCategory.COMMUNITY: pytest.approx(11),
        ContributionCategory.GAME_PUBLICATION: pytest.approx(60),
        ContributionCategory.GITHUB_REPO: pytest.approx(35),
        ContributionCategory.PEER_REVIEW: pytest.approx(50),
    }


def test_static_source_rejects_unknown_counters():
    with pytest.raises(ValueError):
        StaticActivitySource({1: {"tweets": 4}})


@pytest.mark.django_db
def test_aggregate_user_recomputes_sub_scores_and_total():
    alice = _user("alice")
    source = StaticActivitySource(
        {alice.id: {"sketches": 2, "published_games": 1, "commits": 3, "lines_changed": 50, "merged_peer_reviews": 1}}
    )

    warnings = aggregate_user(alice, PayoutConfigSnapshot(), [source])

    metrics = ContributionMetrics.objects.get(user=alice)
    assert warnings == []
    assert metrics.code_contributions == pytest.approx(20)
    assert metrics.game_publication_points == pytest.approx(50)
    assert metrics.github_repo_points == pytest.approx(35)
    assert metrics.peer_review_points == pytest.approx(25)
    assert metrics.total_points == pytest.approx(13.5)
    assert metrics.last_calculated is not None


@pytest.mark.django_db
def test_unreachable_source_keeps_previous_values():
    alice = _user("alice")
    ContributionMetrics.objects.create(user=alice, username="alice", github_repo_points=42, code_contributions=4)
    static = StaticActivitySource({alice.id: {"sketches": 1}}, categories=[ContributionCategory.CODE])

    warnings = aggregate_user(alice, PayoutConfigSnapshot(), [UnreachableSource(), static])

    metrics = ContributionMetrics.objects.get(user=alice)
    assert len(warnings) == 1
    assert "flaky" in warnings[0]
    assert metrics.github_repo_points == pytest.approx(42)
    assert metrics.code_contributions == pytest.approx(10)


@pytest.mark.django_db
def test_collect_activity_tolerates_request_errors():
    alice = _user("alice")
    source = UnreachableSource(error=requests.Timeout("slow"))

    counts, fresh, warnings = collect_activity(alice, [source])

    assert counts == ActivityCounts()
    assert fresh == set()
    assert len(warnings) == 1


@pytest.mark.django_db
def test_net_transfers_survive_recalculation():
    alice = _user("alice")
    bob = _user("bob")
    PointTransferRecord.objects.create(
        sender=bob,
        sender_username="bob",
        recipient=alice,
        recipient_username="alice",
        point_type=PointType.GITHUB_REPO,
        amount=10,
    )
    PointTransferRecord.objects.create(
        sender=alice,
        sender_username="alice",
        recipient=bob,
        recipient_username="bob",
        point_type=PointType.TOTAL,
        amount=2,
    )
    source = StaticActivitySource({alice.id: {"commits": 1, "sketches": 100}, bob.id: {"commits": 3}})

    aggregate_user(alice, PayoutConfigSnapshot(), [source])
    aggregate_user(bob, PayoutConfigSnapshot(), [source])

    alice_row = ContributionMetrics.objects.get(user=alice)
    bob_row = ContributionMetrics.objects.get(user=bob)
    assert alice_row.github_repo_points == pytest.approx(20)
    assert alice_row.total_points == pytest.approx(48)
    assert bob_row.github_repo_points == pytest.approx(20)
    assert bob_row.total_points == pytest.approx(2)


@pytest.mark.django_db
def test_negative_balance_after_transfers_is_clamped(caplog):
    alice = _user("alice")
    bob = _user("bob")
    PointTransferRecord.objects.create(
        sender=alice,
        sender_username="alice",
        recipient=bob,
        recipient_username="bob",
        point_type=PointType.PEER_REVIEW,
        amount=50,
    )

    aggregate_user(alice, PayoutConfigSnapshot(), [StaticActivitySource({})])

    assert ContributionMetrics.objects.get(user=alice).peer_review_points == 0
    assert "Clamping negative peer_review_points" in caplog.text


@pytest.mark.django_db
def test_aggregate_all_skips_inactive_users():
    alice = _user("alice")
    _user("bob")
    _user("ghost", is_active=False)

    report = aggregate_all(PayoutConfigSnapshot(), [StaticActivitySource({alice.id: {"answers": 2}})])

    assert report.updated == 2
    assert ContributionMetrics.objects.count() == 2
    assert ContributionMetrics.objects.get(user=alice).community_engagement == pytest.approx(6)


@pytest.mark.django_db
def test_record_activity_applies_incremental_points():
    alice = _user("alice")

    metrics = record_activity(alice, "published_games", config=PayoutConfigSnapshot())

    assert metrics.game_publication_points == pytest.approx(50)
    assert metrics.total_points == pytest.approx(12.5)
    with pytest.raises(ValueError):
        record_activity(alice, "tweets")


@pytest.mark.django_db
def test_local_content_source_counts_through_registered_callables():
    alice = _user("alice")
    source = LocalContentSource({"sketches": lambda user: 3, "instruments": lambda user: -1})

    counts = source.fetch(alice)

    assert source.categories == frozenset({ContributionCategory.CODE, ContributionCategory.CONTENT})
    assert counts.sketches == 3
    assert counts.instruments == 0


@pytest.mark.django_db
def test_github_source_counts_commits_and_lines():
    alice = _user("alice")
    ContributorProfile.objects.create(user=alice, github_username="alice-gh")
    session = MagicMock()
    session.headers = {}

    def fake_get(url, params=None, timeout=None):
        if url.endswith("/commits"):
            assert params["author"] == "alice-gh"
            return _response([{"sha": "abc"}, {"sha": "def"}])
        if url.endswith("/abc"):
            return _response({"stats": {"total": 10}})
        return _response({"stats": {"total": 5}})

    session.get.side_effect = fake_get
    source = GitHubRepoActivitySource("randomplayables", "rp", token="t0ken", session=session)

    counts = source.fetch(User.objects.select_related("contributor_profile").get(pk=alice.pk))

    assert counts.commits == 2
    assert counts.lines_changed == 15
    assert session.headers["Authorization"] == "Bearer t0ken"


@pytest.mark.django_db
def test_github_source_skips_users_without_username():
    alice = _user("alice")
    session = MagicMock()
    session.headers = {}

    counts = GitHubRepoActivitySource("randomplayables", "rp", session=session).fetch(alice)

    assert counts == ActivityCounts()
    session.get.assert_not_called()


@pytest.mark.django_db
def test_github_source_raises_when_unreachable():
    alice = _user("alice")
    ContributorProfile.objects.create(user=alice, github_username="alice-gh")
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = requests.ConnectionError("down")

    with pytest.raises(ActivitySourceUnreachable):
        GitHubRepoActivitySource("randomplayables", "rp", session=session).fetch(alice)


def test_activity_sources_are_built_from_settings(settings):
    settings.PAYABLES_ACTIVITY_SOURCES = [
        "apps.payables.services.activity.github_repo_source",
        "apps.payables.services.activity.local_content_source",
    ]
    settings.PAYABLES_CONTENT_COUNTERS = {}

    sources = get_activity_sources(PayoutConfigSnapshot(github_owner="acme", github_repo="games"))

    assert [source.name for source in sources] == ["github_repo", "local_content"]
    assert sources[0].owner == "acme"
    assert sources[0].repo == "games"
