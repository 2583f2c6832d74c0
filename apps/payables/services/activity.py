from __future__ import annotations

import logging
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Protocol, runtime_checkable

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from apps.payables.categories import ACTIVITY_POINTS, ContributionCategory
from apps.payables.domain import ActivityCounts, PayoutConfigSnapshot
from apps.payables.exceptions import ActivitySourceUnreachable
from apps.users.models import User

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_PAGE_SIZE = 100


@runtime_checkable
class ActivitySource(Protocol):
    """Reports raw activity counters for the categories it owns."""

    name: str
    categories: FrozenSet[str]

    def fetch(self, user: User) -> ActivityCounts: ...


def _categories_for_counters(counters: Iterable[str]) -> FrozenSet[str]:
    return frozenset(ACTIVITY_POINTS[name].category for name in counters)


class StaticActivitySource:
    """In-memory counts keyed by user id. Useful for seeding and imports."""

    def __init__(
        self,
        counts: Mapping[int, Mapping[str, int] | ActivityCounts],
        categories: Iterable[str] | None = None,
        name: str = "static",
    ) -> None:
        self.name = name
        self._counts = {user_id: ActivityCounts.from_mapping(value) for user_id, value in counts.items()}
        if categories is None:
            categories = [category for category in ContributionCategory.values]
        self.categories = frozenset(categories)

    def fetch(self, user: User) -> ActivityCounts:
        return ActivityCounts.from_mapping(self._counts.get(user.id))


class LocalContentSource:
    """
    Counts platform content through registered counter callables.

    Each counter maps a user to the number of items of one kind (sketches,
    questions, published games, ...). Content ingestion itself lives outside
    this app, so projects register the counters they have.
    """

    name = "local_content"

    def __init__(self, counters: Mapping[str, Callable[[User], int]]) -> None:
        unknown = sorted(set(counters) - set(ACTIVITY_POINTS))
        if unknown:
            raise ValueError(f"Unknown content counters: {', '.join(unknown)}")
        self._counters = dict(counters)
        self.categories = _categories_for_counters(self._counters)

    def fetch(self, user: User) -> ActivityCounts:
        counts = ActivityCounts()
        for name, counter in self._counters.items():
            setattr(counts, name, max(int(counter(user) or 0), 0))
        return counts

    @classmethod
    def from_settings(cls, config: PayoutConfigSnapshot | None = None) -> "LocalContentSource":
        paths: Dict[str, str] = getattr(settings, "PAYABLES_CONTENT_COUNTERS", {}) or {}
        return cls({name: import_string(path) for name, path in paths.items()})


class GitHubRepoActivitySource:
    """Commits and changed lines authored by a contributor in one repository."""

    name = "github_repo"
    categories = frozenset({ContributionCategory.GITHUB_REPO.value})

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 10.0,
        base_url: str = GITHUB_API_URL,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/vnd.github+json")
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @property
    def _repo_url(self) -> str:
        return f"{self.base_url}/repos/{self.owner}/{self.repo}"

    def _list_commits(self, author: str, page: int) -> List[dict]:
        try:
            response = self.session.get(
                f"{self._repo_url}/commits",
                params={"author": author, "per_page": GITHUB_PAGE_SIZE, "page": page},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ActivitySourceUnreachable(f"{self.owner}/{self.repo}: {exc}") from exc

    def _lines_changed(self, sha: str) -> int:
        try:
            response = self.session.get(f"{self._repo_url}/commits/{sha}", timeout=self.timeout)
            response.raise_for_status()
            stats = response.json().get("stats") or {}
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Skipping commit %s in %s/%s: %s", sha, self.owner, self.repo, exc)
            return 0
        return int(stats.get("total") or 0)

    def fetch(self, user: User) -> ActivityCounts:
        counts = ActivityCounts()
        profile = getattr(user, "contributor_profile", None)
        github_username = getattr(profile, "github_username", "") if profile else ""
        if not github_username or not self.owner or not self.repo:
            return counts
        page = 1
        while True:
            commits = self._list_commits(github_username, page)
            if not commits:
                break
            counts.commits += len(commits)
            for commit in commits:
                counts.lines_changed += self._lines_changed(commit["sha"])
            if len(commits) < GITHUB_PAGE_SIZE:
                break
            page += 1
        return counts

    @classmethod
    def from_settings(cls, config: PayoutConfigSnapshot | None = None) -> "GitHubRepoActivitySource":
        owner = (config.github_owner if config else "") or getattr(settings, "PAYABLES_GITHUB_OWNER", "")
        repo = (config.github_repo if config else "") or getattr(settings, "PAYABLES_GITHUB_REPO", "")
        return cls(
            owner=owner,
            repo=repo,
            token=getattr(settings, "GITHUB_TOKEN", "") or None,
            timeout=float(getattr(settings, "PAYABLES_GITHUB_TIMEOUT_SECONDS", 10)),
        )


def get_activity_sources(config: PayoutConfigSnapshot | None = None) -> List[ActivitySource]:
    """Build the configured activity sources from dotted factory paths."""
    paths = getattr(settings, "PAYABLES_ACTIVITY_SOURCES", None)
    if paths is None:
        paths = ["apps.payables.services.activity.github_repo_source"]
    return [import_string(path)(config) for path in paths]


def github_repo_source(config: PayoutConfigSnapshot | None = None) -> GitHubRepoActivitySource:
    return GitHubRepoActivitySource.from_settings(config)


def local_content_source(config: PayoutConfigSnapshot | None = None) -> LocalContentSource:
    return LocalContentSource.from_settings(config)
