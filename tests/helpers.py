"""
Builders and fakes shared by the test modules.
"""

import asyncio

from profile_card.aggregator import LanguageTotals
from profile_card.github_client import FetchResult
from profile_card.models import ProfileRecord, StatSummary, UserProfile

GRAPHQL_URL = "https://api.github.com/graphql"
AVATAR_URL = "https://avatars.githubusercontent.com/u/583231?v=4"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_profile(login: str = "octocat", stars: int = 0) -> ProfileRecord:
    return ProfileRecord(
        user=UserProfile(login=login, name=login.title(), avatar_url=AVATAR_URL),
        stats=StatSummary(stars=stars, repos=1, commit_year=2026),
        languages=[],
    )


def repo_node(stars: int = 0, languages: list[tuple] | None = None) -> dict:
    """Repository node; ``languages`` holds (name, size) or (name, size, color)."""
    node = {"stargazers": {"totalCount": stars}}
    if languages is not None:
        edges = []
        for lang in languages:
            name, size = lang[0], lang[1]
            color = lang[2] if len(lang) > 2 else None
            edges.append({"size": size, "node": {"name": name, "color": color}})
        node["languages"] = {"edges": edges}
    return node


def graphql_page(
    nodes: list[dict],
    has_next_page: bool = False,
    end_cursor: str | None = None,
    login: str = "octocat",
    name: str = "The Octocat",
    total_repos: int | None = None,
    commits: int = 42,
) -> dict:
    """A GraphQL response body for one page of repositories."""
    return {
        "data": {
            "user": {
                "login": login,
                "name": name,
                "avatarUrl": AVATAR_URL,
                "bio": "Mascot",
                "pronouns": None,
                "twitterUsername": "github",
                "openPRs": {"totalCount": 1},
                "closedPRs": {"totalCount": 2},
                "mergedPRs": {"totalCount": 3},
                "openIssues": {"totalCount": 4},
                "closedIssues": {"totalCount": 5},
                "contributionsCollection": {"totalCommitContributions": commits},
                "repositories": {
                    "totalCount": total_repos if total_repos is not None else len(nodes),
                    "pageInfo": {"hasNextPage": has_next_page, "endCursor": end_cursor},
                    "nodes": nodes,
                },
            }
        }
    }


class FakeGitHubClient:
    """
    Stand-in for GitHubClient that counts calls.

    When ``gate`` is set, ``fetch_pages`` blocks until the test releases it,
    which keeps fetches in flight while concurrent callers arrive.
    """

    def __init__(self, error: Exception | None = None, gate: asyncio.Event | None = None):
        self.error = error
        self.gate = gate
        self.calls: list[tuple[str, bool]] = []
        self.active = 0
        self.max_active: dict[str, int] = {}
        self.closed = False

    async def fetch_pages(self, login: str, include_languages: bool = True) -> FetchResult:
        self.calls.append((login, include_languages))
        self.active += 1
        self.max_active[login] = max(self.max_active.get(login, 0), self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            languages = LanguageTotals() if include_languages else None
            if languages is not None:
                languages.add("Python", 100, "#3572A5")
            user = graphql_page([repo_node(stars=7)], login=login)["data"]["user"]
            return FetchResult(
                user=user, stars=7, commit_year=2026, pages=1, languages=languages
            )
        finally:
            self.active -= 1

    async def fetch_avatar_data_url(self, url: str) -> str | None:
        return "data:image/png;base64,AAAA"

    async def close(self) -> None:
        self.closed = True


class FakeRemoteCache:
    """In-memory remote tier with optional failure injection."""

    def __init__(self, fail: bool = False):
        self.store: dict[str, ProfileRecord] = {}
        self.fail = fail
        self.sets: list[tuple[str, int]] = []
        self.closed = False

    async def get(self, key: str) -> ProfileRecord | None:
        if self.fail:
            return None
        return self.store.get(key)

    async def set(self, key: str, value: ProfileRecord, ttl: int) -> bool:
        if self.fail:
            return False
        self.sets.append((key, ttl))
        self.store[key] = value
        return True

    async def close(self) -> None:
        self.closed = True
