"""
Async GitHub GraphQL client for profile statistics.
Paginates a user's owned repositories and downloads the avatar.
"""

import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from profile_card.aggregator import LanguageTotals, sum_stars
from profile_card.config import Settings, settings
from profile_card.errors import (
    ConfigurationError,
    UpstreamAuthError,
    UpstreamGenericError,
    UpstreamNotFoundError,
    UpstreamRateLimitError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "github-profile-card"

_USER_FIELDS = """
    login
    name
    avatarUrl
    bio
    pronouns
    twitterUsername
    openPRs: pullRequests(states: OPEN) { totalCount }
    closedPRs: pullRequests(states: CLOSED) { totalCount }
    mergedPRs: pullRequests(states: MERGED) { totalCount }
    openIssues: issues(states: OPEN) { totalCount }
    closedIssues: issues(states: CLOSED) { totalCount }
    contributionsCollection(from: $from, to: $to) {
      totalCommitContributions
    }"""

_REPOSITORIES = """
    repositories(first: 100, ownerAffiliations: OWNER, isFork: false, orderBy: {direction: DESC, field: STARGAZERS}, after: $cursor) {
      totalCount
      pageInfo { hasNextPage endCursor }
      nodes {
        stargazers { totalCount }%s
      }
    }"""

_LANGUAGES = """
        languages(first: 10, orderBy: {field: SIZE, direction: DESC}) {
          edges { size node { color name } }
        }"""

_QUERY = """
query userInfo($login: String!, $cursor: String, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {%s%s
  }
}"""

# Full query including per-repository language breakdown
QUERY_WITH_LANGS = _QUERY % (_USER_FIELDS, _REPOSITORIES % _LANGUAGES)
# Lighter query that skips language data
QUERY_NO_LANGS = _QUERY % (_USER_FIELDS, _REPOSITORIES % "")


@dataclass
class FetchResult:
    """Accumulated data from all fetched pages of one login."""

    user: dict[str, Any]
    stars: int
    commit_year: int
    pages: int
    languages: LanguageTotals | None = field(default=None)


class GitHubClient:
    """
    Async client for the GitHub GraphQL API.

    Features:
    - Cursor-chained pagination capped at ``max_pages`` pages
    - Distinct errors for auth, rate limit, not found and other failures
    - Best-effort avatar download as a data URL
    """

    def __init__(
        self,
        config: Settings = settings,
        now: Callable[[], datetime] = lambda: datetime.now(tz=UTC),
    ):
        self._settings = config
        self._now = now
        self._client: httpx.AsyncClient | None = None

    @property
    def max_pages(self) -> int:
        return self._settings.max_pages

    @property
    def headers(self) -> dict[str, str]:
        """Build GraphQL request headers; the token is mandatory."""
        token = self._settings.github_token
        if not token:
            logger.error("GITHUB_TOKEN is missing. Set it in your .env file.")
            raise ConfigurationError("GITHUB_TOKEN is missing. Set it in your .env file.")
        return {
            "Authorization": f"bearer {token}",
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                timeout=self._settings.graphql_timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _query_user(self, login: str, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """
        Run one GraphQL page query and return ``data.user``.

        Raises:
            UpstreamAuthError: On 401
            UpstreamRateLimitError: On 403 or 429
            UpstreamNotFoundError: If the login does not resolve to a user
            UpstreamGenericError: On any other failure
        """
        headers = self.headers
        client = await self._get_client()

        try:
            response = await client.post(
                self._settings.github_graphql_url,
                json={"query": query, "variables": variables},
                headers=headers,
                timeout=self._settings.graphql_timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise UpstreamGenericError(
                f"GitHub API timed out after {self._settings.graphql_timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamGenericError(f"GitHub API request failed: {e}") from e

        if response.status_code == 401:
            raise UpstreamAuthError("GitHub API authentication failed (401)")
        if response.status_code in (403, 429):
            raise UpstreamRateLimitError(
                f"GitHub API rate limit exceeded or access forbidden ({response.status_code})"
            )
        if not response.is_success:
            detail = response.text[:100]
            raise UpstreamGenericError(
                f"GitHub API error ({response.status_code}): {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamGenericError(
                "GitHub API returned invalid JSON",
                status_code=response.status_code,
                detail=response.text[:100],
            ) from e

        if not isinstance(body, dict):
            raise UpstreamGenericError(
                "GitHub API returned an unexpected payload",
                status_code=response.status_code,
                detail=response.text[:100],
            )

        errors = body.get("errors") or []
        if errors:
            if not isinstance(errors, list) or not all(isinstance(e, dict) for e in errors):
                raise UpstreamGenericError(
                    "GitHub API returned malformed errors",
                    status_code=response.status_code,
                    detail=response.text[:100],
                )
            if any(error.get("type") == "NOT_FOUND" for error in errors):
                raise UpstreamNotFoundError(login)
            message = " | ".join(e.get("message") for e in errors if e.get("message"))
            raise UpstreamGenericError(
                message or "GitHub API error", status_code=response.status_code
            )

        data = body.get("data") or {}
        user = data.get("user") if isinstance(data, dict) else None
        if not user:
            raise UpstreamNotFoundError(login)
        if not isinstance(user, dict):
            raise UpstreamGenericError(
                "GitHub API returned a malformed user",
                status_code=response.status_code,
                detail=response.text[:100],
            )
        return user

    async def fetch_pages(self, login: str, include_languages: bool = True) -> FetchResult:
        """
        Fetch and accumulate every repository page for a login.

        Pages are fetched one after another, each with the previous page's
        cursor. Stops when GitHub reports no further page, when a page comes
        back empty, or after ``max_pages`` pages. Any failure aborts the
        whole run; partial totals are never returned.

        Args:
            login: GitHub login
            include_languages: Whether to request and merge language sizes

        Returns:
            FetchResult with first-page user data and summed totals
        """
        now = self._now()
        year_start = datetime(now.year, 1, 1, tzinfo=UTC)
        query = QUERY_WITH_LANGS if include_languages else QUERY_NO_LANGS
        languages = LanguageTotals() if include_languages else None

        user: dict[str, Any] | None = None
        stars = 0
        cursor: str | None = None
        has_next_page = True
        pages = 0

        while has_next_page and pages < self.max_pages:
            pages += 1
            page_user = await self._query_user(
                login,
                query,
                {
                    "login": login,
                    "cursor": cursor,
                    "from": year_start.isoformat(),
                    "to": now.isoformat(),
                },
            )

            # Later pages repeat the user fields; keep the first page's
            if user is None:
                user = page_user

            try:
                repositories = page_user.get("repositories") or {}
                nodes = repositories.get("nodes") or []
                stars += sum_stars(nodes)
                if languages is not None:
                    for node in nodes:
                        languages.add_edges((node.get("languages") or {}).get("edges") or [])

                page_info = repositories.get("pageInfo") or {}
                has_next_page = bool(page_info.get("hasNextPage")) and bool(nodes)
                cursor = page_info.get("endCursor")
            except (AttributeError, TypeError, KeyError) as e:
                raise UpstreamGenericError(
                    f"GitHub API returned a malformed repository page: {e}"
                ) from e
            logger.debug("Fetched page %d for %s (%d repositories)", pages, login, len(nodes))

        if has_next_page:
            logger.info("Stopped pagination for %s at %d pages", login, pages)

        return FetchResult(
            user=user,
            stars=stars,
            commit_year=now.year,
            pages=pages,
            languages=languages,
        )

    async def fetch_avatar_data_url(self, url: str) -> str | None:
        """
        Download an avatar and encode it as a base64 data URL.

        Failures are logged and return None so the caller can fall back to
        the plain avatar URL.
        """
        if not url:
            return None
        sized_url = f"{url}{'&' if '?' in url else '?'}s=96"
        try:
            client = await self._get_client()
            response = await client.get(
                sized_url, timeout=self._settings.avatar_timeout_seconds
            )
            if not response.is_success:
                logger.warning("Avatar fetch failed: %s for %s", response.status_code, url)
                return None

            content_type = response.headers.get("content-type") or "image/png"
            encoded = base64.b64encode(response.content).decode("ascii")
            return f"data:{content_type};base64,{encoded}"
        except Exception as e:
            logger.warning("Avatar fetch error for %s: %s", url, e)
            return None
