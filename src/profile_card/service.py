"""
Profile fetching with a two-tier cache and request coalescing.

Lookup order for a key:
  1. In-memory cache (fastest, per-process)
  2. Upstash Redis (shared across processes, optional)
  3. An in-flight fetch for the same key (joined, not repeated)
  4. Live GitHub GraphQL API (paginated, capped)
"""

import logging

from profile_card.aggregator import build_stats, rank_languages
from profile_card.cache import BoundedTTLCache
from profile_card.coalescer import RequestCoalescer
from profile_card.config import Settings, settings
from profile_card.errors import UpstreamError
from profile_card.github_client import FetchResult, GitHubClient
from profile_card.models import ProfileRecord, UserProfile
from profile_card.remote_cache import RemoteCache, get_remote_cache
from profile_card.sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


def make_cache_key(login: str, include_languages: bool) -> str:
    """Cache key for a login and the set of data categories requested."""
    return f"{login}:{'langs' if include_languages else 'nolangs'}"


class ProfileService:
    """
    Fetches GitHub profile statistics behind a two-tier cache.

    All collaborators are injected so tests can substitute them; use
    ``from_settings`` for the production wiring.
    """

    def __init__(
        self,
        client: GitHubClient,
        cache: BoundedTTLCache,
        coalescer: RequestCoalescer,
        remote: RemoteCache | None = None,
        sweeper: ExpirySweeper | None = None,
        config: Settings = settings,
    ):
        self.client = client
        self.cache = cache
        self.coalescer = coalescer
        self.remote = remote
        self.sweeper = sweeper
        self._settings = config

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "ProfileService":
        cache = BoundedTTLCache(
            default_ttl=config.cache_ttl_seconds,
            max_size=config.cache_max_size,
        )
        return cls(
            client=GitHubClient(config),
            cache=cache,
            coalescer=RequestCoalescer(cache, max_in_flight=config.max_in_flight_requests),
            remote=get_remote_cache(config),
            sweeper=ExpirySweeper(cache, interval=config.cache_sweep_interval_seconds),
            config=config,
        )

    def start(self) -> None:
        """Start the background sweeper (needs a running event loop)."""
        if self.sweeper is not None:
            self.sweeper.start()

    async def close(self) -> None:
        """Stop the sweeper and close HTTP clients."""
        if self.sweeper is not None:
            await self.sweeper.stop()
        await self.client.close()
        if self.remote is not None:
            await self.remote.close()

    async def fetch_profile(self, login: str, include_languages: bool = True) -> ProfileRecord:
        """
        Fetch a user's profile, stats and top languages.

        Args:
            login: GitHub login
            include_languages: Whether the language breakdown is needed

        Returns:
            ProfileRecord, shared with any concurrent caller for the same key

        Raises:
            ConfigurationError: If no GitHub token is configured
            UpstreamError: Subclass describing the GitHub failure
            OverloadError: If too many fetches are already in flight
        """
        key = make_cache_key(login, include_languages)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Memory cache hit for %s", key)
            return cached

        if self.remote is not None:
            remote_value = await self.remote.get(key)
            if remote_value is not None:
                logger.debug("Remote cache hit for %s", key)
                self.cache.set(key, remote_value)
                return remote_value

        return await self.coalescer.run(
            key, lambda: self._fetch_and_store(key, login, include_languages)
        )

    async def _fetch_and_store(
        self, key: str, login: str, include_languages: bool
    ) -> ProfileRecord:
        try:
            result = await self.client.fetch_pages(login, include_languages)
        except UpstreamError as e:
            logger.warning("GitHub fetch failed for %s: %s", key, e)
            raise

        profile = await self._assemble(result)

        self.cache.set(key, profile)
        if self.remote is not None:
            await self.remote.set(key, profile, self._settings.cache_ttl_seconds)

        return profile

    async def _assemble(self, result: FetchResult) -> ProfileRecord:
        user = result.user
        languages = (
            rank_languages(result.languages, self._settings.top_languages)
            if result.languages is not None
            else []
        )

        avatar_url = user.get("avatarUrl") or ""
        avatar_data_url = await self.client.fetch_avatar_data_url(avatar_url)

        return ProfileRecord(
            user=UserProfile(
                login=user["login"],
                name=user.get("name"),
                avatar_url=avatar_url,
                avatar_data_url=avatar_data_url,
                bio=user.get("bio"),
                pronouns=user.get("pronouns"),
                twitter=user.get("twitterUsername"),
            ),
            stats=build_stats(user, result.stars, result.commit_year),
            languages=languages,
        )
