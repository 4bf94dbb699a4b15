"""
Optional shared cache tier backed by Upstash Redis.

Every call is best effort: failures are logged and treated as a miss or a
skipped write, never raised to the caller.
"""

import logging

from upstash_redis.asyncio import Redis

from profile_card.config import Settings, settings
from profile_card.models import ProfileRecord

logger = logging.getLogger(__name__)

KEY_PREFIX = "profile:"


class RemoteCache:
    """
    Profile store on top of an async Upstash Redis client.

    Profiles are stored as camelCase JSON strings under ``profile:<key>``.
    """

    def __init__(self, client: Redis):
        self._client = client

    @classmethod
    def from_credentials(cls, url: str, token: str) -> "RemoteCache":
        return cls(Redis(url=url, token=token))

    async def close(self) -> None:
        """Close the Redis client."""
        try:
            await self._client.close()
        except Exception as e:
            logger.warning("Redis close error: %s", e)

    async def get(self, key: str) -> ProfileRecord | None:
        """
        Read a profile from the shared tier.

        Args:
            key: Cache key (without the ``profile:`` prefix)

        Returns:
            The stored profile, or None on miss or any failure
        """
        try:
            raw = await self._client.get(KEY_PREFIX + key)
            if raw is None:
                return None
            if isinstance(raw, (str, bytes)):
                return ProfileRecord.from_json(raw)
            return ProfileRecord.model_validate(raw)
        except Exception as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: ProfileRecord, ttl: int) -> bool:
        """
        Write a profile to the shared tier with an expiry.

        Returns:
            True if the write went through, False on any failure
        """
        try:
            await self._client.set(KEY_PREFIX + key, value.to_json(), ex=ttl)
            return True
        except Exception as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False


_remote_cache: RemoteCache | None = None
_remote_cache_resolved = False


def get_remote_cache(config: Settings = settings) -> RemoteCache | None:
    """Get or create the process-wide remote cache, or None if not configured."""
    global _remote_cache, _remote_cache_resolved
    if not _remote_cache_resolved:
        if config.remote_cache_enabled:
            try:
                _remote_cache = RemoteCache.from_credentials(
                    url=config.upstash_redis_rest_url,
                    token=config.upstash_redis_rest_token,
                )
                logger.info("Remote cache tier enabled")
            except Exception as e:
                logger.error("Failed to initialize Redis: %s", e)
        else:
            logger.info("Remote cache tier disabled (no Upstash credentials)")
        _remote_cache_resolved = True
    return _remote_cache


def reset_remote_cache() -> None:
    """Forget the memoized instance so the next call re-reads settings."""
    global _remote_cache, _remote_cache_resolved
    _remote_cache = None
    _remote_cache_resolved = False
