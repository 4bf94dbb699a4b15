"""
Bounded in-memory TTL cache for assembled profiles.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from profile_card.models import ProfileRecord

if TYPE_CHECKING:
    from profile_card.coalescer import InFlightHandle


@dataclass
class CacheEntry:
    """A cached profile, or a placeholder for a fetch still in flight."""

    expires_at: float
    value: ProfileRecord | None = None
    in_flight: "InFlightHandle | None" = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class BoundedTTLCache:
    """
    Time-to-live cache with a hard entry cap.

    Entries expire after a configurable TTL and are evicted oldest-inserted
    first once the cache holds more than ``max_size`` entries. Writing a
    key moves it to the newest position. Every operation holds a short
    lock so the cache can be shared between threads.
    """

    def __init__(
        self,
        default_ttl: int = 1800,
        max_size: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            default_ttl: Default time-to-live in seconds (default: 1800 = 30 minutes)
            max_size: Maximum number of entries kept (default: 500)
            clock: Monotonic time source, replaceable in tests
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._clock = clock

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: str) -> ProfileRecord | None:
        """
        Get a profile if it exists and hasn't expired.

        Expired entries are removed on read. In-flight placeholders are
        never expired here; their fetch removes or replaces them.

        Args:
            key: Cache key

        Returns:
            Cached profile or None if not found, expired, or still in flight
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if entry.in_flight is None and entry.is_expired(self._clock()):
                del self._entries[key]
                return None

            return entry.value

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the raw entry for a key without expiry checks."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: ProfileRecord, ttl: int | None = None) -> None:
        """
        Store a profile with TTL, replacing any placeholder for the key.

        Args:
            key: Cache key
            value: Profile to store
            ttl: Time-to-live in seconds (uses default if not specified)
        """
        self._insert(key, CacheEntry(expires_at=self._expiry(ttl), value=value))

    def set_in_flight(
        self, key: str, handle: "InFlightHandle", ttl: int | None = None
    ) -> None:
        """Register a placeholder entry for a fetch that has just started."""
        self._insert(key, CacheEntry(expires_at=self._expiry(ttl), in_flight=handle))

    def delete(self, key: str) -> bool:
        """
        Remove key from cache.

        Returns:
            True if key was removed, False if it didn't exist
        """
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries from cache."""
        with self._lock:
            self._entries.clear()

    def clear_expired(self) -> int:
        """
        Remove all expired entries that are not in flight.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired_keys = [
                key
                for key, entry in self._entries.items()
                if entry.in_flight is None and entry.is_expired(now)
            ]
            for key in expired_keys:
                del self._entries[key]

        return len(expired_keys)

    def keys(self) -> list[str]:
        """Keys from oldest to newest insertion."""
        with self._lock:
            return list(self._entries)

    def size(self) -> int:
        """Return number of entries in cache (including expired)."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        """Check if key holds a profile that is not expired."""
        return self.get(key) is not None

    def _expiry(self, ttl: int | None) -> float:
        ttl = ttl if ttl is not None else self._default_ttl
        return self._clock() + ttl

    def _insert(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            # Pop first so the key moves to the newest position
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)
