"""
In-flight request coalescing.

Concurrent callers asking for the same key share one upstream operation.
The number of distinct operations in flight is capped globally.
"""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable

from profile_card.cache import BoundedTTLCache
from profile_card.errors import OverloadError, UpstreamGenericError
from profile_card.models import ProfileRecord

logger = logging.getLogger(__name__)

_PENDING = object()


class InFlightHandle:
    """
    Single-resolution result shared by any number of waiters.

    The owner settles it exactly once with ``resolve`` or ``reject``; every
    waiter, whether it subscribed before or after settlement, receives the
    same value or the same exception.

    Waiters are woken on their own event loop, so the handle may be settled
    from any thread.
    """

    def __init__(self, key: str):
        self.key = key
        self._value = _PENDING
        self._error: BaseException | None = None
        self._waiters: list[asyncio.Future] = []
        self._lock = threading.Lock()

    @property
    def done(self) -> bool:
        return self._value is not _PENDING or self._error is not None

    @property
    def waiter_count(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    def resolve(self, value) -> None:
        self._settle(value=value)

    def reject(self, error: BaseException) -> None:
        self._settle(error=error)

    async def wait(self):
        """Wait for the owner to settle the handle and return its outcome."""
        waiter = None
        with self._lock:
            if not self.done:
                waiter = asyncio.get_running_loop().create_future()
                self._waiters.append(waiter)
        if waiter is not None:
            await waiter
        if self._error is not None:
            raise self._error
        return self._value

    def _settle(self, value=_PENDING, error: BaseException | None = None) -> None:
        with self._lock:
            if self.done:
                raise RuntimeError(f"In-flight handle for {self.key!r} already settled")
            self._value = value
            self._error = error
            waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            loop = waiter.get_loop()
            if not loop.is_closed():
                loop.call_soon_threadsafe(_wake, waiter)


def _wake(waiter: asyncio.Future) -> None:
    if not waiter.done():
        waiter.set_result(None)


class RequestCoalescer:
    """
    Registry of in-flight operations keyed by cache key.

    At most one operation per key runs at any time. Registration and lookup
    happen under one lock with no await in between, so two callers can never
    both decide to start a fetch for the same key.
    """

    def __init__(self, cache: BoundedTTLCache, max_in_flight: int = 100):
        self._cache = cache
        self._max_in_flight = max_in_flight
        self._registry: dict[str, InFlightHandle] = {}
        self._lock = threading.Lock()

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._registry)

    @property
    def max_in_flight(self) -> int:
        return self._max_in_flight

    def is_in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._registry

    async def run(
        self, key: str, operation: Callable[[], Awaitable[ProfileRecord]]
    ) -> ProfileRecord:
        """
        Join the operation in flight for ``key`` or start a new one.

        Args:
            key: Cache key the operation produces
            operation: Zero-argument coroutine factory doing the fetch

        Returns:
            The operation's result, shared between all joined callers

        Raises:
            OverloadError: If a new operation is needed and the ceiling is reached
        """
        with self._lock:
            handle = self._registry.get(key)
            owner = handle is None
            if owner:
                if len(self._registry) >= self._max_in_flight:
                    raise OverloadError(self._max_in_flight)
                handle = InFlightHandle(key)
                self._registry[key] = handle

        if not owner:
            logger.debug("Joining in-flight fetch for %s", key)
            return await handle.wait()

        self._cache.set_in_flight(key, handle)
        try:
            value = await operation()
        except asyncio.CancelledError:
            self._cache.delete(key)
            handle.reject(UpstreamGenericError(f"Fetch for {key} was cancelled"))
            raise
        except Exception as exc:
            # Clear the slot so the next request retries
            self._cache.delete(key)
            handle.reject(exc)
            raise
        else:
            entry = self._cache.get_entry(key)
            if entry is not None and entry.in_flight is handle:
                self._cache.set(key, value)
            handle.resolve(value)
            return value
        finally:
            with self._lock:
                if self._registry.get(key) is handle:
                    del self._registry[key]
