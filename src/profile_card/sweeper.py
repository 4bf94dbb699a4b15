"""
Periodic purge of expired cache entries.
"""

import asyncio
import logging

from profile_card.cache import BoundedTTLCache

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Background task that removes expired entries from a cache.

    Reads already expire entries lazily; the sweeper only bounds memory held
    by keys that are never read again. ``sweep()`` can be called directly,
    which is how tests drive it.
    """

    def __init__(self, cache: BoundedTTLCache, interval: float = 300.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._cache = cache
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self) -> int:
        """Run one pass and return the number of entries removed."""
        removed = self._cache.clear_expired()
        if removed:
            logger.debug("Swept %d expired cache entries", removed)
        return removed

    def start(self) -> None:
        """Start the periodic task on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="profile-cache-sweeper"
        )

    async def stop(self) -> None:
        """Cancel the periodic task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")
