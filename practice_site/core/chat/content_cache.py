"""
Freshness-bounded content snapshot cache.

The chat answers data questions from a snapshot that is at most
`content_cache_ttl` seconds old. A failed refresh keeps serving the previous
snapshot so a backend outage degrades answers instead of breaking the chat.
"""

import logging
import time
from collections import OrderedDict
from typing import Awaitable, Callable, Optional

from practice_site.config import get_settings
from practice_site.core.content.models import ContentSnapshot
from practice_site.core.errors import PracticeSiteError
from practice_site.core.scheduling.gema_client import get_gema_client

logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[], Awaitable[ContentSnapshot]]


class ContentCache:
    """
    Holds the last fetched snapshot for one practice.

    The snapshot reference is replaced wholesale on refresh and never mutated,
    so concurrent readers always see a complete snapshot.
    """

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        ttl: Optional[float] = None,
        initial: Optional[ContentSnapshot] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            fetcher: Coroutine function returning a fresh snapshot
            ttl: Freshness window in seconds (defaults to settings)
            initial: Snapshot already loaded by the page; treated as stale
                so the first chat turn refreshes it
            clock: Monotonic time source
        """
        self._fetcher = fetcher
        self._ttl = ttl if ttl is not None else get_settings().content_cache_ttl
        self._clock = clock
        self._snapshot = initial
        self._fetched_at: Optional[float] = None

    @property
    def snapshot(self) -> Optional[ContentSnapshot]:
        """Current snapshot without triggering a refresh."""
        return self._snapshot

    def is_fresh(self) -> bool:
        if self._snapshot is None or self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self._ttl

    async def get(self) -> Optional[ContentSnapshot]:
        """Return a snapshot no older than the TTL when possible.

        Returns:
            Fresh snapshot; the previous one if refresh fails; None if
            nothing was ever loaded
        """
        if self.is_fresh():
            return self._snapshot

        now = self._clock()
        try:
            snapshot = await self._fetcher()
        except PracticeSiteError as e:
            logger.warning(f"Content refresh failed, serving previous snapshot: {e}")
            return self._snapshot

        self._snapshot = snapshot
        self._fetched_at = now
        return snapshot

    def invalidate(self) -> None:
        """Force the next `get()` to refetch."""
        self._fetched_at = None


# Per-practice caches, least recently used first
_caches: "OrderedDict[str, ContentCache]" = OrderedDict()


def get_content_cache(slug: str) -> ContentCache:
    """Get (or create) the ContentCache for a practice slug.

    Slugs come straight from request URLs, so the registry is bounded by
    `content_cache_max_practices`; the least recently used practice is
    evicted when a new one would exceed it.
    """
    cache = _caches.get(slug)
    if cache is not None:
        _caches.move_to_end(slug)
        return cache

    async def fetch() -> ContentSnapshot:
        return await get_gema_client().get_website(slug)

    cache = ContentCache(fetch)
    _caches[slug] = cache

    limit = max(1, get_settings().content_cache_max_practices)
    while len(_caches) > limit:
        evicted, _ = _caches.popitem(last=False)
        logger.debug(f"Evicted content cache for {evicted}")
    return cache
