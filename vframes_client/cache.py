"""In-memory cache for job listing pages.

Listings are cheap to refetch but are requested repeatedly by list views, so
pages are kept for a short TTL. Anything that changes what the listing would
return (login, logout, upload) clears the whole cache.
"""

from cachetools import TTLCache

from vframes_client.logger import get_logger
from vframes_client.models import JobPage

logger = get_logger(__name__)

type PageKey = tuple[int, int]


class JobListCache:
    """TTL cache of ``JobPage``s keyed by ``(limit, offset)``."""

    def __init__(self, max_size: int = 128, ttl: int = 60) -> None:
        """Initialize the cache.

        Args:
            max_size: Max cached pages (LRU eviction). 0 = disabled.
            ttl: Page TTL in seconds
        """
        self._pages: TTLCache[PageKey, JobPage] | None = (
            TTLCache(maxsize=max_size, ttl=ttl) if max_size > 0 else None
        )

    def get(self, limit: int, offset: int) -> JobPage | None:
        if self._pages is None:
            return None
        return self._pages.get((limit, offset))

    def set(self, limit: int, offset: int, page: JobPage) -> None:
        if self._pages is None:
            return
        self._pages[limit, offset] = page

    def clear(self) -> None:
        """Mark every cached listing stale."""
        if self._pages is None:
            return
        logger.debug("Clearing job listing cache", pages=len(self._pages))
        self._pages.clear()

    def __len__(self) -> int:
        return 0 if self._pages is None else len(self._pages)
