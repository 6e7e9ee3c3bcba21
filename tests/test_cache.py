"""Tests for the job listing cache."""

from vframes_client.cache import JobListCache
from vframes_client.models import JobPage


def test_get_and_set() -> None:
    """Test pages are cached per (limit, offset)."""
    cache = JobListCache()
    first = JobPage(total=3, limit=2, offset=0, has_more=True)
    second = JobPage(total=3, limit=2, offset=2)

    cache.set(2, 0, first)
    cache.set(2, 2, second)

    assert cache.get(2, 0) == first
    assert cache.get(2, 2) == second
    assert cache.get(20, 0) is None
    assert len(cache) == 2


def test_clear() -> None:
    """Test clearing drops every page."""
    cache = JobListCache()
    cache.set(20, 0, JobPage())

    cache.clear()

    assert cache.get(20, 0) is None
    assert len(cache) == 0


def test_disabled_cache() -> None:
    """Test max_size=0 disables caching."""
    cache = JobListCache(max_size=0)

    cache.set(20, 0, JobPage())
    cache.clear()

    assert cache.get(20, 0) is None
    assert len(cache) == 0

