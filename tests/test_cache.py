"""Tests for the report cache."""
import pytest

from retail_api.services.cache import (
    _make_cache_key,
    cached,
    clear_cache,
    get_cache_stats,
    get_cached,
    set_cached,
)


class TestCacheKeys:
    """Tests for cache key construction."""

    def test_key_includes_args_and_sorted_kwargs(self):
        assert _make_cache_key("report", "2022-11", None, b=2, a=1) == "report:2022-11:None:a=1:b=2"

    def test_long_key_is_hashed(self):
        key = _make_cache_key("report", "x" * 300)
        assert key.startswith("report:")
        assert len(key) < 100


class TestCacheStore:
    """Tests for get/set/clear."""

    def test_set_and_get(self):
        set_cached("k", {"v": 1})
        assert get_cached("k") == {"v": 1}

    def test_expired_entry_is_dropped(self):
        set_cached("k", "v", ttl_seconds=-1)
        assert get_cached("k") is None

    def test_clear_by_prefix(self):
        set_cached("totals:a", 1)
        set_cached("totals:b", 2)
        set_cached("shift", 3)
        assert clear_cache("totals") == 2
        assert get_cached("shift") == 3

    def test_stats_track_hits_and_misses(self):
        set_cached("k", 1)
        get_cached("k")
        get_cached("missing")
        stats = get_cache_stats()
        assert (stats["hits"], stats["misses"], stats["hit_rate"]) == (1, 1, 50.0)


@pytest.mark.asyncio
class TestCachedDecorator:
    """Tests for the @cached decorator."""

    async def test_result_reused_and_db_ignored(self):
        calls = []

        @cached("demo")
        async def report(db, value):
            calls.append(value)
            return [value]

        assert await report(object(), 1) == [1]
        assert await report(object(), 1) == [1]
        assert await report(object(), 2) == [2]
        assert calls == [1, 2]

    async def test_errors_are_not_cached(self):
        calls = []

        @cached("failing")
        async def report(db):
            calls.append(1)
            raise ValueError("boom")

        for _ in range(2):
            with pytest.raises(ValueError):
                await report(None)
        assert len(calls) == 2
