"""Tests for cache module - keys, storage and the TTL result cache."""

from datetime import timedelta
from pathlib import Path

import pytest

from src.cache.keys import (
    cache_key_object,
    fnv1a_32,
    key_from_object,
    make_cache_key,
    stable_stringify,
)
from src.cache.manager import ResultCache, create_result_cache
from src.cache.store import MemoryKVStore, SqliteKVStore
from src.config.settings import Settings
from src.state.models import Category, Intent, SearchRequest, SearchResult


def _result(q: str = "oled 65") -> SearchResult:
    return SearchResult(q=q, intent=Intent(search_query=q))


class TestStableStringify:
    """Tests for canonical serialization."""

    def test_sorted_keys_at_every_level(self):
        assert stable_stringify({"b": 1, "a": {"d": 2, "c": [3, {"f": 1, "e": 0}]}}) == (
            '{"a":{"c":[3,{"e":0,"f":1}],"d":2},"b":1}'
        )

    def test_scalars(self):
        assert stable_stringify(None) == "null"
        assert stable_stringify(True) == "true"
        assert stable_stringify("ă") == '"ă"'

    def test_integral_floats_render_as_ints(self):
        assert stable_stringify(4000.0) == stable_stringify(4000) == "4000"
        assert stable_stringify(55.5) == "55.5"

    def test_enums_render_as_values(self):
        assert stable_stringify(Category.TV) == '"tv"'


class TestFnv1a:
    """Tests for the 32-bit FNV-1a hash."""

    def test_empty_input_is_offset_basis(self):
        assert fnv1a_32(b"") == 0x811C9DC5

    def test_known_vectors(self):
        assert fnv1a_32(b"a") == 0xE40C292C
        assert fnv1a_32(b"foobar") == 0xBF9CF968

    def test_key_format(self):
        key = key_from_object({"q": "tv"})
        assert key.startswith("k:")
        int(key[2:], 16)


class TestCacheKeys:
    """Tests for cache key derivation."""

    def test_field_order_does_not_matter(self):
        a = {"q": "oled", "budget": 4000, "sizeMin": 55, "sizeMax": 65, "category": "tv", "condition_ok": ["new"]}
        b = {"condition_ok": ["new"], "sizeMax": 65, "category": "tv", "sizeMin": 55, "budget": 4000, "q": "oled"}
        assert key_from_object(a) == key_from_object(b)

    def test_different_values_differ(self):
        assert key_from_object({"q": "oled", "budget": 4000}) != key_from_object({"q": "oled", "budget": 4001})

    def test_intent_values_win_over_request(self):
        intent = Intent(search_query="lg oled 65", budget_lei=4000, category="tv")
        request = SearchRequest(q="vreau un oled", budget=5000, size_min=55)
        obj = cache_key_object(intent, request)
        assert obj["q"] == "lg oled 65"
        assert obj["budget"] == 4000
        assert obj["sizeMin"] == 55
        assert obj["category"] == "tv"
        assert obj["condition_ok"] == ["new", "resealed", "used"]

    def test_condition_order_normalized(self):
        a = Intent(search_query="tv", condition_ok=["used", "new"])
        b = Intent(search_query="tv", condition_ok=["new", "used"])
        assert make_cache_key(a) == make_cache_key(b)

    def test_float_and_int_budget_same_key(self):
        a = Intent(search_query="tv", budget_lei=4000)
        b = Intent(search_query="tv", budget_lei=4000.0)
        assert make_cache_key(a) == make_cache_key(b)


class TestStores:
    """Tests for KV store implementations."""

    @pytest.mark.asyncio
    async def test_memory_store_round_trip(self):
        store = MemoryKVStore()
        assert await store.get("k:1") is None
        await store.put("k:1", {"a": 1})
        assert await store.get("k:1") == {"a": 1}
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_sqlite_store_overwrites(self, tmp_path: Path):
        store = SqliteKVStore(tmp_path / "cache.db")
        await store.put("k:1", {"v": 1})
        await store.put("k:1", {"v": 2})
        assert await store.get("k:1") == {"v": 2}
        assert await store.get("k:missing") is None

    @pytest.mark.asyncio
    async def test_sqlite_instances_are_isolated(self, tmp_path: Path):
        main = SqliteKVStore(tmp_path / "cache.db", instance="main")
        other = SqliteKVStore(tmp_path / "cache.db", instance="other")
        await main.put("k:1", {"v": 1})
        assert await other.get("k:1") is None

    def test_sqlite_rejects_bad_instance_name(self, tmp_path: Path):
        with pytest.raises(ValueError):
            SqliteKVStore(tmp_path / "cache.db", instance="main; DROP TABLE x")


class TestResultCache:
    """Tests for TTL handling in ResultCache."""

    @pytest.mark.asyncio
    async def test_miss_on_empty(self, result_cache):
        assert await result_cache.lookup("k:1") is None
        assert result_cache.get_stats().misses == 1

    @pytest.mark.asyncio
    async def test_hit_within_ttl(self, result_cache, clock):
        await result_cache.put("k:1", _result())
        clock.advance(19 * 60 + 59)

        cached = await result_cache.lookup("k:1")
        assert cached is not None
        assert cached.cache.hit is True
        assert cached.cache.key == "k:1"
        assert cached.cache.age_seconds == 19 * 60 + 59
        assert result_cache.get_stats().hits == 1

    @pytest.mark.asyncio
    async def test_miss_at_ttl(self, result_cache, clock):
        await result_cache.put("k:1", _result())
        clock.advance(20 * 60)

        assert await result_cache.lookup("k:1") is None
        assert result_cache.get_stats().expired == 1

    @pytest.mark.asyncio
    async def test_expired_entry_stays_stored(self, result_cache, clock):
        await result_cache.put("k:1", _result())
        clock.advance(3600)

        assert await result_cache.lookup("k:1") is None
        entry = await result_cache.get("k:1")
        assert entry is not None
        assert entry.result.q == "oled 65"

    @pytest.mark.asyncio
    async def test_put_refreshes_timestamp(self, result_cache, clock):
        await result_cache.put("k:1", _result())
        clock.advance(25 * 60)
        await result_cache.put("k:1", _result("fresh"))

        cached = await result_cache.lookup("k:1")
        assert cached.q == "fresh"
        assert cached.cache.age_seconds == 0

    @pytest.mark.asyncio
    async def test_custom_ttl(self, memory_store, clock):
        cache = ResultCache(memory_store, ttl=timedelta(seconds=30), clock=clock)
        await cache.put("k:1", _result())
        clock.advance(31)
        assert await cache.lookup("k:1") is None

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_miss(self, memory_store, result_cache):
        await memory_store.put("k:1", {"unexpected": True})
        assert await result_cache.lookup("k:1") is None

    @pytest.mark.asyncio
    async def test_round_trip_through_sqlite(self, tmp_path: Path, clock):
        cache = ResultCache(SqliteKVStore(tmp_path / "cache.db"), clock=clock)
        await cache.put("k:1", _result())
        cached = await cache.lookup("k:1")
        assert cached.intent.search_query == "oled 65"
        assert cached.build == "price-hunter-auto-v1"

    def test_factory_uses_settings(self, tmp_path: Path):
        settings = Settings(cache_path=tmp_path / "c.db", cache_enabled=False, cache_ttl_minutes=5)
        cache = create_result_cache(settings)
        assert isinstance(cache._store, MemoryKVStore)
        assert cache._ttl_ms == 5 * 60 * 1000
