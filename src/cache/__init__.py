"""Result caching keyed by normalized search intent."""

from .keys import cache_key_object, fnv1a_32, make_cache_key, stable_stringify
from .manager import CacheStats, ResultCache, create_result_cache
from .store import KVStore, MemoryKVStore, SqliteKVStore

__all__ = [
    "CacheStats",
    "KVStore",
    "MemoryKVStore",
    "ResultCache",
    "SqliteKVStore",
    "cache_key_object",
    "create_result_cache",
    "fnv1a_32",
    "make_cache_key",
    "stable_stringify",
]
