from .cache_store import (
    STATS_CACHE_KEY,
    TEAM_CACHE_KEY,
    CacheStore,
    JsonFileCacheStore,
    MemoryCacheStore,
    SQLiteCacheStore,
    open_cache_store,
)

__all__ = [
    "STATS_CACHE_KEY",
    "TEAM_CACHE_KEY",
    "CacheStore",
    "JsonFileCacheStore",
    "MemoryCacheStore",
    "SQLiteCacheStore",
    "open_cache_store",
]
