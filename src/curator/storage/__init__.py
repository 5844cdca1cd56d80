"""Durable storage for analysis results."""

from curator.storage.cache import (
    CacheEntry,
    FileKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    ResultCache,
    create_cache,
)

__all__ = [
    "CacheEntry",
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "ResultCache",
    "create_cache",
]
