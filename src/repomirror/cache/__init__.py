"""Key/value persistence for the mirror.

The mirror persists three entries (repo, issues, hook) through the
CacheStore protocol:
- InMemoryCacheStore: Process-local store for development and tests
- PostgresCacheStore: Durable store backed by a single asyncpg table
"""

from repomirror.cache.base import CacheError, CacheStore, InMemoryCacheStore
from repomirror.cache.postgres import PostgresCacheStore

__all__ = [
    "CacheError",
    "CacheStore",
    "InMemoryCacheStore",
    "PostgresCacheStore",
]
