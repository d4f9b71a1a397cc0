"""Cache store protocol and in-memory implementation.

The mirror treats persistence as a last-write-wins key/value store with
exactly three keys (see CacheKey). Values must be JSON-serializable.
"""

import copy
import logging
from typing import Any, Dict, Optional, Protocol

from repomirror.state.models import CacheKey


logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Raised when a cache operation fails.

    Attributes:
        message: Human-readable error description.
        key: The cache key involved, if any.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        key: Optional[CacheKey] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.key = key
        self.original_error = original_error
        super().__init__(message)


class CacheStore(Protocol):
    """Protocol defining the interface for mirror persistence.

    No ordering or transaction guarantees beyond last-write-wins per key.
    """

    async def exists(self, key: CacheKey) -> bool:
        """Return True if a value is stored under key."""
        ...

    async def get(self, key: CacheKey) -> Any:
        """Return the value stored under key, or None if absent."""
        ...

    async def set(self, key: CacheKey, value: Any) -> None:
        """Store value under key, replacing any previous value."""
        ...

    async def clear(self, key: CacheKey) -> None:
        """Remove the value stored under key, if any."""
        ...


class InMemoryCacheStore:
    """In-memory implementation of the CacheStore protocol.

    Values are deep-copied on the way in and out so callers can never
    mutate cached state through a shared reference.
    """

    def __init__(self) -> None:
        self._values: Dict[CacheKey, Any] = {}

    async def exists(self, key: CacheKey) -> bool:
        return CacheKey(key) in self._values

    async def get(self, key: CacheKey) -> Any:
        return copy.deepcopy(self._values.get(CacheKey(key)))

    async def set(self, key: CacheKey, value: Any) -> None:
        self._values[CacheKey(key)] = copy.deepcopy(value)
        logger.debug("Cached value", extra={"cache_key": CacheKey(key).value})

    async def clear(self, key: CacheKey) -> None:
        self._values.pop(CacheKey(key), None)
        logger.debug("Cleared cached value", extra={"cache_key": CacheKey(key).value})
