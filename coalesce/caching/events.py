"""
Debug events emitted by memoization caches.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class CacheEvent(str, Enum):
    """Cache lifecycle events passed to debug reporters."""
    HIT = "cache hit"
    MISS = "cache miss"
    STORING = "storing"
    CLEARED = "cache cleared"


@dataclass(frozen=True)
class CacheSnapshot:
    """State of a cache at the moment an event is emitted.

    ``key`` is ``None`` for ``CLEARED`` events, which concern the whole store.
    """
    cache: str
    key: Any
    size: int
    storage: str


DebugReporter = Callable[[CacheEvent, CacheSnapshot], None]
