"""
Storage disciplines behind a memoization cache.
"""

import weakref
from abc import ABC, abstractmethod
from typing import Any, Dict, Hashable, Type

from shared.errors import InvalidCacheKeyError

# Marks a lookup that found nothing; None is a legitimate cached value
MISSING = object()


class CacheStore(ABC):
    """Keyed container holding memoized results."""

    kind: str = "abstract"
    supports_ttl: bool = False

    @abstractmethod
    def check_key(self, key: Any) -> None:
        """Raise InvalidCacheKeyError if ``key`` cannot be stored."""

    @abstractmethod
    def get(self, key: Any) -> Any:
        """Return the stored value or ``MISSING``."""

    @abstractmethod
    def set(self, key: Any, value: Any) -> None:
        """Store ``value`` under ``key``, overwriting any previous value."""

    @abstractmethod
    def clear(self) -> int:
        """Drop every entry and return how many there were."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    def __contains__(self, key: Any) -> bool:
        try:
            return self.get(key) is not MISSING
        except TypeError:
            return False


class StrongStore(CacheStore):
    """Plain dict keyed by equality; entries live until cleared."""

    kind = "strong"
    supports_ttl = True

    def __init__(self):
        self._entries: Dict[Hashable, Any] = {}

    def check_key(self, key: Any) -> None:
        try:
            hash(key)
        except TypeError as exc:
            raise InvalidCacheKeyError(
                f"Cache key of type {type(key).__name__} is not hashable",
                details={"key_type": type(key).__name__, "storage": self.kind}
            ) from exc

    def get(self, key: Any) -> Any:
        return self._entries.get(key, MISSING)

    def set(self, key: Any, value: Any) -> None:
        self._entries[key] = value

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)


class WeakStore(CacheStore):
    """Weakly keyed store; an entry goes away with its key object.

    Keys must be weak-referenceable objects (not ints, strings, tuples or
    plain dicts). Entries may vanish at any time the garbage collector
    reclaims a key, so this store never takes a TTL.
    """

    kind = "weak"
    supports_ttl = False

    def __init__(self):
        self._entries: "weakref.WeakKeyDictionary[Any, Any]" = weakref.WeakKeyDictionary()

    def check_key(self, key: Any) -> None:
        try:
            weakref.ref(key)
            hash(key)
        except TypeError as exc:
            raise InvalidCacheKeyError(
                f"Cache key of type {type(key).__name__} cannot be weakly referenced",
                details={"key_type": type(key).__name__, "storage": self.kind}
            ) from exc

    def get(self, key: Any) -> Any:
        return self._entries.get(key, MISSING)

    def set(self, key: Any, value: Any) -> None:
        self._entries[key] = value

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)


def store_class(use_weak_storage: bool = False) -> Type[CacheStore]:
    """Store type for the requested storage discipline."""
    return WeakStore if use_weak_storage else StrongStore


def create_store(use_weak_storage: bool = False) -> CacheStore:
    """Build the store for the requested storage discipline."""
    return store_class(use_weak_storage)()
