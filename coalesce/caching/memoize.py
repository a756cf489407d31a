"""
Memoization cache with a pluggable key function and whole-store eviction.

Usage:
    from coalesce import memoize
    from coalesce.caching.keys import attr_key

    fast_countdown = memoize(countdown, extract_key=attr_key("id"), ttl_ms=500)

A TTL drives one shared eviction timer per cache. Every write restarts it,
and when it fires the entire store is emptied, so a cache that keeps
receiving writes never evicts until the writes pause for ``ttl_ms``.

The timer may be lost when the event loop it was armed on closes first.
Each write also records a deadline, and a lookup past that deadline clears
the store before answering.
"""

import functools
import inspect
import threading
import time
from typing import Any, Callable, Dict, Optional, ParamSpec, TypeVar

from shared.config import get_settings
from shared.errors import ConfigurationError
from shared.logging import get_logger

from ..options import MemoizeOptions, describe, require_callable, validate_options
from ..timers import TimerHandle, schedule
from .events import CacheEvent, CacheSnapshot, DebugReporter
from .reporters import default_reporter
from .stores import MISSING, CacheStore, create_store, store_class

P = ParamSpec("P")
R = TypeVar("R")


class MemoizationCache:
    """Results of one function, keyed by ``extract_key(*args, **kwargs)``."""

    def __init__(self,
                 func: Callable[..., Any],
                 extract_key: Callable[..., Any],
                 *,
                 ttl_ms: Optional[float] = None,
                 use_weak_storage: bool = False,
                 debug_reporter: Optional[DebugReporter] = None,
                 name: Optional[str] = None):
        require_callable(func)
        options = validate_options(
            MemoizeOptions,
            extract_key=extract_key,
            ttl_ms=ttl_ms,
            use_weak_storage=use_weak_storage,
            debug_reporter=debug_reporter,
            name=name,
        )

        self._func = func
        self._extract_key = options.extract_key
        self.ttl_ms = options.ttl_ms
        self.name = options.name or describe(func)
        self.reporter = options.debug_reporter
        self.logger = get_logger("coalesce.caching")

        self._store: CacheStore = create_store(options.use_weak_storage)
        if self.ttl_ms is not None and not self._store.supports_ttl:
            raise ConfigurationError(
                "ttl_ms cannot be combined with use_weak_storage",
                details={"storage": self._store.kind, "ttl_ms": self.ttl_ms}
            )

        self._lock = threading.RLock()
        self._evict_timer: Optional[TimerHandle] = None
        self._evict_deadline: Optional[float] = None
        self._generation = 0
        self._stats: Dict[str, int] = {"hits": 0, "misses": 0, "stores": 0, "clears": 0}

    @property
    def storage(self) -> str:
        return self._store.kind

    def key_for(self, *args: Any, **kwargs: Any) -> Any:
        """Compute and validate the key for a call."""
        key = self._extract_key(*args, **kwargs)
        self._store.check_key(key)
        return key

    def lookup(self, key: Any) -> Any:
        """Stored value for ``key``, or ``MISSING``. Emits hit/miss events."""
        with self._lock:
            self._expire_if_due()
            value = self._store.get(key)
            if value is MISSING:
                self._stats["misses"] += 1
                event = CacheEvent.MISS
            else:
                self._stats["hits"] += 1
                event = CacheEvent.HIT
        self._emit(event, key)
        return value

    def store(self, key: Any, value: Any) -> None:
        """Insert a result and restart the eviction timer, if any."""
        with self._lock:
            self._store.set(key, value)
            self._stats["stores"] += 1
            if self.ttl_ms is not None:
                self._arm_eviction()
        self._emit(CacheEvent.STORING, key)

    def clear(self) -> int:
        """Empty the store now. Returns the number of entries dropped."""
        with self._lock:
            self._disarm_eviction()
            return self._clear_locked("explicit")

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        key = self.key_for(*args, **kwargs)
        value = self.lookup(key)
        if value is not MISSING:
            return value

        result = self._func(*args, **kwargs)
        self.store(key, result)
        return result

    async def call_async(self, *args: Any, **kwargs: Any) -> Any:
        """Like calling the cache, but awaits the wrapped coroutine function."""
        key = self.key_for(*args, **kwargs)
        value = self.lookup(key)
        if value is not MISSING:
            return value

        result = await self._func(*args, **kwargs)
        self.store(key, result)
        return result

    def stats(self) -> Dict[str, Any]:
        """Counters since creation plus the current store size."""
        with self._lock:
            self._expire_if_due()
            return {
                **self._stats,
                "size": len(self._store),
                "storage": self._store.kind,
                "ttl_ms": self.ttl_ms,
            }

    def __len__(self) -> int:
        with self._lock:
            self._expire_if_due()
            return len(self._store)

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            self._expire_if_due()
            return key in self._store

    def _arm_eviction(self) -> None:
        # Caller holds the lock
        self._disarm_eviction()
        self._evict_deadline = time.monotonic() + self.ttl_ms / 1000.0
        self._evict_timer = schedule(
            self.ttl_ms,
            functools.partial(self._evict, self._generation)
        )

    def _disarm_eviction(self) -> None:
        # Caller holds the lock
        if self._evict_timer is not None:
            self._evict_timer.cancel()
            self._evict_timer = None
        self._evict_deadline = None
        self._generation += 1

    def _expire_if_due(self) -> None:
        # Caller holds the lock
        if self._evict_deadline is not None and time.monotonic() >= self._evict_deadline:
            self._disarm_eviction()
            self._clear_locked("ttl")

    def _evict(self, generation: int) -> None:
        with self._lock:
            # A thread timer may fire after being superseded
            if generation != self._generation:
                return
            self._evict_timer = None
            self._evict_deadline = None
            self._clear_locked("ttl")

    def _clear_locked(self, reason: str) -> int:
        count = self._store.clear()
        self._stats["clears"] += 1
        self.logger.debug("Memoization cache cleared", cache=self.name, entries=count, reason=reason)
        self._emit(CacheEvent.CLEARED, None)
        return count

    def _emit(self, event: CacheEvent, key: Any) -> None:
        if self.reporter is None:
            return
        self.reporter(event, CacheSnapshot(
            cache=self.name,
            key=key,
            size=len(self._store),
            storage=self._store.kind
        ))


def memoize(func: Callable[P, R],
            *,
            extract_key: Callable[..., Any],
            ttl_ms: Optional[float] = None,
            use_weak_storage: bool = False,
            debug_reporter: Optional[DebugReporter] = None,
            name: Optional[str] = None) -> Callable[P, R]:
    """Wrap ``func`` in a new, independent memoization cache.

    Args:
        func: Function to memoize. Coroutine functions get an async wrapper
            that caches the awaited result.
        extract_key: Maps the call arguments to the cache key.
        ttl_ms: Clear the whole store this long after the last write.
            Falls back to ``COALESCE_DEFAULT_TTL_MS`` for strong stores.
        use_weak_storage: Key entries weakly on object identity. Cannot be
            combined with ``ttl_ms``.
        debug_reporter: Called as ``reporter(event, snapshot)`` on every
            hit, miss, store and clear. Defaults to the reporters enabled
            in settings.
        name: Label used in logs and metrics; defaults to the qualified name.

    Returns:
        The wrapped function, exposing ``.cache`` and ``.cache_clear()``.

    Raises:
        ConfigurationError: if the options are invalid.
    """
    settings = get_settings()
    if ttl_ms is None and store_class(use_weak_storage).supports_ttl:
        ttl_ms = settings.default_ttl_ms
    if debug_reporter is None:
        debug_reporter = default_reporter()

    cache = MemoizationCache(
        func,
        extract_key,
        ttl_ms=ttl_ms,
        use_weak_storage=use_weak_storage,
        debug_reporter=debug_reporter,
        name=name,
    )

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            return await cache.call_async(*args, **kwargs)

        wrapper = async_wrapper
    else:
        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            return cache(*args, **kwargs)

        wrapper = sync_wrapper

    wrapper.cache = cache
    wrapper.cache_clear = cache.clear
    return wrapper
