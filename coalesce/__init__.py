"""
coalesce: debounce and memoize wrappers for plain and async functions.

- debounce: collapse a burst of calls into one delayed execution
- caching: memoize results behind a pluggable key function
- decorators: decorator forms of both, per instance on methods

Each factory call builds an independent wrapper; nothing is shared between
wrappers or kept in module-level state.
"""

from .caching import CacheEvent, CacheSnapshot, MemoizationCache, memoize
from .debounce import DebouncedHandle, Debouncer, create_debounced
from .decorators import debounced, memoized

__all__ = [
    "CacheEvent",
    "CacheSnapshot",
    "MemoizationCache",
    "memoize",
    "DebouncedHandle",
    "Debouncer",
    "create_debounced",
    "debounced",
    "memoized",
]

__version__ = "1.0.0"
