"""
Memoization package.

Wraps a function so repeated calls with an equal key return the stored
result instead of recomputing it. Stores are either strong (dict, optional
whole-store TTL) or weak (entries die with their key object).
"""

from .events import CacheEvent, CacheSnapshot, DebugReporter
from .keys import args_key, attr_key, first_arg, structural_key
from .memoize import MemoizationCache, memoize
from .reporters import CompositeReporter, LoggingReporter, MetricsReporter
from .stores import MISSING, CacheStore, StrongStore, WeakStore

__all__ = [
    "CacheEvent",
    "CacheSnapshot",
    "DebugReporter",
    "MemoizationCache",
    "memoize",
    "args_key",
    "attr_key",
    "first_arg",
    "structural_key",
    "CompositeReporter",
    "LoggingReporter",
    "MetricsReporter",
    "MISSING",
    "CacheStore",
    "StrongStore",
    "WeakStore",
]
