"""
Decorator forms of ``create_debounced`` and ``memoize``.

Usage:
    class SearchBox:
        @debounced(300)
        def refresh(self, query):
            ...

        @memoized(extract_key=first_arg, ttl_ms=60_000)
        def suggestions(self, prefix):
            ...

Applied to a method, each instance gets its own debouncer or cache the first
time the attribute is read, so two instances never share pending calls or
cached results. Applied to a plain function, the wrapper is built on first
call and its attributes (``cancel``, ``cache``...) are reachable through the
decorated name.
"""

import functools
import inspect
from typing import Any, Callable, Optional

from shared.config import get_settings

from .caching.memoize import memoize
from .debounce import Debouncer


class _PerInstanceWrapper:
    """Descriptor that builds one wrapper per owning instance."""

    def __init__(self, func: Callable[..., Any], factory: Callable[[Callable[..., Any]], Any],
                 coroutine: bool = False):
        self._func = func
        self._factory = factory
        self._attr = f"__coalesce_{func.__name__}"
        self._unbound: Optional[Any] = None
        functools.update_wrapper(self, func)
        if coroutine:
            inspect.markcoroutinefunction(self)

    def __set_name__(self, owner: type, name: str) -> None:
        self._attr = f"__coalesce_{name}"

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self

        wrapper = instance.__dict__.get(self._attr)
        if wrapper is None:
            wrapper = self._factory(self._func.__get__(instance, owner))
            instance.__dict__[self._attr] = wrapper
        return wrapper

    def _bound_function(self) -> Any:
        if self._unbound is None:
            self._unbound = self._factory(self._func)
        return self._unbound

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._bound_function()(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._bound_function(), name)


def debounced(delay_ms: Optional[float] = None, **options: Any) -> Callable[[Callable[..., Any]], Any]:
    """Debounce a function or method.

    ``delay_ms`` defaults to ``COALESCE_DEFAULT_DELAY_MS``. Other keyword
    options are passed to :class:`~coalesce.debounce.Debouncer`.
    """
    def decorator(func: Callable[..., Any]) -> Any:
        def factory(target: Callable[..., Any]) -> Debouncer:
            delay = delay_ms if delay_ms is not None else get_settings().default_delay_ms
            kwargs = dict(options)
            kwargs.setdefault("name", func.__qualname__)
            return Debouncer(target, delay, **kwargs)

        return _PerInstanceWrapper(func, factory)
    return decorator


def memoized(**options: Any) -> Callable[[Callable[..., Any]], Any]:
    """Memoize a function or method; options are those of ``memoize``."""
    def decorator(func: Callable[..., Any]) -> Any:
        def factory(target: Callable[..., Any]) -> Callable[..., Any]:
            kwargs = dict(options)
            kwargs.setdefault("name", func.__qualname__)
            return memoize(target, **kwargs)

        # Calling the result returns a coroutine exactly when func does
        return _PerInstanceWrapper(func, factory, coroutine=inspect.iscoroutinefunction(func))
    return decorator
