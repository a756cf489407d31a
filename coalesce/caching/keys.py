"""Key extraction helpers for ``memoize``.

Each helper takes the wrapped function's call arguments and returns a cache
key. Pick one that matches how calls should be considered equal:

    memoize(load_user, extract_key=first_arg)
    memoize(render, extract_key=args_key)
    memoize(countdown, extract_key=attr_key("id"), ttl_ms=500)
    memoize(search, extract_key=structural_key)
"""

import dataclasses
import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Callable, Tuple

from pydantic import BaseModel

from shared.errors import InvalidCacheKeyError


def first_arg(*args: Any, **kwargs: Any) -> Any:
    """Use the first positional argument as the key."""
    if not args:
        raise InvalidCacheKeyError(
            "first_arg needs at least one positional argument",
            details={"kwargs": sorted(kwargs)}
        )
    return args[0]


def args_key(*args: Any, **kwargs: Any) -> Tuple[Any, ...]:
    """Composite key of all positional and keyword arguments.

    Every argument must be hashable. Keyword order does not matter.
    """
    if not kwargs:
        return args
    return args + (tuple(sorted(kwargs.items())),)


def attr_key(name: str) -> Callable[..., Any]:
    """Key on one attribute (or mapping item) of the first argument."""

    def extract(*args: Any, **kwargs: Any) -> Any:
        target = first_arg(*args, **kwargs)
        if isinstance(target, Mapping):
            try:
                return target[name]
            except KeyError as exc:
                raise InvalidCacheKeyError(
                    f"First argument has no item {name!r}",
                    details={"item": name}
                ) from exc
        try:
            return getattr(target, name)
        except AttributeError as exc:
            raise InvalidCacheKeyError(
                f"First argument has no attribute {name!r}",
                details={"attribute": name, "type": type(target).__name__}
            ) from exc

    extract.__name__ = f"attr_key_{name}"
    return extract


def structural_key(*args: Any, **kwargs: Any) -> str:
    """Deep structural hash of all arguments.

    Equal nested data gives equal keys whatever its dict ordering. Lists and
    tuples hash alike; objects with no structural form fall back to ``str``.
    """
    payload = json.dumps(
        {"a": _normalize(args), "k": _normalize(kwargs)},
        sort_keys=True,
        separators=(",", ":")
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _normalize(obj: Any) -> Any:
    """Normalize arguments for deterministic hashing."""
    if isinstance(obj, (str, int, float, bool, type(None))):
        return obj
    elif isinstance(obj, (date, datetime)):
        return obj.isoformat()
    elif isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _normalize(dataclasses.asdict(obj))
    elif isinstance(obj, Mapping):
        return {str(k): _normalize(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_normalize(item) for item in obj]
    elif isinstance(obj, (set, frozenset)):
        return sorted((_normalize(item) for item in obj), key=repr)
    else:
        return str(obj)
