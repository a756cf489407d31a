"""
Validated option sets for the debounce and memoize factories.
"""

from typing import Any, Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared.errors import ConfigurationError

M = TypeVar("M", bound=BaseModel)


class DebounceOptions(BaseModel):
    """Options accepted by ``create_debounced``."""

    model_config = ConfigDict(frozen=True)

    delay_ms: float = Field(ge=0)
    reject_abandoned: bool = False
    name: Optional[str] = None


class MemoizeOptions(BaseModel):
    """Options accepted by ``memoize``.

    Whether ``ttl_ms`` is allowed depends on the store it ends up on; weak
    stores refuse it (see ``CacheStore.supports_ttl``).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    extract_key: Callable[..., Any]
    ttl_ms: Optional[float] = Field(default=None, gt=0)
    use_weak_storage: bool = False
    debug_reporter: Optional[Callable[..., Any]] = None
    name: Optional[str] = None


def validate_options(model: Type[M], **values: Any) -> M:
    """Build an options model, converting pydantic failures to ConfigurationError."""
    try:
        return model(**values)
    except ValidationError as exc:
        errors = [
            {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
            for error in exc.errors()
        ]
        raise ConfigurationError(
            f"Invalid {model.__name__}: {errors[0]['msg']}",
            details={"errors": errors}
        ) from exc


def describe(func: Any) -> str:
    """Readable name for a wrapped callable, used in logs and metrics."""
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)


def require_callable(func: Any, role: str = "func") -> None:
    if not callable(func):
        raise ConfigurationError(
            f"{role} must be callable",
            details={"role": role, "type": type(func).__name__}
        )


__all__ = [
    "DebounceOptions",
    "MemoizeOptions",
    "validate_options",
    "describe",
    "require_callable",
]
