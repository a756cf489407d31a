"""
Shared error handling for the coalesce wrappers.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error payload format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class CoalesceError(Exception):
    """Base exception for errors raised by the wrappers themselves.

    Errors raised by a wrapped function are never converted into this type;
    they reach the caller unchanged.
    """

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error payload."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(CoalesceError):
    """Invalid wrapper options."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class InvalidCacheKeyError(CoalesceError):
    """A key produced by extract_key cannot be stored."""

    def __init__(self, message: str = "Invalid cache key", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_CACHE_KEY", message, details)


class DebounceAbandonedError(CoalesceError):
    """A debounced invocation was superseded or cancelled before it ran.

    Only raised by debouncers created with ``reject_abandoned=True``.
    """

    def __init__(self, reason: str = "superseded", details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        super().__init__(
            "DEBOUNCE_ABANDONED",
            f"Debounced invocation {reason} before execution",
            {"reason": reason, **(details or {})}
        )
