"""
Structured error types for ophooks.

The broker never raises to the host: subscriber faults are converted into
``SubscriberError`` values and returned inside the aggregate response.  The
metrics aggregator never raises either: sink failures arrive as
``MetricsSinkError`` and are logged, not propagated.

Hierarchy::

    OpHooksError            (category, retryable, cause)
      ├── SubscriberError   INTERNAL   subscriber raised or rejected
      ├── MetricsSinkError  NETWORK    a metric submission failed (retryable)
      └── ConfigError       CONFIG     invalid environment configuration

Usage::

    try:
        client.put_metric_data(Namespace=ns, MetricData=data)
    except ClientError as e:
        raise MetricsSinkError("put_metric_data failed", cause=e) from e
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    NETWORK = "NETWORK"           # Sink unreachable, throttled, timed out
    CONFIG = "CONFIG"             # Invalid settings
    INTERNAL = "INTERNAL"         # Subscriber faults, unexpected state
    UNKNOWN = "UNKNOWN"


class OpHooksError(Exception):
    """Base exception for all ophooks errors.

    Subclasses set ``default_category`` and ``default_retryable``.  The
    original exception, if any, is kept on ``cause`` and chained as
    ``__cause__`` so tracebacks show the root failure.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class SubscriberError(OpHooksError):
    """A subscriber raised, or its coroutine failed, while handling an event.

    The message is the string form of the original exception so hosts that
    only render ``str(error)`` still see the subscriber's reason.
    """

    default_category = ErrorCategory.INTERNAL

    @classmethod
    def from_exception(cls, exc: BaseException) -> SubscriberError:
        """Wrap an arbitrary rejection reason."""
        return cls(str(exc), cause=exc)


class MetricsSinkError(OpHooksError):
    """A metrics submission to the external sink failed."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class ConfigError(OpHooksError):
    """Configuration value is missing or invalid."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ConfigError",
    "ErrorCategory",
    "MetricsSinkError",
    "OpHooksError",
    "SubscriberError",
]
