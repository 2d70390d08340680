"""Environment-driven settings for ophooks.

Configuration is read once, when the consuming object is constructed, and
never re-read afterwards.  Each settings class owns an ``env_prefix``:

    OP_METRIC_SUBSCRIBER_ENABLED=true
    OP_METRIC_SUBSCRIBER_PUSH_INTERVAL_MS=60000
    OP_METRIC_SUBSCRIBER_SEND_COUNT=25
    OP_HOOKS_LOG_LEVEL=DEBUG
    OP_HOOKS_LOG_FORMAT=console

``OP_METRIC_SUBSCRIBER_ENABLED`` is on only for the value ``true``
(case-insensitive).  Anything else, including ``1``, ``yes`` or a typo,
leaves the metric subscriber inert rather than failing startup.

Examples:
    >>> from ophooks.core.settings import load_metric_settings
    >>> settings = load_metric_settings()
    >>> settings.push_interval_seconds
    60.0
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ophooks.core.errors import ConfigError


class MetricSubscriberSettings(BaseSettings):
    """Settings for :class:`~ophooks.hooks.metrics.MetricSubscriber`."""

    model_config = SettingsConfigDict(
        env_prefix="OP_METRIC_SUBSCRIBER_",
        extra="ignore",
    )

    enabled: bool = Field(default=False, description="Subscribe and start the flush timer")
    push_interval_ms: int = Field(default=60000, gt=0, description="Flush interval in milliseconds")
    send_count: int = Field(default=25, gt=0, description="Max concurrent put requests per batch")

    @field_validator("enabled", mode="before")
    @classmethod
    def _only_true_enables(cls, value: Any) -> bool:
        """Only the string ``true`` (any case) enables; every other string leaves it off."""
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)

    @property
    def push_interval_seconds(self) -> float:
        return self.push_interval_ms / 1000.0


class LoggingSettings(BaseSettings):
    """Settings consumed by :func:`ophooks.core.logging.configure_from_env`."""

    model_config = SettingsConfigDict(
        env_prefix="OP_HOOKS_",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console", "auto"] = Field(default="auto")


def load_metric_settings(**overrides) -> MetricSubscriberSettings:
    """Build :class:`MetricSubscriberSettings`, reporting bad values as ``ConfigError``."""
    try:
        return MetricSubscriberSettings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid metric subscriber settings: {e}", cause=e) from e


def load_logging_settings(**overrides) -> LoggingSettings:
    try:
        return LoggingSettings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid logging settings: {e}", cause=e) from e


__all__ = [
    "LoggingSettings",
    "MetricSubscriberSettings",
    "load_logging_settings",
    "load_metric_settings",
]
