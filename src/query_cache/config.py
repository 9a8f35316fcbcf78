"""
Configuration management for query options.

Resolves default option values following the precedence rules:

1. Explicit argument (highest precedence)
2. Environment variable
3. Default constant (lowest precedence)
"""

import logging
import os
from typing import Any

from .constants import (
    DEFAULT_CACHE_TIME,
    DEFAULT_DEDUPING_INTERVAL,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    ENV_CACHE_TIME,
    ENV_DEDUPING_INTERVAL,
    ENV_RETRY_COUNT,
    ENV_RETRY_DELAY,
    ERROR_ENV_INVALID,
)
from .exceptions import ValidationError
from .state import QueryOptions

logger = logging.getLogger(__name__)


class QueryConfig:
    """Configuration resolver for query options.

    Environment variables hold durations in seconds, e.g.
    ``QUERY_CACHE_CACHE_TIME=60`` or ``QUERY_CACHE_RETRY_DELAY=0.5``.
    """

    @classmethod
    def resolve_cache_time(cls, explicit_value: float | None = None) -> float:
        """Resolve CacheStore TTL in seconds."""
        return cls._resolve_float(explicit_value, ENV_CACHE_TIME, DEFAULT_CACHE_TIME)

    @classmethod
    def resolve_deduping_interval(cls, explicit_value: float | None = None) -> float:
        """Resolve PendingStore TTL in seconds."""
        return cls._resolve_float(explicit_value, ENV_DEDUPING_INTERVAL, DEFAULT_DEDUPING_INTERVAL)

    @classmethod
    def resolve_retry_delay(cls, explicit_value: float | None = None) -> float:
        """Resolve fixed inter-retry delay in seconds."""
        return cls._resolve_float(explicit_value, ENV_RETRY_DELAY, DEFAULT_RETRY_DELAY)

    @classmethod
    def resolve_retry_count(cls, explicit_value: int | None = None) -> int:
        """Resolve retry count.

        Args:
            explicit_value: Explicit retry count

        Returns:
            Resolved retry count

        Raises:
            ValidationError: If the environment variable is not an integer
        """
        if explicit_value is not None:
            return explicit_value

        env_value = os.getenv(ENV_RETRY_COUNT)
        if env_value:
            try:
                return int(env_value)
            except ValueError as e:
                raise ValidationError(ERROR_ENV_INVALID.format(name=ENV_RETRY_COUNT, value=env_value)) from e

        return DEFAULT_RETRY_COUNT

    @classmethod
    def default_options(cls, **overrides: Any) -> QueryOptions:
        """Build QueryOptions from environment defaults plus overrides.

        Args:
            **overrides: Any QueryOptions field

        Returns:
            Validated QueryOptions

        Example:
            ```python
            options = QueryConfig.default_options(retry_count=0, enabled=False)
            ```
        """
        options = QueryOptions(
            cache_time=cls.resolve_cache_time(overrides.pop("cache_time", None)),
            deduping_interval=cls.resolve_deduping_interval(overrides.pop("deduping_interval", None)),
            retry_count=cls.resolve_retry_count(overrides.pop("retry_count", None)),
            retry_delay=cls.resolve_retry_delay(overrides.pop("retry_delay", None)),
        )
        if overrides:
            options = options.evolve(**overrides)
        logger.debug(f"Resolved query options: {options}")
        return options

    @staticmethod
    def _resolve_float(explicit_value: float | None, env_name: str, default: float) -> float:
        """Resolve a float option following precedence rules."""
        if explicit_value is not None:
            return explicit_value

        env_value = os.getenv(env_name)
        if env_value:
            try:
                return float(env_value)
            except ValueError as e:
                raise ValidationError(ERROR_ENV_INVALID.format(name=env_name, value=env_value)) from e

        return default
