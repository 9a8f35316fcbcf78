"""
Parameter validation utilities.

Validation rules for query keys and option values.
"""

from collections.abc import Callable
from typing import Any

from .constants import (
    ERROR_DURATION_NEGATIVE,
    ERROR_DURATION_NOT_POSITIVE,
    ERROR_DURATION_TYPE_INVALID,
    ERROR_KEY_EMPTY,
    ERROR_KEY_TYPE_INVALID,
    ERROR_ON_ERROR_NOT_CALLABLE,
    ERROR_RETRY_COUNT_NEGATIVE,
    ERROR_RETRY_COUNT_TYPE_INVALID,
)
from .exceptions import QueryKeyError, ValidationError


def validate_key(key: str) -> None:
    """Validate a query key.

    Keys are opaque strings but cannot be empty or whitespace-only.

    Args:
        key: Query key to validate

    Raises:
        QueryKeyError: If key is not a non-empty string
    """
    if not isinstance(key, str):
        raise QueryKeyError(ERROR_KEY_TYPE_INVALID.format(type_name=type(key).__name__))
    if not key.strip():
        raise QueryKeyError(ERROR_KEY_EMPTY, key=key)


def validate_positive_duration(name: str, value: float) -> None:
    """Validate a duration that must be strictly positive (TTLs).

    Args:
        name: Parameter name, used in the error message
        value: Duration in seconds

    Raises:
        ValidationError: If value is not a number or is <= 0
    """
    _validate_number_type(name, value)
    if value <= 0:
        raise ValidationError(ERROR_DURATION_NOT_POSITIVE.format(name=name, value=value))


def validate_non_negative_duration(name: str, value: float) -> None:
    """Validate a duration that may be zero (delays)."""
    _validate_number_type(name, value)
    if value < 0:
        raise ValidationError(ERROR_DURATION_NEGATIVE.format(name=name, value=value))


def validate_retry_count(retry_count: int) -> None:
    """Validate retry count.

    Args:
        retry_count: Maximum number of retries after the first attempt

    Raises:
        ValidationError: If retry_count is not an int >= 0
    """
    # Check for bool first since bool is subclass of int in Python
    if isinstance(retry_count, bool) or not isinstance(retry_count, int):
        raise ValidationError(ERROR_RETRY_COUNT_TYPE_INVALID.format(type_name=type(retry_count).__name__))
    if retry_count < 0:
        raise ValidationError(ERROR_RETRY_COUNT_NEGATIVE.format(value=retry_count))


def validate_on_error(on_error: Callable[[Exception], Any] | None) -> None:
    """Validate the error callback."""
    if on_error is not None and not callable(on_error):
        raise ValidationError(ERROR_ON_ERROR_NOT_CALLABLE.format(type_name=type(on_error).__name__))


def validate_query_options(
    cache_time: float,
    deduping_interval: float,
    retry_count: int,
    retry_delay: float,
    on_error: Callable[[Exception], Any] | None = None,
) -> None:
    """Validate all query option values.

    Args:
        cache_time: CacheStore TTL in seconds (> 0)
        deduping_interval: PendingStore TTL in seconds (> 0)
        retry_count: Retries after the first attempt (>= 0)
        retry_delay: Fixed delay between attempts in seconds (>= 0)
        on_error: Optional error callback

    Raises:
        ValidationError: If any parameter is invalid
    """
    validate_positive_duration("cache_time", cache_time)
    validate_positive_duration("deduping_interval", deduping_interval)
    validate_retry_count(retry_count)
    validate_non_negative_duration("retry_delay", retry_delay)
    validate_on_error(on_error)


def _validate_number_type(name: str, value: Any) -> None:
    """Validate that a parameter is a real number (bool excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(ERROR_DURATION_TYPE_INVALID.format(name=name, type_name=type(value).__name__))
