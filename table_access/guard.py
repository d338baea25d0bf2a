"""
Argument guards shared by every public entry point.

Guards run before any remote interaction and fail with InvalidArgument.
They never catch or wrap store failures.
"""

from collections.abc import Sized
from typing import Any

from .exceptions import InvalidArgument


def require_non_null(value: Any, label: str) -> None:
    """Fail with InvalidArgument if ``value`` is None.

    Args:
        value: Value to check
        label: Argument name used in the error message

    Raises:
        InvalidArgument: If value is None
    """
    if value is None:
        raise InvalidArgument(f"'{label}' cannot be None", label)


def require_non_empty(value: Any, label: str) -> None:
    """Fail with InvalidArgument if ``value`` is None, an empty string or an empty collection.

    Non-sized iterables are materialized only far enough to see a first element,
    so pass sized collections where the iterable must be reused afterwards.

    Args:
        value: String or collection to check
        label: Argument name used in the error message

    Raises:
        InvalidArgument: If value is None or has no elements
    """
    require_non_null(value, label)

    if isinstance(value, (str, Sized)):
        empty = len(value) == 0
    else:
        empty = next(iter(value), _MISSING) is _MISSING

    if empty:
        raise InvalidArgument(f"'{label}' cannot be empty", label)


_MISSING = object()
