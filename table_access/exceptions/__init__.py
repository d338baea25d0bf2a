# Base exception class
from .base import TableAccessError

# Domain-specific exceptions
from .domain_exceptions import (
    ConflictError,
    FilterEvaluationFailed,
    InvalidArgument,
    StoreUnavailable,
)

__all__ = [
    # Base exception
    "TableAccessError",

    # Domain exceptions (alphabetically ordered)
    "ConflictError",
    "FilterEvaluationFailed",
    "InvalidArgument",
    "StoreUnavailable",
]
