"""
Domain-Specific Exceptions for Table Access

All exceptions extend TableAccessError. Organized by where they are raised:
1. Argument Validation Errors (guard layer, always local)
2. Store Errors (raised by the gateway when DynamoDB faults)
3. Filter Errors (raised when a caller predicate fails)
"""

from typing import Any, Dict, Optional

from .base import TableAccessError


# =============================================================================
# Argument Validation Errors
# =============================================================================

class InvalidArgument(TableAccessError):
    """Raised when a precondition on a public operation fails.

    Used for:
    - Missing (None) arguments
    - Empty partition keys, row keys or table names
    - Empty predicate collections
    - Target shapes that cannot be built without arguments
    """

    def __init__(self, message: str, argument: Optional[str] = None, original_error: Optional[Exception] = None):
        """Initialize invalid argument error.

        Args:
            message: Human-readable error message
            argument: Label of the offending argument
            original_error: The original exception that caused this error
        """
        self.argument = argument
        context = {}
        if argument:
            context['argument'] = argument
        super().__init__(message, original_error, context)


# =============================================================================
# Store Errors
# =============================================================================

class StoreUnavailable(TableAccessError):
    """Raised when the remote store faults during a fetch or mutation.

    Used for:
    - Network connectivity and endpoint failures
    - Authentication/authorization failures
    - Throttling and service errors (``retryable=True``)
    - Missing tables and rejected requests

    ``retryable`` is informational; this layer never retries on its own.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table_name: Optional[str] = None,
        retryable: bool = False,
        original_error: Optional[Exception] = None
    ):
        self.operation = operation
        self.table_name = table_name
        self.retryable = retryable
        context: Dict[str, Any] = {}
        if operation:
            context['operation'] = operation
        if table_name:
            context['table_name'] = table_name
        if retryable:
            context['retryable'] = retryable
        super().__init__(message, original_error, context)


class ConflictError(TableAccessError):
    """Raised when a conditional write or delete is rejected.

    Used for:
    - Inserting a row whose key already exists
    - Replacing, merging or deleting a row that does not exist
    - Concurrency stamp (etag) mismatches
    """

    def __init__(self, message: str, resource_id: Optional[str] = None, original_error: Optional[Exception] = None):
        """Initialize conflict error.

        Args:
            message: Human-readable error message
            resource_id: Key of the conflicting row
            original_error: The original exception that caused this error
        """
        self.resource_id = resource_id
        context = {}
        if resource_id:
            context['resource_id'] = resource_id
        super().__init__(message, original_error, context)


# =============================================================================
# Filter Errors
# =============================================================================

class FilterEvaluationFailed(TableAccessError):
    """Raised when a caller-supplied predicate raises during evaluation."""

    def __init__(self, message: str, index: Optional[int] = None, original_error: Optional[Exception] = None):
        self.index = index
        context = {}
        if index is not None:
            context['index'] = index
        super().__init__(message, original_error, context)
