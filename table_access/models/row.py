"""
Row and Write Outcome Models

A Row is a single store record: a two-part identity (partition key, row key),
an open property bag, and the store-managed metadata (concurrency stamp and
last-write timestamp). TableResult is the outcome of a single-row operation,
carrying an HTTP-style status code.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field


# Concurrency stamp that matches any version of a row
ANY_ETAG = "*"


class WriteMode(str, Enum):
    """Single-row write semantics supported by the store."""
    INSERT = "insert"
    MERGE = "merge"
    REPLACE = "replace"
    INSERT_OR_MERGE = "insert_or_merge"
    INSERT_OR_REPLACE = "insert_or_replace"


class Row(BaseModel):
    """
    A single table row.

    Equality is structural: two rows are equal when their keys and every
    property value are equal. The concurrency stamp and timestamp are
    metadata and are ignored, so the same logical record delivered twice
    (e.g. by a retried segment) compares equal.

    The hash only covers the key pair, which keeps rows with unhashable
    property values (lists, maps, sets) usable in sets and dicts. Both keys
    are non-empty and cannot be reassigned, so a stored hash never goes stale.
    """

    partition_key: str = Field(..., min_length=1, frozen=True, description="Partition key (co-location group)")
    row_key: str = Field(..., min_length=1, frozen=True, description="Row key, unique within the partition")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Open property bag")
    etag: Optional[str] = Field(None, description="Concurrency stamp for optimistic writes")
    timestamp: Optional[datetime] = Field(None, description="UTC time of the last mutation")

    @property
    def key(self) -> tuple:
        return (self.partition_key, self.row_key)

    def get(self, name: str, default: Any = None) -> Any:
        """Return a property value by exact name."""
        return self.properties.get(name, default)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.key == other.key and self.properties == other.properties

    def __hash__(self) -> int:
        return hash(self.key)


Condition = Union[bool, Callable[['TableResult'], bool], Sequence[Callable[['TableResult'], bool]]]


class TableResult(BaseModel):
    """
    Outcome of a single-row store operation.

    ``status_code`` follows HTTP conventions: 2xx is success, 404 means the
    row was missing, 409 an insert conflict, 412 a concurrency stamp mismatch
    and 503 a store fault (``error`` then holds the StoreUnavailable).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status_code: int = Field(..., description="HTTP-style status code")
    row: Optional[Row] = Field(None, description="Row returned or written by the operation")
    etag: Optional[str] = Field(None, description="Concurrency stamp after the operation")
    error: Optional[Exception] = Field(None, description="Store fault behind a failed outcome")

    def is_success(self) -> bool:
        """True when the status code is in the 200-299 range."""
        return 200 <= self.status_code < 300

    def when(
        self,
        condition: Condition,
        on_success: Callable[['TableResult'], Any],
        on_failure: Optional[Callable[['TableResult'], Any]] = None
    ) -> Any:
        """
        Run ``on_success`` or ``on_failure`` depending on ``condition``.

        ``condition`` may be a bool, a predicate over this result, or a
        sequence of predicates that must all hold.

        Example:
            result.when(TableResult.is_success, on_success=log_write, on_failure=alert)

        Returns:
            Whatever the executed callback returns, or None if nothing ran
        """
        if isinstance(condition, bool):
            matched = condition
        elif callable(condition):
            matched = bool(condition(self))
        else:
            matched = all(predicate(self) for predicate in condition)

        if matched:
            return on_success(self)
        if on_failure is not None:
            return on_failure(self)
        return None


def is_success(result: Optional[TableResult]) -> bool:
    """Null-safe success check for an operation outcome."""
    return result is not None and result.is_success()
