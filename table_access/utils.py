"""
Table Access Utilities

Small helpers shared by the gateway, the store and the engine:
- UTC timestamp handling for the timestamp attribute (stored as ISO strings)
- Concurrency stamp (etag) generation
- Query building (reserved-word-safe projections, item keys)
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# Timestamp Utilities
# =============================================================================

def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC.

    Naive datetimes are assumed to already be in UTC.

    Args:
        dt: Datetime to convert to UTC

    Returns:
        Datetime in UTC timezone, or None if input is None

    Examples:
        >>> dt = datetime(2024, 1, 1, 10, 0)
        >>> to_utc(dt)  # -> 2024-01-01 10:00:00+00:00
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp attribute back into a UTC datetime.

    Accepts ISO strings (with 'Z' or an explicit offset) and datetimes.
    Anything else yields None rather than failing the row.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str):
        try:
            return to_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))
        except ValueError:
            logger.debug(f"Ignoring unparseable timestamp value: {value!r}")
            return None
    return None


def format_timestamp(dt: datetime) -> str:
    """Format a datetime for storage (UTC ISO string)."""
    return to_utc(dt).isoformat()


def new_etag() -> str:
    """Generate a fresh concurrency stamp."""
    return uuid.uuid4().hex


# =============================================================================
# Value Serialization
# =============================================================================

def to_dynamodb_value(value: Any) -> Any:
    """Recursively convert Python values into types boto3 can store.

    - float -> Decimal (boto3 rejects floats for the Number type)
    - datetime -> UTC ISO string
    - nested dicts, lists and tuples are converted element by element
    - other types pass through unchanged
    """
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, dict):
        return {k: to_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(v) for v in value]
    return value


# =============================================================================
# Query Building Utilities
# =============================================================================

def build_projection_expression(fields: Optional[Iterable[str]]) -> Tuple[Optional[str], Optional[Dict[str, str]]]:
    """Build ProjectionExpression with ExpressionAttributeNames for DynamoDB operations.

    Expression attribute names keep reserved words (``Timestamp``, ``Name``...)
    safe to project. Duplicate field names are projected once.

    Args:
        fields: Field names to project, None or empty for all fields

    Returns:
        Tuple of (ProjectionExpression, ExpressionAttributeNames) or (None, None)

    Example:
        >>> build_projection_expression(['PartitionKey', 'RowKey', 'Name'])
        ('#p0, #p1, #p2', {'#p0': 'PartitionKey', '#p1': 'RowKey', '#p2': 'Name'})
    """
    if not fields:
        return None, None

    unique_fields: List[str] = []
    for field in fields:
        if field not in unique_fields:
            unique_fields.append(field)

    expression_names = {}
    projection_parts = []

    for i, field in enumerate(unique_fields):
        attr_name = f"#p{i}"
        expression_names[attr_name] = field
        projection_parts.append(attr_name)

    return ', '.join(projection_parts), expression_names


def build_key(partition_key_attribute: str, row_key_attribute: str, partition_key: str, row_key: str) -> Dict[str, str]:
    """Build the DynamoDB primary key for a row."""
    return {
        partition_key_attribute: partition_key,
        row_key_attribute: row_key,
    }


__all__ = [
    "to_utc",
    "utc_now",
    "parse_timestamp",
    "format_timestamp",
    "new_etag",
    "to_dynamodb_value",
    "build_projection_expression",
    "build_key",
]
