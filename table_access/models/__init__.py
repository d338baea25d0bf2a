from .query import QueryDescriptor, Segment
from .row import ANY_ETAG, Row, TableResult, WriteMode, is_success

__all__ = [
    "ANY_ETAG",
    "QueryDescriptor",
    "Row",
    "Segment",
    "TableResult",
    "WriteMode",
    "is_success",
]
