from .client import TableClient, create_table_client
from .config import TableAccessConfig
from .core import (
    # Store collaborator
    DynamoTableStore,
    TableStore,
    # Transport
    TableGateway,
    create_table_gateway,
)
from .engine import (
    NEVER_CANCELLED,
    RowMaterializer,
    RowSet,
    SegmentedPaginator,
    filter_all,
    filter_rows,
    materialize,
    materialize_all,
)
from .exceptions import (
    ConflictError,
    FilterEvaluationFailed,
    InvalidArgument,
    StoreUnavailable,
    TableAccessError,
)
from .models import (
    ANY_ETAG,
    QueryDescriptor,
    Row,
    Segment,
    TableResult,
    WriteMode,
    is_success,
)

__version__ = "1.0.0"
__all__ = [
    # Client
    "TableClient",
    "create_table_client",

    # Configuration
    "TableAccessConfig",

    # Store and transport
    "DynamoTableStore",
    "TableStore",
    "TableGateway",
    "create_table_gateway",

    # Engine
    "NEVER_CANCELLED",
    "RowMaterializer",
    "RowSet",
    "SegmentedPaginator",
    "filter_all",
    "filter_rows",
    "materialize",
    "materialize_all",

    # Exceptions
    "ConflictError",
    "FilterEvaluationFailed",
    "InvalidArgument",
    "StoreUnavailable",
    "TableAccessError",

    # Models
    "ANY_ETAG",
    "QueryDescriptor",
    "Row",
    "Segment",
    "TableResult",
    "WriteMode",
    "is_success",
]
