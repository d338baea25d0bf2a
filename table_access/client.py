"""
Table Client

Public caller surface of the access layer.

Read paths drain segmented queries, optionally deduplicate, materialize into
caller shapes and filter with plain predicates. Write paths are thin wrappers
over the store's single-row operations.

Failure policy:
- Argument errors (InvalidArgument) are raised before the store is touched.
- Predicate errors (FilterEvaluationFailed) always propagate.
- Store faults (StoreUnavailable) are logged at ERROR and turned into the
  operation's default: ``[]``, ``None`` or ``False`` for reads and a
  ``TableResult`` with status 503 for writes. With
  ``config.raise_on_store_error`` they are re-raised instead, for callers that
  must tell "no data" apart from "store down".
"""

import logging
from typing import Any, Callable, List, Optional, Sequence, Type, TypeVar

from .config import TableAccessConfig
from .core import DynamoTableStore, TableStore, create_table_gateway
from .engine import (
    CancellationSignal,
    RowMaterializer,
    RowSet,
    SegmentedPaginator,
    filter_all,
    filter_rows,
)
from .exceptions import StoreUnavailable
from .guard import require_non_empty, require_non_null
from .models import ANY_ETAG, QueryDescriptor, Row, TableResult, WriteMode

logger = logging.getLogger(__name__)

S = TypeVar('S')


class TableClient:
    """
    Segmented read and single-row write access to one table.

    Example:
        client = create_table_client(config, "customers")

        adults = client.get_entities(
            QueryDescriptor(partition_key="eu", take_count=1000),
            Customer,
            where=lambda c: c.age >= 18,
        )
        client.insert(Row(partition_key="eu", row_key="c-42", properties={"Name": "Ada"}))
    """

    def __init__(self, store: TableStore, config: Optional[TableAccessConfig] = None):
        require_non_null(store, "store")
        self.store = store
        self.config = config or getattr(store, 'config', None) or TableAccessConfig()
        self.paginator = SegmentedPaginator(store)
        self.materializer = RowMaterializer()

    @property
    def table_name(self) -> str:
        return getattr(self.store, 'table_name', type(self.store).__name__)

    def _store_fault(self, operation: str, error: StoreUnavailable, default: Any) -> Any:
        logger.error(f"{operation} on {self.table_name} failed: {error}")
        if self.config.raise_on_store_error:
            raise error
        return default

    def _guard_query(self, query: QueryDescriptor) -> None:
        require_non_null(query, "query")
        if query.partition_key is not None:
            require_non_empty(query.partition_key, "query.partition_key")

    def _guard_key(self, partition_key: str, row_key: str) -> None:
        require_non_empty(partition_key, "partition_key")
        require_non_empty(row_key, "row_key")

    # =========================================================================
    # Segmented reads
    # =========================================================================

    def execute_query(self, query: QueryDescriptor, cancellation: Optional[CancellationSignal] = None) -> List[Row]:
        """
        Drain ``query`` and return every row in the order received.

        Args:
            query: What to retrieve
            cancellation: Polled between segments

        Returns:
            Rows (at most ``query.take_count``); ``[]`` on a store fault
        """
        self._guard_query(query)
        try:
            rows = self.paginator.drain(query, cancellation)
        except StoreUnavailable as e:
            return self._store_fault("execute_query", e, [])

        logger.info(f"Query on {self.table_name} returned {len(rows)} rows")
        return rows

    def get_unique_rows(self, query: QueryDescriptor, cancellation: Optional[CancellationSignal] = None) -> List[Row]:
        """
        Drain ``query`` into a deduplicating set.

        Overlapping or repeated segments collapse into one copy of each row;
        first-seen order is kept.

        Returns:
            Distinct rows; ``[]`` on a store fault
        """
        self._guard_query(query)
        unique: RowSet[Row] = RowSet()
        all_unique = True
        try:
            for segment in self.paginator.iter_segments(query, cancellation):
                _, segment_unique = unique.add_all(segment.rows)
                all_unique = all_unique and segment_unique
        except StoreUnavailable as e:
            return self._store_fault("get_unique_rows", e, [])

        if not all_unique:
            logger.warning(f"Query on {self.table_name} returned overlapping rows; kept {len(unique)} distinct")
        return unique.to_list()

    def get_entities(
        self,
        query: QueryDescriptor,
        shape: Type[S],
        where: Optional[Callable[[S], bool]] = None,
        cancellation: Optional[CancellationSignal] = None
    ) -> List[S]:
        """
        Drain ``query`` and materialize each row into ``shape``.

        Args:
            query: What to retrieve
            shape: Target type, constructible without arguments
            where: Optional predicate applied after materialization
            cancellation: Polled between segments

        Returns:
            Materialized (and filtered) instances; ``[]`` on a store fault

        Raises:
            InvalidArgument: query or shape is invalid
            FilterEvaluationFailed: ``where`` raised
        """
        self._guard_query(query)
        require_non_null(shape, "shape")
        self.materializer.mapping_for(shape)

        try:
            rows = self.paginator.drain(query, cancellation)
        except StoreUnavailable as e:
            return self._store_fault("get_entities", e, [])

        entities = self.materializer.materialize_all(rows, shape)
        if where is not None:
            entities = filter_rows(entities, where)
        return entities

    def get_filtered(
        self,
        query: QueryDescriptor,
        shape: Type[S],
        predicates: Sequence[Callable[[S], bool]],
        cancellation: Optional[CancellationSignal] = None
    ) -> List[S]:

        """
        Drain ``query``, drop duplicate rows, materialize into ``shape`` and
        keep the instances that satisfy every predicate.

        Raises:
            InvalidArgument: query or shape is invalid, or predicates is empty
            FilterEvaluationFailed: a predicate raised
        """
        self._guard_query(query)
        require_non_null(shape, "shape")
        require_non_null(predicates, "predicates")
        predicates = list(predicates)
        require_non_empty(predicates, "predicates")
        self.materializer.mapping_for(shape)

        try:
            unique = RowSet(self.paginator.drain(query, cancellation))
        except StoreUnavailable as e:
            return self._store_fault("get_filtered", e, [])

        return filter_all(self.materializer.materialize_all(unique, shape), predicates)

    def has_data(self, query: QueryDescriptor) -> bool:
        """
        True when ``query`` matches at least one row.

        Only the key attributes of a single row are fetched.
        """
        self._guard_query(query)
        first_row_query = query.with_take_count(1).with_select_columns((self.config.partition_key_attribute,))
        try:
            return len(self.paginator.drain(first_row_query)) > 0
        except StoreUnavailable as e:
            return self._store_fault("has_data", e, False)

    # =========================================================================
    # Point reads
    # =========================================================================

    def get(self, partition_key: str, row_key: str, select_columns: Optional[Sequence[str]] = None) -> Optional[Row]:
        """Fetch one row by key; None when missing or on a store fault."""
        self._guard_key(partition_key, row_key)
        try:
            return self.store.get_by_key(partition_key, row_key, select_columns)
        except StoreUnavailable as e:
            return self._store_fault("get", e, None)

    def get_as(
        self,
        partition_key: str,
        row_key: str,
        shape: Type[S],
        select_columns: Optional[Sequence[str]] = None
    ) -> Optional[S]:
        """Fetch one row by key and materialize it into ``shape``."""
        self._guard_key(partition_key, row_key)
        require_non_null(shape, "shape")
        self.materializer.mapping_for(shape)

        row = self.get(partition_key, row_key, select_columns)
        if row is None:
            return None
        return self.materializer.materialize(row, shape)

    def exists(self, partition_key: str, row_key: str) -> bool:
        """True when a row with this key exists."""
        self._guard_key(partition_key, row_key)
        try:
            return self.store.get_by_key(partition_key, row_key, (self.config.partition_key_attribute,)) is not None
        except StoreUnavailable as e:
            return self._store_fault("exists", e, False)

    # =========================================================================
    # Writes
    # =========================================================================

    def _write(self, row: Row, mode: WriteMode) -> TableResult:
        require_non_null(row, "row")
        self._guard_key(row.partition_key, row.row_key)
        try:
            return self.store.put_row(row, mode)
        except StoreUnavailable as e:
            return self._store_fault(mode.value, e, TableResult(status_code=503, row=row, etag=row.etag, error=e))

    def insert(self, row: Row) -> TableResult:
        """Insert a new row; 409 if the key is taken."""
        return self._write(row, WriteMode.INSERT)

    def merge(self, row: Row) -> TableResult:
        """Merge properties into an existing row; 404 if missing, 412 on etag mismatch."""
        return self._write(row, WriteMode.MERGE)

    def replace(self, row: Row) -> TableResult:
        """Replace an existing row; 404 if missing, 412 on etag mismatch."""
        return self._write(row, WriteMode.REPLACE)

    def insert_or_merge(self, row: Row) -> TableResult:
        return self._write(row, WriteMode.INSERT_OR_MERGE)

    def insert_or_replace(self, row: Row) -> TableResult:
        return self._write(row, WriteMode.INSERT_OR_REPLACE)

    def delete(self, partition_key: str, row_key: str, etag: Optional[str] = ANY_ETAG) -> TableResult:
        """
        Delete one row.

        Args:
            etag: Concurrency stamp the row must still carry; ``"*"`` deletes any version

        Returns:
            204 on success, 404 when missing, 412 on etag mismatch, 503 on a store fault
        """
        self._guard_key(partition_key, row_key)
        try:
            return self.store.delete_row(partition_key, row_key, etag)
        except StoreUnavailable as e:
            return self._store_fault("delete", e, TableResult(status_code=503, etag=etag, error=e))

    def delete_row(self, row: Row) -> TableResult:
        """Delete ``row`` guarded by its own etag (any version when it has none)."""
        require_non_null(row, "row")
        return self.delete(row.partition_key, row.row_key, row.etag or ANY_ETAG)


def create_table_client(
    config: TableAccessConfig,
    table_name: str,
    create_if_missing: bool = False
) -> TableClient:
    """
    Create a TableClient on a DynamoDB table.

    Args:
        config: Access layer configuration
        table_name: Base table name; prefix and environment come from config
        create_if_missing: Create the table (and wait for it) when it does not exist

    Returns:
        Configured TableClient
    """
    require_non_null(config, "config")
    require_non_empty(table_name, "table_name")
    gateway = create_table_gateway(config, table_name)
    if create_if_missing:
        gateway.ensure_table()
    return TableClient(DynamoTableStore(gateway), config)
