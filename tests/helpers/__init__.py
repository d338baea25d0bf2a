"""
Test helpers for the table access layer.

SegmentedFakeStore is an in-memory TableStore that serves pre-built segments
and records every call, so tests can assert on fetch counts and tokens
without DynamoDB.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from table_access.exceptions import StoreUnavailable
from table_access.models import ANY_ETAG, QueryDescriptor, Row, Segment, TableResult, WriteMode


def make_row(partition_key: str, row_key: str, etag: Optional[str] = None, **properties) -> Row:
    """Build a Row with keyword properties."""
    return Row(partition_key=partition_key, row_key=row_key, properties=properties, etag=etag)


class SegmentedFakeStore:
    """
    In-memory TableStore double.

    Args:
        segments: Rows per segment, served in order; the token names the next segment
        fail_on_fetch: 0-based fetch number that raises StoreUnavailable
        on_fetch: Called with the fetch number after every successful fetch
        fail_all: Every operation raises StoreUnavailable
    """

    def __init__(
        self,
        segments: Sequence[Sequence[Row]] = (),
        fail_on_fetch: Optional[int] = None,
        on_fetch: Optional[Callable[[int], Any]] = None,
        fail_all: bool = False
    ):
        self.segments = [list(segment) for segment in segments]
        self.fail_on_fetch = fail_on_fetch
        self.on_fetch = on_fetch
        self.fail_all = fail_all
        self.table_name = "fake_table"
        self.rows: Dict[Tuple[str, str], Row] = {}
        self.fetch_calls: List[Tuple[QueryDescriptor, Optional[Dict[str, Any]]]] = []
        self.calls: List[str] = []

    @property
    def fetch_count(self) -> int:
        return len(self.fetch_calls)

    def _fault(self, operation: str) -> StoreUnavailable:
        return StoreUnavailable(f"{operation} failed: store offline", operation, self.table_name, retryable=True)

    def fetch_segment(self, query: QueryDescriptor, continuation_token: Optional[Dict[str, Any]]) -> Segment:
        self.calls.append("fetch_segment")
        fetch_number = len(self.fetch_calls)
        self.fetch_calls.append((query, continuation_token))
        if self.fail_all or fetch_number == self.fail_on_fetch:
            raise self._fault("Query")

        index = continuation_token['segment'] if continuation_token else 0
        rows = list(self.segments[index]) if index < len(self.segments) else []
        next_token = {'segment': index + 1} if index + 1 < len(self.segments) else None

        if self.on_fetch is not None:
            self.on_fetch(fetch_number)
        return Segment(rows=rows, continuation_token=next_token)

    def get_by_key(self, partition_key: str, row_key: str, select_columns=None) -> Optional[Row]:
        self.calls.append("get_by_key")
        if self.fail_all:
            raise self._fault("GetItem")
        return self.rows.get((partition_key, row_key))

    def put_row(self, row: Row, mode: WriteMode) -> TableResult:
        self.calls.append("put_row")
        if self.fail_all:
            raise self._fault("PutItem")

        current = self.rows.get(row.key)
        if mode is WriteMode.INSERT and current is not None:
            return TableResult(status_code=409, row=row)
        if mode in (WriteMode.MERGE, WriteMode.REPLACE):
            if current is None:
                return TableResult(status_code=404, row=row)
            if row.etag and row.etag != ANY_ETAG and row.etag != current.etag:
                return TableResult(status_code=412, row=row)

        etag = f"etag-{len(self.calls)}"
        properties = dict(row.properties)
        if mode in (WriteMode.MERGE, WriteMode.INSERT_OR_MERGE) and current is not None:
            properties = {**current.properties, **row.properties}
        written = row.model_copy(update={'properties': properties, 'etag': etag})
        self.rows[row.key] = written
        return TableResult(status_code=201 if mode is WriteMode.INSERT else 204, row=written, etag=etag)

    def delete_row(self, partition_key: str, row_key: str, etag: Optional[str] = ANY_ETAG) -> TableResult:
        self.calls.append("delete_row")
        if self.fail_all:
            raise self._fault("DeleteItem")

        current = self.rows.get((partition_key, row_key))
        if current is None:
            return TableResult(status_code=404)
        if etag and etag != ANY_ETAG and etag != current.etag:
            return TableResult(status_code=412)
        del self.rows[(partition_key, row_key)]
        return TableResult(status_code=204)


__all__ = [
    'SegmentedFakeStore',
    'make_row',
]
