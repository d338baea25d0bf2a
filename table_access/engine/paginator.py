"""
Segmented Paginator

Drains a paginated query into memory by following continuation tokens.

The loop stops when the continuation token is exhausted, the take-count is
reached, or cancellation is observed, whichever happens first. All three are
checked after each segment; a fetch that was already issued always completes.
One fetch is in flight at a time because the next token is only known once
the previous segment returned.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol

from ..guard import require_non_null
from ..models import QueryDescriptor, Row, Segment

logger = logging.getLogger(__name__)


class CancellationSignal(Protocol):
    """Anything with ``is_set()``; ``threading.Event`` satisfies it."""

    def is_set(self) -> bool:
        ...


class _NeverCancelled:
    def is_set(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NEVER_CANCELLED"


NEVER_CANCELLED = _NeverCancelled()


class SegmentSource(Protocol):
    def fetch_segment(self, query: QueryDescriptor, continuation_token: Optional[Dict[str, Any]]) -> Segment:
        ...


class SegmentedPaginator:
    """
    Drives the continuation-token loop for a single logical query.

    The paginator holds no per-call state, so one instance can serve
    concurrent drains of different queries.

    Example:
        paginator = SegmentedPaginator(store)
        rows = paginator.drain(QueryDescriptor(partition_key="orders", take_count=500))
    """

    def __init__(self, store: SegmentSource):
        self.store = store

    def iter_segments(
        self,
        query: QueryDescriptor,
        cancellation: Optional[CancellationSignal] = None
    ) -> Iterator[Segment]:
        """
        Yield segments in the order they are received.

        Each yielded segment is already trimmed to the remaining take-count.
        Stopping rules are the same as for :meth:`drain`.

        Raises:
            InvalidArgument: query is None
            StoreUnavailable: the store faulted during a fetch
        """
        require_non_null(query, "query")
        return self._segments(query, cancellation or NEVER_CANCELLED)

    def _segments(self, query: QueryDescriptor, cancellation: CancellationSignal) -> Iterator[Segment]:
        take_count = query.take_count
        if take_count == 0:
            return

        token: Optional[Dict[str, Any]] = None
        received = 0
        fetches = 0

        while True:
            remaining = None if take_count is None else take_count - received
            working = query.with_take_count(remaining)

            segment = self.store.fetch_segment(working, token)
            fetches += 1

            rows = segment.rows
            if remaining is not None and len(rows) > remaining:
                rows = rows[:remaining]
                segment = Segment(rows=rows, continuation_token=segment.continuation_token)

            received += len(rows)
            token = segment.continuation_token
            logger.debug(f"Segment {fetches}: {len(rows)} rows, {received} total, more={token is not None}")

            yield segment

            if token is None:
                break
            if take_count is not None and received >= take_count:
                break
            if cancellation.is_set():
                logger.info(f"Drain cancelled after {fetches} segments ({received} rows)")
                break

    def drain(
        self,
        query: QueryDescriptor,
        cancellation: Optional[CancellationSignal] = None
    ) -> List[Row]:
        """
        Fetch every segment of ``query`` and return the rows in received order.

        Args:
            query: What to retrieve; never mutated
            cancellation: Polled between segments; defaults to never cancelling

        Returns:
            All rows visited, at most ``query.take_count`` of them

        Raises:
            InvalidArgument: query is None
            StoreUnavailable: the store faulted; no partial result is returned
        """
        collected: List[Row] = []
        for segment in self.iter_segments(query, cancellation):
            collected.extend(segment.rows)
        logger.debug(f"Drained {len(collected)} rows")
        return collected
