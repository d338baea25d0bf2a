"""
Client-side retrieval engine.

- SegmentedPaginator: drains continuation-token pagination
- RowSet: deduplicating accumulator
- RowMaterializer: untyped rows -> typed shapes
- filter_rows / filter_all: post-hoc predicate filtering
"""

from .accumulator import RowSet
from .filters import filter_all, filter_rows
from .materializer import RowMaterializer, ShapeMapping, build_shape_mapping, materialize, materialize_all
from .paginator import NEVER_CANCELLED, CancellationSignal, SegmentedPaginator

__all__ = [
    "RowSet",
    "filter_all",
    "filter_rows",
    "RowMaterializer",
    "ShapeMapping",
    "build_shape_mapping",
    "materialize",
    "materialize_all",
    "NEVER_CANCELLED",
    "CancellationSignal",
    "SegmentedPaginator",
]
