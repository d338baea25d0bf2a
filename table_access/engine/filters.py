"""
Predicate Filter

Order-preserving, client-side filtering of an already materialized sequence.
Predicates are plain callables and are never pushed to the store.

A predicate that raises aborts the whole call with FilterEvaluationFailed;
no partial result is returned.
"""

from typing import Callable, Iterable, List, Sequence, TypeVar

from ..exceptions import FilterEvaluationFailed
from ..guard import require_non_empty, require_non_null

T = TypeVar('T')

Predicate = Callable[[T], bool]


def _evaluate(predicate: Predicate, item, index: int) -> bool:
    try:
        return bool(predicate(item))
    except Exception as e:
        name = getattr(predicate, '__name__', repr(predicate))
        raise FilterEvaluationFailed(
            f"Predicate {name} failed on element {index}: {e}",
            index=index,
            original_error=e
        ) from e


def filter_rows(rows: Iterable[T], predicate: Predicate) -> List[T]:
    """
    Keep the elements for which ``predicate`` returns True.

    Raises:
        InvalidArgument: rows or predicate is None
        FilterEvaluationFailed: the predicate raised
    """
    require_non_null(rows, "rows")
    require_non_null(predicate, "predicate")
    return [item for index, item in enumerate(rows) if _evaluate(predicate, item, index)]


def filter_all(rows: Iterable[T], predicates: Sequence[Predicate]) -> List[T]:
    """
    Keep the elements that satisfy every predicate (logical AND).

    Predicates are evaluated in order and evaluation stops at the first one
    that rejects an element.

    Example:
        filter_all([-2, 3, 4, -4], [is_even, is_positive])  # -> [4]

    Raises:
        InvalidArgument: rows is None, or predicates is None or empty
        FilterEvaluationFailed: a predicate raised
    """
    require_non_null(rows, "rows")
    require_non_null(predicates, "predicates")
    predicates = list(predicates)
    require_non_empty(predicates, "predicates")
    for position, predicate in enumerate(predicates):
        require_non_null(predicate, f"predicates[{position}]")

    return [
        item for index, item in enumerate(rows)
        if all(_evaluate(predicate, item, index) for predicate in predicates)
    ]
