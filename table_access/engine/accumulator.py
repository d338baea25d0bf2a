"""
Deduplicating Accumulator

Collects rows from overlapping or retried segments into an insertion-ordered,
duplicate-free set. Equality is structural (see Row.__eq__), so two distinct
instances of the same logical record collapse into one.

Not safe for concurrent insertion; each drain owns its own instance.
"""

from typing import Dict, Generic, Hashable, Iterable, Iterator, List, Tuple, TypeVar

T = TypeVar('T', bound=Hashable)


class RowSet(Generic[T]):
    """Insertion-ordered set of rows (or any hashable, equality-comparable items)."""

    def __init__(self, rows: Iterable[T] = ()):
        self._items: Dict[T, None] = {}
        self.add_all(rows)

    def add(self, row: T) -> bool:
        """Insert ``row``; returns False if an equal row is already present."""
        if row in self._items:
            return False
        self._items[row] = None
        return True

    def add_all(self, rows: Iterable[T]) -> Tuple[int, bool]:
        """
        Insert every row, continuing past collisions.

        Returns:
            (inserted_count, all_unique) where ``all_unique`` is True only if
            none of the rows was already present
        """
        inserted = 0
        all_unique = True
        for row in rows:
            if self.add(row):
                inserted += 1
            else:
                all_unique = False
        return inserted, all_unique

    def to_list(self) -> List[T]:
        return list(self._items)

    def __contains__(self, row: object) -> bool:
        return row in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"RowSet({len(self._items)} rows)"
