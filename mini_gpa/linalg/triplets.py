# mini_gpa/linalg/triplets.py
"""
TRIPLET STORE: Assembly Buffer for Sparse Matrices
==================================================

PURPOSE:
--------
Compressed matrices are immutable, so they are awkward to BUILD entry by
entry. The triplet store is the mutable scratch pad used instead:

    store = TripletStore()
    store.add(1.0, row=0, column=1)
    store.add(2.0, row=0, column=1)   # summed onto the existing entry → 3.0
    A = CompressedColumn.from_triplets(2, 2, store)

This is the standard scatter-add idiom: many local contributions land on
the same global (row, column) slot and must be SUMMED, never overwritten.

A store only knows about the entries it has seen; it carries no shape.
The shape is supplied once, at conversion time, where out-of-range
entries are rejected.
"""

from typing import Dict, Iterable, Iterator, Optional, Tuple

from .errors import ShapeError


class TripletStore:
    """
    Dictionary-of-keys accumulator: (row, column) → value.

    Examples:
    ---------
    >>> store = TripletStore()
    >>> store.add(1.5, 0, 2)
    >>> store.add(0.5, 0, 2)
    >>> store.get(0, 2)
    2.0
    >>> len(store)
    1
    """

    def __init__(self, entries: Optional[Iterable[Tuple[float, int, int]]] = None):
        self._values: Dict[Tuple[int, int], float] = {}
        if entries is not None:
            for value, row, column in entries:
                self.add(value, row, column)

    @classmethod
    def from_arrays(cls, values, rows, columns) -> "TripletStore":
        """Build a store from three parallel sequences (duplicates summed)."""
        values = list(values)
        rows = list(rows)
        columns = list(columns)
        if not (len(values) == len(rows) == len(columns)):
            raise ShapeError(
                f"Triplet arrays must have equal lengths, got "
                f"{len(values)} values, {len(rows)} rows, {len(columns)} columns."
            )
        return cls(zip(values, rows, columns))

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[Tuple[int, int, float]]:
        for (row, column), value in self._values.items():
            yield row, column, value

    def is_empty(self, row: int, column: int) -> bool:
        return (row, column) not in self._values

    def get(self, row: int, column: int) -> float:
        return self._values.get((row, column), 0.0)

    def add(self, value: float, row: int, column: int) -> None:
        """Add ``value`` at (row, column), summing onto any existing entry."""
        if row < 0 or column < 0:
            raise ShapeError(f"Negative index ({row}, {column}) in triplet store.")
        key = (int(row), int(column))
        self._values[key] = self._values.get(key, 0.0) + float(value)

    def replace(self, value: float, row: int, column: int) -> None:
        """Overwrite an existing entry."""
        key = (row, column)
        if key not in self._values:
            raise KeyError(f"No entry at ({row}, {column}) to replace.")
        self._values[key] = float(value)

    def remove(self, row: int, column: int) -> None:
        self._values.pop((row, column), None)

    def clean(self, tolerance: float = 0.0) -> None:
        """Drop every entry whose magnitude is at most ``tolerance``."""
        self._values = {k: v for k, v in self._values.items() if abs(v) > tolerance}

    def bounds(self) -> Tuple[int, int]:
        """Smallest (row_count, column_count) able to hold every entry."""
        if not self._values:
            return 0, 0
        max_row = max(r for r, _ in self._values)
        max_col = max(c for _, c in self._values)
        return max_row + 1, max_col + 1
