# mini_gpa/gpa/constraint_types.py
"""
Library constraints: hard quadratic equations  ½ xᵗHx + bᵗx + c = 0.

Hᵢ is scatter-added into a TripletStore, then compressed, the same way a
global matrix is assembled from element blocks.
"""

from ..linalg.compressed import CompressedColumn
from ..linalg.triplets import TripletStore
from ..linalg.vectors import SparseVector
from .local_models import ConstraintType


def _segment_block(store: TripletStore, dimension: int) -> None:
    # ½ xᵗHx = |Pₑ − Pₛ|²
    for i in range(dimension):
        store.add(2.0, i, i)
        store.add(-2.0, dimension + i, i)
        store.add(-2.0, i, dimension + i)
        store.add(2.0, dimension + i, dimension + i)


class SegmentLength(ConstraintType):
    """
    Fix the length of a segment:  |Pₑ − Pₛ|² − length² = 0.

    Variables: (Pₛ, Pₑ), both of ``dimension``.
    """

    def __init__(self, dimension: int, length: float):
        store = TripletStore()
        _segment_block(store, dimension)
        size = 2 * dimension
        super().__init__(CompressedColumn.from_triplets(size, size, store), None, -(length * length))


class SegmentOrthogonality(ConstraintType):
    """
    Keep a segment orthogonal to a vector variable:  (Pₑ − Pₛ)·V = 0.

    Variables: (Pₛ, Pₑ, V), all of ``dimension``.
    """

    def __init__(self, dimension: int):
        store = TripletStore()
        for i in range(dimension):
            v = 2 * dimension + i
            store.add(-1.0, v, i)
            store.add(-1.0, i, v)
            store.add(1.0, v, dimension + i)
            store.add(1.0, dimension + i, v)
        size = 3 * dimension
        super().__init__(CompressedColumn.from_triplets(size, size, store), None, 0.0)


class VectorLength(ConstraintType):
    """
    Fix the length of a vector variable:  |V|² − length² = 0.

    Variables: (V,) of ``dimension`` (3 by default).
    """

    def __init__(self, length: float, dimension: int = 3):
        local_h = CompressedColumn.diagonal([2.0] * dimension)
        super().__init__(local_h, None, -(length * length))


class CoherentLength(ConstraintType):
    """
    Tie a scalar length variable to a segment:  |Pₑ − Pₛ|² − L² = 0.

    Variables: (Pₛ, Pₑ, L), the points of ``dimension``, L a scalar.
    """

    def __init__(self, dimension: int):
        store = TripletStore()
        _segment_block(store, dimension)
        store.add(-2.0, 2 * dimension, 2 * dimension)
        size = 2 * dimension + 1
        super().__init__(CompressedColumn.from_triplets(size, size, store), None, 0.0)


class LowerBound(ConstraintType):
    """
    Keep a scalar above ``bound``:  x − bound = σ²  with a dummy scalar σ.

    Variables: (x, σ), both scalars. Start σ at √max(x − bound, 0).
    """

    def __init__(self, bound: float):
        local_h = CompressedColumn.from_arrays(2, 2, [0, 0, 1], [1], [2.0])
        super().__init__(local_h, SparseVector(2, {0: -1.0}), bound)


class UpperBound(ConstraintType):
    """
    Keep a scalar below ``bound``:  bound − x = σ²  with a dummy scalar σ.

    Variables: (x, σ), both scalars. Start σ at √max(bound − x, 0).
    """

    def __init__(self, bound: float):
        local_h = CompressedColumn.from_arrays(2, 2, [0, 0, 1], [1], [-2.0])
        super().__init__(local_h, SparseVector(2, {0: -1.0}), bound)
