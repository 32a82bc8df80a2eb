# mini_gpa/linalg/__init__.py
"""
Sparse linear-algebra engine: triplet assembly, compressed matrices,
dense/sparse vectors, null space and Cholesky.
"""

from .errors import (
    LinearAlgebraError,
    ShapeError,
    SingularityError,
    NotPositiveDefiniteError,
    UnsupportedOperationError,
)
from .triplets import TripletStore
from .vectors import DenseVector, SparseVector, Vector, dot, gram_schmidt, to_dense, to_sparse
from .compressed import CompressedColumn, CompressedRow
from .cholesky import CholeskyFactor, factorize

__all__ = [
    "LinearAlgebraError",
    "ShapeError",
    "SingularityError",
    "NotPositiveDefiniteError",
    "UnsupportedOperationError",
    "TripletStore",
    "DenseVector",
    "SparseVector",
    "Vector",
    "dot",
    "gram_schmidt",
    "to_dense",
    "to_sparse",
    "CompressedColumn",
    "CompressedRow",
    "CholeskyFactor",
    "factorize",
]
