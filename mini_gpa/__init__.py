# mini_gpa - Sparse linear algebra and the Guided Projection Algorithm
"""
MINI-GPA: Sparse Linear Algebra + Guided Projection
===================================================

This package provides:
- Compressed-column / compressed-row sparse matrices and their arithmetic
- Dense and sparse vectors, Gram-Schmidt, null space, sparse Cholesky
- The Guided Projection Algorithm (GPA) for constrained form-finding

ARCHITECTURE:
-------------
    config.py       Engine precision and thread-pool settings
    linalg/         Sparse engine (triplets, compressed, vectors, kernel, cholesky)
    gpa/            Variables, local models, assembly, solver
"""

from . import config
from .linalg import (
    CompressedColumn,
    CompressedRow,
    DenseVector,
    SparseVector,
    TripletStore,
    LinearAlgebraError,
    ShapeError,
    SingularityError,
    NotPositiveDefiniteError,
    UnsupportedOperationError,
)
from .gpa import GuidedProjectionAlgorithm, SolverStateError, Variable, SubVariable, VariableSet

__version__ = "0.1.0"
