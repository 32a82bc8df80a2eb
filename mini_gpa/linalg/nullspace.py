# mini_gpa/linalg/nullspace.py
"""
Right null space (kernel) of a compressed-column matrix.

Row reduction with partial pivoting brings A to reduced row-echelon form.
Every column without a pivot is free; each free column f yields one kernel
vector with a 1 at f and minus the reduced entries at the pivot columns.
The vectors are orthogonalised with ``gram_schmidt`` before return, so
they carry its squared-length scaling.
"""

import logging
from typing import List, Tuple

import numpy as np

from .. import config
from .vectors import DenseVector, gram_schmidt

logger = logging.getLogger(__name__)


def row_reduce(matrix: np.ndarray, tolerance: float) -> Tuple[np.ndarray, List[int]]:
    """
    Reduced row-echelon form by Gaussian elimination with partial pivoting.

    Parameters:
    -----------
    matrix : np.ndarray
        Dense (m, n) array; not modified.
    tolerance : float
        Candidate pivots of magnitude at most this are treated as zero.

    Returns:
    --------
    (reduced, pivot_columns)
        ``reduced[r]`` is the row whose leading 1 sits in ``pivot_columns[r]``.
    """
    reduced = np.array(matrix, dtype=float)
    row_count, column_count = reduced.shape
    pivot_columns: List[int] = []
    row = 0

    for column in range(column_count):
        if row == row_count:
            break
        candidate = row + int(np.argmax(np.abs(reduced[row:, column])))
        if abs(reduced[candidate, column]) <= tolerance:
            reduced[row:, column] = 0.0
            continue

        if candidate != row:
            reduced[[row, candidate]] = reduced[[candidate, row]]
        reduced[row] /= reduced[row, column]

        factors = reduced[:, column].copy()
        factors[row] = 0.0
        reduced -= np.outer(factors, reduced[row])
        reduced[:, column] = 0.0
        reduced[row, column] = 1.0

        pivot_columns.append(column)
        row += 1

    return reduced, pivot_columns


def kernel(matrix) -> List[DenseVector]:
    """
    Basis of {x : A·x = 0} for a CompressedColumn ``matrix``.

    Returns an empty list when A has full column rank. A matrix without
    stored entries has every column free and returns the (Gram-Schmidt
    scaled) standard basis.
    """
    tolerance = config.absolute_precision()
    reduced, pivot_columns = row_reduce(matrix.to_dense(), tolerance)
    column_count = matrix.column_count

    pivots = set(pivot_columns)
    free_columns = [c for c in range(column_count) if c not in pivots]
    logger.debug("kernel of %dx%d matrix: rank %d, %d free column(s)",
                 matrix.row_count, column_count, len(pivot_columns), len(free_columns))
    if not free_columns:
        return []

    candidates = []
    for free in free_columns:
        vector = np.zeros(column_count, dtype=float)
        vector[free] = 1.0
        for row, pivot in enumerate(pivot_columns):
            vector[pivot] = -reduced[row, free]
        candidates.append(DenseVector(vector))

    return gram_schmidt(candidates)
