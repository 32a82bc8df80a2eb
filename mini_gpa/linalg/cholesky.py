# mini_gpa/linalg/cholesky.py
"""
SPARSE CHOLESKY: Factor A = L·Lᵗ and Solve
==========================================

PURPOSE:
--------
The GPA normal-equation matrix  HᵗH + KᵗK + ε²I  is symmetric positive
definite, so one Cholesky factorisation per iteration gives the update.

Left-looking, column by column, using only the lower triangle of A:

    c      = A[j:, j]
    c     -= L[j:, k]·L[j, k]        for every k < j with L[j, k] ≠ 0
    L[j,j] = √c[j]
    L[i,j] = c[i] / L[j,j]           for i > j

Columns of L are stored as sorted (row, value) arrays; a per-row list of
(k, L[j, k]) tells column j which earlier columns touch it. No
fill-reducing permutation is applied: columns are factored in natural
order.

PIVOT RULE:
-----------
Column j fails with NotPositiveDefiniteError unless

    A[j, j] > 0   and   c[j] > precision · A[j, j]

i.e. the pivot must keep a nonzero fraction of the column's own diagonal.
The test is relative, so a small ε² regularisation still factors.
"""

import logging
import math
from typing import List, Tuple

import numpy as np

from .. import config
from .errors import NotPositiveDefiniteError, ShapeError

logger = logging.getLogger(__name__)


class CholeskyFactor:
    """
    Lower-triangular factor L of a symmetric positive-definite matrix.

    Attributes:
    -----------
    size : int
        Order n of the factored matrix.
    columns : list of (np.ndarray, np.ndarray)
        Column j of L as (row_indices, values), rows ascending, diagonal first.
    """

    def __init__(self, size: int, columns: List[Tuple[np.ndarray, np.ndarray]]):
        self.size = size
        self.columns = columns

    @property
    def nnz(self) -> int:
        return sum(rows.shape[0] for rows, _ in self.columns)

    def solve_lower(self, rhs: np.ndarray) -> np.ndarray:
        """Forward substitution L·y = rhs."""
        y = np.array(rhs, dtype=float)
        for j, (rows, values) in enumerate(self.columns):
            y[j] /= values[0]
            if rows.shape[0] > 1:
                y[rows[1:]] -= values[1:] * y[j]
        return y

    def solve_upper(self, rhs: np.ndarray) -> np.ndarray:
        """Back substitution Lᵗ·x = rhs."""
        x = np.array(rhs, dtype=float)
        for j in range(self.size - 1, -1, -1):
            rows, values = self.columns[j]
            if rows.shape[0] > 1:
                x[j] -= np.dot(values[1:], x[rows[1:]])
            x[j] /= values[0]
        return x

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        rhs = np.asarray(rhs, dtype=float)
        if rhs.shape != (self.size,):
            raise ShapeError(f"Right-hand side shape {rhs.shape} does not match order {self.size}.")
        return self.solve_upper(self.solve_lower(rhs))

    def to_dense(self) -> np.ndarray:
        dense = np.zeros((self.size, self.size), dtype=float)
        for j, (rows, values) in enumerate(self.columns):
            dense[rows, j] = values
        return dense


def factorize(matrix) -> CholeskyFactor:
    """
    Factor a square, symmetric CompressedColumn ``matrix``.

    Only entries on or below the diagonal are read.

    Raises:
    -------
    ShapeError
        If the matrix is not square.
    NotPositiveDefiniteError
        If a pivot fails the pivot rule (the column is reported).
    """
    n = matrix.row_count
    if matrix.column_count != n:
        raise ShapeError(f"Cholesky needs a square matrix, got {matrix.shape}.")

    precision = config.absolute_precision()
    pointers, indices, values = matrix.column_pointers, matrix.row_indices, matrix.values

    work = np.zeros(n, dtype=float)
    columns: List[Tuple[np.ndarray, np.ndarray]] = []
    row_entries: List[List[Tuple[int, float]]] = [[] for _ in range(n)]

    for j in range(n):
        lo, hi = pointers[j], pointers[j + 1]
        lower = indices[lo:hi] >= j
        a_rows = indices[lo:hi][lower]
        work[a_rows] = values[lo:hi][lower]
        diagonal = work[j]
        pattern = [a_rows, np.array([j], dtype=np.int64)]

        for k, ljk in row_entries[j]:
            k_rows, k_values = columns[k]
            start = int(np.searchsorted(k_rows, j))
            work[k_rows[start:]] -= ljk * k_values[start:]
            pattern.append(k_rows[start:])

        rows = np.unique(np.concatenate(pattern))
        pivot = work[j]
        if not (diagonal > 0.0 and pivot > precision * diagonal):
            work[rows] = 0.0
            raise NotPositiveDefiniteError(
                f"Matrix is not positive definite: pivot {pivot:.3e} at column {j} "
                f"(diagonal {diagonal:.3e}).",
                column=j, pivot=float(pivot),
            )

        ljj = math.sqrt(pivot)
        column_values = work[rows] / ljj
        work[rows] = 0.0

        # Diagonal first, then the strictly lower nonzeros in row order.
        keep = (rows > j) & (column_values != 0.0)
        column_rows = np.concatenate(([j], rows[keep])).astype(np.int64)
        column_values = np.concatenate(([ljj], column_values[keep]))
        columns.append((column_rows, column_values))

        for i, lij in zip(column_rows[1:], column_values[1:]):
            row_entries[int(i)].append((j, float(lij)))

    factor = CholeskyFactor(n, columns)
    logger.debug("cholesky: order %d, nnz(A) %d, nnz(L) %d", n, matrix.nnz, factor.nnz)
    return factor


def solve(matrix, rhs) -> np.ndarray:
    """Solve A·x = rhs through a fresh factorisation of A."""
    return factorize(matrix).solve(rhs)
