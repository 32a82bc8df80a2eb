# mini_gpa/gpa/assemble.py
"""
ASSEMBLY: Term Rows → Global Normal Equations
=============================================

PURPOSE:
--------
Each constraint contributes ONE row to (H, r) and each energy ONE row to
(K, s). A row is computed from the term alone, so rows are independent
units of work; they are then scatter-added into global sparse matrices
by row number, exactly like element blocks into a stiffness matrix.

    constraint i, linearised at the current local point x₀:
        h     = Hᵢ·x₀
        H[i]  = w·(h + Bᵢ)               at the term's global indices
        r[i]  = w·(½ x₀ᵗh − Cᵢ)

    energy j:
        K[j]  = w·Kᵢ                      at the term's global indices
        s[j]  = w·Sᵢ

Terms with zero weight produce no row. Rows are numbered in registration
order, whether they were computed in sequence or on a thread pool.

The update then solves

    (HᵗH + KᵗK + ε²I)·x = Hᵗr + Kᵗs + ε²·x_prev

where an empty family simply drops out of both sides.

USAGE:
------
    constraint_rows, energy_rows = build_rows(constraints, energies, pool=pool)
    lhs, rhs = assemble_system(x_prev, epsilon, constraint_rows, energy_rows, pool=pool)
    x_new = lhs.solve_cholesky(rhs)
"""

from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..linalg.compressed import CompressedColumn
from ..linalg.triplets import TripletStore
from ..linalg.vectors import DenseVector
from .terms import Constraint, Energy


@dataclass
class TermRow:
    """
    One assembled row in global coordinates.

    Attributes:
    -----------
    indices : List[int]
        Global column of each entry (may repeat; repeats are summed).
    values : np.ndarray
        Weighted row entries, aligned with ``indices``.
    rhs : float
        Weighted right-hand side (r for constraints, s for energies).
    """
    indices: List[int]
    values: np.ndarray
    rhs: float


def constraint_row(constraint: Constraint) -> Optional[TermRow]:
    """Linearised row of a constraint, or None when its weight is zero."""
    weight = constraint.weight
    if weight == 0.0:
        return None

    model = constraint.constraint_type
    x_local = constraint.local_values()
    h = (model.local_h @ DenseVector(x_local)).to_array()

    rhs = weight * (0.5 * float(np.dot(x_local, h)) - model.c)
    values = h if model.local_b is None else h + model.local_b.to_array()
    return TermRow(constraint.global_indices(), weight * values, rhs)


def energy_row(energy: Energy) -> Optional[TermRow]:
    """Row of an energy, or None when its weight is zero."""
    weight = energy.weight
    if weight == 0.0:
        return None

    model = energy.energy_type
    local_to_global = energy.global_indices()
    indices, values = [], []
    for local, value in model.local_k.nonzeros():
        indices.append(local_to_global[local])
        values.append(weight * value)
    return TermRow(indices, np.asarray(values, dtype=float), weight * model.s)


def _rows_in_order(results) -> List[TermRow]:
    return [row for row in results if row is not None]


def build_rows(
    constraints: Sequence[Constraint],
    energies: Sequence[Energy],
    pool: Optional[ThreadPool] = None,
) -> Tuple[List[TermRow], List[TermRow]]:
    """
    Compute every constraint row and every energy row.

    With a ``pool`` each term is one task and both families are in flight
    at once. ``map_async`` keeps input order, so the output is the same as
    the sequential path.

    Returns:
    --------
    (constraint_rows, energy_rows)
        Rows of nonzero-weight terms, in registration order.
    """
    if pool is None:
        return (_rows_in_order(constraint_row(c) for c in constraints),
                _rows_in_order(energy_row(e) for e in energies))

    pending_constraints = pool.map_async(constraint_row, constraints, chunksize=1)
    pending_energies = pool.map_async(energy_row, energies, chunksize=1)
    return (_rows_in_order(pending_constraints.get()),
            _rows_in_order(pending_energies.get()))


def assemble_rows(rows: Sequence[TermRow], column_count: int) -> Tuple[CompressedColumn, DenseVector]:
    """
    Scatter-add rows into a (len(rows) × column_count) matrix and its rhs.

    Row k of the matrix is ``rows[k]``; repeated global indices inside a
    row are summed.
    """
    store = TripletStore()
    for row_number, row in enumerate(rows):
        for column, value in zip(row.indices, row.values):
            store.add(value, row_number, column)
    matrix = CompressedColumn.from_triplets(len(rows), column_count, store)
    rhs = DenseVector([row.rhs for row in rows])
    return matrix, rhs


def assemble_system(
    x_prev: np.ndarray,
    epsilon: float,
    constraint_rows: Sequence[TermRow],
    energy_rows: Sequence[TermRow],
    pool: Optional[ThreadPool] = None,
) -> Tuple[CompressedColumn, np.ndarray]:
    """
    Build  LHS = ε²I + HᵗH + KᵗK  and  RHS = ε²·x_prev + Hᵗr + Kᵗs.

    Parameters:
    -----------
    x_prev : np.ndarray
        Current unknown vector.
    epsilon : float
        Regularisation; ε²I keeps the system positive definite.
    constraint_rows, energy_rows : sequence of TermRow
        Output of ``build_rows``. An empty family contributes nothing.
    pool : ThreadPool, optional
        When given, the four products HᵗH, Hᵗr, KᵗK, Kᵗs run as separate
        tasks and are joined once before summation.

    Returns:
    --------
    (lhs, rhs)
        Symmetric positive-definite CompressedColumn and dense right-hand side.
    """
    n = x_prev.shape[0]
    eps2 = epsilon * epsilon
    lhs = CompressedColumn.diagonal(np.full(n, eps2))
    rhs = eps2 * np.asarray(x_prev, dtype=float)

    families = [rows for rows in (constraint_rows, energy_rows) if rows]
    matrices = [assemble_rows(rows, n) for rows in families]

    if pool is None:
        products = [(matrix.transpose_multiply_self(), matrix.transpose_multiply(vector))
                    for matrix, vector in matrices]
    else:
        pending = [(pool.apply_async(matrix.transpose_multiply_self),
                    pool.apply_async(matrix.transpose_multiply, (vector,)))
                   for matrix, vector in matrices]
        products = [(normal.get(), projected.get()) for normal, projected in pending]

    # Summation order is fixed so both paths give identical sums.
    for normal, projected in products:
        lhs = lhs + normal
        rhs = rhs + projected.to_array()

    return lhs, rhs
