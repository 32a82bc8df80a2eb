# tests/test_cholesky.py
"""
CHOLESKY TESTS: Factor, Solve, and Refuse Indefinite Matrices
=============================================================
"""

import numpy as np
import pytest
import scipy.linalg

from mini_gpa.linalg.cholesky import factorize
from mini_gpa.linalg.compressed import CompressedColumn, CompressedRow
from mini_gpa.linalg.errors import NotPositiveDefiniteError, ShapeError
from mini_gpa.linalg.vectors import DenseVector, SparseVector


def spd_matrix(size: int, seed: int, density: float = 0.3) -> np.ndarray:
    """Sparse-ish symmetric positive-definite matrix AᵗA + I."""
    rng = np.random.default_rng(seed)
    a = rng.standard_normal((size + 2, size))
    a[rng.random(a.shape) > density] = 0.0
    return a.T @ a + np.eye(size)


def test_identity_solve_returns_rhs_exactly():
    b = np.array([1.5, -2.0, 0.0, 7.25])
    x = CompressedColumn.identity(4).solve_cholesky(DenseVector(b))
    assert isinstance(x, DenseVector)
    np.testing.assert_array_equal(x.to_array(), b)


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_solution_matches_dense_solve(seed):
    dense = spd_matrix(8, seed)
    b = np.arange(8, dtype=float) - 3.0
    x = CompressedColumn.from_dense(dense).solve_cholesky(b)
    np.testing.assert_allclose(x.to_array(), np.linalg.solve(dense, b), rtol=1e-9, atol=1e-10)


def test_factor_matches_scipy_cholesky():
    dense = spd_matrix(6, seed=4)
    factor = factorize(CompressedColumn.from_dense(dense))
    np.testing.assert_allclose(factor.to_dense(), scipy.linalg.cholesky(dense, lower=True),
                               atol=1e-12)


def test_small_regularisation_still_factors():
    """ε²I with ε = 1e-4 must not trip the pivot check."""
    x = CompressedColumn.diagonal([1e-8, 1e-8, 1e-8]).solve_cholesky([1e-8, 2e-8, 0.0])
    np.testing.assert_allclose(x.to_array(), [1.0, 2.0, 0.0])


def test_sparse_and_row_layout_rhs():
    dense = spd_matrix(5, seed=5)
    b = SparseVector(5, {1: 2.0, 4: -1.0})
    x = CompressedRow.from_dense(dense).solve_cholesky(b)
    np.testing.assert_allclose(x.to_array(), np.linalg.solve(dense, b.to_array()), atol=1e-10)


def test_indefinite_matrix_raises():
    matrix = CompressedColumn.from_dense([[1.0, 2.0], [2.0, 1.0]])
    with pytest.raises(NotPositiveDefiniteError) as info:
        matrix.solve_cholesky([1.0, 1.0])
    assert info.value.column == 1
    assert info.value.pivot == pytest.approx(-3.0)


def test_singular_matrix_raises():
    matrix = CompressedColumn.from_dense([[1.0, 1.0], [1.0, 1.0]])
    with pytest.raises(ArithmeticError):
        matrix.solve_cholesky([1.0, 1.0])


def test_missing_diagonal_raises():
    matrix = CompressedColumn.from_dense([[1.0, 0.0], [0.0, 0.0]])
    with pytest.raises(NotPositiveDefiniteError):
        factorize(matrix)


def test_shape_checks():
    with pytest.raises(ShapeError):
        CompressedColumn.zero(2, 3).solve_cholesky([1.0, 2.0])
    with pytest.raises(ShapeError):
        CompressedColumn.identity(3).solve_cholesky([1.0, 2.0])
