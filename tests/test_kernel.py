# tests/test_kernel.py
"""
KERNEL (NULL SPACE) TESTS
=========================

For every matrix we check three things:
1. COUNT: number of kernel vectors = columns − rank
2. NULL: A·k ≈ 0 for each returned vector k
3. SPAN: the returned vectors span the same space as a known basis

Vectors come out of Gram-Schmidt scaled by 1/|v|², so the span is
compared, never the raw vectors.
"""

import numpy as np
import pytest
import scipy.linalg

from mini_gpa.linalg.compressed import CompressedColumn, CompressedRow
from mini_gpa.linalg.nullspace import row_reduce
from mini_gpa.linalg.vectors import dot


def assert_same_span(kernel, expected):
    basis = np.array([k.to_array() for k in kernel])
    expected = np.atleast_2d(np.asarray(expected, dtype=float))
    assert basis.shape[0] == expected.shape[0]
    assert np.linalg.matrix_rank(np.vstack([basis, expected]), tol=1e-8) == expected.shape[0]


def assert_in_null_space(matrix, kernel):
    dense = matrix.to_dense()
    for k in kernel:
        np.testing.assert_allclose(dense @ k.to_array(), 0.0, atol=1e-9)


KNOWN_CASES = [
    pytest.param(
        # Stored columns [1,1,1], [2,0,0], [3,3,3]
        (3, 3, [0, 3, 6, 9], [0, 1, 2, 0, 1, 2, 0, 1, 2],
         [1.0, 1.0, 1.0, 2.0, 0.0, 0.0, 3.0, 3.0, 3.0]),
        [[-3.0, 0.0, 1.0]],
        id="square-rank-2",
    ),
    pytest.param(
        (6, 6, [0, 6, 12, 18, 24, 26, 32],
         [0, 1, 2, 3, 4, 5, 0, 1, 2, 3, 4, 5, 0, 1, 2, 3, 4, 5, 0, 1, 2, 3, 4, 5, 0, 2,
          0, 1, 2, 3, 4, 5],
         [2.0, 1.0, 3.0, 1.0, 1.0, 1.0, 2.0, 1.0, 3.0, 1.0, 1.0, 1.0,
          -4.0, -2.0, -6.0, -2.0, -2.0, -2.0, 3.0, -3.0, -3.0, -3.0, -3.0, -3.0,
          -9.0, -6.0, 1.0, 2.0, 2.0, 2.0, 2.0, 2.0]),
        [[-1.0, 1.0, 0.0, 0.0, 0.0, 0.0],
         [2.0, 0.0, 1.0, 0.0, 0.0, 0.0],
         [3.0, 0.0, 0.0, 1.0, 1.0, 0.0]],
        id="square-rank-3",
    ),
    pytest.param(
        (4, 3, [0, 2, 4, 8], [0, 2, 1, 3, 0, 1, 2, 3], [1.0] * 8),
        [[1.0, 1.0, -1.0]],
        id="tall",
    ),
    pytest.param(
        (6, 5, [0, 5, 10, 13, 16, 21],
         [0, 2, 3, 4, 5, 0, 2, 3, 4, 5, 1, 3, 5, 1, 3, 5, 0, 2, 3, 4, 5],
         [1.0, 4.0, 1.0, 2.0, 1.0, 1.0, 2.0, 1.0, 2.0, 1.0, 1.0, 1.0, 2.0,
          -2.0, -2.0, -4.0, 1.0, 3.0, 1.0, 2.0, 1.0]),
        [[0.0, 0.0, 2.0, 1.0, 0.0],
         [-0.5, -0.5, 0.0, 0.0, 1.0]],
        id="tall-rank-3",
    ),
    pytest.param(
        (2, 4, [0, 2, 3, 5, 5], [0, 1, 0, 0, 1], [1.0, 2.0, 3.0, 1.0, 2.0]),
        [[-1.0, 0.0, 1.0, 0.0],
         [0.0, 0.0, 0.0, 1.0]],
        id="wide",
    ),
]


@pytest.mark.parametrize("arrays, expected", KNOWN_CASES)
def test_kernel_of_known_matrices(arrays, expected):
    matrix = CompressedColumn.from_arrays(*arrays)
    kernel = matrix.kernel()

    assert_in_null_space(matrix, kernel)
    assert_same_span(kernel, expected)


def test_kernel_vectors_are_orthogonal():
    matrix = CompressedColumn.from_arrays(*KNOWN_CASES[1].values[0])
    kernel = matrix.kernel()
    for i in range(len(kernel)):
        for j in range(i + 1, len(kernel)):
            assert dot(kernel[i], kernel[j]) == pytest.approx(0.0, abs=1e-12)


def test_full_rank_has_empty_kernel():
    matrix = CompressedColumn.from_dense([[2.0, 1.0], [1.0, 3.0], [0.0, 1.0]])
    assert matrix.kernel() == []


def test_zero_matrix_kernel_is_standard_basis():
    kernel = CompressedColumn.zero(2, 3).kernel()
    np.testing.assert_array_equal(np.array([k.to_array() for k in kernel]), np.eye(3))


def test_row_layout_gives_same_kernel():
    dense = np.array([[1.0, 2.0, 3.0], [1.0, 0.0, 3.0], [1.0, 0.0, 3.0]])
    kernel = CompressedRow.from_dense(dense).kernel()
    assert_same_span(kernel, [[-3.0, 0.0, 1.0]])


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_dimension_matches_scipy_null_space(seed):
    """Rank-deficient random matrices: same null-space dimension and span as scipy."""
    rng = np.random.default_rng(seed)
    left = rng.integers(-3, 4, size=(6, 3)).astype(float)
    right = rng.integers(-3, 4, size=(3, 5)).astype(float)
    dense = left @ right

    kernel = CompressedColumn.from_dense(dense).kernel()
    reference = scipy.linalg.null_space(dense)

    assert len(kernel) == reference.shape[1]
    if kernel:
        assert_same_span(kernel, reference.T)


def test_row_reduce_identifies_pivots():
    reduced, pivots = row_reduce(np.array([[0.0, 2.0, 4.0], [0.0, 1.0, 2.0]]), 1e-10)
    assert pivots == [1]
    np.testing.assert_allclose(reduced[0], [0.0, 1.0, 2.0])
    np.testing.assert_allclose(reduced[1], [0.0, 0.0, 0.0])
