# tests/test_compressed.py
"""
COMPRESSED MATRIX TESTS: CSC / CSR Storage and Arithmetic
=========================================================

Every operation is checked against the dense numpy result of the same
computation. If a sparse result and a dense result disagree, the sparse
bookkeeping has a bug.
"""

import numpy as np
import pytest
import scipy.sparse

from mini_gpa.linalg.compressed import CompressedColumn, CompressedRow
from mini_gpa.linalg.errors import ShapeError, SingularityError, UnsupportedOperationError
from mini_gpa.linalg.triplets import TripletStore
from mini_gpa.linalg.vectors import DenseVector, SparseVector


def random_sparse(rows: int, cols: int, density: float, seed: int) -> np.ndarray:
    """Dense array with roughly ``density`` nonzeros, for comparisons."""
    rng = np.random.default_rng(seed)
    dense = rng.standard_normal((rows, cols))
    dense[rng.random((rows, cols)) > density] = 0.0
    return dense


# =============================================================================
# CONSTRUCTION AND ACCESS
# =============================================================================

def test_at_reads_column_slices():
    """2x3 matrix [[1, 2, 3], [5, 6, 7]] stored column by column."""
    A = CompressedColumn.from_arrays(
        2, 3, [0, 2, 4, 6], [0, 1, 0, 1, 0, 1], [1.0, 5.0, 2.0, 6.0, 3.0, 7.0]
    )
    assert A.at(0, 1) == 2.0
    assert A.at(1, 2) == 7.0
    assert A.shape == (2, 3)
    assert A.nnz == 6
    np.testing.assert_array_equal(A.to_dense(), [[1.0, 2.0, 3.0], [5.0, 6.0, 7.0]])


def test_unsorted_rows_inside_a_column_are_allowed():
    A = CompressedColumn.from_arrays(3, 1, [0, 2], [2, 0], [4.0, 1.0])
    assert A.at(0, 0) == 1.0
    assert A.at(1, 0) == 0.0
    assert A.at(2, 0) == 4.0


@pytest.mark.parametrize("pointers, indices, values", [
    ([0, 1], [0], [1.0]),                   # wrong pointer count
    ([1, 1, 1], [0], [1.0]),                # does not start at 0
    ([0, 2, 1], [0, 1], [1.0, 2.0]),        # decreasing
    ([0, 1, 2], [0, 5], [1.0, 2.0]),        # row out of range
    ([0, 2, 2], [1, 1], [1.0, 2.0]),        # duplicate entry in a column
    ([0, 1, 2], [0, 1], [1.0]),             # value count mismatch
])
def test_malformed_arrays_are_rejected(pointers, indices, values):
    with pytest.raises(ShapeError):
        CompressedColumn.from_arrays(2, 2, pointers, indices, values)


def test_at_out_of_range_raises():
    with pytest.raises(ShapeError):
        CompressedColumn.identity(2).at(2, 0)


def test_arrays_are_read_only():
    A = CompressedColumn.identity(3)
    with pytest.raises(ValueError):
        A.values[0] = 5.0


def test_triplet_round_trip_matches_dense_source():
    dense = random_sparse(5, 4, 0.4, seed=1)
    store = TripletStore()
    for (i, j), value in np.ndenumerate(dense):
        if value != 0.0:
            # Split every entry in two to exercise duplicate summation
            store.add(0.25 * value, i, j)
            store.add(0.75 * value, i, j)

    A = CompressedColumn.from_triplets(5, 4, store)
    np.testing.assert_allclose(A.to_dense(), dense)

    R = CompressedRow.from_triplets(5, 4, store)
    np.testing.assert_allclose(R.to_dense(), dense)


def test_from_triplets_rejects_out_of_shape_entries():
    store = TripletStore([(1.0, 3, 0)])
    with pytest.raises(ShapeError):
        CompressedColumn.from_triplets(2, 2, store)


def test_zero_and_identity():
    Z = CompressedColumn.zero(3, 2)
    assert Z.nnz == 0
    assert Z.shape == (3, 2)
    np.testing.assert_array_equal(CompressedRow.identity(3).to_dense(), np.eye(3))


def test_scipy_interchange():
    dense = random_sparse(6, 5, 0.3, seed=2)
    A = CompressedColumn.from_dense(dense)

    S = A.to_scipy()
    assert scipy.sparse.issparse(S)
    np.testing.assert_allclose(S.toarray(), dense)

    back = CompressedRow.from_scipy(S)
    np.testing.assert_allclose(back.to_dense(), dense)
    assert back == A


# =============================================================================
# ARITHMETIC
# =============================================================================

def test_addition_is_entrywise():
    a = random_sparse(4, 5, 0.5, seed=3)
    b = random_sparse(4, 5, 0.5, seed=4)
    A, B = CompressedColumn.from_dense(a), CompressedColumn.from_dense(b)

    C = A + B
    for i in range(4):
        for j in range(5):
            assert C.at(i, j) == pytest.approx(A.at(i, j) + B.at(i, j))
    np.testing.assert_allclose((A - B).to_dense(), a - b)


def test_subtracting_itself_leaves_no_entries():
    A = CompressedColumn.from_dense(random_sparse(3, 3, 0.6, seed=5))
    assert (A - A).nnz == 0


def test_shape_mismatch_raises():
    with pytest.raises(ShapeError):
        CompressedColumn.identity(2) + CompressedColumn.identity(3)
    with pytest.raises(ShapeError):
        CompressedColumn.zero(2, 3) @ CompressedColumn.zero(2, 3)
    with pytest.raises(ShapeError):
        CompressedColumn.identity(2) @ DenseVector([1.0, 2.0, 3.0])


def test_mixed_layout_addition_keeps_left_layout():
    a = random_sparse(3, 4, 0.5, seed=6)
    b = random_sparse(3, 4, 0.5, seed=7)
    C = CompressedColumn.from_dense(a) + CompressedRow.from_dense(b)
    R = CompressedRow.from_dense(a) + CompressedColumn.from_dense(b)
    assert isinstance(C, CompressedColumn)
    assert isinstance(R, CompressedRow)
    np.testing.assert_allclose(C.to_dense(), a + b)
    np.testing.assert_allclose(R.to_dense(), a + b)


@pytest.mark.parametrize("layout", [CompressedColumn, CompressedRow])
def test_matrix_product_matches_dense(layout):
    a = random_sparse(5, 6, 0.4, seed=8)
    b = random_sparse(6, 3, 0.4, seed=9)
    C = layout.from_dense(a) @ layout.from_dense(b)
    assert isinstance(C, layout)
    np.testing.assert_allclose(C.to_dense(), a @ b, atol=1e-12)


def test_identity_is_neutral():
    A = CompressedColumn.from_dense(random_sparse(4, 3, 0.5, seed=10))
    assert A @ CompressedColumn.identity(3) == A


def test_scalar_multiplication_and_division():
    a = random_sparse(3, 3, 0.6, seed=11)
    A = CompressedColumn.from_dense(a)
    np.testing.assert_allclose((2.5 * A).to_dense(), 2.5 * a)
    np.testing.assert_allclose((A / 4.0).to_dense(), a / 4.0)
    np.testing.assert_allclose((-A).to_dense(), -a)
    assert (A * 0.0).nnz == 0
    with pytest.raises(SingularityError):
        A / 0.0


@pytest.mark.parametrize("layout", [CompressedColumn, CompressedRow])
def test_vector_products_match_dense(layout):
    a = random_sparse(5, 4, 0.5, seed=12)
    A = layout.from_dense(a)
    x = np.array([1.0, 0.0, -2.0, 0.5])
    y = np.array([0.0, 3.0, 0.0, 1.0, -1.0])

    dense_result = A @ DenseVector(x)
    assert isinstance(dense_result, DenseVector)
    np.testing.assert_allclose(dense_result.to_array(), a @ x)

    sparse_result = A @ SparseVector(4, {0: 1.0, 2: -2.0, 3: 0.5})
    assert isinstance(sparse_result, SparseVector)
    np.testing.assert_allclose(sparse_result.to_array(), a @ x)

    np.testing.assert_allclose(A.transpose_multiply(DenseVector(y)).to_array(), a.T @ y)
    np.testing.assert_allclose(
        A.transpose_multiply(SparseVector(5, {1: 3.0, 3: 1.0, 4: -1.0})).to_array(), a.T @ y
    )


def test_row_times_sparse_vector_reads_only_its_nonzeros():
    """CSR·sparse and CSCᵗ·sparse pick the entries at the vector's nonzeros."""
    # Column indices stored out of order inside each row
    A = CompressedRow.from_arrays(3, 4, [0, 3, 4, 6], [3, 0, 2, 1, 2, 0],
                                  [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    a = A.to_dense()

    x = SparseVector(4, {2: 2.0, 3: -1.0})
    result = A @ x
    assert isinstance(result, SparseVector)
    np.testing.assert_allclose(result.to_array(), a @ x.to_array())
    assert result.nnz == 2    # row 1 only stores column 1

    np.testing.assert_allclose(
        A.transpose().transpose_multiply(x).to_array(), a @ x.to_array()
    )

    # Nonzeros that meet no stored entry, and an empty vector
    assert (A @ SparseVector(4, {1: 0.0})).nnz == 0
    assert (CompressedRow.from_arrays(2, 2, [0, 1, 1], [0], [1.0]) @ SparseVector(2, {1: 5.0})).nnz == 0


def test_unsupported_operand_raises():
    with pytest.raises(UnsupportedOperationError):
        CompressedColumn.identity(2).multiply("not a matrix")


# =============================================================================
# TRANSPOSE AND LAYOUT CONVERSION
# =============================================================================

def test_transpose_relabels_layout():
    a = random_sparse(3, 5, 0.5, seed=13)
    A = CompressedColumn.from_dense(a)

    T = A.transpose()
    assert isinstance(T, CompressedRow)
    assert T.shape == (5, 3)
    np.testing.assert_array_equal(T.to_dense(), a.T)
    # Same arrays, no copy
    assert T.row_pointers is A.column_pointers


def test_layout_conversion_round_trip():
    a = random_sparse(4, 6, 0.4, seed=14)
    A = CompressedColumn.from_dense(a)
    R = A.to_row()
    assert isinstance(R, CompressedRow)
    np.testing.assert_array_equal(R.to_dense(), a)
    assert R.to_column() == A


@pytest.mark.parametrize("layout", [CompressedColumn, CompressedRow])
def test_transpose_multiply_self(layout):
    a = random_sparse(6, 4, 0.5, seed=15)
    N = layout.from_dense(a).transpose_multiply_self()
    assert isinstance(N, layout)
    np.testing.assert_allclose(N.to_dense(), a.T @ a, atol=1e-12)
    np.testing.assert_allclose(N.to_dense(), N.to_dense().T, atol=1e-12)


def test_nonzeros_iterates_every_entry():
    A = CompressedColumn.from_arrays(2, 2, [0, 1, 2], [1, 0], [3.0, 4.0])
    assert sorted(A.nonzeros()) == [(0, 1, 4.0), (1, 0, 3.0)]
