# mini_gpa/linalg/compressed.py
"""
COMPRESSED SPARSE MATRICES: Column-Major and Row-Major Twins
============================================================

PURPOSE:
--------
Storage and arithmetic for large, mostly-zero matrices.

    CompressedColumn (CSC)   column j lives in values[column_pointers[j]:column_pointers[j+1]]
                             with its row numbers in row_indices[...] (same slice)
    CompressedRow    (CSR)   the same layout, with rows and columns swapped

Both are IMMUTABLE: every operation returns a new matrix and the backing
numpy arrays are read-only. Inside a column (or row) the entries need not
be sorted, but one (row, column) pair is never stored twice.

The two kinds share one implementation written in terms of the MAJOR axis
(columns for CSC, rows for CSR) and the MINOR axis (the other one):

    transpose()            O(1): the CSC of Aᵗ IS the CSR of A, arrays shared
    to_row() / to_column() O(nnz): the one real reconstruction (counting sort)

USAGE:
------
    A = CompressedColumn.from_arrays(2, 3, [0, 2, 4, 6], [0, 1, 0, 1, 0, 1],
                                     [1.0, 5.0, 2.0, 6.0, 3.0, 7.0])
    A.at(0, 1)                      # → 2.0
    N = A.transpose_multiply_self() # AᵗA, symmetric
    y = A @ DenseVector([1.0, 0.0, 0.0])
"""

from typing import Dict, Iterator, List, Tuple, Union

import numpy as np
import scipy.sparse

from . import cholesky, nullspace
from .errors import ShapeError, SingularityError, unsupported
from .triplets import TripletStore
from .vectors import DenseVector, SparseVector, to_sparse


_SCALARS = (int, float, np.integer, np.floating)


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _majors_of(pointers: np.ndarray) -> np.ndarray:
    """Major index of every stored entry (expands the pointer array)."""
    return np.repeat(np.arange(pointers.shape[0] - 1, dtype=np.int64), np.diff(pointers))


def _swap_axes(
    major_count: int, minor_count: int,
    pointers: np.ndarray, indices: np.ndarray, values: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Re-compress the same entries along the other axis.

    Stable counting sort on the minor index: entries land grouped by
    their old minor index, with old major indices increasing inside
    each group.
    """
    counts = np.bincount(indices, minlength=minor_count)
    new_pointers = np.zeros(minor_count + 1, dtype=np.int64)
    np.cumsum(counts, out=new_pointers[1:])
    order = np.argsort(indices, kind='stable')
    return new_pointers, _majors_of(pointers)[order], values[order]


def _build_from_slices(
    pointers: List[int], index_chunks: List[np.ndarray], value_chunks: List[np.ndarray]
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    if index_chunks:
        indices = np.concatenate(index_chunks).astype(np.int64)
        values = np.concatenate(value_chunks).astype(float)
    else:
        indices = np.zeros(0, dtype=np.int64)
        values = np.zeros(0, dtype=float)
    return np.asarray(pointers, dtype=np.int64), indices, values


class _CompressedMatrix:
    """
    Shared implementation of CompressedColumn / CompressedRow.

    Subclasses fix the orientation through ``_BY_COLUMN`` and expose the
    backing arrays under their conventional names.
    """

    _BY_COLUMN = True

    def __init__(self, row_count: int, column_count: int, pointers, indices, values):
        if row_count < 0 or column_count < 0:
            raise ShapeError(f"Matrix dimensions must be non-negative, got {row_count}x{column_count}.")
        self._row_count = int(row_count)
        self._column_count = int(column_count)

        pointers = np.array(pointers, dtype=np.int64).reshape(-1)
        indices = np.array(indices, dtype=np.int64).reshape(-1)
        values = np.array(values, dtype=float).reshape(-1)
        major_count, minor_count = self._axes()

        if pointers.shape[0] != major_count + 1:
            raise ShapeError(
                f"Expected {major_count + 1} pointers for {major_count} "
                f"{self._major_name()}s, got {pointers.shape[0]}."
            )
        if pointers[0] != 0 or np.any(np.diff(pointers) < 0):
            raise ShapeError("Pointers must start at 0 and be non-decreasing.")
        if pointers[-1] != indices.shape[0] or indices.shape[0] != values.shape[0]:
            raise ShapeError(
                f"Pointer end ({pointers[-1]}), index count ({indices.shape[0]}) and "
                f"value count ({values.shape[0]}) must agree."
            )
        if indices.size and (indices.min() < 0 or indices.max() >= minor_count):
            raise ShapeError(
                f"A {self._minor_name()} index is out of range [0, {minor_count})."
            )
        if indices.size:
            keys = _majors_of(pointers) * max(minor_count, 1) + indices
            if np.unique(keys).shape[0] != keys.shape[0]:
                raise ShapeError(f"A {self._major_name()} stores the same entry twice.")

        self._pointers = _readonly(pointers)
        self._indices = _readonly(indices)
        self._values = _readonly(values)

    @classmethod
    def _trusted(cls, row_count, column_count, pointers, indices, values):
        # Arrays already satisfy every invariant; skip validation.
        matrix = cls.__new__(cls)
        matrix._row_count = int(row_count)
        matrix._column_count = int(column_count)
        matrix._pointers = _readonly(pointers)
        matrix._indices = _readonly(indices)
        matrix._values = _readonly(values)
        return matrix

    @classmethod
    def _from_axes(cls, major_count, minor_count, pointers, indices, values):
        if cls._BY_COLUMN:
            return cls._trusted(minor_count, major_count, pointers, indices, values)
        return cls._trusted(major_count, minor_count, pointers, indices, values)

    def _axes(self) -> Tuple[int, int]:
        if self._BY_COLUMN:
            return self._column_count, self._row_count
        return self._row_count, self._column_count

    def _major_name(self) -> str:
        return 'column' if self._BY_COLUMN else 'row'

    def _minor_name(self) -> str:
        return 'row' if self._BY_COLUMN else 'column'

    def _slice(self, major: int) -> Tuple[np.ndarray, np.ndarray]:
        lo, hi = self._pointers[major], self._pointers[major + 1]
        return self._indices[lo:hi], self._values[lo:hi]

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def from_arrays(cls, row_count: int, column_count: int, pointers, indices, values):
        """Build from the canonical compressed arrays (validated)."""
        return cls(row_count, column_count, pointers, indices, values)

    @classmethod
    def zero(cls, row_count: int, column_count: int):
        major_count = column_count if cls._BY_COLUMN else row_count
        return cls(row_count, column_count, np.zeros(major_count + 1, dtype=np.int64), [], [])

    @classmethod
    def identity(cls, size: int):
        return cls.diagonal(np.ones(size, dtype=float))

    @classmethod
    def diagonal(cls, values):
        """Square matrix with ``values`` on its diagonal (zeros are not stored)."""
        values = np.asarray(values, dtype=float)
        size = values.shape[0]
        keep = np.flatnonzero(values)
        pointers = np.zeros(size + 1, dtype=np.int64)
        pointers[keep + 1] = 1
        np.cumsum(pointers, out=pointers)
        return cls._trusted(size, size, pointers, keep.astype(np.int64), values[keep].copy())

    @classmethod
    def from_triplets(cls, row_count: int, column_count: int, store: TripletStore):
        """
        Compress the entries of a TripletStore.

        Duplicate contributions were already summed by the store; exact
        zeros are not stored. Entries outside the shape raise ShapeError.
        """
        majors, minors, values = [], [], []
        for row, column, value in store:
            if row >= row_count or column >= column_count:
                raise ShapeError(
                    f"Triplet ({row}, {column}) lies outside a {row_count}x{column_count} matrix."
                )
            if value == 0.0:
                continue
            if cls._BY_COLUMN:
                majors.append(column)
                minors.append(row)
            else:
                majors.append(row)
                minors.append(column)
            values.append(value)

        major_count = column_count if cls._BY_COLUMN else row_count
        majors = np.asarray(majors, dtype=np.int64)
        minors = np.asarray(minors, dtype=np.int64)
        values = np.asarray(values, dtype=float)

        order = np.lexsort((minors, majors))
        pointers = np.zeros(major_count + 1, dtype=np.int64)
        np.cumsum(np.bincount(majors, minlength=major_count), out=pointers[1:])
        return cls._trusted(row_count, column_count, pointers, minors[order], values[order])

    @classmethod
    def from_dense(cls, array):
        array = np.asarray(array, dtype=float)
        if array.ndim != 2:
            raise ShapeError(f"Expected a 2-D array, got shape {array.shape}.")
        store = TripletStore()
        for row, column in zip(*np.nonzero(array)):
            store.add(array[row, column], int(row), int(column))
        return cls.from_triplets(array.shape[0], array.shape[1], store)

    @classmethod
    def from_scipy(cls, matrix):
        """Import a ``scipy.sparse`` matrix (duplicates summed)."""
        converted = matrix.tocsc() if cls._BY_COLUMN else matrix.tocsr()
        converted = converted.copy()
        converted.sum_duplicates()
        return cls(converted.shape[0], converted.shape[1],
                   converted.indptr, converted.indices, converted.data)

    def to_scipy(self):
        layout = scipy.sparse.csc_matrix if self._BY_COLUMN else scipy.sparse.csr_matrix
        return layout(
            (self._values.copy(), self._indices.copy(), self._pointers.copy()),
            shape=self.shape,
        )

    def to_dense(self) -> np.ndarray:
        dense = np.zeros(self.shape, dtype=float)
        majors = _majors_of(self._pointers)
        if self._BY_COLUMN:
            dense[self._indices, majors] = self._values
        else:
            dense[majors, self._indices] = self._values
        return dense

    # =========================================================================
    # ACCESS
    # =========================================================================

    @property
    def row_count(self) -> int:
        return self._row_count

    @property
    def column_count(self) -> int:
        return self._column_count

    @property
    def shape(self) -> Tuple[int, int]:
        return self._row_count, self._column_count

    @property
    def nnz(self) -> int:
        return int(self._values.shape[0])

    @property
    def values(self) -> np.ndarray:
        return self._values

    def at(self, row: int, column: int) -> float:
        """Entry (row, column), 0 when not stored."""
        if not (0 <= row < self._row_count and 0 <= column < self._column_count):
            raise ShapeError(
                f"Index ({row}, {column}) is out of range for a "
                f"{self._row_count}x{self._column_count} matrix."
            )
        major, minor = (column, row) if self._BY_COLUMN else (row, column)
        indices, values = self._slice(major)
        hit = np.flatnonzero(indices == minor)
        return float(values[hit[0]]) if hit.size else 0.0

    def nonzeros(self) -> Iterator[Tuple[int, int, float]]:
        """Yield every stored (row, column, value) in storage order."""
        majors = _majors_of(self._pointers)
        for major, minor, value in zip(majors, self._indices, self._values):
            if self._BY_COLUMN:
                yield int(minor), int(major), float(value)
            else:
                yield int(major), int(minor), float(value)

    def _entries(self) -> Dict[Tuple[int, int], float]:
        return {(r, c): v for r, c, v in self.nonzeros() if v != 0.0}

    def __eq__(self, other) -> bool:
        if not isinstance(other, _CompressedMatrix):
            return NotImplemented
        return self.shape == other.shape and self._entries() == other._entries()

    __hash__ = None

    def __repr__(self) -> str:
        return (f"{type(self).__name__}({self._row_count}x{self._column_count}, "
                f"nnz={self.nnz})")

    # =========================================================================
    # ARITHMETIC
    # =========================================================================

    def _same_kind(self, other):
        # Mixed CSC/CSR operands are brought to the left operand's layout.
        if isinstance(other, type(self)):
            return other
        if isinstance(other, _CompressedMatrix):
            return other.to_column() if self._BY_COLUMN else other.to_row()
        return None

    def _merge(self, other, sign: float, operation: str):
        right = self._same_kind(other)
        if right is None:
            raise unsupported(operation, self, other)
        if self.shape != right.shape:
            raise ShapeError(
                f"The {operation} needs matrices of equal shape, got {self.shape} and {right.shape}."
            )
        major_count, _ = self._axes()
        pointers, index_chunks, value_chunks = [0], [], []
        for major in range(major_count):
            li, lv = self._slice(major)
            ri, rv = right._slice(major)
            indices = np.concatenate((li, ri))
            if indices.size == 0:
                pointers.append(pointers[-1])
                continue
            values = np.concatenate((lv, sign * rv))
            unique, inverse = np.unique(indices, return_inverse=True)
            sums = np.zeros(unique.shape[0], dtype=float)
            np.add.at(sums, inverse, values)
            keep = sums != 0.0
            index_chunks.append(unique[keep])
            value_chunks.append(sums[keep])
            pointers.append(pointers[-1] + int(keep.sum()))
        return self._from_axes(major_count, self._axes()[1],
                               *_build_from_slices(pointers, index_chunks, value_chunks))

    def add(self, other):
        return self._merge(other, 1.0, 'addition')

    def subtract(self, other):
        return self._merge(other, -1.0, 'subtraction')

    def negate(self):
        return self._trusted(self._row_count, self._column_count,
                             self._pointers, self._indices, -self._values)

    def _scale(self, factor: float):
        if factor == 0.0:
            return self.zero(self._row_count, self._column_count)
        return self._trusted(self._row_count, self._column_count,
                             self._pointers, self._indices, self._values * factor)

    def divide(self, divisor: float):
        if divisor == 0.0:
            raise SingularityError("Can not divide a matrix by zero.")
        return self._scale(1.0 / float(divisor))

    def _product(self, outer, inner, major_count: int, minor_count: int):
        """
        Scatter product: output major j = Σ v·inner[k] over (k, v) in outer[j].

        A dense work array accumulates one output major at a time and is
        reset over the touched indices only.
        """
        work = np.zeros(minor_count, dtype=float)
        pointers, index_chunks, value_chunks = [0], [], []
        for major in range(major_count):
            touched = []
            outer_indices, outer_values = outer._slice(major)
            for k, v in zip(outer_indices, outer_values):
                inner_indices, inner_values = inner._slice(k)
                if inner_indices.size == 0:
                    continue
                work[inner_indices] += v * inner_values
                touched.append(inner_indices)
            if not touched:
                pointers.append(pointers[-1])
                continue
            indices = np.unique(np.concatenate(touched))
            values = work[indices]
            work[indices] = 0.0
            keep = values != 0.0
            index_chunks.append(indices[keep])
            value_chunks.append(values[keep])
            pointers.append(pointers[-1] + int(keep.sum()))
        return self._from_axes(major_count, minor_count,
                               *_build_from_slices(pointers, index_chunks, value_chunks))

    def _multiply_matrix(self, other):
        right = self._same_kind(other)
        if self._column_count != right.row_count:
            raise ShapeError(
                f"Inner dimensions differ: {self.shape} times {right.shape}."
            )
        if self._BY_COLUMN:
            # C[:, j] = Σ B[k, j]·A[:, k]
            return self._product(right, self, right.column_count, self._row_count)
        # C[i, :] = Σ A[i, k]·B[k, :]
        return self._product(self, right, self._row_count, right.column_count)

    def _scatter(self, vector):
        """result[minor] += value·vector[major]  (size: minor count)."""
        major_count, minor_count = self._axes()
        result = np.zeros(minor_count, dtype=float)
        if isinstance(vector, DenseVector):
            x = vector.to_array()
            np.add.at(result, self._indices, self._values * x[_majors_of(self._pointers)])
            return DenseVector(result)
        # Only the columns selected by the vector's nonzeros are visited.
        for major, xj in vector.nonzeros():
            indices, values = self._slice(major)
            result[indices] += xj * values
        return to_sparse(DenseVector(result))

    def _gather(self, vector):
        """result[major] += value·vector[minor]  (size: major count)."""
        major_count, _ = self._axes()
        result = np.zeros(major_count, dtype=float)
        majors = _majors_of(self._pointers)
        if isinstance(vector, DenseVector):
            x = vector.to_array()
            np.add.at(result, majors, self._values * x[self._indices])
            return DenseVector(result)
        # Only stored entries whose minor index is a nonzero of the vector contribute.
        nonzeros = list(vector.nonzeros())
        positions = np.array([index for index, _ in nonzeros], dtype=np.int64)
        x = np.array([value for _, value in nonzeros], dtype=float)
        hit = np.isin(self._indices, positions)
        picked = self._indices[hit]
        np.add.at(result, majors[hit], self._values[hit] * x[np.searchsorted(positions, picked)])
        return to_sparse(DenseVector(result))

    def _multiply_vector(self, vector):
        if vector.size != self._column_count:
            raise ShapeError(
                f"Can not multiply a {self._row_count}x{self._column_count} matrix "
                f"by a vector of size {vector.size}."
            )
        return self._scatter(vector) if self._BY_COLUMN else self._gather(vector)

    def transpose_multiply(self, vector):
        """Aᵗ·vector; the result kind follows the vector's kind."""
        if not isinstance(vector, (DenseVector, SparseVector)):
            raise unsupported('transposed product', self, vector)
        if vector.size != self._row_count:
            raise ShapeError(
                f"Can not multiply the transpose of a {self._row_count}x{self._column_count} "
                f"matrix by a vector of size {vector.size}."
            )
        return self._gather(vector) if self._BY_COLUMN else self._scatter(vector)

    def multiply(self, other):
        """
        Product with a matrix, a vector or a scalar.

        Matrix operands give a matrix of this layout; vector operands give
        a vector of the same kind; anything else raises
        UnsupportedOperationError.
        """
        if isinstance(other, _CompressedMatrix):
            return self._multiply_matrix(other)
        if isinstance(other, (DenseVector, SparseVector)):
            return self._multiply_vector(other)
        if isinstance(other, _SCALARS):
            return self._scale(float(other))
        raise unsupported('multiplication', self, other)

    def __add__(self, other):
        if not isinstance(other, _CompressedMatrix):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other):
        if not isinstance(other, _CompressedMatrix):
            return NotImplemented
        return self.subtract(other)

    def __neg__(self):
        return self.negate()

    def __mul__(self, factor):
        if not isinstance(factor, _SCALARS):
            return NotImplemented
        return self._scale(float(factor))

    __rmul__ = __mul__

    def __truediv__(self, divisor):
        if not isinstance(divisor, _SCALARS):
            return NotImplemented
        return self.divide(divisor)

    def __matmul__(self, other):
        if not isinstance(other, (_CompressedMatrix, DenseVector, SparseVector)):
            return NotImplemented
        return self.multiply(other)


class CompressedColumn(_CompressedMatrix):
    """
    Compressed-column (CSC) sparse matrix.

    Parameters:
    -----------
    row_count, column_count : int
        Matrix shape.
    column_pointers : array-like of int, length column_count + 1
        Column j occupies entries column_pointers[j] .. column_pointers[j+1]-1.
    row_indices : array-like of int, length nnz
    values : array-like of float, length nnz

    Examples:
    ---------
    >>> A = CompressedColumn.from_arrays(2, 3, [0, 2, 4, 6], [0, 1, 0, 1, 0, 1],
    ...                                  [1, 5, 2, 6, 3, 7])
    >>> A.at(0, 1)
    2.0
    >>> A.at(1, 2)
    7.0
    """

    _BY_COLUMN = True

    @property
    def column_pointers(self) -> np.ndarray:
        return self._pointers

    @property
    def row_indices(self) -> np.ndarray:
        return self._indices

    def column(self, index: int) -> Tuple[np.ndarray, np.ndarray]:
        """(row_indices, values) of one column, as read-only views."""
        if not 0 <= index < self._column_count:
            raise ShapeError(f"Column {index} is out of range [0, {self._column_count}).")
        return self._slice(index)

    def transpose(self) -> "CompressedRow":
        return CompressedRow._trusted(self._column_count, self._row_count,
                                      self._pointers, self._indices, self._values)

    def to_column(self) -> "CompressedColumn":
        return self

    def to_row(self) -> "CompressedRow":
        pointers, indices, values = _swap_axes(
            self._column_count, self._row_count, self._pointers, self._indices, self._values
        )
        return CompressedRow._trusted(self._row_count, self._column_count, pointers, indices, values)

    def transpose_multiply_self(self) -> "CompressedColumn":
        """AᵗA (the normal-equation matrix), symmetric, column_count square."""
        return self.transpose().to_column().multiply(self)

    def kernel(self) -> List[DenseVector]:
        """Orthogonal basis of the right null space (empty when full rank)."""
        return nullspace.kernel(self)

    def solve_cholesky(self, rhs) -> DenseVector:
        """Solve A·x = rhs for symmetric positive-definite A."""
        if self._row_count != self._column_count:
            raise ShapeError(f"Cholesky needs a square matrix, got {self.shape}.")
        if isinstance(rhs, (DenseVector, SparseVector)):
            rhs = rhs.to_array()
        rhs = np.asarray(rhs, dtype=float)
        if rhs.shape != (self._row_count,):
            raise ShapeError(
                f"Right-hand side of size {rhs.shape[0] if rhs.ndim == 1 else rhs.shape} "
                f"does not match a {self._row_count}x{self._column_count} system."
            )
        return DenseVector(cholesky.factorize(self).solve(rhs))


class CompressedRow(_CompressedMatrix):
    """
    Compressed-row (CSR) sparse matrix: CompressedColumn with the axes swapped.

    Parameters:
    -----------
    row_count, column_count : int
    row_pointers : array-like of int, length row_count + 1
    column_indices : array-like of int, length nnz
    values : array-like of float, length nnz
    """

    _BY_COLUMN = False

    @property
    def row_pointers(self) -> np.ndarray:
        return self._pointers

    @property
    def column_indices(self) -> np.ndarray:
        return self._indices

    def row(self, index: int) -> Tuple[np.ndarray, np.ndarray]:
        """(column_indices, values) of one row, as read-only views."""
        if not 0 <= index < self._row_count:
            raise ShapeError(f"Row {index} is out of range [0, {self._row_count}).")
        return self._slice(index)

    def transpose(self) -> CompressedColumn:
        return CompressedColumn._trusted(self._column_count, self._row_count,
                                         self._pointers, self._indices, self._values)

    def to_row(self) -> "CompressedRow":
        return self

    def to_column(self) -> CompressedColumn:
        pointers, indices, values = _swap_axes(
            self._row_count, self._column_count, self._pointers, self._indices, self._values
        )
        return CompressedColumn._trusted(self._row_count, self._column_count, pointers, indices, values)

    def transpose_multiply_self(self) -> "CompressedRow":
        # Aᵗ of a CSR is a CSC with the same arrays; its CSR form pairs with self.
        return self.transpose().to_row().multiply(self)

    def kernel(self) -> List[DenseVector]:
        return nullspace.kernel(self.to_column())

    def solve_cholesky(self, rhs) -> DenseVector:
        return self.to_column().solve_cholesky(rhs)


CompressedMatrix = Union[CompressedColumn, CompressedRow]
