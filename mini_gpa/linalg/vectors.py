# mini_gpa/linalg/vectors.py
"""
VECTORS: Dense and Sparse Containers
====================================

PURPOSE:
--------
Two fixed-size numeric vector kinds, and nothing else:

    DenseVector   contiguous numpy array, O(1) access, O(size) arithmetic
    SparseVector  index → nonzero value mapping, O(nnz) arithmetic

The set of kinds is CLOSED. Binary operations between any two vectors go
through ``_kinds(left, right)``, which names the pairing explicitly
("dense-dense", "dense-sparse", ...). Every operator matches on that tag
exhaustively; an operand that is neither kind raises
UnsupportedOperationError instead of being silently densified.

Pairing rules:
    dense  ± dense  → DenseVector
    dense  ± sparse → DenseVector
    sparse ± sparse → SparseVector
    dot(·, ·)       → float (sparse operands drive the loop)
"""

import math
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .. import config
from .errors import ShapeError, SingularityError, UnsupportedOperationError, unsupported


class DenseVector:
    """
    A vector storing every component in a contiguous float64 array.

    Parameters:
    -----------
    components : sequence of float or np.ndarray
        Component values; the vector owns a private copy.

    Examples:
    ---------
    >>> v = DenseVector([1.0, 2.0, 2.0])
    >>> v.norm()
    3.0
    >>> (v + v)[2]
    4.0
    """

    # numpy scalars defer to __rmul__ instead of broadcasting over the sequence protocol
    __array_ufunc__ = None

    def __init__(self, components: Union[Sequence[float], np.ndarray]):
        array = np.array(components, dtype=float)
        if array.ndim != 1:
            raise ShapeError(f"A dense vector needs 1-D components, got shape {array.shape}.")
        self._components = array

    @classmethod
    def zero(cls, size: int) -> "DenseVector":
        return cls(np.zeros(size, dtype=float))

    @classmethod
    def standard_vector(cls, size: int, index: int) -> "DenseVector":
        """Unit vector e_index of the given size."""
        _check_index(index, size)
        array = np.zeros(size, dtype=float)
        array[index] = 1.0
        return cls(array)

    @classmethod
    def _wrap(cls, array: np.ndarray) -> "DenseVector":
        # Takes ownership of ``array`` without copying.
        vector = cls.__new__(cls)
        vector._components = array
        return vector

    @property
    def size(self) -> int:
        return self._components.shape[0]

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, index: int) -> float:
        _check_index(index, self.size)
        return float(self._components[index])

    def __setitem__(self, index: int, value: float) -> None:
        _check_index(index, self.size)
        self._components[index] = value

    def __iter__(self) -> Iterator[float]:
        return (float(v) for v in self._components)

    def to_array(self) -> np.ndarray:
        return self._components.copy()

    def squared_norm(self) -> float:
        return float(np.dot(self._components, self._components))

    def norm(self) -> float:
        return math.sqrt(self.squared_norm())

    # ---- operators ----

    def __add__(self, other):
        return add(self, other)

    def __sub__(self, other):
        return subtract(self, other)

    def __neg__(self) -> "DenseVector":
        return DenseVector._wrap(-self._components)

    def __mul__(self, factor: float) -> "DenseVector":
        return _scale_operator(self, factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> "DenseVector":
        return _divide_operator(self, divisor)

    def __eq__(self, other) -> bool:
        if isinstance(other, (DenseVector, SparseVector)):
            return self.size == other.size and np.array_equal(self._components, other.to_array())
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"DenseVector({self._components.tolist()})"


class SparseVector:
    """
    A vector storing only its nonzero components.

    Absent indices read as 0. Writing 0 removes the entry, so the stored
    mapping never holds explicit zeros.

    Parameters:
    -----------
    size : int
        Number of components.
    components : dict, optional
        Mapping index → value (zeros are dropped).
    """

    __array_ufunc__ = None

    def __init__(self, size: int, components: Optional[Dict[int, float]] = None):
        if size < 0:
            raise ShapeError(f"Vector size must be non-negative, got {size}.")
        self._size = int(size)
        self._components: Dict[int, float] = {}
        if components:
            for index, value in components.items():
                _check_index(index, self._size)
                if value != 0.0:
                    self._components[int(index)] = float(value)

    @classmethod
    def from_arrays(cls, size: int, indices: Iterable[int], values: Iterable[float]) -> "SparseVector":
        """Build from parallel index/value sequences; repeated indices are rejected."""
        indices = list(indices)
        values = list(values)
        if len(indices) != len(values):
            raise ShapeError(
                f"Index and value sequences differ in length ({len(indices)} vs {len(values)})."
            )
        if len(set(indices)) != len(indices):
            raise ShapeError("A sparse vector can not hold the same index twice.")
        return cls(size, dict(zip(indices, values)))

    @classmethod
    def zero(cls, size: int) -> "SparseVector":
        return cls(size)

    @classmethod
    def standard_vector(cls, size: int, index: int) -> "SparseVector":
        return cls(size, {index: 1.0})

    @classmethod
    def _wrap(cls, size: int, components: Dict[int, float]) -> "SparseVector":
        # Takes ownership of an already-clean mapping.
        vector = cls.__new__(cls)
        vector._size = size
        vector._components = components
        return vector

    @property
    def size(self) -> int:
        return self._size

    @property
    def nnz(self) -> int:
        return len(self._components)

    def __len__(self) -> int:
        return self._size

    def __getitem__(self, index: int) -> float:
        _check_index(index, self._size)
        return self._components.get(index, 0.0)

    def __setitem__(self, index: int, value: float) -> None:
        _check_index(index, self._size)
        if value == 0.0:
            self._components.pop(index, None)
        else:
            self._components[index] = float(value)

    def __iter__(self) -> Iterator[float]:
        return (self._components.get(i, 0.0) for i in range(self._size))

    def nonzeros(self) -> Iterator[Tuple[int, float]]:
        """Yield (index, value) pairs in increasing index order."""
        for index in sorted(self._components):
            yield index, self._components[index]

    def items(self):
        return self._components.items()

    def to_array(self) -> np.ndarray:
        array = np.zeros(self._size, dtype=float)
        for index, value in self._components.items():
            array[index] = value
        return array

    def squared_norm(self) -> float:
        return math.fsum(v * v for v in self._components.values())

    def norm(self) -> float:
        return math.sqrt(self.squared_norm())

    # ---- operators ----

    def __add__(self, other):
        return add(self, other)

    def __sub__(self, other):
        return subtract(self, other)

    def __neg__(self) -> "SparseVector":
        return SparseVector._wrap(self._size, {i: -v for i, v in self._components.items()})

    def __mul__(self, factor: float) -> "SparseVector":
        return _scale_operator(self, factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> "SparseVector":
        return _divide_operator(self, divisor)

    def __eq__(self, other) -> bool:
        if isinstance(other, SparseVector):
            return self._size == other._size and self._components == other._components
        if isinstance(other, DenseVector):
            return other == self
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        entries = ", ".join(f"{i}: {v}" for i, v in self.nonzeros())
        return f"SparseVector({self._size}, {{{entries}}})"


Vector = Union[DenseVector, SparseVector]


# =============================================================================
# DISPATCH
# =============================================================================

def _check_index(index: int, size: int) -> None:
    if not 0 <= index < size:
        raise ShapeError(f"Index {index} is out of range for a vector of size {size}.")


def _kind(vector) -> Optional[str]:
    if isinstance(vector, DenseVector):
        return 'dense'
    if isinstance(vector, SparseVector):
        return 'sparse'
    return None


def _kinds(operation: str, left, right) -> str:
    """Name the operand pairing, or raise for operands outside the union."""
    lk, rk = _kind(left), _kind(right)
    if lk is None or rk is None:
        raise unsupported(operation, left, right)
    if left.size != right.size:
        raise ShapeError(
            f"The {operation} needs vectors of equal size, got {left.size} and {right.size}."
        )
    return f"{lk}-{rk}"


def _sparse_merge(left: SparseVector, right: SparseVector, sign: float) -> SparseVector:
    result = dict(left._components)
    for index, value in right._components.items():
        total = result.get(index, 0.0) + sign * value
        if total == 0.0:
            result.pop(index, None)
        else:
            result[index] = total
    return SparseVector._wrap(left.size, result)


def _dense_with_sparse(dense: DenseVector, sparse: SparseVector, sign: float) -> DenseVector:
    array = dense.to_array()
    for index, value in sparse._components.items():
        array[index] += sign * value
    return DenseVector._wrap(array)


def add(left: Vector, right: Vector) -> Vector:
    pairing = _kinds('addition', left, right)
    if pairing == 'dense-dense':
        return DenseVector._wrap(left._components + right._components)
    if pairing == 'dense-sparse':
        return _dense_with_sparse(left, right, 1.0)
    if pairing == 'sparse-dense':
        return _dense_with_sparse(right, left, 1.0)
    if pairing == 'sparse-sparse':
        return _sparse_merge(left, right, 1.0)
    raise unsupported('addition', left, right)


def subtract(left: Vector, right: Vector) -> Vector:
    pairing = _kinds('subtraction', left, right)
    if pairing == 'dense-dense':
        return DenseVector._wrap(left._components - right._components)
    if pairing == 'dense-sparse':
        return _dense_with_sparse(left, right, -1.0)
    if pairing == 'sparse-dense':
        # s - d = -(d - s)
        return -_dense_with_sparse(right, left, -1.0)
    if pairing == 'sparse-sparse':
        return _sparse_merge(left, right, -1.0)
    raise unsupported('subtraction', left, right)


_SCALARS = (int, float, np.integer, np.floating)


def _scale_operator(vector: Vector, factor):
    if isinstance(factor, (DenseVector, SparseVector)):
        raise unsupported('multiplication', vector, factor)
    if not isinstance(factor, _SCALARS):
        return NotImplemented
    return multiply(vector, factor)


def _divide_operator(vector: Vector, divisor):
    if not isinstance(divisor, _SCALARS):
        return NotImplemented
    return divide(vector, divisor)


def multiply(vector: Vector, factor: float) -> Vector:
    """Scale every component; a sparse vector times 0 collapses to empty."""
    if not isinstance(factor, _SCALARS):
        raise unsupported('scalar multiplication', vector, factor)
    factor = float(factor)
    if isinstance(vector, DenseVector):
        return DenseVector._wrap(vector._components * factor)
    if isinstance(vector, SparseVector):
        if factor == 0.0:
            return SparseVector(vector.size)
        return SparseVector._wrap(vector.size, {i: v * factor for i, v in vector._components.items()})
    raise unsupported('scalar multiplication', vector, factor)


def divide(vector: Vector, divisor: float) -> Vector:
    if not isinstance(divisor, _SCALARS):
        raise unsupported('scalar division', vector, divisor)
    if divisor == 0.0:
        raise SingularityError("The divisor can not be zero.")
    return multiply(vector, 1.0 / float(divisor))


def dot(left: Vector, right: Vector) -> float:
    """Transpose-multiply ``leftᵗ·right``."""
    pairing = _kinds('dot product', left, right)
    if pairing == 'dense-dense':
        return float(np.dot(left._components, right._components))
    if pairing == 'dense-sparse':
        return math.fsum(left._components[i] * v for i, v in right._components.items())
    if pairing == 'sparse-dense':
        return math.fsum(v * right._components[i] for i, v in left._components.items())
    if pairing == 'sparse-sparse':
        small, large = (left, right) if left.nnz <= right.nnz else (right, left)
        return math.fsum(
            v * large._components[i] for i, v in small._components.items() if i in large._components
        )
    raise unsupported('dot product', left, right)


def to_dense(vector: Vector) -> DenseVector:
    if isinstance(vector, DenseVector):
        return vector
    if isinstance(vector, SparseVector):
        return DenseVector._wrap(vector.to_array())
    raise UnsupportedOperationError(f"Can not convert a {type(vector).__name__} to a DenseVector.")


def to_sparse(vector: Vector) -> SparseVector:
    if isinstance(vector, SparseVector):
        return vector
    if isinstance(vector, DenseVector):
        nonzero = np.flatnonzero(vector._components)
        return SparseVector._wrap(
            vector.size, {int(i): float(vector._components[i]) for i in nonzero}
        )
    raise UnsupportedOperationError(f"Can not convert a {type(vector).__name__} to a SparseVector.")


def gram_schmidt(vectors: Iterable[Vector]) -> List[Vector]:
    """
    Orthogonalise a finite ordered sequence of vectors.

    For each input vector, its projection onto every already-accepted
    output is subtracted. The remainder is accepted when its squared
    length exceeds the engine precision, and is then divided by its
    SQUARED length (not its length). Accepted vectors are therefore
    mutually orthogonal with norm 1/‖v‖; callers needing unit vectors
    must normalise them. Near-dependent inputs are dropped.

    Parameters:
    -----------
    vectors : iterable of DenseVector or SparseVector
        Consumed once, in order.

    Returns:
    --------
    list
        Accepted vectors, in input order.
    """
    tolerance = config.absolute_precision()
    results: List[Vector] = []

    for vector in vectors:
        for accepted in results:
            numerator = dot(vector, accepted)
            denominator = dot(accepted, accepted)
            vector = subtract(vector, multiply(accepted, numerator / denominator))

        squared_length = dot(vector, vector)
        if squared_length > tolerance:
            results.append(divide(vector, squared_length))

    return results
