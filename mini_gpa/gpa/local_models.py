# mini_gpa/gpa/local_models.py
"""
LOCAL MODELS: What One Energy or Constraint Says About Its Variables
====================================================================

PURPOSE:
--------
Every term of a GPA problem is described in LOCAL coordinates: the
concatenation of the components of the variables it binds. The solver
never looks inside a model; it only reads these fields.

    EnergyType        one linear residual row       Kᵢ·x − Sᵢ        → 0
    ConstraintType    one quadratic equation   ½ xᵗHᵢx + Bᵢᵗx + Cᵢ   = 0

A LinearisedConstraintType cannot be written as a fixed quadratic; it
rebuilds Hᵢ, Bᵢ and Cᵢ from the current variable values once per
iteration, through ``update_local``.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from ..linalg.compressed import CompressedColumn
from ..linalg.errors import ShapeError
from ..linalg.vectors import DenseVector, SparseVector, dot


class EnergyType(ABC):
    """
    Local model of an energy: one weighted least-squares residual row.

    Attributes:
    -----------
    local_k : SparseVector
        Kᵢ, the residual row in local coordinates.
    s : float
        Sᵢ, the target value of Kᵢ·x.
    """

    def __init__(self, local_k: SparseVector, s: float):
        self.local_k = local_k
        self.s = float(s)

    @property
    def size(self) -> int:
        """Number of local components the model expects."""
        return self.local_k.size

    def residual(self, x_local: np.ndarray) -> float:
        """Kᵢ·x − Sᵢ at the local point ``x_local``."""
        return dot(self.local_k, DenseVector(x_local)) - self.s

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={self.size}, s={self.s})"


class ConstraintType(ABC):
    """
    Local model of a quadratic constraint  ½ xᵗHx + bᵗx + c = 0.

    Attributes:
    -----------
    local_h : CompressedColumn
        Hᵢ, square and symmetric.
    local_b : SparseVector or None
        Bᵢ, the linear part (None when absent).
    c : float
        Cᵢ, the constant part.
    """

    def __init__(self, local_h: CompressedColumn, local_b: Optional[SparseVector], c: float):
        if local_h.row_count != local_h.column_count:
            raise ShapeError(f"Hᵢ must be square, got {local_h.shape}.")
        if local_b is not None and local_b.size != local_h.row_count:
            raise ShapeError(
                f"Bᵢ has size {local_b.size} but Hᵢ is {local_h.row_count}x{local_h.column_count}."
            )
        self.local_h = local_h
        self.local_b = local_b
        self.c = float(c)

    @property
    def size(self) -> int:
        return self.local_h.row_count

    def residual(self, x_local: np.ndarray) -> float:
        """½ xᵗHx + bᵗx + c at the local point ``x_local``."""
        x = DenseVector(x_local)
        value = 0.5 * dot(x, self.local_h @ x) + self.c
        if self.local_b is not None:
            value += dot(self.local_b, x)
        return value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={self.size}, c={self.c})"


class LinearisedConstraintType(ConstraintType):
    """
    Constraint whose quadratic model depends on the current point.

    The solver calls ``update_local`` with the bound variables, in binding
    order, at the start of every iteration, before reading the fields.
    """

    @abstractmethod
    def update_local(self, variables: Sequence) -> None:
        """Refresh ``local_h``, ``local_b`` and ``c`` from the current values."""
