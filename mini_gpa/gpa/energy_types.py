# mini_gpa/gpa/energy_types.py
"""
Library energies: soft, least-squares goals.

Each type only fixes Kᵢ and Sᵢ; the variables it expects are listed in
its docstring, in binding order.
"""

import math
from typing import Sequence

import numpy as np

from .. import config
from ..linalg.errors import SingularityError
from ..linalg.vectors import SparseVector
from .local_models import EnergyType


def unit_direction(direction: Sequence[float]) -> np.ndarray:
    """Normalise ``direction``; a direction with no significant component raises."""
    direction = np.asarray(direction, dtype=float)
    if not np.any(np.abs(direction) > config.absolute_precision()):
        raise SingularityError("The length of the target direction must be different from zero.")
    return direction / math.sqrt(float(np.dot(direction, direction)))


class ScalarEquality(EnergyType):
    """
    Pull a scalar variable toward ``value``.

    Variables: (x,) with x of dimension 1.
    """

    def __init__(self, value: float):
        super().__init__(SparseVector(1, {0: 1.0}), value)


class SegmentOrthogonality(EnergyType):
    """
    Keep a segment orthogonal to a fixed direction:  (Pₑ − Pₛ)·d = 0.

    Variables: (Pₛ, Pₑ), both of the direction's dimension.
    """

    def __init__(self, direction: Sequence[float]):
        d = unit_direction(direction)
        n = d.shape[0]
        components = {}
        for i in range(n):
            components[i] = -d[i]
            components[n + i] = d[i]
        super().__init__(SparseVector(2 * n, components), 0.0)


class SegmentParallelity(EnergyType):
    """
    Keep a segment parallel to a fixed direction:  (Pₑ − Pₛ)·d − L = 0.

    Variables: (Pₛ, Pₑ, L) where L is a scalar holding the segment length.
    L must itself be tied to the points by a CoherentLength constraint.
    """

    def __init__(self, direction: Sequence[float]):
        d = unit_direction(direction)
        n = d.shape[0]
        components = {}
        for i in range(n):
            components[i] = -d[i]
            components[n + i] = d[i]
        components[2 * n] = -1.0
        super().__init__(SparseVector(2 * n + 1, components), 0.0)
