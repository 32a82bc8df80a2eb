# mini_gpa/gpa/terms.py
"""
Energy and Constraint: a local model bound to the variables it acts on.

The order of ``variables`` defines the local → global map: local component
p of the model is global unknown ``global_indices()[p]``.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from ..linalg.errors import ShapeError
from .local_models import ConstraintType, EnergyType
from .variables import AnyVariable, gather, global_indices


def _check_size(model, variables: Sequence[AnyVariable]) -> None:
    total = sum(variable.dimension for variable in variables)
    if total != model.size:
        raise ShapeError(
            f"{type(model).__name__} expects {model.size} local components, "
            f"but its variables provide {total}."
        )


@dataclass(eq=False)
class Energy:
    """
    Weighted energy term.

    Attributes:
    -----------
    energy_type : EnergyType
        Local model (Kᵢ, Sᵢ).
    variables : tuple of Variable / SubVariable
        Bound in order; their dimensions sum to the model size.
    weight : float
        Scale of the residual row. When the term was registered with a
        weight function, the solver rewrites this before each iteration.
    """
    energy_type: EnergyType
    variables: Tuple[AnyVariable, ...]
    weight: float = 1.0

    def __post_init__(self):
        self.variables = tuple(self.variables)
        self.weight = float(self.weight)
        _check_size(self.energy_type, self.variables)

    def global_indices(self) -> List[int]:
        return global_indices(self.variables)

    def local_values(self) -> np.ndarray:
        return gather(self.variables)

    def residual(self) -> float:
        """Unweighted Kᵢ·x − Sᵢ at the current point."""
        return self.energy_type.residual(self.local_values())


@dataclass(eq=False)
class Constraint:
    """
    Weighted constraint term.

    Attributes:
    -----------
    constraint_type : ConstraintType
        Local model (Hᵢ, Bᵢ, Cᵢ).
    variables : tuple of Variable / SubVariable
    weight : float
    """
    constraint_type: ConstraintType
    variables: Tuple[AnyVariable, ...]
    weight: float = 1.0

    def __post_init__(self):
        self.variables = tuple(self.variables)
        self.weight = float(self.weight)
        _check_size(self.constraint_type, self.variables)

    def global_indices(self) -> List[int]:
        return global_indices(self.variables)

    def local_values(self) -> np.ndarray:
        return gather(self.variables)

    def residual(self) -> float:
        """Unweighted ½ xᵗHx + bᵗx + c at the current point."""
        return self.constraint_type.residual(self.local_values())
