# mini_gpa/gpa - Guided Projection Algorithm
"""
GPA: CONSTRAINED FORM-FINDING BY GUIDED PROJECTION
==================================================

This package turns many small local models into one sparse least-squares
step, iterated:

- Variables are views onto one shared unknown vector (variables.py)
- Local models say what each term wants (local_models.py and the
  library types in energy_types.py / constraint_types.py)
- Energy / Constraint bind a model to its variables (terms.py)
- Rows are assembled per term and merged into normal equations (assemble.py)
- GuidedProjectionAlgorithm drives the iterations (solver.py)

Energy and constraint library types share some names
(SegmentOrthogonality), so they are exposed as modules.
"""

from . import constraint_types, energy_types
from .local_models import ConstraintType, EnergyType, LinearisedConstraintType
from .solver import GuidedProjectionAlgorithm, SolverStateError
from .terms import Constraint, Energy
from .variables import SubVariable, Variable, VariableSet

__all__ = [
    'constraint_types',
    'energy_types',
    'ConstraintType',
    'EnergyType',
    'LinearisedConstraintType',
    'GuidedProjectionAlgorithm',
    'SolverStateError',
    'Constraint',
    'Energy',
    'SubVariable',
    'Variable',
    'VariableSet',
]
