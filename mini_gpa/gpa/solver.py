# mini_gpa/gpa/solver.py
"""
GUIDED PROJECTION ALGORITHM
===========================

PURPOSE:
--------
Find values of many small variables (points, vectors, scalars) that
satisfy quadratic constraints exactly and energies as well as possible.

Every iteration linearises the constraints at the current point x_prev
and solves the regularised least-squares problem

    minimise  |H·x − r|² + |K·x − s|² + ε²|x − x_prev|²

through its normal equations (see ``assemble``). Repeating the step
projects x onto the constraint set while the energies guide WHERE on the
set it lands; ε damps each step.

LIFECYCLE:
----------
    gpa = GuidedProjectionAlgorithm(epsilon=0.1, max_iteration=50)
    p = gpa.add_variable(0.0, 0.0)          # register variables ...
    q = gpa.add_variable(3.0, 1.0)
    gpa.add_constraint(SegmentLength(2, 1.0), [p, q])
    gpa.initialise_x()                      # ... freeze the layout
    gpa.solve()                             # run max_iteration iterations
    q.to_array()                            # read results through the handles

Variables can only be added before ``initialise_x()``; iterations only
after it. Terms may be added at any time, provided their variables are
registered by then (before initialisation they are registered on the fly).
"""

import logging
from multiprocessing.pool import ThreadPool
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .. import config
from .assemble import assemble_system, build_rows
from .local_models import ConstraintType, EnergyType, LinearisedConstraintType
from .terms import Constraint, Energy
from .variables import AnyVariable, Variable, VariableSet, base_variable

logger = logging.getLogger(__name__)

Weight = Union[float, Callable[[int], float]]


class SolverStateError(RuntimeError):
    """Raised when an operation is called in the wrong solver state."""
    pass


class GuidedProjectionAlgorithm:
    """
    Iterative solver for quadratic constraints and linear energies.

    Parameters:
    -----------
    epsilon : float
        Regularisation ε ≥ 0; ε²I is added to the normal matrix. With
        ε = 0 the normal matrix must be positive definite on its own.
    max_iteration : int
        Number of iterations ``solve()`` runs up to.
    """

    def __init__(self, epsilon: float, max_iteration: int):
        if epsilon < 0.0:
            raise ValueError(f"epsilon must be non-negative, got {epsilon}")
        if max_iteration < 0:
            raise ValueError(f"max_iteration must be non-negative, got {max_iteration}")

        self._epsilon = float(epsilon)
        self.max_iteration = int(max_iteration)
        self._iteration = 0

        self._variables: List[Variable] = []
        self._variable_ids = set()
        self._component_count = 0

        self._energies: List[Energy] = []
        self._constraints: List[Constraint] = []
        self._weight_updaters: List[Tuple[Union[Energy, Constraint], Callable[[int], float]]] = []
        self._linearised: List[Constraint] = []

        self._x: Optional[np.ndarray] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def epsilon(self) -> float:
        return self._epsilon

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def component_count(self) -> int:
        return self._component_count

    @property
    def energy_count(self) -> int:
        return len(self._energies)

    @property
    def constraint_count(self) -> int:
        return len(self._constraints)

    @property
    def is_initialised(self) -> bool:
        return self._x is not None

    @property
    def x(self) -> np.ndarray:
        """Copy of the global unknown vector."""
        if self._x is None:
            raise SolverStateError("The unknown vector does not exist before initialise_x().")
        return self._x.copy()

    @property
    def variables(self) -> Tuple[Variable, ...]:
        return tuple(self._variables)

    @property
    def energies(self) -> Tuple[Energy, ...]:
        return tuple(self._energies)

    @property
    def constraints(self) -> Tuple[Constraint, ...]:
        return tuple(self._constraints)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_variable(self, *components: float) -> Variable:
        """Create and register a variable holding ``components``."""
        variable = Variable(components)
        self.try_add_variable(variable)
        return variable

    def try_add_variable(self, variable: Variable) -> bool:
        """
        Register an existing variable.

        Returns False (and changes nothing) when it is already registered.
        """
        if id(variable) in self._variable_ids:
            return False
        if self._x is not None:
            raise SolverStateError("Variables can not be added after initialise_x().")
        if variable.is_bound:
            raise SolverStateError("The variable is already bound to another solver.")
        self._variables.append(variable)
        self._variable_ids.add(id(variable))
        self._component_count += variable.dimension
        return True

    def add_variable_set(self, variable_set: VariableSet) -> None:
        """Register every member of ``variable_set`` (already known ones are skipped)."""
        for variable in variable_set:
            self.try_add_variable(variable)

    def _register_term_variables(self, variables: Sequence[AnyVariable]) -> None:
        for variable in variables:
            owner = base_variable(variable)
            if id(owner) in self._variable_ids:
                continue
            if self._x is not None:
                raise SolverStateError(
                    "A term refers to a variable that was not registered before initialise_x()."
                )
            self.try_add_variable(owner)

    def _split_weight(self, weight: Weight) -> Tuple[float, Optional[Callable[[int], float]]]:
        if callable(weight):
            return self._checked_weight(weight(self._iteration)), weight
        return self._checked_weight(weight), None

    @staticmethod
    def _checked_weight(weight) -> float:
        weight = float(weight)
        if weight < 0.0:
            logger.warning("negative term weight %g", weight)
        return weight

    def add_energy(self, energy_type: EnergyType, variables: Sequence[AnyVariable],
                   weight: Weight = 1.0) -> Energy:
        """
        Bind ``energy_type`` to ``variables`` and register the energy.

        ``weight`` is a constant, or a function of the iteration index
        evaluated before every iteration.
        """
        value, function = self._split_weight(weight)
        energy = Energy(energy_type, tuple(variables), value)
        self.try_add_energy(energy)
        if function is not None:
            self._weight_updaters.append((energy, function))
        return energy

    def try_add_energy(self, energy: Energy) -> bool:
        """Register an existing energy; False when it is already registered."""
        if any(e is energy for e in self._energies):
            return False
        self._register_term_variables(energy.variables)
        self._energies.append(energy)
        return True

    def add_constraint(self, constraint_type: ConstraintType, variables: Sequence[AnyVariable],
                       weight: Weight = 1.0) -> Constraint:
        """Bind ``constraint_type`` to ``variables`` and register the constraint."""
        value, function = self._split_weight(weight)
        constraint = Constraint(constraint_type, tuple(variables), value)
        self.try_add_constraint(constraint)
        if function is not None:
            self._weight_updaters.append((constraint, function))
        return constraint

    def try_add_constraint(self, constraint: Constraint) -> bool:
        """Register an existing constraint; False when it is already registered."""
        if any(c is constraint for c in self._constraints):
            return False
        self._register_term_variables(constraint.variables)
        self._constraints.append(constraint)
        if isinstance(constraint.constraint_type, LinearisedConstraintType):
            self._linearised.append(constraint)
        return True

    # =========================================================================
    # SOLVING
    # =========================================================================

    def initialise_x(self) -> None:
        """
        Allocate the global unknown vector and bind every variable into it.

        Variables keep their values; their order of registration gives
        their position in x.
        """
        if self._x is not None:
            raise SolverStateError("initialise_x() was already called.")

        x = np.zeros(self._component_count, dtype=float)
        offset = 0
        for variable in self._variables:
            variable._bind(x, offset)
            offset += variable.dimension
        self._x = x

        logger.info(
            "GPA initialised: %d variable(s), %d component(s), %d energy(ies), %d constraint(s)",
            len(self._variables), self._component_count, len(self._energies), len(self._constraints),
        )

    def _update_terms(self) -> None:
        for constraint in self._linearised:
            constraint.constraint_type.update_local(constraint.variables)
        for term, function in self._weight_updaters:
            term.weight = self._checked_weight(function(self._iteration))

    def _step(self, pool) -> np.ndarray:
        constraint_rows, energy_rows = build_rows(self._constraints, self._energies, pool)
        lhs, rhs = assemble_system(self._x, self._epsilon, constraint_rows, energy_rows, pool)
        logger.debug(
            "iteration %d: %d constraint row(s), %d energy row(s), nnz(LHS)=%d",
            self._iteration, len(constraint_rows), len(energy_rows), lhs.nnz,
        )
        return lhs.solve_cholesky(rhs).to_array()

    def run_iteration(self, parallel: bool = False) -> None:
        """
        Run one GPA iteration and write the new point into x.

        Parameters:
        -----------
        parallel : bool
            Compute term rows and normal-equation products on a thread
            pool. The result is identical to the sequential path.

        Raises:
        -------
        SolverStateError
            If initialise_x() has not been called.
        NotPositiveDefiniteError
            If the normal matrix can not be factored; x is left unchanged.
        """
        if self._x is None:
            raise SolverStateError("initialise_x() must be called before run_iteration().")

        self._update_terms()

        if parallel:
            with ThreadPool(processes=config.CONFIG.max_workers) as pool:
                solution = self._step(pool)
        else:
            solution = self._step(None)

        self._x[:] = solution
        self._iteration += 1

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "iteration %d done: |constraint residual| = %.3e, |energy residual| = %.3e",
                self._iteration,
                float(np.linalg.norm(self.constraint_residuals())),
                float(np.linalg.norm(self.energy_residuals())),
            )

    def solve(self, parallel: bool = False) -> np.ndarray:
        """Iterate until ``max_iteration`` is reached; returns a copy of x."""
        if self._x is None:
            raise SolverStateError("initialise_x() must be called before solve().")
        start = self._iteration
        while self._iteration < self.max_iteration:
            self.run_iteration(parallel=parallel)

        logger.info(
            "GPA finished after %d iteration(s) (%d this call): max |constraint residual| = %.3e",
            self._iteration, self._iteration - start,
            float(np.max(np.abs(self.constraint_residuals()), initial=0.0)),
        )
        return self._x.copy()

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def constraint_residuals(self) -> np.ndarray:
        """Unweighted ½ xᵗHx + bᵗx + c of every constraint, in registration order."""
        if self._x is None:
            raise SolverStateError("initialise_x() must be called before evaluating residuals.")
        return np.array([c.residual() for c in self._constraints], dtype=float)

    def energy_residuals(self) -> np.ndarray:
        """Unweighted Kᵢ·x − Sᵢ of every energy, in registration order."""
        if self._x is None:
            raise SolverStateError("initialise_x() must be called before evaluating residuals.")
        return np.array([e.residual() for e in self._energies], dtype=float)
