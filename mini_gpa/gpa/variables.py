# mini_gpa/gpa/variables.py
"""
VARIABLES: Views onto the Solver's Unknown Vector
=================================================

PURPOSE:
--------
Map (variable, local component) → global unknown index, the way a DOF
manager maps (node, local dof) → global dof.

A Variable is a run of ``dimension`` scalars inside a buffer:

    Private   buffer = its own array, offset 0  (before initialise_x)
    Bound     buffer = the solver's x array     (after initialise_x)

Binding is one-way and keeps the values: the solver copies the private
components into x at the variable's offset, then repoints the variable.
From then on, reading a variable reads x and the solver's in-place
update is visible through every handle.

    p = Variable([0.0, 0.0, 0.0])
    solver.add_variable(p)        # or solver.add_variable(0.0, 0.0, 0.0)
    solver.initialise_x()
    p.reference_index(1)          # → global index of p's y component

A SubVariable picks components of a parent (in any order, no repeats)
without owning storage. A VariableSet groups variables of one dimension.
"""

from typing import Iterable, Iterator, List, Sequence, Union

import numpy as np

from ..linalg.errors import ShapeError


class Variable:
    """
    Handle on a contiguous run of scalars.

    Two variables are equal when they look at the same run: same buffer
    object, same offset, same length. Private buffers are never shared,
    so distinct handles are never equal and hashing by identity is
    consistent with equality.

    Parameters:
    -----------
    components : sequence of float
        Initial values; the length fixes the dimension (at least 1).
    """

    def __init__(self, components: Union[Sequence[float], np.ndarray]):
        values = np.array(components, dtype=float).reshape(-1)
        if values.shape[0] < 1:
            raise ShapeError("A variable needs at least one component.")
        self._buffer = values
        self._offset = 0
        self._dimension = values.shape[0]
        self._bound = False

    @classmethod
    def zeros(cls, dimension: int) -> "Variable":
        if dimension < 1:
            raise ShapeError(f"A variable needs at least one component, got dimension {dimension}.")
        return cls(np.zeros(dimension, dtype=float))

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_bound(self) -> bool:
        return self._bound

    def __len__(self) -> int:
        return self._dimension

    def _check(self, index: int) -> None:
        if not 0 <= index < self._dimension:
            raise ShapeError(
                f"Component {index} is out of range for a variable of dimension {self._dimension}."
            )

    def __getitem__(self, index: int) -> float:
        self._check(index)
        return float(self._buffer[self._offset + index])

    def __setitem__(self, index: int, value: float) -> None:
        self._check(index)
        self._buffer[self._offset + index] = value

    def __iter__(self) -> Iterator[float]:
        for i in range(self._dimension):
            yield float(self._buffer[self._offset + i])

    def to_array(self) -> np.ndarray:
        return self._buffer[self._offset:self._offset + self._dimension].copy()

    def reference_index(self, index: int) -> int:
        """Global index of component ``index`` in the solver's unknown vector."""
        if not self._bound:
            raise ShapeError("The variable is not bound to a solver yet; call initialise_x() first.")
        self._check(index)
        return self._offset + index

    def _bind(self, buffer: np.ndarray, offset: int) -> None:
        """Copy the current values into ``buffer`` at ``offset`` and look there from now on."""
        if self._bound:
            raise ShapeError("The variable is already bound to a solver.")
        if offset < 0 or offset + self._dimension > buffer.shape[0]:
            raise ShapeError(
                f"A run of {self._dimension} at offset {offset} does not fit a buffer of "
                f"size {buffer.shape[0]}."
            )
        buffer[offset:offset + self._dimension] = self.to_array()
        self._buffer = buffer
        self._offset = offset
        self._bound = True

    def __eq__(self, other) -> bool:
        if not isinstance(other, Variable):
            return NotImplemented
        return (self._buffer is other._buffer
                and self._offset == other._offset
                and self._dimension == other._dimension)

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        state = f"bound@{self._offset}" if self._bound else "private"
        return f"Variable({self.to_array().tolist()}, {state})"


class SubVariable:
    """
    Read-only view on selected components of a parent Variable.

    Parameters:
    -----------
    parent : Variable
    indices : sequence of int
        Parent components to expose, in view order. Each must be in range
        and appear once.

    Examples:
    ---------
    >>> p = Variable([1.0, 2.0, 3.0])
    >>> yz = SubVariable(p, [2, 1])
    >>> yz.to_array().tolist()
    [3.0, 2.0]
    """

    def __init__(self, parent: Variable, indices: Sequence[int]):
        indices = tuple(int(i) for i in indices)
        if not indices:
            raise ShapeError("A sub-variable needs at least one component.")
        for i in indices:
            if not 0 <= i < parent.dimension:
                raise ShapeError(
                    f"Index {i} is out of range for a parent of dimension {parent.dimension}."
                )
        if len(set(indices)) != len(indices):
            raise ShapeError(f"Sub-variable indices {indices} contain duplicates.")
        self._parent = parent
        self._indices = indices

    @property
    def parent(self) -> Variable:
        return self._parent

    @property
    def indices(self):
        return self._indices

    @property
    def dimension(self) -> int:
        return len(self._indices)

    @property
    def is_bound(self) -> bool:
        return self._parent.is_bound

    def __len__(self) -> int:
        return len(self._indices)

    def __getitem__(self, index: int) -> float:
        if not 0 <= index < len(self._indices):
            raise ShapeError(
                f"Component {index} is out of range for a sub-variable of dimension {len(self._indices)}."
            )
        return self._parent[self._indices[index]]

    def __iter__(self) -> Iterator[float]:
        for i in self._indices:
            yield self._parent[i]

    def to_array(self) -> np.ndarray:
        return self._parent.to_array()[list(self._indices)]

    def reference_index(self, index: int) -> int:
        if not 0 <= index < len(self._indices):
            raise ShapeError(
                f"Component {index} is out of range for a sub-variable of dimension {len(self._indices)}."
            )
        return self._parent.reference_index(self._indices[index])

    def __repr__(self) -> str:
        return f"SubVariable({self._parent!r}, {list(self._indices)})"


AnyVariable = Union[Variable, SubVariable]


def base_variable(variable: AnyVariable) -> Variable:
    """The Variable that owns the storage behind ``variable``."""
    return variable.parent if isinstance(variable, SubVariable) else variable


def global_indices(variables: Iterable[AnyVariable]) -> List[int]:
    """
    Concatenated global indices of ``variables``, in order.

    Position p of the result is where local component p of a term lives
    in the unknown vector.
    """
    result = []
    for variable in variables:
        result.extend(variable.reference_index(i) for i in range(variable.dimension))
    return result


def gather(variables: Iterable[AnyVariable]) -> np.ndarray:
    """Concatenated current values of ``variables`` (a term's local x)."""
    arrays = [variable.to_array() for variable in variables]
    if not arrays:
        return np.zeros(0, dtype=float)
    return np.concatenate(arrays)


class VariableSet:
    """
    Named group of variables sharing one dimension.

    Parameters:
    -----------
    name : str
    dimension : int
        Dimension every member must have.
    """

    def __init__(self, name: str, dimension: int):
        if dimension < 1:
            raise ShapeError(f"Variable sets need a dimension of at least 1, got {dimension}.")
        self.name = name
        self.dimension = dimension
        self._variables: List[Variable] = []

    def add_variable(self, *components: float) -> Variable:
        """Create a member from its components and return it."""
        variable = Variable(components)
        self.append(variable)
        return variable

    def append(self, variable: Variable) -> None:
        if variable.dimension != self.dimension:
            raise ShapeError(
                f"Set '{self.name}' holds variables of dimension {self.dimension}, "
                f"got one of dimension {variable.dimension}."
            )
        self._variables.append(variable)

    def __len__(self) -> int:
        return len(self._variables)

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables)

    def __getitem__(self, index: int) -> Variable:
        return self._variables[index]

    def __repr__(self) -> str:
        return f"VariableSet({self.name!r}, dimension={self.dimension}, size={len(self)})"
