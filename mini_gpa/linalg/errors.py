# mini_gpa/linalg/errors.py
"""Error taxonomy of the linear-algebra engine."""


class LinearAlgebraError(Exception):
    """Base class for every error raised by the engine."""
    pass


class ShapeError(LinearAlgebraError, ValueError):
    """Raised on dimension mismatch, out-of-range index or malformed arrays."""
    pass


class SingularityError(LinearAlgebraError, ZeroDivisionError):
    """Raised on division by exact zero (or by a zero-length direction)."""
    pass


class NotPositiveDefiniteError(LinearAlgebraError, ArithmeticError):
    """Raised when a Cholesky pivot is not positive."""

    def __init__(self, message: str, column: int = -1, pivot: float = float('nan')):
        super().__init__(message)
        self.column = column
        self.pivot = pivot


class UnsupportedOperationError(LinearAlgebraError, NotImplementedError):
    """Raised when no specialisation exists for a pair of operand kinds."""
    pass


def unsupported(operation: str, left, right) -> UnsupportedOperationError:
    """Build the error for an operand pairing that has no implementation."""
    return UnsupportedOperationError(
        f"The {operation} of a {type(left).__name__} and a {type(right).__name__} "
        f"is not implemented."
    )
