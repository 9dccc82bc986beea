class PDEError(Exception):
    """Base class for failures raised by the finite-difference engine."""


class PreconditionError(PDEError, ValueError):
    """Raised when an input violates a documented precondition.

    Examples are mismatched operator/vector sizes, an operator size of 1,
    an out-of-range row index in :meth:`TridiagonalOperator.set_mid_row`,
    ``theta`` outside ``[0, 1]`` or a rollback with ``from_ < to``.
    """


class DivisionByZeroError(PDEError, ZeroDivisionError):
    """Raised when the tridiagonal elimination meets an exactly-zero pivot."""


class NoConvergenceError(PDEError, RuntimeError):
    """Raised when an iterative solve exhausts its iteration budget.

    Attributes
    ----------
    iterations : int
        Number of sweeps performed before giving up.
    error : float
        Squared residual update norm of the last sweep.
    tolerance : float
        Tolerance that was requested.
    """

    def __init__(self, iterations: int, error: float, tolerance: float) -> None:
        self.iterations = int(iterations)
        self.error = float(error)
        self.tolerance = float(tolerance)
        super().__init__(
            f"tolerance ({tolerance:g}) not reached in {iterations} iterations. "
            f"The error still is {error:g}"
        )


class UnsupportedOperationError(PDEError, NotImplementedError):
    """Raised when a boundary condition is asked for a capability it lacks."""
