# src/pde_pricing/numerics/tridiag.py
from __future__ import annotations

from typing import Protocol, cast

import numpy as np
from numpy.typing import NDArray

from ..config import SORConfig
from ..exceptions import DivisionByZeroError, NoConvergenceError, PreconditionError

__all__ = [
    "TimeSetter",
    "TridiagonalOperator",
    "tridiag_mv",
    "solve_tridiag_thomas",
    "solve_tridiag_sor",
    "solve_tridiag_scipy",
    "tridiag_to_dense",
]

_SOR_DEFAULTS = SORConfig()
SOR_OMEGA = _SOR_DEFAULTS.omega
SOR_MAX_ITER = _SOR_DEFAULTS.max_iter


class _Diagonals(Protocol):
    lower: NDArray[np.floating]
    diag: NDArray[np.floating]
    upper: NDArray[np.floating]


class TimeSetter(Protocol):
    """Callback regenerating an operator's diagonals for a given time."""

    def set_time(self, t: float, L: TridiagonalOperator) -> None:  # pragma: no cover
        ...


def _check_diagonals(
    lower: NDArray[np.floating],
    diag: NDArray[np.floating],
    upper: NDArray[np.floating],
) -> int:
    """
    Validate diagonal shapes and return M (system size).

    Supports M == 0 with empty diagonals.
    """
    if diag.ndim != 1:
        raise PreconditionError("diag must be 1D")

    M = int(diag.shape[0])
    if M == 0:
        if lower.shape != (0,) or upper.shape != (0,):
            raise PreconditionError("For M==0, lower/upper must be empty (shape (0,))")
        return 0

    if lower.shape != (M - 1,):
        raise PreconditionError("wrong size for lower diagonal vector")
    if upper.shape != (M - 1,):
        raise PreconditionError("wrong size for upper diagonal vector")
    return M


class TridiagonalOperator:
    """Linear operator on a 1D grid stored as three diagonals.

    The operator is mutable: boundary conditions and time setters rewrite
    rows in place. Schemes take a :meth:`clone` so the instance built by a
    PDE generator is never aliased by a running evolver.

    Size must be 0 (empty placeholder) or at least 2.
    """

    __slots__ = ("lower", "diag", "upper", "time_setter")

    def __init__(self, size: int = 0, *, time_setter: TimeSetter | None = None) -> None:
        size = int(size)
        if size == 1 or size < 0:
            raise PreconditionError(
                f"invalid size ({size}) for tridiagonal operator (must be null or >= 2)"
            )
        self.diag = np.zeros(size, dtype=float)
        self.lower = np.zeros(max(size - 1, 0), dtype=float)
        self.upper = np.zeros(max(size - 1, 0), dtype=float)
        self.time_setter = time_setter

    @classmethod
    def from_diagonals(
        cls,
        lower: NDArray[np.floating],
        diag: NDArray[np.floating],
        upper: NDArray[np.floating],
        *,
        time_setter: TimeSetter | None = None,
    ) -> TridiagonalOperator:
        lower = np.array(lower, dtype=float)
        diag = np.array(diag, dtype=float)
        upper = np.array(upper, dtype=float)
        M = _check_diagonals(lower, diag, upper)
        if M == 1:
            raise PreconditionError(
                "invalid size (1) for tridiagonal operator (must be null or >= 2)"
            )
        op = cls(0, time_setter=time_setter)
        op.lower, op.diag, op.upper = lower, diag, upper
        return op

    @classmethod
    def identity(cls, size: int) -> TridiagonalOperator:
        op = cls(size)
        op.diag[:] = 1.0
        return op

    # --- shape / copies --------------------------------------------------

    @property
    def size(self) -> int:
        return int(self.diag.shape[0])

    def __len__(self) -> int:
        return self.size

    def clone(self) -> TridiagonalOperator:
        """Deep copy of the diagonals; the time setter is shared."""
        op = TridiagonalOperator(0, time_setter=self.time_setter)
        op.lower = self.lower.copy()
        op.diag = self.diag.copy()
        op.upper = self.upper.copy()
        return op

    def to_dense(self) -> NDArray[np.floating]:
        return tridiag_to_dense(self.lower, self.diag, self.upper)

    def __repr__(self) -> str:
        return (
            f"TridiagonalOperator(size={self.size}, "
            f"time_dependent={self.is_time_dependent()})"
        )

    # --- application / solution -----------------------------------------

    def apply_to(self, v: NDArray[np.floating]) -> NDArray[np.floating]:
        v = np.asarray(v, dtype=float)
        if v.shape != (self.size,):
            raise PreconditionError(
                f"vector of the wrong size ({v.shape[0] if v.ndim else 0} "
                f"instead of {self.size})"
            )
        return tridiag_mv(Bl=self.lower, Bd=self.diag, Bu=self.upper, u=v)

    def solve_for(self, rhs: NDArray[np.floating]) -> NDArray[np.floating]:
        return solve_tridiag_thomas(self, rhs)

    def sor(
        self,
        rhs: NDArray[np.floating],
        tol: float,
        *,
        omega: float = SOR_OMEGA,
        max_iter: int = SOR_MAX_ITER,
    ) -> NDArray[np.floating]:
        return solve_tridiag_sor(self, rhs, tol, omega=omega, max_iter=max_iter)

    # --- algebra ---------------------------------------------------------

    def _require_same_size(self, other: TridiagonalOperator) -> None:
        if other.size != self.size:
            raise PreconditionError(
                f"operator size mismatch ({self.size} vs {other.size})"
            )

    def add(self, other: TridiagonalOperator) -> TridiagonalOperator:
        self._require_same_size(other)
        return TridiagonalOperator.from_diagonals(
            self.lower + other.lower, self.diag + other.diag, self.upper + other.upper
        )

    def subtract(self, other: TridiagonalOperator) -> TridiagonalOperator:
        self._require_same_size(other)
        return TridiagonalOperator.from_diagonals(
            self.lower - other.lower, self.diag - other.diag, self.upper - other.upper
        )

    def scalar_multiply(self, a: float) -> TridiagonalOperator:
        a = float(a)
        return TridiagonalOperator.from_diagonals(
            a * self.lower, a * self.diag, a * self.upper
        )

    def __add__(self, other: object) -> TridiagonalOperator:
        if not isinstance(other, TridiagonalOperator):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: object) -> TridiagonalOperator:
        if not isinstance(other, TridiagonalOperator):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, a: object) -> TridiagonalOperator:
        if not isinstance(a, (int, float, np.floating)):
            return NotImplemented
        return self.scalar_multiply(float(a))

    __rmul__ = __mul__

    def __neg__(self) -> TridiagonalOperator:
        return self.scalar_multiply(-1.0)

    # --- row mutators ----------------------------------------------------

    def set_first_row(self, b: float, c: float) -> None:
        self.diag[0] = b
        self.upper[0] = c

    def set_mid_row(self, i: int, a: float, b: float, c: float) -> None:
        if not (1 <= i <= self.size - 2):
            raise PreconditionError(
                f"row {i} out of range [1, {self.size - 2}] in set_mid_row"
            )
        self.lower[i - 1] = a
        self.diag[i] = b
        self.upper[i] = c

    def set_mid_rows(self, a: float, b: float, c: float) -> None:
        if self.size < 3:
            return
        self.lower[:-1] = a
        self.diag[1:-1] = b
        self.upper[1:] = c

    def set_last_row(self, a: float, b: float) -> None:
        self.lower[-1] = a
        self.diag[-1] = b

    # --- time dependence -------------------------------------------------

    def is_time_dependent(self) -> bool:
        return self.time_setter is not None

    def set_time(self, t: float) -> None:
        if self.time_setter is not None:
            self.time_setter.set_time(float(t), self)


def tridiag_mv(
    Bl: NDArray[np.floating],  # (M-1,) or (0,) if M==0
    Bd: NDArray[np.floating],  # (M,)
    Bu: NDArray[np.floating],  # (M-1,) or (0,) if M==0
    u: NDArray[np.floating],  # (M,)
) -> NDArray[np.floating]:
    """
    Compute y = T u where T is tridiagonal with diagonals (Bl,Bd,Bu).

    Convention (for M>=2):
      y[0]   = Bd[0]*u[0] + Bu[0]*u[1]
      y[j]   = Bl[j-1]*u[j-1] + Bd[j]*u[j] + Bu[j]*u[j+1]   for 1<=j<=M-2
      y[M-1] = Bl[M-2]*u[M-2] + Bd[M-1]*u[M-1]
    """
    Bd = np.asarray(Bd, dtype=float)
    Bl = np.asarray(Bl, dtype=float)
    Bu = np.asarray(Bu, dtype=float)
    u = np.asarray(u, dtype=float)

    M = _check_diagonals(Bl, Bd, Bu)
    if u.shape != (M,):
        raise PreconditionError(f"u must have shape {(M,)} got {u.shape}")

    y = Bd * u
    if M > 1:
        y[1:] += Bl * u[:-1]
        y[:-1] += Bu * u[1:]
    return cast(NDArray[np.floating], y)


def solve_tridiag_thomas(
    A: _Diagonals,
    rhs: NDArray[np.floating],
) -> NDArray[np.floating]:
    """
    Solve A x = rhs for tridiagonal A by forward elimination and back substitution.

    Notes:
    - No pivoting. Prefer diagonally-dominant systems.
    - Raises DivisionByZeroError when a pivot is exactly zero; near-zero pivots
      are not rescued and will show up as large values in the result.
    - Inputs are never modified.
    """
    lower = np.asarray(A.lower, dtype=float)
    diag = np.asarray(A.diag, dtype=float)
    upper = np.asarray(A.upper, dtype=float)
    M = _check_diagonals(lower, diag, upper)

    rhs = np.asarray(rhs, dtype=float)
    if rhs.shape != (M,):
        raise PreconditionError(f"rhs must have shape {(M,)} got {rhs.shape}")

    if M == 0:
        return rhs.copy()

    x = np.empty(M, dtype=float)
    gamma = np.empty(M, dtype=float)

    bet = diag[0]
    if bet == 0.0:
        raise DivisionByZeroError("division by zero: zero pivot at row 0")
    x[0] = rhs[0] / bet

    # Forward sweep
    for j in range(1, M):
        gamma[j] = upper[j - 1] / bet
        bet = diag[j] - lower[j - 1] * gamma[j]
        if bet == 0.0:
            raise DivisionByZeroError(f"division by zero: zero pivot at row {j}")
        x[j] = (rhs[j] - lower[j - 1] * x[j - 1]) / bet

    # Back substitution
    for j in range(M - 2, -1, -1):
        x[j] -= gamma[j + 1] * x[j + 1]
    return x


def solve_tridiag_sor(
    A: _Diagonals,
    rhs: NDArray[np.floating],
    tol: float,
    *,
    omega: float = SOR_OMEGA,
    max_iter: int = SOR_MAX_ITER,
) -> NDArray[np.floating]:
    """
    Solve A x = rhs by successive over-relaxation, starting from x = rhs.

    The sweep stops once the sum of squared corrections drops to ``tol`` or
    below. Raises NoConvergenceError after ``max_iter`` sweeps.
    """
    lower = np.asarray(A.lower, dtype=float)
    diag = np.asarray(A.diag, dtype=float)
    upper = np.asarray(A.upper, dtype=float)
    M = _check_diagonals(lower, diag, upper)

    rhs = np.asarray(rhs, dtype=float)
    if rhs.shape != (M,):
        raise PreconditionError(f"rhs must have shape {(M,)} got {rhs.shape}")
    if M < 2:
        raise PreconditionError("SOR needs a system of size >= 2")
    cfg = SORConfig(omega=omega, tol=tol, max_iter=max_iter)

    x = rhs.copy()
    err = 2.0 * cfg.tol
    it = 0
    while err > cfg.tol:
        if it >= cfg.max_iter:
            raise NoConvergenceError(iterations=it, error=err, tolerance=cfg.tol)

        temp = cfg.omega * (rhs[0] - upper[0] * x[1] - diag[0] * x[0]) / diag[0]
        err = temp * temp
        x[0] += temp

        for i in range(1, M - 1):
            temp = (
                cfg.omega
                * (
                    rhs[i]
                    - upper[i] * x[i + 1]
                    - diag[i] * x[i]
                    - lower[i - 1] * x[i - 1]
                )
                / diag[i]
            )
            err += temp * temp
            x[i] += temp

        last = M - 1
        temp = (
            cfg.omega
            * (rhs[last] - diag[last] * x[last] - lower[last - 1] * x[last - 1])
            / diag[last]
        )
        err += temp * temp
        x[last] += temp
        it += 1
    return x


def solve_tridiag_scipy(
    lower: NDArray[np.floating],
    diag: NDArray[np.floating],
    upper: NDArray[np.floating],
    rhs: NDArray[np.floating],
) -> NDArray[np.floating]:
    """
    Solve using SciPy banded solver. SciPy is imported lazily.
    """
    from scipy.linalg import (
        solve_banded,  # local import to avoid import-time dependency
    )

    lower = np.asarray(lower, dtype=float)
    diag = np.asarray(diag, dtype=float)
    upper = np.asarray(upper, dtype=float)
    M = _check_diagonals(lower, diag, upper)

    rhs = np.asarray(rhs, dtype=float)
    if rhs.shape != (M,):
        raise PreconditionError(f"rhs must have shape {(M,)} got {rhs.shape}")

    if M == 0:
        return cast(NDArray[np.floating], rhs.copy())

    ab = np.zeros((3, M), dtype=float)
    ab[0, 1:] = upper
    ab[1, :] = diag
    ab[2, :-1] = lower

    res = solve_banded((1, 1), ab, rhs)
    # scipy stubs often return Any; cast back to an NDArray
    return cast(NDArray[np.floating], np.asarray(res))


def tridiag_to_dense(
    lower: NDArray[np.floating] | TridiagonalOperator,
    diag: NDArray[np.floating] | None = None,
    upper: NDArray[np.floating] | None = None,
) -> NDArray[np.floating]:
    """
    Convert a tridiagonal to a dense matrix.
    Accepts either (lower, diag, upper) arrays or a TridiagonalOperator.
    """
    if isinstance(lower, TridiagonalOperator):
        op = lower
        lower, diag, upper = op.lower, op.diag, op.upper
    elif diag is None or upper is None:
        raise PreconditionError("Must provide (lower, diag, upper) or a TridiagonalOperator")

    lower = np.asarray(lower, dtype=float)
    diag = np.asarray(diag, dtype=float)
    upper = np.asarray(upper, dtype=float)
    M = _check_diagonals(lower, diag, upper)

    A = np.zeros((M, M), dtype=float)
    A[np.arange(M), np.arange(M)] = diag
    A[np.arange(1, M), np.arange(M - 1)] = lower
    A[np.arange(M - 1), np.arange(1, M)] = upper
    return A
