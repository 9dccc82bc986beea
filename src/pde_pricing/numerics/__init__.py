# src/pde_pricing/numerics/__init__.py
"""
Numerical building blocks (advanced API).

Top-level package `pde_pricing` exposes the everyday pricing API.
This subpackage exposes the tridiagonal algebra and grid helpers; the
time-stepping engine lives in :mod:`pde_pricing.numerics.pde`.
"""

from .grids import (
    TransformedGrid,
    first_derivative_at_center,
    log_grid,
    scale_grid,
    second_derivative_at_center,
    shift_grid,
    uniform_grid,
    value_at,
    value_at_center,
)
from .tridiag import (
    TimeSetter,
    TridiagonalOperator,
    solve_tridiag_scipy,
    solve_tridiag_sor,
    solve_tridiag_thomas,
    tridiag_mv,
    tridiag_to_dense,
)

__all__ = [
    # Tridiagonal
    "TimeSetter",
    "TridiagonalOperator",
    "solve_tridiag_thomas",
    "solve_tridiag_sor",
    "solve_tridiag_scipy",
    "tridiag_mv",
    "tridiag_to_dense",
    # Grids
    "TransformedGrid",
    "uniform_grid",
    "log_grid",
    "scale_grid",
    "shift_grid",
    "value_at_center",
    "first_derivative_at_center",
    "second_derivative_at_center",
    "value_at",
]
