"""Tridiagonal operators for 1D parabolic pricing PDEs.

Operators follow the backward-pricing sign convention: for the PDE

    u_t + 1/2 sigma(t,x)^2 u_xx + nu(t,x) u_x - r(t,x) u = 0

the stored operator is ``L = -(1/2 sigma^2 D_xx + nu D_x - r)`` so that one
backward step of size dt reads ``u(t - dt) = (I - dt L) u(t)`` explicitly or
``(I + dt L) u(t - dt) = u(t)`` implicitly.

Boundary rows (first and last) are left untouched by the generators; they
belong to the boundary conditions attached to the evolver.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import cast

import numpy as np
from numpy.typing import NDArray

from ...exceptions import PreconditionError
from ...models.process import BlackScholesProcess
from ..fd.stencils import d1_central_nonuniform_coeffs, d2_central_nonuniform_coeffs
from ..grids import TransformedGrid
from ..tridiag import TridiagonalOperator

__all__ = [
    "d_plus",
    "d_minus",
    "d_zero",
    "d_plus_d_minus",
    "PdeSecondOrderParabolic",
    "PdeBSM",
    "PdeConstantCoeff",
    "GenericTimeSetter",
    "pde_operator",
    "bsm_operator",
]


# --- elementary difference operators on a uniform grid -------------------


def _check_uniform(n: int, h: float) -> None:
    if n < 2:
        raise PreconditionError("need at least 2 grid points")
    if h <= 0.0:
        raise PreconditionError("h must be > 0")


def d_plus(n: int, h: float) -> TridiagonalOperator:
    """Forward first difference; last row extrapolates linearly."""
    _check_uniform(n, h)
    D = TridiagonalOperator(n)
    D.set_first_row(-1.0 / h, 1.0 / h)
    D.set_mid_rows(0.0, -1.0 / h, 1.0 / h)
    D.set_last_row(-1.0 / h, 1.0 / h)
    return D


def d_minus(n: int, h: float) -> TridiagonalOperator:
    """Backward first difference; first row extrapolates linearly."""
    _check_uniform(n, h)
    D = TridiagonalOperator(n)
    D.set_first_row(-1.0 / h, 1.0 / h)
    D.set_mid_rows(-1.0 / h, 1.0 / h, 0.0)
    D.set_last_row(-1.0 / h, 1.0 / h)
    return D


def d_zero(n: int, h: float) -> TridiagonalOperator:
    """Central first difference with one-sided end rows."""
    _check_uniform(n, h)
    D = TridiagonalOperator(n)
    D.set_first_row(-1.0 / h, 1.0 / h)
    D.set_mid_rows(-0.5 / h, 0.0, 0.5 / h)
    D.set_last_row(-1.0 / h, 1.0 / h)
    return D


def d_plus_d_minus(n: int, h: float) -> TridiagonalOperator:
    """Second difference D+D-; end rows are zero."""
    _check_uniform(n, h)
    h2 = h * h
    D = TridiagonalOperator(n)
    D.set_first_row(0.0, 0.0)
    D.set_mid_rows(1.0 / h2, -2.0 / h2, 1.0 / h2)
    D.set_last_row(0.0, 0.0)
    return D


# --- PDE coefficient generators ------------------------------------------


def _eval_tx(
    fn: Callable[[float, float], float], t: float, x: NDArray[np.floating]
) -> NDArray[np.floating]:
    """Evaluate a scalar coefficient function fn(t, x) node by node."""
    out = np.empty_like(x, dtype=float)
    for i, xi in enumerate(x):
        out[i] = float(fn(float(t), float(xi)))
    return cast(NDArray[np.floating], out)


class PdeSecondOrderParabolic(ABC):
    """Second-order parabolic PDE given by its coefficient functions.

    ``diffusion`` returns the volatility sigma (squared internally), ``drift``
    the first-order coefficient nu and ``discount`` the zeroth-order rate r,
    all evaluated at time t and transformed coordinate x.
    """

    @abstractmethod
    def diffusion(self, t: float, x: float) -> float: ...

    @abstractmethod
    def drift(self, t: float, x: float) -> float: ...

    @abstractmethod
    def discount(self, t: float, x: float) -> float: ...

    def generate_operator(
        self, t: float, grid: TransformedGrid, L: TridiagonalOperator
    ) -> None:
        """Write the interior rows of ``L`` for time ``t`` on ``grid``.

        Uses central three-point stencils that account for unequal left/right
        spacings, so stretched or log-transformed grids keep second order.
        """
        n = grid.size
        if L.size != n:
            raise PreconditionError(
                f"operator size {L.size} does not match grid size {n}"
            )
        if n < 3:
            return

        x = np.asarray(grid.transformed[1:-1], dtype=float)
        hm = np.asarray(grid.dxm[1:-1], dtype=float)
        hp = np.asarray(grid.dxp[1:-1], dtype=float)

        sigma = _eval_tx(self.diffusion, t, x)
        nu = _eval_tx(self.drift, t, x)
        r = _eval_tx(self.discount, t, x)

        d2l, d2d, d2u = d2_central_nonuniform_coeffs(hm, hp)
        d1l, d1d, d1u = d1_central_nonuniform_coeffs(hm, hp)

        a = 0.5 * sigma * sigma
        pd = -(a * d2l + nu * d1l)
        pm = -(a * d2d + nu * d1d) + r
        pu = -(a * d2u + nu * d1u)

        for i in range(1, n - 1):
            L.set_mid_row(i, pd[i - 1], pm[i - 1], pu[i - 1])


class PdeBSM(PdeSecondOrderParabolic):
    """Black-Scholes-Merton PDE in log-spot x = log(S)."""

    def __init__(self, process: BlackScholesProcess) -> None:
        self.process = process

    def diffusion(self, t: float, x: float) -> float:
        return self.process.sigma(t, math.exp(x))

    def drift(self, t: float, x: float) -> float:
        sigma = self.diffusion(t, x)
        return self.process.r(t) - self.process.q(t) - 0.5 * sigma * sigma

    def discount(self, t: float, x: float) -> float:
        return self.process.r(t)


class PdeConstantCoeff(PdeSecondOrderParabolic):
    """Coefficients of ``pde`` frozen at a single (t, x) reference point.

    Only valid when the coefficients are known not to vary across the grid,
    e.g. Black-Scholes with flat rates and volatility.
    """

    def __init__(self, pde: PdeSecondOrderParabolic, t: float, x: float) -> None:
        self._diffusion = float(pde.diffusion(t, x))
        self._drift = float(pde.drift(t, x))
        self._discount = float(pde.discount(t, x))

    def diffusion(self, t: float, x: float) -> float:
        return self._diffusion

    def drift(self, t: float, x: float) -> float:
        return self._drift

    def discount(self, t: float, x: float) -> float:
        return self._discount


class GenericTimeSetter:
    """Regenerates an operator from ``pde`` whenever its time is set."""

    def __init__(self, grid: TransformedGrid, pde: PdeSecondOrderParabolic) -> None:
        self.grid = grid
        self.pde = pde

    def set_time(self, t: float, L: TridiagonalOperator) -> None:
        self.pde.generate_operator(t, self.grid, L)


def pde_operator(
    grid: TransformedGrid, pde: PdeSecondOrderParabolic, residual_time: float
) -> TridiagonalOperator:
    """Time-dependent operator for ``pde``, initialised at ``residual_time``."""
    L = TridiagonalOperator(grid.size, time_setter=GenericTimeSetter(grid, pde))
    L.set_time(residual_time)
    return L


def bsm_operator(
    grid: TransformedGrid, process: BlackScholesProcess, residual_time: float
) -> TridiagonalOperator:
    """Black-Scholes operator with coefficients frozen at (residual_time, log spot)."""
    L = TridiagonalOperator(grid.size)
    frozen = PdeConstantCoeff(PdeBSM(process), residual_time, process.x0)
    frozen.generate_operator(residual_time, grid, L)
    return L
