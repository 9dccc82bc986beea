# src/pde_pricing/numerics/grids.py
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import cast

import numpy as np
from numpy.typing import NDArray

from ..exceptions import PreconditionError

__all__ = [
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


@dataclass(frozen=True, slots=True)
class TransformedGrid:
    """Spatial grid in natural coordinates plus its transformed image.

    ``grid`` holds the natural node values (e.g. spot levels) and
    ``transformed`` the coordinate the PDE is written in (e.g. log-spot).
    Spacings are measured in the transformed coordinate:

      dxm[i] = x_i - x_{i-1},  dxp[i] = x_{i+1} - x_i,  dx[i] = dxm[i] + dxp[i]

    with ``dxm[0] = dxp[-1] = 0``.
    """

    grid: NDArray[np.floating]
    transformed: NDArray[np.floating]
    dxm: NDArray[np.floating]
    dxp: NDArray[np.floating]
    dx: NDArray[np.floating]

    @classmethod
    def from_nodes(
        cls,
        grid: NDArray[np.floating],
        transform: Callable[[NDArray[np.floating]], NDArray[np.floating]] | None = None,
    ) -> TransformedGrid:
        g = np.asarray(grid, dtype=float)
        if g.ndim != 1 or g.size < 2:
            raise PreconditionError("grid must be 1D with at least 2 nodes")
        x = np.asarray(transform(g), dtype=float) if transform is not None else g.copy()
        if not np.all(np.diff(x) > 0.0):
            raise PreconditionError("grid must be strictly increasing")

        dxm = np.zeros_like(x)
        dxp = np.zeros_like(x)
        dxm[1:] = np.diff(x)
        dxp[:-1] = np.diff(x)
        return cls(grid=g, transformed=x, dxm=dxm, dxp=dxp, dx=dxm + dxp)

    @property
    def size(self) -> int:
        return int(self.grid.shape[0])

    def __len__(self) -> int:
        return self.size


def uniform_grid(x_min: float, x_max: float, n: int) -> TransformedGrid:
    if n < 2:
        raise PreconditionError("n must be >= 2")
    if not (x_min < x_max):
        raise PreconditionError("Need x_min < x_max")
    return TransformedGrid.from_nodes(np.linspace(x_min, x_max, n, dtype=float))


def log_grid(s_min: float, s_max: float, n: int) -> TransformedGrid:
    """Nodes uniformly spaced in log(S) between s_min and s_max."""
    if n < 2:
        raise PreconditionError("n must be >= 2")
    if s_min <= 0.0:
        raise PreconditionError("s_min must be > 0 for a log grid")
    if not (s_min < s_max):
        raise PreconditionError("Need s_min < s_max")
    x = np.linspace(np.log(s_min), np.log(s_max), n, dtype=float)
    nodes = np.exp(x)
    # exact end points, exp(log(s)) may drift by an ulp
    nodes[0], nodes[-1] = s_min, s_max
    h = np.diff(x)
    dxm = np.concatenate(([0.0], h))
    dxp = np.concatenate((h, [0.0]))
    return TransformedGrid(grid=nodes, transformed=x, dxm=dxm, dxp=dxp, dx=dxm + dxp)


def scale_grid(
    grid: TransformedGrid,
    factor: float,
    transform: Callable[[NDArray[np.floating]], NDArray[np.floating]] = np.log,
) -> TransformedGrid:
    """Grid with every node multiplied by ``factor``; ``transform`` is re-applied."""
    if factor <= 0.0:
        raise PreconditionError("scale factor must be > 0")
    return TransformedGrid.from_nodes(grid.grid * factor, transform)


def shift_grid(
    grid: TransformedGrid,
    shift: float,
    transform: Callable[[NDArray[np.floating]], NDArray[np.floating]] = np.log,
) -> TransformedGrid:
    """Grid with ``shift`` added to every node; ``transform`` is re-applied.

    Shifting a log grid leaves it non-uniform in the transformed coordinate.
    """
    return TransformedGrid.from_nodes(grid.grid + shift, transform)


# --- readers for a value array sampled on a grid ------------------------


def _as_pair(
    grid: NDArray[np.floating], values: NDArray[np.floating], min_size: int
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    g = np.asarray(grid, dtype=float)
    v = np.asarray(values, dtype=float)
    if g.shape != v.shape or g.ndim != 1:
        raise PreconditionError("grid and values must be 1D with equal shapes")
    if g.size < min_size:
        raise PreconditionError(f"need at least {min_size} points")
    return g, v


def value_at_center(grid: NDArray[np.floating], values: NDArray[np.floating]) -> float:
    """Middle node value (odd size) or the average of the two middle ones."""
    _, v = _as_pair(grid, values, 1)
    n = v.size
    jmid = n // 2
    if n % 2 == 1:
        return float(v[jmid])
    return float(0.5 * (v[jmid] + v[jmid - 1]))


def first_derivative_at_center(
    grid: NDArray[np.floating], values: NDArray[np.floating]
) -> float:
    g, v = _as_pair(grid, values, 3)
    n = v.size
    jmid = n // 2
    if n % 2 == 1:
        return float((v[jmid + 1] - v[jmid - 1]) / (g[jmid + 1] - g[jmid - 1]))
    return float((v[jmid] - v[jmid - 1]) / (g[jmid] - g[jmid - 1]))


def second_derivative_at_center(
    grid: NDArray[np.floating], values: NDArray[np.floating]
) -> float:
    g, v = _as_pair(grid, values, 4)
    n = v.size
    jmid = n // 2
    if n % 2 == 1:
        delta_plus = (v[jmid + 1] - v[jmid]) / (g[jmid + 1] - g[jmid])
        delta_minus = (v[jmid] - v[jmid - 1]) / (g[jmid] - g[jmid - 1])
        ds = 0.5 * (g[jmid + 1] - g[jmid - 1])
        return float((delta_plus - delta_minus) / ds)
    delta_plus = (v[jmid + 1] - v[jmid - 1]) / (g[jmid + 1] - g[jmid - 1])
    delta_minus = (v[jmid] - v[jmid - 2]) / (g[jmid] - g[jmid - 2])
    return float((delta_plus - delta_minus) / (g[jmid] - g[jmid - 1]))


def value_at(
    grid: NDArray[np.floating], values: NDArray[np.floating], x: float
) -> float:
    """Linear interpolation of the sampled values; x must lie inside the grid."""
    g, v = _as_pair(grid, values, 2)
    if not (g[0] <= x <= g[-1]):
        raise PreconditionError(f"x={x} outside grid [{g[0]}, {g[-1]}]")
    return float(cast(float, np.interp(float(x), g, v)))
