"""Boundary conditions for tridiagonal time stepping.

A boundary condition hooks into every evolver step at four points: before
and after the explicit operator is applied, and before and after the implicit
system is solved. Capabilities a concrete condition does not provide raise
:class:`~pde_pricing.exceptions.UnsupportedOperationError` so wiring mistakes
surface on the first step instead of producing a silently wrong price.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from ...exceptions import UnsupportedOperationError
from ..tridiag import TridiagonalOperator

__all__ = ["Side", "BoundaryCondition", "NeumannBC", "DirichletBC"]


class Side(str, Enum):
    """Grid end a boundary condition acts on."""

    LOWER = "lower"
    UPPER = "upper"


class BoundaryCondition:
    """Base boundary condition; every capability is unsupported by default."""

    __slots__ = ()

    def set_time(self, t: float) -> None:
        return None

    def apply_before_applying(self, L: TridiagonalOperator) -> None:
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support apply_before_applying"
        )

    def apply_after_applying(self, u: NDArray[np.floating]) -> None:
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support apply_after_applying"
        )

    def apply_before_solving(
        self, L: TridiagonalOperator, rhs: NDArray[np.floating]
    ) -> None:
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support apply_before_solving"
        )

    def apply_after_solving(self, u: NDArray[np.floating]) -> None:
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support apply_after_solving"
        )


@dataclass(frozen=True, slots=True)
class NeumannBC(BoundaryCondition):
    """Fixed first difference at one end of the grid.

    Lower side enforces ``u[1] - u[0] = value``, upper side
    ``u[n-1] - u[n-2] = value``.
    """

    value: float
    side: Side

    def apply_before_applying(self, L: TridiagonalOperator) -> None:
        if self.side == Side.LOWER:
            L.set_first_row(-1.0, 1.0)
        else:
            L.set_last_row(-1.0, 1.0)

    def apply_after_applying(self, u: NDArray[np.floating]) -> None:
        if self.side == Side.LOWER:
            u[0] = u[1] - self.value
        else:
            u[-1] = u[-2] + self.value

    def apply_before_solving(
        self, L: TridiagonalOperator, rhs: NDArray[np.floating]
    ) -> None:
        if self.side == Side.LOWER:
            L.set_first_row(-1.0, 1.0)
            rhs[0] = self.value
        else:
            L.set_last_row(-1.0, 1.0)
            rhs[-1] = self.value

    def apply_after_solving(self, u: NDArray[np.floating]) -> None:
        return None


@dataclass(frozen=True, slots=True)
class DirichletBC(BoundaryCondition):
    """Fixed node value at one end of the grid."""

    value: float
    side: Side

    def apply_before_applying(self, L: TridiagonalOperator) -> None:
        if self.side == Side.LOWER:
            L.set_first_row(1.0, 0.0)
        else:
            L.set_last_row(0.0, 1.0)

    def apply_after_applying(self, u: NDArray[np.floating]) -> None:
        if self.side == Side.LOWER:
            u[0] = self.value
        else:
            u[-1] = self.value

    def apply_before_solving(
        self, L: TridiagonalOperator, rhs: NDArray[np.floating]
    ) -> None:
        if self.side == Side.LOWER:
            L.set_first_row(1.0, 0.0)
            rhs[0] = self.value
        else:
            L.set_last_row(0.0, 1.0)
            rhs[-1] = self.value

    def apply_after_solving(self, u: NDArray[np.floating]) -> None:
        return None
