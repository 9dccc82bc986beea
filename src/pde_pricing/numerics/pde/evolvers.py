"""Time evolvers for tridiagonal operators.

An evolver advances a value array by one (backward) time step. The theta
family blends an explicit and an implicit half:

    (I + theta dt L) u(t - dt) = (I - (1 - theta) dt L) u(t)

- theta=0.0: explicit Euler
- theta=0.5: Crank-Nicolson
- theta=1.0: implicit Euler
"""

from __future__ import annotations

import warnings
from collections.abc import Callable, Sequence
from typing import Protocol, TypeAlias, TypeVar, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from ...exceptions import PreconditionError
from ..tridiag import TridiagonalOperator
from .boundary import BoundaryCondition

__all__ = [
    "Evolver",
    "EvolverFactory",
    "MixedScheme",
    "ExplicitEuler",
    "ImplicitEuler",
    "CrankNicolson",
    "ParallelEvolver",
]

ArrayT = TypeVar("ArrayT")


@runtime_checkable
class Evolver(Protocol[ArrayT]):
    """Anything that can step an array backward in time with a settable step."""

    def set_step(self, dt: float) -> None:  # pragma: no cover
        ...

    def step(self, a: ArrayT, t: float) -> ArrayT:  # pragma: no cover
        ...


EvolverFactory: TypeAlias = Callable[
    [TridiagonalOperator, Sequence[BoundaryCondition]], Evolver[NDArray[np.floating]]
]


class MixedScheme:
    """Theta-scheme evolver over a tridiagonal operator.

    The operator is cloned at construction; the boundary-condition sequence
    is kept by reference and applied in order on every step.
    """

    def __init__(
        self,
        L: TridiagonalOperator,
        theta: float,
        bcs: Sequence[BoundaryCondition] = (),
    ) -> None:
        theta = float(theta)
        if not (0.0 <= theta <= 1.0):
            raise PreconditionError("theta must be in [0, 1]")
        self.L = L.clone()
        self.I = TridiagonalOperator.identity(self.L.size)
        self.theta = theta
        self.bcs = bcs
        self.dt = 0.0
        self.explicit_part: TridiagonalOperator | None = None
        self.implicit_part: TridiagonalOperator | None = None

    @property
    def has_explicit_part(self) -> bool:
        return self.theta != 1.0

    @property
    def has_implicit_part(self) -> bool:
        return self.theta != 0.0

    def _build_explicit(self) -> TridiagonalOperator:
        return self.I - ((1.0 - self.theta) * self.dt) * self.L

    def _build_implicit(self) -> TridiagonalOperator:
        return self.I + (self.theta * self.dt) * self.L

    def set_step(self, dt: float) -> None:
        self.dt = float(dt)
        if self.has_explicit_part:
            self.explicit_part = self._build_explicit()
            if self.theta == 0.0 and self.L.size > 0:
                # explicit Euler is only conditionally stable
                rho = self.dt * float(np.max(np.abs(self.L.diag)))
                if rho > 1.0:
                    warnings.warn(
                        f"explicit step dt={self.dt:g} exceeds the stability "
                        f"estimate (dt*max|diag|={rho:.3g} > 1)",
                        RuntimeWarning,
                        stacklevel=2,
                    )
        if self.has_implicit_part:
            self.implicit_part = self._build_implicit()

    def step(self, a: NDArray[np.floating], t: float) -> NDArray[np.floating]:
        if (self.has_explicit_part and self.explicit_part is None) or (
            self.has_implicit_part and self.implicit_part is None
        ):
            raise PreconditionError("set_step must be called before step")

        u = np.array(a, dtype=float)
        if u.shape != (self.L.size,):
            raise PreconditionError(
                f"array must have shape {(self.L.size,)} got {u.shape}"
            )

        for bc in self.bcs:
            bc.set_time(t)

        if self.has_explicit_part:
            if self.L.is_time_dependent():
                self.L.set_time(t)
                self.explicit_part = self._build_explicit()
            assert self.explicit_part is not None
            for bc in self.bcs:
                bc.apply_before_applying(self.explicit_part)
            u = self.explicit_part.apply_to(u)
            for bc in self.bcs:
                bc.apply_after_applying(u)

        if self.has_implicit_part:
            if self.L.is_time_dependent():
                self.L.set_time(t - self.dt)
                self.implicit_part = self._build_implicit()
            assert self.implicit_part is not None
            for bc in self.bcs:
                bc.apply_before_solving(self.implicit_part, u)
            u = self.implicit_part.solve_for(u)
            for bc in self.bcs:
                bc.apply_after_solving(u)

        return u


class ExplicitEuler(MixedScheme):
    def __init__(
        self, L: TridiagonalOperator, bcs: Sequence[BoundaryCondition] = ()
    ) -> None:
        super().__init__(L, 0.0, bcs)


class ImplicitEuler(MixedScheme):
    def __init__(
        self, L: TridiagonalOperator, bcs: Sequence[BoundaryCondition] = ()
    ) -> None:
        super().__init__(L, 1.0, bcs)


class CrankNicolson(MixedScheme):
    def __init__(
        self, L: TridiagonalOperator, bcs: Sequence[BoundaryCondition] = ()
    ) -> None:
        super().__init__(L, 0.5, bcs)


class ParallelEvolver:
    """Steps several independent arrays, each with its own evolver.

    Pair it with :class:`~pde_pricing.numerics.pde.conditions.StepConditionSet`
    so that the i-th condition sees the i-th array.
    """

    def __init__(self, evolvers: Sequence[Evolver[NDArray[np.floating]]]) -> None:
        self.evolvers = list(evolvers)

    @classmethod
    def from_operators(
        cls,
        operators: Sequence[TridiagonalOperator],
        bc_sets: Sequence[Sequence[BoundaryCondition]],
        factory: EvolverFactory = CrankNicolson,
    ) -> ParallelEvolver:
        if len(operators) != len(bc_sets):
            raise PreconditionError(
                f"{len(operators)} operators but {len(bc_sets)} boundary sets"
            )
        return cls([factory(L, bcs) for L, bcs in zip(operators, bc_sets)])

    def __len__(self) -> int:
        return len(self.evolvers)

    def set_step(self, dt: float) -> None:
        for evolver in self.evolvers:
            evolver.set_step(dt)

    def step(
        self, arrays: Sequence[NDArray[np.floating]], t: float
    ) -> list[NDArray[np.floating]]:
        if len(arrays) != len(self.evolvers):
            raise PreconditionError(
                f"{len(arrays)} arrays for {len(self.evolvers)} evolvers"
            )
        return [e.step(a, t) for e, a in zip(self.evolvers, arrays)]
