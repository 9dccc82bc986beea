"""Step conditions applied by the rollback driver after every time step.

A step condition receives the freshly stepped value array and the time it
now represents, and adjusts it in place (early exercise, shout, ...).
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from typing import Protocol, Self, TypeVar, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from ...exceptions import PreconditionError

__all__ = [
    "StepCondition",
    "NullCondition",
    "CurveDependentStepCondition",
    "AmericanCondition",
    "ShoutCondition",
    "BermudanCondition",
    "StepConditionSet",
]

ArrayT = TypeVar("ArrayT")


@runtime_checkable
class StepCondition(Protocol[ArrayT]):
    def apply_to(self, a: ArrayT, t: float) -> None:  # pragma: no cover
        ...


class NullCondition:
    """Leaves the array untouched."""

    def apply_to(self, a: NDArray[np.floating], t: float) -> None:
        return None


class CurveDependentStepCondition(ABC):
    """Condition combining the current values with a reference curve node by node.

    The curve is usually the intrinsic value of the contract sampled on the
    spatial grid.
    """

    def __init__(self, values: NDArray[np.floating]) -> None:
        self.values = np.array(values, dtype=float)
        if self.values.ndim != 1:
            raise PreconditionError("values must be 1D")

    @classmethod
    def from_payoff(
        cls,
        payoff: Callable[[NDArray[np.floating]], NDArray[np.floating]],
        nodes: NDArray[np.floating],
        *args: object,
        **kwargs: object,
    ) -> Self:
        return cls(np.asarray(payoff(np.asarray(nodes, dtype=float))), *args, **kwargs)

    @abstractmethod
    def apply_to_value(
        self, current: NDArray[np.floating], intrinsic: NDArray[np.floating], t: float
    ) -> NDArray[np.floating]: ...

    def apply_to(self, a: NDArray[np.floating], t: float) -> None:
        if a.shape != self.values.shape:
            raise PreconditionError(
                f"array shape {a.shape} does not match curve shape {self.values.shape}"
            )
        a[:] = self.apply_to_value(a, self.values, t)


class AmericanCondition(CurveDependentStepCondition):
    """Early exercise: value is floored at the intrinsic value."""

    def apply_to_value(
        self, current: NDArray[np.floating], intrinsic: NDArray[np.floating], t: float
    ) -> NDArray[np.floating]:
        return np.maximum(current, intrinsic)


class ShoutCondition(CurveDependentStepCondition):
    """Shout option: the holder may lock in the intrinsic value at any time.

    The floor is the intrinsic value grown from the current time ``t`` to
    ``res_time`` (maturity) at the continuously-compounded ``rate``, i.e.
    ``exp(-rate * (t - res_time)) * intrinsic``. At maturity it reduces to the
    plain intrinsic floor.
    """

    def __init__(self, values: NDArray[np.floating], res_time: float, rate: float) -> None:
        super().__init__(values)
        self.res_time = float(res_time)
        self.rate = float(rate)

    def apply_to_value(
        self, current: NDArray[np.floating], intrinsic: NDArray[np.floating], t: float
    ) -> NDArray[np.floating]:
        disc = math.exp(-self.rate * (t - self.res_time))
        return np.maximum(current, disc * intrinsic)


class BermudanCondition(AmericanCondition):
    """Early exercise allowed only at the listed exercise times."""

    def __init__(
        self,
        values: NDArray[np.floating],
        exercise_times: Iterable[float],
        tol: float = 1e-10,
    ) -> None:
        super().__init__(values)
        self.exercise_times = np.array(sorted(set(float(x) for x in exercise_times)))
        self.tol = float(tol)

    def is_exercise_time(self, t: float) -> bool:
        if self.exercise_times.size == 0:
            return False
        return bool(np.any(np.abs(self.exercise_times - t) <= self.tol))

    def apply_to(self, a: NDArray[np.floating], t: float) -> None:
        if self.is_exercise_time(t):
            super().apply_to(a, t)


class StepConditionSet:
    """Per-array conditions for a :class:`~pde_pricing.numerics.pde.evolvers.ParallelEvolver`.

    ``None`` entries leave the matching array untouched.
    """

    def __init__(
        self, conditions: Sequence[StepCondition[NDArray[np.floating]] | None]
    ) -> None:
        self.conditions = list(conditions)

    def __len__(self) -> int:
        return len(self.conditions)

    def apply_to(self, a: Sequence[NDArray[np.floating]], t: float) -> None:
        if len(a) != len(self.conditions):
            raise PreconditionError(
                f"{len(a)} arrays for {len(self.conditions)} conditions"
            )
        for condition, arr in zip(self.conditions, a):
            if condition is not None:
                condition.apply_to(arr, t)
