"""Backward rollback of a discretised value function through time.

:class:`FiniteDifferenceModel` owns an evolver and a set of mandatory stopping
times. During :meth:`FiniteDifferenceModel.rollback` the evolver advances with
a uniform nominal step, except that every stopping time falling inside a step
is hit exactly: the step is shrunk to land on it, the step condition is applied
there, and the remainder of the nominal step is completed before the regular
cadence resumes.

Not re-entrant: a rollback mutates the evolver's step size, so an evolver must
not be shared between concurrently running rollbacks.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from typing import Generic, TypeVar, cast

import numpy as np
from numpy.typing import NDArray

from ...exceptions import PreconditionError
from ..tridiag import TridiagonalOperator
from .boundary import BoundaryCondition
from .conditions import StepCondition
from .evolvers import CrankNicolson, Evolver, EvolverFactory

__all__ = ["FiniteDifferenceModel"]

logger = logging.getLogger(__name__)

_TIME_SNAP = math.sqrt(np.finfo(float).eps)

ArrayT = TypeVar("ArrayT")


def _copy_values(a: ArrayT) -> ArrayT:
    """Private copy of the value array(s) so the caller's input is never mutated."""
    if isinstance(a, np.ndarray):
        return cast(ArrayT, np.array(a, dtype=float))
    if isinstance(a, Sequence):
        return cast(ArrayT, [np.array(x, dtype=float) for x in a])
    return cast(ArrayT, np.array(a, dtype=float))


class FiniteDifferenceModel(Generic[ArrayT]):
    """Evolver plus stopping times; drives backward rollbacks.

    Parameters
    ----------
    evolver:
        Any object with ``set_step(dt)`` and ``step(a, t) -> a``, e.g. a
        :class:`~pde_pricing.numerics.pde.evolvers.MixedScheme` or a
        :class:`~pde_pricing.numerics.pde.evolvers.ParallelEvolver`.
    stopping_times:
        Times at which rollback must land exactly. A sorted, de-duplicated copy
        is stored; the caller's sequence is not touched.
    """

    def __init__(
        self,
        evolver: Evolver[ArrayT],
        stopping_times: Iterable[float] = (),
    ) -> None:
        self.evolver = evolver
        self.stopping_times: tuple[float, ...] = tuple(
            sorted({float(t) for t in stopping_times})
        )

    @classmethod
    def from_operator(
        cls,
        L: TridiagonalOperator,
        bcs: Sequence[BoundaryCondition] = (),
        stopping_times: Iterable[float] = (),
        factory: EvolverFactory = CrankNicolson,
    ) -> FiniteDifferenceModel[NDArray[np.floating]]:
        """Build the evolver with ``factory(L, bcs)`` and wrap it in a model."""
        return FiniteDifferenceModel(factory(L, bcs), stopping_times)

    def rollback(
        self,
        a: ArrayT,
        from_: float,
        to: float,
        steps: int,
        condition: StepCondition[ArrayT] | None = None,
    ) -> ArrayT:
        """Roll ``a`` back from time ``from_`` to time ``to`` in ``steps`` steps.

        ``condition`` (if any) is applied after every step, at the time the
        array then represents, and at ``from_`` itself when ``from_`` is a
        stopping time. Returns the array at ``to``; the input is not mutated.
        """
        from_ = float(from_)
        to = float(to)
        if from_ < to:
            raise PreconditionError(
                f"trying to roll back from {from_} to {to}: from must be >= to"
            )
        if int(steps) != steps or steps <= 0:
            raise PreconditionError(f"steps must be a positive integer, got {steps}")
        steps = int(steps)

        dt = (from_ - to) / steps
        self.evolver.set_step(dt)
        logger.debug(
            "rollback from %g to %g in %d steps (dt=%g), %d stopping times",
            from_,
            to,
            steps,
            dt,
            len(self.stopping_times),
        )

        a = _copy_values(a)
        if condition is not None and any(
            abs(st - from_) < _TIME_SNAP for st in self.stopping_times
        ):
            condition.apply_to(a, from_)

        for i in range(steps):
            # same formula for both ends so consecutive steps share a boundary
            now = from_ - i * dt
            next_ = from_ - (i + 1) * dt
            if abs(to - next_) < _TIME_SNAP:
                next_ = to

            hit = False
            for st in reversed(self.stopping_times):
                # times within round-off of a step end are taken as that end
                if next_ + _TIME_SNAP < st < now - _TIME_SNAP:
                    hit = True
                    logger.debug("stopping time %g hit in step [%g, %g]", st, next_, now)
                    self.evolver.set_step(now - st)
                    a = self.evolver.step(a, now)
                    if condition is not None:
                        condition.apply_to(a, st)
                    now = st

            if hit:
                if now > next_:
                    self.evolver.set_step(now - next_)
                    a = self.evolver.step(a, now)
                    if condition is not None:
                        condition.apply_to(a, next_)
                self.evolver.set_step(dt)
            else:
                a = self.evolver.step(a, now)
                if condition is not None:
                    condition.apply_to(a, next_)

        return a
