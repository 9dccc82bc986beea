"""Finite-difference pricer for vanilla options paying discrete cash dividends.

The rollback runs period by period between dividend dates. At each payment the
spot grid is moved across the dividend, the payoff and the operator are
rebuilt on the moved grid, and the step condition is re-applied at the payment
time. Prices are never interpolated: a node keeps its value and only its spot
label changes.

With ``DividendGridModel.MERTON73`` a European price equals the Black-Scholes
price on the spot net of the discounted dividends.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

import numpy as np
from numpy.typing import NDArray

from ..config import FDConfig
from ..exceptions import PreconditionError
from ..models.process import BlackScholesProcess
from ..numerics.grids import (
    TransformedGrid,
    first_derivative_at_center,
    log_grid,
    scale_grid,
    second_derivative_at_center,
    shift_grid,
    value_at_center,
)
from ..numerics.pde import (
    AmericanCondition,
    FiniteDifferenceModel,
    NeumannBC,
    resolve_method,
)
from ..types import (
    CashDividend,
    DividendGridModel,
    ExerciseStyle,
    OptionType,
    PricingInputs,
)
from .fd_vanilla import (
    FDResult,
    fd_operator,
    grid_limits,
    intrinsic_values,
    payoff_boundaries,
    safe_grid_points,
)

__all__ = [
    "discounted_dividend",
    "fd_dividend_price",
    "fd_dividend_price_process",
]

logger = logging.getLogger(__name__)

# relative tolerance for dividends paid today or at expiry
DATE_TOLERANCE = 1e-6


def discounted_dividend(process: BlackScholesProcess, dividend: CashDividend) -> float:
    """Dividend amount discounted to today at ``r - q``.

    Rates are read at the payment time and treated as flat up to it.
    """
    t = dividend.time
    return dividend.amount * math.exp(-(process.r(t) - process.q(t)) * t)


class _DividendRollback:
    """Mutable grid state of one dividend pricing run."""

    def __init__(
        self,
        process: BlackScholesProcess,
        kind: OptionType,
        strike: float,
        expiry: float,
        dividends: list[CashDividend],
        exercise: ExerciseStyle,
        cfg: FDConfig,
        grid_model: DividendGridModel,
    ) -> None:
        self.process = process
        self.kind = kind
        self.strike = strike
        self.expiry = expiry
        self.dividends = dividends
        self.exercise = exercise
        self.cfg = cfg
        self.grid_model = grid_model
        self.factory = resolve_method(method=cfg.method, theta=cfg.theta)

        if grid_model == DividendGridModel.MERTON73:
            paid = sum(discounted_dividend(process, d) for d in dividends)
        else:
            paid = sum(d.amount for d in dividends)
        self.center = process.spot - paid
        if self.center <= 0.0:
            raise PreconditionError(
                f"dividends ({paid:g}) exceed the spot ({process.spot:g})"
            )

        n = safe_grid_points(cfg.grid_points, expiry)
        sigma = process.sigma(expiry, self.center)
        s_min, s_max = grid_limits(self.center, expiry, sigma, strike)
        self.grid: TransformedGrid = log_grid(s_min, s_max, n)
        logger.debug(
            "FD dividend grid: %d nodes on [%g, %g] around %g, %d dividends (%s)",
            n,
            s_min,
            s_max,
            self.center,
            len(dividends),
            grid_model.value,
        )

        self.intrinsic = intrinsic_values(kind, strike, self.grid.grid)
        # boundary slopes stay those of the initial payoff across payments
        self.bcs: list[NeumannBC] = payoff_boundaries(self.intrinsic)
        self._rebuild()

    def _rebuild(self) -> None:
        self.intrinsic = intrinsic_values(self.kind, self.strike, self.grid.grid)
        L = fd_operator(self.grid, self.process, self.expiry, self.cfg)
        self.model = FiniteDifferenceModel.from_operator(L, self.bcs, factory=self.factory)
        self.condition = (
            AmericanCondition(self.intrinsic)
            if self.exercise == ExerciseStyle.AMERICAN
            else None
        )

    def pay_dividend(self, j: int, prices: NDArray[np.floating]) -> None:
        """Move the grid across dividend ``j`` and re-apply the condition."""
        dividend = self.dividends[j]
        if self.grid_model == DividendGridModel.MERTON73:
            factor = discounted_dividend(self.process, dividend) / self.center + 1.0
            self.center *= factor
            self.grid = scale_grid(self.grid, factor)
        else:
            self.center += dividend.amount
            self.grid = shift_grid(self.grid, dividend.amount)
        logger.debug(
            "dividend %g paid at t=%g, grid centre now %g",
            dividend.amount,
            dividend.time,
            self.center,
        )

        self._rebuild()
        if self.condition is not None:
            self.condition.apply_to(prices, dividend.time)

    def run(self) -> NDArray[np.floating]:
        times = [d.time for d in self.dividends]
        count = len(times)
        steps = self.cfg.time_steps

        last_is_expiry = count > 0 and abs(times[-1] - self.expiry) < DATE_TOLERANCE
        first_is_zero = (
            count > (1 if last_is_expiry else 0)
            and times[0] < self.expiry * DATE_TOLERANCE
        )
        lo = 1 if first_is_zero else 0
        hi = count - 2 if last_is_expiry else count - 1

        first_non_zero = times[lo] if lo < count else self.expiry
        dt = self.expiry / (steps * (count + 1))
        # the last sub-step must end before the first dividend
        if first_non_zero <= dt:
            dt = first_non_zero / 2.0

        prices = self.intrinsic.copy()
        if last_is_expiry:
            self.pay_dividend(count - 1, prices)

        begin = self.expiry
        for j in range(hi, lo - 1, -1):
            prices = self.model.rollback(prices, begin, times[j], steps, self.condition)
            self.pay_dividend(j, prices)
            begin = times[j]

        prices = self.model.rollback(prices, begin, dt, steps, self.condition)
        prices = self.model.rollback(prices, dt, 0.0, 1, self.condition)
        if first_is_zero:
            self.pay_dividend(0, prices)
        return prices


def fd_dividend_price_process(
    process: BlackScholesProcess,
    *,
    kind: OptionType,
    strike: float,
    expiry: float,
    dividends: Iterable[CashDividend],
    exercise: ExerciseStyle = ExerciseStyle.EUROPEAN,
    cfg: FDConfig | None = None,
    grid_model: DividendGridModel = DividendGridModel.MERTON73,
) -> FDResult:
    """Price a European or American option on ``process`` with cash dividends.

    ``dividends`` are paid at times in ``[0, expiry]`` measured from today;
    their times must be distinct. ``cfg.time_steps`` is the number of steps
    per period between consecutive payments.
    """
    cfg = cfg if cfg is not None else FDConfig()
    exercise = ExerciseStyle(exercise)
    kind = OptionType(kind)
    grid_model = DividendGridModel(grid_model)
    expiry = float(expiry)
    if expiry <= 0.0:
        raise PreconditionError("expiry must be > 0")
    if exercise not in (ExerciseStyle.EUROPEAN, ExerciseStyle.AMERICAN):
        raise PreconditionError(
            f"dividend pricing supports european and american exercise, not {exercise.value}"
        )

    divs = sorted(dividends, key=lambda d: d.time)
    if divs and divs[-1].time > expiry * (1.0 + DATE_TOLERANCE):
        raise PreconditionError("dividends must be paid no later than expiry")
    for prev, cur in zip(divs, divs[1:]):
        if not prev.time < cur.time:
            raise PreconditionError(
                f"dividend times must be distinct: {prev.time} is paid twice"
            )

    engine = _DividendRollback(
        process, kind, float(strike), expiry, divs, exercise, cfg, grid_model
    )
    values = engine.run()
    nodes = engine.grid.grid

    return FDResult(
        value=value_at_center(nodes, values),
        delta=first_derivative_at_center(nodes, values),
        gamma=second_derivative_at_center(nodes, values),
        grid=nodes,
        values=values,
    )


def fd_dividend_price(
    p: PricingInputs,
    dividends: Iterable[CashDividend],
    *,
    exercise: ExerciseStyle = ExerciseStyle.EUROPEAN,
    cfg: FDConfig | None = None,
    grid_model: DividendGridModel = DividendGridModel.MERTON73,
) -> FDResult:
    """Flat-parameter entry point; see :func:`fd_dividend_price_process`."""
    process = BlackScholesProcess(
        spot=p.S, rate=p.r, volatility=p.sigma, dividend_yield=p.q
    )
    return fd_dividend_price_process(
        process,
        kind=p.spec.kind,
        strike=p.K,
        expiry=p.tau,
        dividends=dividends,
        exercise=exercise,
        cfg=cfg,
        grid_model=grid_model,
    )
