"""Finite-difference pricer for single-asset vanilla options.

Wires the engine the way a pricing call uses it: a log-spot grid around the
spot, a Black-Scholes operator, Neumann boundaries taken from the payoff
slope, an evolver chosen by name or theta, and a rollback from expiry to
today with the step condition implied by the exercise style.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from ..config import FDConfig
from ..exceptions import PreconditionError
from ..models.process import BlackScholesProcess
from ..numerics.grids import (
    TransformedGrid,
    first_derivative_at_center,
    log_grid,
    second_derivative_at_center,
    value_at_center,
)
from ..numerics.pde import (
    AmericanCondition,
    BermudanCondition,
    FiniteDifferenceModel,
    NeumannBC,
    PdeBSM,
    ShoutCondition,
    Side,
    StepCondition,
    bsm_operator,
    pde_operator,
    resolve_method,
)
from ..numerics.tridiag import TridiagonalOperator
from ..types import ExerciseStyle, OptionType, PricingInputs
from ..typing import FloatArray

__all__ = [
    "FDResult",
    "safe_grid_points",
    "grid_limits",
    "intrinsic_values",
    "fd_operator",
    "payoff_boundaries",
    "fd_price",
    "fd_price_process",
]

logger = logging.getLogger(__name__)

MIN_GRID_POINTS = 10
MIN_GRID_POINTS_PER_YEAR = 2


@dataclass(frozen=True, slots=True)
class FDResult:
    value: float
    delta: float
    gamma: float
    grid: FloatArray = field(repr=False)  # spot levels
    values: FloatArray = field(repr=False)  # option values today


def safe_grid_points(grid_points: int, residual_time: float) -> int:
    """At least 10 nodes, or two per year for expiries beyond one year."""
    floor = (
        int(MIN_GRID_POINTS_PER_YEAR * residual_time)
        if residual_time > 1.0
        else MIN_GRID_POINTS
    )
    return max(int(grid_points), floor)


def grid_limits(
    center: float,
    residual_time: float,
    sigma: float,
    strike: float,
) -> tuple[float, float]:
    """Spot range of +/- four standard deviations, widened to contain the strike.

    The strike is kept at least 10% inside the range; widening one end keeps
    the range symmetric in log space around ``center``.
    """
    if center <= 0.0 or strike <= 0.0:
        raise PreconditionError("center and strike must be > 0")
    if residual_time <= 0.0 or sigma <= 0.0:
        raise PreconditionError("residual_time and sigma must be > 0")

    vol_sqrt_time = sigma * math.sqrt(residual_time)
    # widens the range at small volatilities
    prefactor = 1.0 + 0.02 / vol_sqrt_time
    min_max_factor = math.exp(4.0 * prefactor * vol_sqrt_time)
    s_min = center / min_max_factor
    s_max = center * min_max_factor

    if strike < s_min * 1.1:
        s_min = strike / 1.1
        s_max = center / (s_min / center)
    if strike > s_max / 1.1:
        s_max = strike * 1.1
        s_min = center / (s_max / center)
    return s_min, s_max


def intrinsic_values(
    kind: OptionType, strike: float, nodes: NDArray[np.floating]
) -> NDArray[np.floating]:
    s = np.asarray(nodes, dtype=float)
    if kind == OptionType.CALL:
        return np.maximum(s - strike, 0.0)
    if kind == OptionType.PUT:
        return np.maximum(strike - s, 0.0)
    raise ValueError(f"Unsupported option kind: {kind}")


def fd_operator(
    grid: TransformedGrid,
    process: BlackScholesProcess,
    residual_time: float,
    cfg: FDConfig,
) -> TridiagonalOperator:
    """Black-Scholes operator on ``grid``.

    Regenerated at every step for time-dependent processes (or when
    ``cfg.time_dependent`` is set), frozen at ``residual_time`` otherwise.
    """
    if cfg.time_dependent or process.is_time_dependent():
        return pde_operator(grid, PdeBSM(process), residual_time)
    return bsm_operator(grid, process, residual_time)


def payoff_boundaries(intrinsic: NDArray[np.floating]) -> list[NeumannBC]:
    """Neumann conditions carrying the payoff slope at both grid ends."""
    return [
        NeumannBC(float(intrinsic[1] - intrinsic[0]), Side.LOWER),
        NeumannBC(float(intrinsic[-1] - intrinsic[-2]), Side.UPPER),
    ]


def _step_condition(
    exercise: ExerciseStyle,
    intrinsic: NDArray[np.floating],
    *,
    expiry: float,
    rate: float,
    exercise_times: tuple[float, ...],
) -> StepCondition[NDArray[np.floating]] | None:
    if exercise == ExerciseStyle.EUROPEAN:
        return None
    if exercise == ExerciseStyle.AMERICAN:
        return AmericanCondition(intrinsic)
    if exercise == ExerciseStyle.SHOUT:
        return ShoutCondition(intrinsic, expiry, rate)
    if exercise == ExerciseStyle.BERMUDAN:
        return BermudanCondition(intrinsic, exercise_times)
    raise ValueError(f"Unsupported exercise style: {exercise}")


def fd_price_process(
    process: BlackScholesProcess,
    *,
    kind: OptionType,
    strike: float,
    expiry: float,
    exercise: ExerciseStyle = ExerciseStyle.EUROPEAN,
    cfg: FDConfig | None = None,
    exercise_times: Iterable[float] = (),
) -> FDResult:
    """Price a vanilla option on ``process`` by backward rollback.

    ``expiry`` is the time to expiry. ``exercise_times`` (Bermudan only) are
    times from today in ``(0, expiry]``; they become the model's stopping
    times, so exercise is tested exactly on those dates.
    """
    cfg = cfg if cfg is not None else FDConfig()
    exercise = ExerciseStyle(exercise)
    kind = OptionType(kind)
    expiry = float(expiry)
    if expiry <= 0.0:
        raise PreconditionError("expiry must be > 0")

    times = tuple(sorted({float(t) for t in exercise_times}))
    if exercise == ExerciseStyle.BERMUDAN:
        if not times:
            raise PreconditionError("Bermudan exercise needs exercise_times")
        if times[0] <= 0.0 or times[-1] > expiry:
            raise PreconditionError("exercise_times must lie in (0, expiry]")
    elif times:
        raise PreconditionError(
            f"exercise_times only apply to Bermudan exercise, not {exercise.value}"
        )

    n = safe_grid_points(cfg.grid_points, expiry)
    sigma = process.sigma(expiry, process.spot)
    s_min, s_max = grid_limits(process.spot, expiry, sigma, strike)
    grid: TransformedGrid = log_grid(s_min, s_max, n)
    logger.debug(
        "FD grid: %d nodes on [%g, %g], %d time steps, method=%s theta=%s",
        n,
        s_min,
        s_max,
        cfg.time_steps,
        cfg.method,
        cfg.theta,
    )

    intrinsic = intrinsic_values(kind, strike, grid.grid)
    L = fd_operator(grid, process, expiry, cfg)
    factory = resolve_method(method=cfg.method, theta=cfg.theta)
    model = FiniteDifferenceModel.from_operator(
        L, payoff_boundaries(intrinsic), times, factory=factory
    )

    condition = _step_condition(
        exercise,
        intrinsic,
        expiry=expiry,
        rate=process.r(expiry),
        exercise_times=times,
    )
    values = model.rollback(intrinsic, expiry, 0.0, cfg.time_steps, condition)

    return FDResult(
        value=value_at_center(grid.grid, values),
        delta=first_derivative_at_center(grid.grid, values),
        gamma=second_derivative_at_center(grid.grid, values),
        grid=grid.grid,
        values=values,
    )


def fd_price(
    p: PricingInputs,
    *,
    exercise: ExerciseStyle = ExerciseStyle.EUROPEAN,
    cfg: FDConfig | None = None,
    exercise_times: Iterable[float] = (),
) -> FDResult:
    """Flat-parameter entry point; see :func:`fd_price_process`."""
    process = BlackScholesProcess(
        spot=p.S, rate=p.r, volatility=p.sigma, dividend_yield=p.q
    )
    return fd_price_process(
        process,
        kind=p.spec.kind,
        strike=p.K,
        expiry=p.tau,
        exercise=exercise,
        cfg=cfg,
        exercise_times=exercise_times,
    )
