from __future__ import annotations

from dataclasses import dataclass

from .exceptions import PreconditionError


@dataclass(frozen=True, slots=True)
class SORConfig:
    omega: float = 1.5
    tol: float = 1e-8
    max_iter: int = 100_000

    def __post_init__(self) -> None:
        if not (0.0 < self.omega < 2.0):
            raise PreconditionError("omega must be in (0, 2)")
        if self.tol <= 0:
            raise PreconditionError("tol must be > 0")
        if self.max_iter <= 0:
            raise PreconditionError("max_iter must be > 0")


@dataclass(frozen=True, slots=True)
class FDConfig:
    """Discretisation settings for the finite-difference pricers.

    ``theta`` overrides ``method`` when given (0 explicit, 0.5 CN, 1 implicit).
    ``time_dependent`` forces the operator to be regenerated from the process at
    every step even when rates and volatility are constants.
    """

    time_steps: int = 100
    grid_points: int = 101
    method: str = "cn"
    theta: float | None = None
    time_dependent: bool = False

    def __post_init__(self) -> None:
        if self.time_steps <= 0:
            raise PreconditionError("time_steps must be > 0")
        if self.grid_points < 3:
            raise PreconditionError("grid_points must be >= 3")
        if self.theta is not None and not (0.0 <= self.theta <= 1.0):
            raise PreconditionError("theta must be in [0, 1]")
