from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TypeAlias

from ..exceptions import PreconditionError
from ..typing import ScalarFn, ScalarXT

RateInput: TypeAlias = float | ScalarFn  # constant or t -> rate
VolInput: TypeAlias = float | ScalarXT  # constant or (t, S) -> sigma


@dataclass(frozen=True, slots=True)
class BlackScholesProcess:
    """Generalised Black-Scholes dynamics dS = (r - q) S dt + sigma S dW.

    Rates may be constants or functions of time; volatility may be a constant
    or a local-volatility function ``sigma(t, S)``. Time is measured forward
    from the valuation date in the same units as the option expiry.
    """

    spot: float
    rate: RateInput
    volatility: VolInput
    dividend_yield: RateInput = 0.0

    def __post_init__(self) -> None:
        if self.spot <= 0.0:
            raise PreconditionError("spot must be > 0")
        if not callable(self.volatility) and self.volatility <= 0.0:
            raise PreconditionError("volatility must be > 0")

    @property
    def x0(self) -> float:
        """Log-spot, the state variable of :class:`~pde_pricing.numerics.pde.operators.PdeBSM`."""
        return math.log(self.spot)

    def is_time_dependent(self) -> bool:
        return (
            callable(self.rate)
            or callable(self.dividend_yield)
            or callable(self.volatility)
        )

    def r(self, t: float) -> float:
        return float(self.rate(t)) if callable(self.rate) else float(self.rate)

    def q(self, t: float) -> float:
        if callable(self.dividend_yield):
            return float(self.dividend_yield(t))
        return float(self.dividend_yield)

    def sigma(self, t: float, s: float) -> float:
        if callable(self.volatility):
            return float(self.volatility(t, s))
        return float(self.volatility)
