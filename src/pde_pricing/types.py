from dataclasses import dataclass
from enum import Enum

from .exceptions import PreconditionError


class OptionType(str, Enum):
    """Option contract type.

    Attributes
    ----------
    CALL : str
        Call option ("call").
    PUT : str
        Put option ("put").
    """

    CALL = "call"
    PUT = "put"


class ExerciseStyle(str, Enum):
    """When the holder may act on the contract.

    ``BERMUDAN`` exercise dates and the ``SHOUT`` right are handled by the
    finite-difference pricer through stopping times and step conditions.
    """

    EUROPEAN = "european"
    AMERICAN = "american"
    BERMUDAN = "bermudan"
    SHOUT = "shout"


@dataclass(frozen=True, slots=True)
class MarketData:
    """Market observables needed for option pricing.

    Parameters
    ----------
    spot : float
        Current spot price of the underlying, typically denoted :math:`S`.
    rate : float
        Continuously-compounded risk-free interest rate :math:`r` (annualized).
    dividend_yield : float, default 0.0
        Continuously-compounded dividend yield :math:`q` (annualized).
    """

    spot: float
    rate: float
    dividend_yield: float = 0.0


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """Specification of a plain-vanilla option.

    Parameters
    ----------
    kind : OptionType
        Option type (call or put).
    strike : float
        Strike price of the option, typically denoted :math:`K`.
    expiry : float
        Option expiry time in the same time units as `t` in :class:`PricingInputs`
        (commonly years).
    """

    kind: OptionType
    strike: float
    expiry: float


@dataclass(frozen=True, slots=True)
class PricingInputs:
    """Option specification, market data and volatility bundled together.

    Provides the usual aliases (:math:`S, K, r, q, T`) and the time to expiry
    ``tau = T - t``.

    Raises
    ------
    PreconditionError
        If ``T - t <= 0`` when accessing :attr:`tau`.
    """

    spec: OptionSpec
    market: MarketData
    sigma: float
    t: float = 0.0

    @property
    def S(self) -> float:
        return self.market.spot

    @property
    def K(self) -> float:
        return self.spec.strike

    @property
    def r(self) -> float:
        return self.market.rate

    @property
    def q(self) -> float:
        return self.market.dividend_yield

    @property
    def T(self) -> float:
        return self.spec.expiry

    @property
    def tau(self) -> float:
        tau = self.T - self.t
        if tau <= 0.0:
            raise PreconditionError("Need expiry > t")
        return tau


class DividendGridModel(str, Enum):
    """How the finite-difference spot grid crosses a discrete dividend.

    Attributes
    ----------
    MERTON73 : str
        Escrowed dividends: the grid carries the spot net of the present value
        of the dividends still to be paid and is rescaled at each payment.
    SHIFT_SCALE : str
        The grid carries the spot net of the cash amounts still to be paid and
        is shifted by the amount at each payment.
    """

    MERTON73 = "merton73"
    SHIFT_SCALE = "shift_scale"


@dataclass(frozen=True, slots=True)
class CashDividend:
    """Fixed cash amount paid ``time`` years from today."""

    time: float
    amount: float

    def __post_init__(self) -> None:
        if self.time < 0.0:
            raise PreconditionError("dividend time cannot be negative")
        if self.amount < 0.0:
            raise PreconditionError("dividend amount must be >= 0")
