from __future__ import annotations

import math

from scipy.stats import norm

from ..exceptions import PreconditionError


def _validate_scalar_inputs(
    *, spot: float, strike: float, sigma: float, tau: float
) -> None:
    if spot <= 0.0:
        raise PreconditionError("spot must be positive")
    if strike <= 0.0:
        raise PreconditionError("strike must be positive")
    if sigma <= 0.0:
        raise PreconditionError("sigma must be positive")
    if tau <= 0.0:
        raise PreconditionError("tau must be positive")


def discount_factor(rate: float, tau: float) -> float:
    return math.exp(-rate * tau)


def d1_d2_from_spot(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> tuple[float, float]:
    _validate_scalar_inputs(spot=spot, strike=strike, sigma=sigma, tau=tau)
    vol_sqrt_t = sigma * math.sqrt(tau)
    num = math.log(spot / strike) + (r - q + 0.5 * sigma * sigma) * tau
    d1 = num / vol_sqrt_t
    d2 = d1 - vol_sqrt_t
    return float(d1), float(d2)


def call_price(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> float:
    """
    Black–Scholes European call with continuous dividend yield q.
    """
    d1, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    df_r = discount_factor(r, tau)
    df_q = discount_factor(q, tau)
    return float(spot * df_q * norm.cdf(d1) - strike * df_r * norm.cdf(d2))


def put_price(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> float:
    """
    Black–Scholes European put with continuous dividend yield q.
    """
    d1, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    df_r = discount_factor(r, tau)
    df_q = discount_factor(q, tau)
    return float(strike * df_r * norm.cdf(-d2) - spot * df_q * norm.cdf(-d1))


def call_delta(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> float:
    d1, _ = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    return float(discount_factor(q, tau) * norm.cdf(d1))


def gamma(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> float:
    d1, _ = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    return float(discount_factor(q, tau) * norm.pdf(d1) / (spot * sigma * math.sqrt(tau)))
