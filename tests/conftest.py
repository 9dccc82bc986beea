"""Pytest helpers for the pde_pricing library."""

from __future__ import annotations

import numpy as np
import pytest

from pde_pricing.numerics.tridiag import TridiagonalOperator
from pde_pricing.types import MarketData, OptionSpec, OptionType, PricingInputs


@pytest.fixture
def base_params() -> dict:
    """A small set of canonical parameters used across tests."""
    return {
        "S": 100.0,
        "K": 100.0,
        "r": 0.05,
        "q": 0.0,
        "sigma": 0.2,
        "T": 1.0,
        "t": 0.0,
    }


@pytest.fixture
def make_inputs():
    """Factory fixture for constructing the library's PricingInputs."""

    def _make(
        *,
        S: float,
        K: float,
        r: float,
        sigma: float,
        T: float,
        q: float = 0.0,
        t: float = 0.0,
        kind: OptionType = OptionType.CALL,
    ) -> PricingInputs:
        spec = OptionSpec(kind=kind, strike=K, expiry=T)
        market = MarketData(spot=S, rate=r, dividend_yield=q)
        return PricingInputs(spec=spec, market=market, sigma=sigma, t=t)

    return _make


@pytest.fixture
def rng():
    """Seeded RNG factory."""

    def _rng(seed: int) -> np.random.Generator:
        return np.random.default_rng(seed)

    return _rng


@pytest.fixture
def make_diag_dominant():
    """Factory for random strictly diagonally dominant operators."""

    def _make(
        rng: np.random.Generator, M: int, scale: float = 1.0
    ) -> TridiagonalOperator:
        lower = rng.normal(size=M - 1) * scale
        upper = rng.normal(size=M - 1) * scale

        diag = (1.0 + np.abs(rng.normal(size=M))) * scale
        diag[0] += np.abs(upper[0])
        diag[-1] += np.abs(lower[-1])
        if M > 2:
            diag[1:-1] += np.abs(lower[:-1]) + np.abs(upper[1:])
        return TridiagonalOperator.from_diagonals(lower, diag, upper)

    return _make
