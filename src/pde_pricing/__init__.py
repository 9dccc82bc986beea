"""
pde_pricing

Finite-difference engine for one-factor parabolic pricing PDEs.

The everyday entry points live at the top level:

    from pde_pricing import FDConfig, fd_price

The building blocks (tridiagonal operators, boundary conditions, evolvers,
step conditions and the rollback model) are in :mod:`pde_pricing.numerics`
and :mod:`pde_pricing.numerics.pde`.
"""

from .config import FDConfig, SORConfig
from .exceptions import (
    DivisionByZeroError,
    NoConvergenceError,
    PDEError,
    PreconditionError,
    UnsupportedOperationError,
)
from .models.process import BlackScholesProcess
from .pricers.fd_dividend import fd_dividend_price, fd_dividend_price_process
from .pricers.fd_vanilla import FDResult, fd_price, fd_price_process
from .types import (
    CashDividend,
    DividendGridModel,
    ExerciseStyle,
    MarketData,
    OptionSpec,
    OptionType,
    PricingInputs,
)

__all__ = [
    # Types
    "OptionType",
    "ExerciseStyle",
    "OptionSpec",
    "MarketData",
    "PricingInputs",
    "CashDividend",
    "DividendGridModel",
    "BlackScholesProcess",
    # Config
    "FDConfig",
    "SORConfig",
    # Pricers
    "FDResult",
    "fd_price",
    "fd_price_process",
    "fd_dividend_price",
    "fd_dividend_price_process",
    # Errors
    "PDEError",
    "PreconditionError",
    "DivisionByZeroError",
    "NoConvergenceError",
    "UnsupportedOperationError",
]
