from .fd_dividend import discounted_dividend, fd_dividend_price, fd_dividend_price_process
from .fd_vanilla import (
    FDResult,
    fd_operator,
    fd_price,
    fd_price_process,
    grid_limits,
    intrinsic_values,
    payoff_boundaries,
    safe_grid_points,
)

__all__ = [
    "FDResult",
    "fd_price",
    "fd_price_process",
    "fd_dividend_price",
    "fd_dividend_price_process",
    "discounted_dividend",
    "fd_operator",
    "grid_limits",
    "intrinsic_values",
    "payoff_boundaries",
    "safe_grid_points",
]
