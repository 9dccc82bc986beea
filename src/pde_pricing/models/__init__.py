from .bs import call_delta, call_price, gamma, put_price
from .process import BlackScholesProcess

__all__ = ["BlackScholesProcess", "call_price", "put_price", "call_delta", "gamma"]
