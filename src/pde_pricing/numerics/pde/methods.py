"""Evolver factories and a small registry.

Users can pass ``method="cn"`` (or register their own factories) instead of
importing evolver classes. A factory is any callable
``factory(operator, boundary_conditions) -> evolver``.
"""

from __future__ import annotations

from collections.abc import Sequence

from ...exceptions import PreconditionError
from ..tridiag import TridiagonalOperator
from .boundary import BoundaryCondition
from .evolvers import (
    CrankNicolson,
    EvolverFactory,
    ExplicitEuler,
    ImplicitEuler,
    MixedScheme,
)

__all__ = [
    "theta_factory",
    "register_method",
    "available_methods",
    "resolve_method",
]


def theta_factory(theta: float) -> EvolverFactory:
    """Factory for a :class:`MixedScheme` with a fixed ``theta``."""
    theta = float(theta)
    if not (0.0 <= theta <= 1.0):
        raise PreconditionError("theta must be in [0, 1]")

    def _factory(
        L: TridiagonalOperator, bcs: Sequence[BoundaryCondition]
    ) -> MixedScheme:
        return MixedScheme(L, theta, bcs)

    return _factory


# -----------------------------
# Registry
# -----------------------------

_METHOD_REGISTRY: dict[str, EvolverFactory] = {}


def register_method(
    name: str,
    factory: EvolverFactory,
    *,
    overwrite: bool = False,
    aliases: tuple[str, ...] = (),
) -> None:
    """Register an evolver factory under one or more names.

    Parameters
    ----------
    name:
        Primary key users will pass as ``method=...``.
    factory:
        Callable ``(operator, boundary_conditions) -> evolver``.
    overwrite:
        If False (default), raise if ``name`` or any alias already exists.
    aliases:
        Additional strings that should resolve to the same factory.
    """

    keys = (name, *aliases)
    for k in keys:
        kk = str(k).lower().strip()
        if not kk:
            raise ValueError("Method name/alias cannot be empty")
        if (not overwrite) and (kk in _METHOD_REGISTRY):
            raise KeyError(f"Method '{kk}' is already registered")
        _METHOD_REGISTRY[kk] = factory


def available_methods() -> list[str]:
    """Return the currently registered method keys (sorted)."""

    return sorted(_METHOD_REGISTRY.keys())


def resolve_method(
    *,
    method: str | EvolverFactory | None,
    theta: float | None = None,
) -> EvolverFactory:
    """Resolve the user's method choice into an evolver factory.

    Resolution order:
    1) If ``theta`` is provided -> :func:`theta_factory(theta)`.
    2) If ``method`` is None -> default to "cn".
    3) If ``method`` is callable -> return it.
    4) If ``method`` is a string -> look up in the registry.
    """

    if theta is not None:
        return theta_factory(theta)

    if method is None:
        method = "cn"

    if callable(method):
        return method

    key = str(method).lower().strip()
    try:
        return _METHOD_REGISTRY[key]
    except KeyError as e:
        raise ValueError(
            f"Unknown method '{method}'. Available: {', '.join(available_methods())}"
        ) from e


def _register_builtin_methods() -> None:
    register_method(
        "cn",
        CrankNicolson,
        overwrite=True,
        aliases=("crank-nicolson", "crank_nicolson", "crank"),
    )
    register_method(
        "implicit",
        ImplicitEuler,
        overwrite=True,
        aliases=("backward-euler", "backward", "be", "implicit-euler"),
    )
    register_method(
        "explicit",
        ExplicitEuler,
        overwrite=True,
        aliases=("forward-euler", "forward", "fe", "explicit-euler"),
    )


_register_builtin_methods()
