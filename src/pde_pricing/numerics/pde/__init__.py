"""Finite-difference engine for 1D parabolic pricing PDEs.

Pieces, leaf first:

- boundary conditions that rewrite operator rows and boundary nodes,
- PDE coefficient generators producing :class:`~pde_pricing.numerics.tridiag.TridiagonalOperator`
  diagonals on (possibly log-transformed) grids,
- theta-scheme evolvers stepping a value array backward in time,
- step conditions (early exercise, shout, ...),
- :class:`FiniteDifferenceModel`, which rolls an array back through time and
  lands exactly on mandatory stopping times.
"""

from .boundary import BoundaryCondition, DirichletBC, NeumannBC, Side
from .conditions import (
    AmericanCondition,
    BermudanCondition,
    CurveDependentStepCondition,
    NullCondition,
    ShoutCondition,
    StepCondition,
    StepConditionSet,
)
from .evolvers import (
    CrankNicolson,
    Evolver,
    EvolverFactory,
    ExplicitEuler,
    ImplicitEuler,
    MixedScheme,
    ParallelEvolver,
)
from .methods import available_methods, register_method, resolve_method, theta_factory
from .model import FiniteDifferenceModel
from .operators import (
    GenericTimeSetter,
    PdeBSM,
    PdeConstantCoeff,
    PdeSecondOrderParabolic,
    bsm_operator,
    d_minus,
    d_plus,
    d_plus_d_minus,
    d_zero,
    pde_operator,
)

__all__ = [
    # Boundary conditions
    "Side",
    "BoundaryCondition",
    "NeumannBC",
    "DirichletBC",
    # Step conditions
    "StepCondition",
    "NullCondition",
    "CurveDependentStepCondition",
    "AmericanCondition",
    "ShoutCondition",
    "BermudanCondition",
    "StepConditionSet",
    # Evolvers
    "Evolver",
    "EvolverFactory",
    "MixedScheme",
    "ExplicitEuler",
    "ImplicitEuler",
    "CrankNicolson",
    "ParallelEvolver",
    # Methods / registry
    "theta_factory",
    "register_method",
    "available_methods",
    "resolve_method",
    # Rollback
    "FiniteDifferenceModel",
    # Operators / PDE generators
    "d_plus",
    "d_minus",
    "d_zero",
    "d_plus_d_minus",
    "PdeSecondOrderParabolic",
    "PdeBSM",
    "PdeConstantCoeff",
    "GenericTimeSetter",
    "pde_operator",
    "bsm_operator",
]
