import numpy as np
import pytest

from pde_pricing.exceptions import UnsupportedOperationError
from pde_pricing.numerics.pde import (
    BoundaryCondition,
    DirichletBC,
    NeumannBC,
    Side,
    d_plus_d_minus,
)
from pde_pricing.numerics.tridiag import TridiagonalOperator


def test_neumann_rewrites_boundary_rows() -> None:
    L = d_plus_d_minus(5, 1.0)
    NeumannBC(0.0, Side.LOWER).apply_before_applying(L)
    NeumannBC(0.0, Side.UPPER).apply_before_applying(L)

    dense = L.to_dense()
    np.testing.assert_array_equal(dense[0], [-1.0, 1.0, 0.0, 0.0, 0.0])
    np.testing.assert_array_equal(dense[-1], [0.0, 0.0, 0.0, -1.0, 1.0])
    # interior untouched
    np.testing.assert_array_equal(dense[2], [0.0, 1.0, -2.0, 1.0, 0.0])


def test_neumann_after_applying_sets_boundary_slope() -> None:
    u = np.array([5.0, 2.0, 3.0, 4.0])
    NeumannBC(1.0, Side.LOWER).apply_after_applying(u)
    NeumannBC(0.5, Side.UPPER).apply_after_applying(u)
    np.testing.assert_array_equal(u, [1.0, 2.0, 3.0, 3.5])


def test_neumann_is_idempotent_on_conforming_arrays() -> None:
    u = np.array([1.0, 2.0, 4.0, 5.0])
    before = u.copy()
    for bc in (NeumannBC(1.0, Side.LOWER), NeumannBC(1.0, Side.UPPER)):
        bc.apply_after_applying(u)
        bc.apply_after_solving(u)
    np.testing.assert_array_equal(u, before)


def test_neumann_before_solving_enforces_slope_in_solution() -> None:
    L = TridiagonalOperator.identity(4) + 0.1 * d_plus_d_minus(4, 1.0)
    rhs = np.array([9.0, 1.0, 2.0, 9.0])
    lower = NeumannBC(-0.25, Side.LOWER)
    upper = NeumannBC(0.75, Side.UPPER)
    lower.apply_before_solving(L, rhs)
    upper.apply_before_solving(L, rhs)

    assert rhs[0] == -0.25
    assert rhs[-1] == 0.75
    u = L.solve_for(rhs)
    assert u[1] - u[0] == pytest.approx(-0.25)
    assert u[-1] - u[-2] == pytest.approx(0.75)


def test_dirichlet_pins_boundary_values() -> None:
    L = TridiagonalOperator.identity(4) + 0.1 * d_plus_d_minus(4, 1.0)
    rhs = np.array([0.0, 1.0, 2.0, 0.0])
    bcs = (DirichletBC(3.0, Side.LOWER), DirichletBC(-1.0, Side.UPPER))
    for bc in bcs:
        bc.apply_before_solving(L, rhs)
    u = L.solve_for(rhs)
    for bc in bcs:
        bc.apply_after_solving(u)

    assert u[0] == pytest.approx(3.0)
    assert u[-1] == pytest.approx(-1.0)

    dense = L.to_dense()
    np.testing.assert_array_equal(dense[0], [1.0, 0.0, 0.0, 0.0])
    np.testing.assert_array_equal(dense[-1], [0.0, 0.0, 0.0, 1.0])

    v = np.array([7.0, 1.0, 1.0, 7.0])
    for bc in bcs:
        bc.apply_after_applying(v)
    np.testing.assert_array_equal(v, [3.0, 1.0, 1.0, -1.0])


def test_set_time_is_a_no_op() -> None:
    bc = NeumannBC(1.0, Side.LOWER)
    bc.set_time(0.3)
    assert bc.value == 1.0


def test_base_condition_reports_unsupported_capabilities() -> None:
    bc = BoundaryCondition()
    L = TridiagonalOperator.identity(3)
    u = np.zeros(3)

    bc.set_time(1.0)
    with pytest.raises(UnsupportedOperationError):
        bc.apply_before_applying(L)
    with pytest.raises(UnsupportedOperationError):
        bc.apply_after_applying(u)
    with pytest.raises(UnsupportedOperationError):
        bc.apply_before_solving(L, u)
    with pytest.raises(UnsupportedOperationError):
        bc.apply_after_solving(u)


def test_unsupported_error_is_not_implemented_error() -> None:
    class OnlySolves(BoundaryCondition):
        __slots__ = ()

        def apply_before_solving(self, L, rhs) -> None:
            rhs[0] = 0.0

        def apply_after_solving(self, u) -> None:
            return None

    bc = OnlySolves()
    with pytest.raises(NotImplementedError):
        bc.apply_before_applying(TridiagonalOperator.identity(3))


@pytest.mark.parametrize("side", [Side.LOWER, Side.UPPER])
def test_zero_neumann_leaves_flat_array_unchanged(side: Side) -> None:
    u = np.full(6, 2.5)
    bc = NeumannBC(0.0, side)
    bc.apply_after_applying(u)
    bc.apply_after_solving(u)
    np.testing.assert_array_equal(u, np.full(6, 2.5))
