import logging
import math

import numpy as np
import pytest

from pde_pricing import ExerciseStyle, FDConfig, OptionType, fd_price, fd_price_process
from pde_pricing.exceptions import PreconditionError
from pde_pricing.models import BlackScholesProcess, call_delta, call_price, gamma, put_price
from pde_pricing.pricers import grid_limits, intrinsic_values, safe_grid_points

FINE = FDConfig(time_steps=200, grid_points=201)


def _bs(p) -> float:
    fn = call_price if p.spec.kind == OptionType.CALL else put_price
    return fn(spot=p.S, strike=p.K, r=p.r, q=p.q, sigma=p.sigma, tau=p.tau)


# --- European vs closed form -------------------------------------------------


@pytest.mark.parametrize("kind", [OptionType.CALL, OptionType.PUT])
@pytest.mark.parametrize(
    "S, K, q",
    [
        (100.0, 100.0, 0.0),
        (90.0, 100.0, 0.02),
        (110.0, 100.0, 0.0),
    ],
)
def test_european_matches_black_scholes(make_inputs, kind, S, K, q) -> None:
    p = make_inputs(S=S, K=K, r=0.05, q=q, sigma=0.2, T=1.0, kind=kind)
    res = fd_price(p, cfg=FINE)
    assert res.value == pytest.approx(_bs(p), rel=5e-3, abs=1e-2)


def test_european_greeks_match_black_scholes(make_inputs, base_params) -> None:
    bp = base_params
    p = make_inputs(S=bp["S"], K=bp["K"], r=bp["r"], sigma=bp["sigma"], T=bp["T"])
    res = fd_price(p, cfg=FINE)

    kw = dict(spot=p.S, strike=p.K, r=p.r, q=p.q, sigma=p.sigma, tau=p.tau)
    assert res.delta == pytest.approx(call_delta(**kw), rel=1e-2)
    assert res.gamma == pytest.approx(gamma(**kw), rel=3e-2)


def test_put_call_parity(make_inputs) -> None:
    kw = dict(S=100.0, K=95.0, r=0.03, q=0.01, sigma=0.25, T=0.75)
    c = fd_price(make_inputs(**kw, kind=OptionType.CALL), cfg=FINE).value
    pv = fd_price(make_inputs(**kw, kind=OptionType.PUT), cfg=FINE).value
    forward = 100.0 * math.exp(-0.01 * 0.75) - 95.0 * math.exp(-0.03 * 0.75)
    assert c - pv == pytest.approx(forward, abs=2e-2)


@pytest.mark.parametrize("method", ["implicit", "cn"])
def test_methods_converge_to_same_price(make_inputs, method) -> None:
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0)
    res = fd_price(p, cfg=FDConfig(time_steps=400, grid_points=201, method=method))
    assert res.value == pytest.approx(_bs(p), rel=1e-2)


def test_result_carries_grid_and_values(make_inputs) -> None:
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0)
    res = fd_price(p, cfg=FDConfig(time_steps=50, grid_points=51))
    assert res.grid.shape == res.values.shape == (51,)
    assert res.grid[25] == pytest.approx(100.0)
    assert res.values[25] == pytest.approx(res.value)


# --- early exercise ----------------------------------------------------------


def test_american_put_exceeds_european(make_inputs) -> None:
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0, kind=OptionType.PUT)
    euro = fd_price(p, cfg=FINE)
    amer = fd_price(p, exercise=ExerciseStyle.AMERICAN, cfg=FINE)

    assert amer.value > euro.value + 0.3
    # binomial reference value for these inputs
    assert amer.value == pytest.approx(6.09, abs=0.05)
    assert np.all(amer.values >= intrinsic_values(OptionType.PUT, 100.0, amer.grid) - 1e-12)


def test_american_call_without_dividends_is_european(make_inputs) -> None:
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0, kind=OptionType.CALL)
    euro = fd_price(p, cfg=FINE).value
    amer = fd_price(p, exercise=ExerciseStyle.AMERICAN, cfg=FINE).value
    assert amer == pytest.approx(euro, abs=5e-3)


def test_bermudan_lies_between_european_and_american(make_inputs) -> None:
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0, kind=OptionType.PUT)
    euro = fd_price(p, cfg=FINE).value
    amer = fd_price(p, exercise=ExerciseStyle.AMERICAN, cfg=FINE).value
    berm = fd_price(
        p,
        exercise=ExerciseStyle.BERMUDAN,
        cfg=FINE,
        exercise_times=[0.25, 0.5, 0.75, 1.0],
    ).value

    assert euro < berm < amer


def test_bermudan_dates_off_the_time_grid(make_inputs) -> None:
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0, kind=OptionType.PUT)
    euro = fd_price(p, cfg=FDConfig(time_steps=10, grid_points=101)).value
    berm = fd_price(
        p,
        exercise=ExerciseStyle.BERMUDAN,
        cfg=FDConfig(time_steps=10, grid_points=101),
        exercise_times=[0.33, 0.67],
    ).value
    assert berm > euro


def test_shout_call_is_worth_more_than_european(make_inputs) -> None:
    # deep in the money the grown intrinsic beats S - K exp(-rT)
    p = make_inputs(S=250.0, K=100.0, r=0.05, sigma=0.2, T=1.0, kind=OptionType.CALL)
    euro = fd_price(p, cfg=FINE).value
    shout = fd_price(p, exercise=ExerciseStyle.SHOUT, cfg=FINE)
    assert shout.value > euro + 1.0
    assert shout.value >= 150.0 * math.exp(0.05) - 1e-9

    # today the floor is the intrinsic value grown to expiry
    floor = math.exp(0.05 * 1.0) * intrinsic_values(OptionType.CALL, 100.0, shout.grid)
    assert np.all(shout.values >= floor - 1e-12)
    assert np.any(np.isclose(shout.values, floor) & (floor > 0.0))


def test_exercise_times_validation(make_inputs) -> None:
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0, kind=OptionType.PUT)
    with pytest.raises(PreconditionError):
        fd_price(p, exercise=ExerciseStyle.AMERICAN, exercise_times=[0.5])
    with pytest.raises(PreconditionError):
        fd_price(p, exercise=ExerciseStyle.BERMUDAN)
    with pytest.raises(PreconditionError):
        fd_price(p, exercise=ExerciseStyle.BERMUDAN, exercise_times=[0.5, 1.5])
    with pytest.raises(PreconditionError):
        fd_price(p, exercise=ExerciseStyle.BERMUDAN, exercise_times=[0.0])


# --- time-dependent coefficients --------------------------------------------


def test_time_dependent_flat_process_matches_frozen() -> None:
    cfg = FDConfig(time_steps=40, grid_points=61)
    kw = dict(kind=OptionType.PUT, strike=100.0, expiry=1.0)

    flat = BlackScholesProcess(spot=100.0, rate=0.04, volatility=0.25)
    curve = BlackScholesProcess(
        spot=100.0, rate=lambda t: 0.04, volatility=lambda t, s: 0.25
    )

    frozen = fd_price_process(flat, cfg=cfg, **kw)
    regenerated = fd_price_process(
        curve, cfg=FDConfig(time_steps=40, grid_points=61, time_dependent=True), **kw
    )
    np.testing.assert_allclose(regenerated.values, frozen.values, rtol=0.0, atol=1e-10)


def test_time_dependent_rate_matches_average_rate() -> None:
    # European prices only depend on the integrated rate
    cfg = FDConfig(time_steps=200, grid_points=201, time_dependent=True)
    kw = dict(kind=OptionType.CALL, strike=100.0, expiry=1.0)

    curve = BlackScholesProcess(spot=100.0, rate=lambda t: 0.02 + 0.04 * t, volatility=0.2)
    res = fd_price_process(curve, cfg=cfg, **kw)

    ref = call_price(spot=100.0, strike=100.0, r=0.04, q=0.0, sigma=0.2, tau=1.0)
    assert res.value == pytest.approx(ref, rel=1e-2)


# --- grid helpers ------------------------------------------------------------


@pytest.mark.parametrize(
    "n, T, expected",
    [(5, 0.5, 10), (101, 1.0, 101), (5, 20.0, 40)],
)
def test_safe_grid_points(n: int, T: float, expected: int) -> None:
    assert safe_grid_points(n, T) == expected


@pytest.mark.parametrize(
    "sigma, T, expected",
    [(0.2, 1.0, (41.48, 241.09)), (0.05, 0.1, (86.65, 115.40))],
)
def test_grid_limits_four_std_devs_widened_at_low_vol(sigma, T, expected) -> None:
    s_min, s_max = grid_limits(100.0, T, sigma, 100.0)
    assert math.log(s_max / 100.0) == pytest.approx(-math.log(s_min / 100.0))
    assert (s_min, s_max) == pytest.approx(expected, abs=1e-2)

    vol_sqrt_time = sigma * math.sqrt(T)
    factor = math.exp(4.0 * (1.0 + 0.02 / vol_sqrt_time) * vol_sqrt_time)
    assert s_max == pytest.approx(100.0 * factor)


@pytest.mark.parametrize("strike", [300.0, 20.0])
def test_grid_limits_contain_far_strikes(strike: float) -> None:
    s_min, s_max = grid_limits(100.0, 0.25, 0.2, strike)
    assert s_min * 1.1 <= strike * (1 + 1e-12)
    assert strike <= s_max / 1.1 * (1 + 1e-12)
    assert s_min * s_max == pytest.approx(100.0 * 100.0)


def test_intrinsic_values() -> None:
    s = np.array([80.0, 100.0, 120.0])
    np.testing.assert_array_equal(intrinsic_values(OptionType.CALL, 100.0, s), [0.0, 0.0, 20.0])
    np.testing.assert_array_equal(intrinsic_values(OptionType.PUT, 100.0, s), [20.0, 0.0, 0.0])


def test_pricer_logs_grid_setup(make_inputs, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="pde_pricing")
    p = make_inputs(S=100.0, K=100.0, r=0.05, sigma=0.2, T=1.0)
    fd_price(p, cfg=FDConfig(time_steps=10, grid_points=21))
    assert any("FD grid" in r.getMessage() for r in caplog.records)
