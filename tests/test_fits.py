import math

import numpy as np
import numpy.polynomial.polynomial as P
import pandas as pd
import pytest

from pumpcurve.analysis.fits import (
    FitError,
    InsufficientDataError,
    SingularMatrixError,
    evaluate,
    fit_poly,
    format_equation,
    normal_equations,
    polyfit,
    solve_gaussian,
    trendline,
)
from pumpcurve.constants import DISPLAY_FORMAT, EXPORT_FORMAT
from pumpcurve.core.points import Point

PUMP_POINTS = [(0, 50), (100, 48), (200, 42), (300, 32)]


@pytest.mark.parametrize("a,b", [(3.0, 5.0), (-0.02, 48.0), (1500.0, -7.5)])
def test_linear_fit_recovers_line(a, b):
    pts = [Point(x, a * x + b) for x in np.linspace(0, 10, 7)]
    c0, c1 = polyfit(pts, 1)
    assert abs(c0 - b) < 1e-6
    assert abs(c1 - a) < 1e-6


@pytest.mark.parametrize("coeffs", [
    [50.0, 0.01, -0.0002],
    [12.0, -0.5, 0.03, -0.0004],
    [1.0, 2.0, -3.0, 0.5, 0.25],
])
def test_polynomial_fit_recovers_coefficients(coeffs):
    deg = len(coeffs) - 1
    x = np.linspace(-5, 25, 12)
    y = P.polyval(x, coeffs)
    got = polyfit(zip(x, y), deg)
    assert len(got) == deg + 1
    assert np.allclose(got, coeffs, atol=1e-6)


def test_matches_numpy_least_squares_on_noisy_data():
    rng = np.random.default_rng(0)
    x = np.linspace(0, 320, 15)
    y = 50 - 0.0002 * x ** 2 + rng.normal(0, 0.5, x.size)
    got = polyfit(zip(x, y), 2)
    ref = P.polyfit(x, y, 2)
    assert np.allclose(got, ref, rtol=1e-6, atol=1e-9)


def test_exact_interpolation_reproduces_points():
    pts = [(1, 3), (2, -1), (4, 7)]
    coeffs = polyfit(pts, 2)
    for x, y in pts:
        assert abs(evaluate(coeffs, x) - y) < 1e-9


def test_partial_pivot_wide_flow_range():
    coeffs = polyfit(PUMP_POINTS, 3)
    assert all(math.isfinite(c) for c in coeffs)
    for x, y in PUMP_POINTS:
        assert abs(evaluate(coeffs, x) - y) < 1e-3


@pytest.mark.parametrize("deg", [3, 4])
def test_flows_far_from_zero_are_not_singular(deg):
    xs = np.arange(1000.0, 1009.0)
    ys = 2.0 + 0.5 * (xs - 1004) - 0.25 * (xs - 1004) ** 2 + 0.1 * (xs - 1004) ** 3
    coeffs = polyfit(list(zip(xs, ys)), deg)
    assert len(coeffs) == deg + 1
    assert np.allclose(evaluate(coeffs, xs), ys, rtol=1e-6, atol=1e-5)


@pytest.mark.parametrize("n,deg", [(0, 1), (1, 1), (2, 2), (3, 4)])
def test_insufficient_points(n, deg):
    with pytest.raises(InsufficientDataError):
        polyfit(PUMP_POINTS[:n], deg)


def test_insufficient_is_a_fit_error():
    assert issubclass(InsufficientDataError, FitError)
    assert issubclass(SingularMatrixError, ValueError)


def test_coincident_x_is_singular():
    with pytest.raises(SingularMatrixError):
        polyfit([(5, 1), (5, 2), (5, 3)], 1)


def test_too_few_distinct_x_is_singular():
    with pytest.raises(SingularMatrixError):
        polyfit([(0, 1), (0, 2), (10, 3), (10, 4)], 2)


def test_all_zero_x_is_singular():
    with pytest.raises(SingularMatrixError):
        polyfit([(0, 1), (0, 2)], 1)


def test_non_finite_points_rejected():
    with pytest.raises(FitError):
        polyfit([(0, 1), (1, float("nan")), (2, 3)], 1)


def test_negative_degree_rejected():
    with pytest.raises(ValueError):
        polyfit(PUMP_POINTS, -1)


def test_solve_gaussian_needs_row_swap():
    # Zero on the diagonal: fails without pivoting
    A = np.array([[0.0, 2.0], [3.0, 1.0]])
    b = np.array([4.0, 5.0])
    x = solve_gaussian(A, b)
    assert np.allclose(A @ x, b)
    assert A[0, 0] == 0.0  # input not modified


def test_normal_equations_shape():
    ata, atb = normal_equations(np.array([1.0, 2.0, 3.0]), np.array([1.0, 1.0, 1.0]), 2)
    assert ata.shape == (3, 3)
    assert atb.shape == (3,)
    assert ata[0, 0] == 3.0


def test_evaluate_scalar_array_series():
    c = [1.0, 2.0, 3.0]
    assert evaluate(c, 2.0) == 17.0
    assert np.allclose(evaluate(c, [0.0, 1.0]), [1.0, 6.0])
    s = pd.Series([0.0, 1.0], index=[10, 11])
    out = evaluate(c, s)
    assert list(out.index) == [10, 11]
    assert evaluate([], 3.0) == 0.0


def test_format_equation_signs_and_unit():
    eq = format_equation([0, 2, -3], unit="[m]", symbol="x", precision=4)
    assert eq == "0.0000 +2.0000x -3.0000x^2  [m]"


def test_format_equation_drops_near_zero():
    eq = format_equation([0.00001, 5], drop_near_zero=True, threshold=0.0001, precision=4)
    assert eq == "5.0000x"


def test_format_equation_all_dropped_is_empty():
    assert format_equation([], unit="[m]") == ""
    assert format_equation([1e-6, -1e-7], unit="[%]", drop_near_zero=True) == ""


def test_format_equation_presets():
    coeffs = [50.0, 0.0, -0.0002]
    assert format_equation(coeffs, **DISPLAY_FORMAT, unit="[m]") == (
        "50.0000 -0.0002x^2  [m]"
    )
    assert format_equation(coeffs, **EXPORT_FORMAT) == (
        "50.000000000000 -0.000200000000Q^2"
    )


def test_trendline_samples():
    tl = trendline([1.0, 1.0], 0, 10, steps=100)
    assert len(tl) == 101
    assert tl["x"].iloc[0] == 0 and tl["x"].iloc[-1] == 10
    assert np.allclose(tl["y"], tl["x"] + 1)


def test_fit_poly_result():
    x = pd.Series([0, 100, 200, 300, np.nan])
    y = pd.Series([50, 48, 42, 32, 10])
    res = fit_poly(x, y, deg=2, unit="[m]")
    assert res.model == "poly_2"
    assert res.degree == 2
    assert set(res.params) == {"c0", "c1", "c2"}
    assert res.r2 > 0.99
    assert res.equation.endswith("  [m]")
    assert len(res.y_fit) == len(y)
    assert abs(res(100) - evaluate(res.coefficients, 100)) < 1e-12
