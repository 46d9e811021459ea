"""Unit tests for the elementary functions, univariate and composed."""

import math

import numpy as np
import pytest

from derivstruct import elementary, get_compiler


def _variable(c, value, i = 0):
    d = np.zeros(c.size)
    d[0] = value
    orders = [0] * c.parameters
    orders[i] = 1
    d[c.get_partial_derivative_index(*orders)] = 1.0
    return d


def _apply(c, name, d):
    z = np.empty(c.size)
    getattr(c, name)(d, 0, z, 0)
    return z


def test_exp_at_one():
    """Tests that every derivative of exp at 1 is e."""
    c = get_compiler(1, 3)
    z = _apply(c, "exp", _variable(c, 1.0))
    np.testing.assert_allclose(z, [math.e] * 4, rtol = 1e-15)


def test_integer_power():
    """Tests x**3 at 2: derivatives above order 3 vanish exactly."""
    c = get_compiler(1, 2)
    z = np.empty(c.size)
    c.pow(_variable(c, 2.0), 0, 3, z, 0)
    assert z.tolist() == [8.0, 12.0, 12.0]

    c = get_compiler(1, 5)
    z = np.empty(c.size)
    c.pow(_variable(c, 2.0), 0, np.int64(3), z, 0)
    assert z.tolist() == [8.0, 12.0, 12.0, 6.0, 0.0, 0.0]


def test_power_zero_is_constant_one():
    """Tests that x**0 is the constant 1, even at x = 0."""
    c = get_compiler(2, 2)
    z = np.empty(c.size)
    c.pow(_variable(c, 0.0, 1), 0, 0, z, 0)
    assert z.tolist() == [1.0, 0.0, 0.0, 0.0, 0.0, 0.0]


def test_real_power():
    """Tests x**0.5 at 4."""
    c = get_compiler(1, 3)
    z = np.empty(c.size)
    c.pow(_variable(c, 4.0), 0, 0.5, z, 0)
    np.testing.assert_allclose(z, [2.0, 0.25, -0.03125, 0.01171875], rtol = 1e-15)


def test_negative_integer_power_matches_real_power():
    """Tests x**-2 with the integer and the real recurrences."""
    np.testing.assert_allclose(elementary.powi(1.7, -2, 5),
                               elementary.powf(1.7, -2.0, 5), rtol = 1e-13)


def test_power_of_two_structures():
    """Tests x**y at (2, 3)."""
    c = get_compiler(2, 1)
    x = _variable(c, 2.0, 0)
    y = _variable(c, 3.0, 1)
    z = np.empty(c.size)
    c.pow_ds(x, 0, y, 0, z, 0)
    np.testing.assert_allclose(z, [8.0, 12.0, 8.0 * math.log(2.0)], rtol = 1e-14)


def test_sine_cycle():
    """Tests that the derivatives of sin cycle through sin, cos, -sin, -cos."""
    c = get_compiler(1, 4)
    z = _apply(c, "sin", _variable(c, 0.3))
    s, co = math.sin(0.3), math.cos(0.3)
    np.testing.assert_allclose(z, [s, co, -s, -co, s], rtol = 0, atol = 1e-12)


def test_cosine_hyperbolic_cycles():
    """Tests the cycles of cos, sinh and cosh."""
    np.testing.assert_allclose(elementary.cos(0.3, 4),
                               [math.cos(0.3), -math.sin(0.3), -math.cos(0.3),
                                math.sin(0.3), math.cos(0.3)])
    np.testing.assert_allclose(elementary.sinh(0.3, 3),
                               [math.sinh(0.3), math.cosh(0.3), math.sinh(0.3), math.cosh(0.3)])
    np.testing.assert_allclose(elementary.cosh(0.3, 3),
                               [math.cosh(0.3), math.sinh(0.3), math.cosh(0.3), math.sinh(0.3)])


def test_logarithms():
    """Tests log, log1p and log10 against closed forms."""
    x = 1.7
    np.testing.assert_allclose(elementary.log(x, 3),
                               [math.log(x), 1 / x, -1 / x**2, 2 / x**3])
    np.testing.assert_allclose(elementary.log1p(x, 3),
                               [math.log1p(x), 1 / (1 + x), -1 / (1 + x)**2, 2 / (1 + x)**3])
    ln10 = math.log(10.0)
    np.testing.assert_allclose(elementary.log10(x, 3),
                               [math.log10(x), 1 / (x * ln10), -1 / (x**2 * ln10),
                                2 / (x**3 * ln10)])
    np.testing.assert_allclose(elementary.expm1(1e-10, 2), [math.expm1(1e-10), 1.0, 1.0])


def test_tan_family():
    """Tests the first three derivatives of tan and tanh."""
    x = 0.6
    t = math.tan(x)
    np.testing.assert_allclose(elementary.tan(x, 3),
                               [t, 1 + t**2, 2 * t * (1 + t**2), 2 * (1 + t**2) * (1 + 3 * t**2)])
    h = math.tanh(x)
    np.testing.assert_allclose(elementary.tanh(x, 3),
                               [h, 1 - h**2, -2 * h * (1 - h**2), -2 * (1 - h**2) * (1 - 3 * h**2)])


def test_inverse_trigonometric():
    """Tests the first three derivatives of asin, acos and atan."""
    x = 0.4
    s = 1 - x**2
    asin = [math.asin(x), s**-0.5, x * s**-1.5, (1 + 2 * x**2) * s**-2.5]
    np.testing.assert_allclose(elementary.asin(x, 3), asin)
    np.testing.assert_allclose(elementary.acos(x, 3), [math.acos(x)] + [-v for v in asin[1:]])
    q = 1 + x**2
    np.testing.assert_allclose(elementary.atan(x, 3),
                               [math.atan(x), 1 / q, -2 * x / q**2, (6 * x**2 - 2) / q**3])


def test_inverse_hyperbolic():
    """Tests the first three derivatives of asinh, acosh and atanh."""
    x = 0.4
    q = 1 + x**2
    np.testing.assert_allclose(elementary.asinh(x, 3),
                               [math.asinh(x), q**-0.5, -x * q**-1.5, (2 * x**2 - 1) * q**-2.5])
    s = 1 - x**2
    np.testing.assert_allclose(elementary.atanh(x, 3),
                               [math.atanh(x), 1 / s, 2 * x / s**2, (6 * x**2 + 2) / s**3])
    x = 1.8
    r = x**2 - 1
    np.testing.assert_allclose(elementary.acosh(x, 3),
                               [math.acosh(x), r**-0.5, -x * r**-1.5, (2 * x**2 + 1) * r**-2.5])


@pytest.mark.parametrize("outer,inner,x0", [
    ("sin", "asin", 0.3),
    ("cos", "acos", 0.3),
    ("tan", "atan", 0.7),
    ("atan", "tan", 0.4),
    ("asin", "sin", 0.3),
    ("acos", "cos", 0.9),
    ("sinh", "asinh", 0.8),
    ("asinh", "sinh", 0.5),
    ("cosh", "acosh", 1.7),
    ("acosh", "cosh", 1.2),
    ("tanh", "atanh", 0.35),
    ("atanh", "tanh", 0.35),
    ("exp", "log", 1.3),
    ("log", "exp", 0.4),
    ("expm1", "log1p", 0.6),
    ("log1p", "expm1", 0.6),
])
def test_inverse_pairs_compose_to_identity(outer, inner, x0):
    """Tests f(g(x)) == x to order 6 for mutually inverse functions."""
    c = get_compiler(1, 6)
    z = _apply(c, outer, _apply(c, inner, _variable(c, x0)))
    expected = np.zeros(c.size)
    expected[0] = x0
    expected[1] = 1.0
    np.testing.assert_allclose(z, expected, rtol = 1e-10, atol = 1e-8)


def test_log10_inverts_power_of_ten():
    """Tests 10**log10(x) == x."""
    c = get_compiler(1, 4)
    u = _apply(c, "log10", _variable(c, 2.5))
    z = np.empty(c.size)
    c.rpow(10.0, u, 0, z, 0)
    np.testing.assert_allclose(z, [2.5, 1.0, 0.0, 0.0, 0.0], rtol = 1e-12, atol = 1e-10)


@pytest.mark.parametrize("n", [2, 3, 5])
def test_root_inverts_power(n):
    """Tests root_n(x, n)**n == x."""
    c = get_compiler(1, 4)
    u = np.empty(c.size)
    c.root_n(_variable(c, 1.9), 0, n, u, 0)
    z = np.empty(c.size)
    c.pow(u, 0, n, z, 0)
    np.testing.assert_allclose(z, [1.9, 1.0, 0.0, 0.0, 0.0], rtol = 1e-12, atol = 1e-10)


def test_cube_root_of_negative():
    """Tests that the cube root is defined below zero."""
    np.testing.assert_allclose(elementary.root_n(-8.0, 3, 2), [-2.0, 1 / 12, 1 / 144])


def test_constant_base_power():
    """Tests a**x for a positive base."""
    ln2 = math.log(2.0)
    np.testing.assert_allclose(elementary.rpow(2.0, 3.0, 2), [8.0, 8.0 * ln2, 8.0 * ln2**2])


def test_zero_base_power_conventions():
    """Tests 0**x for x = 0, x < 0 and x > 0."""
    z = elementary.rpow(0.0, 0.0, 4)
    assert z.tolist() == [1.0, -np.inf, np.inf, -np.inf, np.inf]
    assert np.isnan(elementary.rpow(0.0, -1.0, 2)).all()
    assert elementary.rpow(0.0, 2.0, 2).tolist() == [0.0, 0.0, 0.0]

    c = get_compiler(1, 1)
    z = np.empty(c.size)
    c.rpow(0.0, _variable(c, 0.0), 0, z, 0)
    assert z.tolist() == [1.0, -np.inf]


def test_domain_errors_propagate_as_nan():
    """Tests that log of a negative number is NaN, not an exception."""
    c = get_compiler(1, 2)
    with np.errstate(all = "ignore"):
        z = _apply(c, "log", _variable(c, -1.0))
    assert np.isnan(z[0])


def _atan2(y0, x0, order = 2):
    c = get_compiler(2, order)
    y = _variable(c, y0, 0)
    x = _variable(c, x0, 1)
    z = np.empty(c.size)
    c.atan2(y, 0, x, 0, z, 0)
    return c, z


def test_atan2_on_negative_axis():
    """Tests that atan2(0, -1) is exactly pi, and -pi for a negative zero."""
    c, z = _atan2(0.0, -1.0)
    assert z[0] == math.pi
    assert z[c.get_partial_derivative_index(1, 0)] == pytest.approx(-1.0)
    assert z[c.get_partial_derivative_index(0, 1)] == pytest.approx(0.0, abs = 1e-15)

    c, z = _atan2(-0.0, -1.0)
    assert z[0] == -math.pi


@pytest.mark.parametrize("y0,x0", [(1.0, 2.0), (1.0, -2.0), (-1.0, -2.0), (-1.0, 2.0), (0.5, 0.0)])
def test_atan2_derivatives(y0, x0):
    """Tests the first and second derivatives of atan2 in every quadrant."""
    c, z = _atan2(y0, x0)
    r2 = x0**2 + y0**2
    assert z[0] == np.arctan2(y0, x0)
    # parameter 0 is y, parameter 1 is x
    expected = {
        (1, 0): x0 / r2,
        (0, 1): -y0 / r2,
        (2, 0): -2 * x0 * y0 / r2**2,
        (0, 2): 2 * x0 * y0 / r2**2,
        (1, 1): (y0**2 - x0**2) / r2**2,
    }
    for orders, value in expected.items():
        assert z[c.get_partial_derivative_index(*orders)] == pytest.approx(value, abs = 1e-12)


def test_atan2_result_may_alias():
    """Tests atan2 writing over its first argument."""
    c = get_compiler(2, 1)
    y = _variable(c, 1.0, 0)
    x = _variable(c, 2.0, 1)
    c.atan2(y, 0, x, 0, y, 0)
    np.testing.assert_allclose(y, [math.atan2(1.0, 2.0), 0.4, -0.2])


def test_zero_argument_as_python_float():
    """Tests that plain Python zeros give Inf/NaN rather than ZeroDivisionError."""
    with np.errstate(all = "ignore"):
        assert elementary.log(0.0, 2).tolist() == [-np.inf, np.inf, -np.inf]
        assert elementary.powi(0.0, -1, 2).tolist() == [np.inf, -np.inf, np.inf]
        z = elementary.root_n(0.0, 2, 2)
        assert z[0] == 0.0
        assert np.isinf(z[1:]).all()
        assert np.isinf(elementary.log1p(-1.0, 1)).all()
        assert np.isinf(elementary.log10(0.0, 1)).all()
        assert np.isinf(elementary.asin(1.0, 2)[1:]).all()
        assert np.isinf(elementary.atanh(1.0, 1)).all()
        assert np.isinf(elementary.acosh(1.0, 1)[1])
