"""
derivstruct.forward
-------------------

This module implements a simple forward accumulation
model for automatic differentiation on top of the
:class:`~derivstruct.dscompiler.DSCompiler` tables.
Its main object is the ``dsarray`` class.

"""

import numbers
import warnings

import numpy as np

from .cache import get_compiler


class dsarray:

    """
    Forward-type automatic differentiation object for a scalar.

    Attributes
    ----------
    compiler : DSCompiler
        The compiler for (`ni`, `k`).
    d : ndarray
        The derivative array. ``d[0]`` is the value and ``d[i]``
        with ``i`` > 0 are the partial derivatives, in the order
        given by the compiler.

    Notes
    -----
    Unlike a Taylor-coefficient array, the derivatives are stored
    *un-normalized*: the element for multi-index ``[2, 1]`` is
    d3f/dx0**2 dx1, not that derivative divided by 2!1!.

    """

    # Make numpy scalars defer to the reflected operators
    __array_ufunc__ = None

    def __init__(self, compiler, d = None):
        """
        Create a new dsarray object.

        Parameters
        ----------
        compiler : DSCompiler
            The compiler for the number of variables and order.
        d : ndarray, optional
            A pre-allocated derivative array with ``compiler.size``
            elements. If None, a zero array is created.

        """
        self.compiler = compiler
        if d is None:
            self.d = np.zeros(compiler.size)
        else:
            if np.shape(d) != (compiler.size,):
                raise ValueError("d does not have the correct shape")
            self.d = d

    def __repr__(self):
        return f"dsarray(k={self.k:d}, ni={self.ni:d}, d={self.d!r})"

    @property
    def k(self):
        """ int : The maximum derivative order. """
        return self.compiler.order

    @property
    def ni(self):
        """ int : The number of independent variables. """
        return self.compiler.parameters

    @property
    def nd(self):
        """ int : The number of unique derivatives. """
        return self.compiler.size

    @property
    def value(self):
        """ float : The value, ``d[0]``. """
        return self.d[0]

    def partial(self, *orders):
        """
        Get a partial derivative.

        Parameters
        ----------
        *orders : int
            The derivation order with respect to each variable.

        Returns
        -------
        float
            The partial derivative.

        Examples
        --------
        >>> x = sym(2.0, 0, 2, 2)
        >>> y = sym(3.0, 1, 2, 2)
        >>> (x * y).partial(1, 1)
        1.0

        """
        return self.d[self.compiler.get_partial_derivative_index(*orders)]

    def copy(self):
        """ A copy with its own derivative array. """
        return dsarray(self.compiler, self.d.copy())

    def _like(self):
        return dsarray(self.compiler)

    def _coerce(self, other):
        # dsarray operand of matching shape, or a constant
        if isinstance(other, dsarray):
            self.compiler.check_compatibility(other.compiler)
            return other
        if isinstance(other, numbers.Real):
            c = self._like()
            c.d[0] = other
            return c
        return None

    # Define binary operators: +, -, ...
    # ADDITION
    def __add__(self, other):
        """ z = self + other """
        y = self._coerce(other)
        if y is None:
            return NotImplemented
        return add(self, y)
    def __radd__(self, other):
        """ z = other + self """
        return self.__add__(other)

    # SUBTRACTION
    def __sub__(self, other):
        """ z = self - other """
        y = self._coerce(other)
        if y is None:
            return NotImplemented
        return subtract(self, y)
    def __rsub__(self, other):
        """ z = other - self """
        y = self._coerce(other)
        if y is None:
            return NotImplemented
        return subtract(y, self)

    # MULTIPLICATION
    def __mul__(self, other):
        """ z = self * other """
        if isinstance(other, numbers.Real):
            # constant factor scales every derivative
            return dsarray(self.compiler, self.d * other)
        y = self._coerce(other)
        if y is None:
            return NotImplemented
        return mul(self, y)
    def __rmul__(self, other):
        """ z = other * self """
        return self.__mul__(other)

    # DIVISION
    def __truediv__(self, other):
        """ z = self / other """
        if isinstance(other, numbers.Real):
            return dsarray(self.compiler, self.d / np.float64(other))
        y = self._coerce(other)
        if y is None:
            return NotImplemented
        return div(self, y)
    def __rtruediv__(self, other):
        """ z = other / self """
        if not isinstance(other, numbers.Real):
            return NotImplemented
        return reciprocal(self) * other

    # REMAINDER
    def __mod__(self, other):
        """ z = IEEE remainder of self / other """
        y = self._coerce(other)
        if y is None:
            return NotImplemented
        return remainder(self, y)
    def __rmod__(self, other):
        y = self._coerce(other)
        if y is None:
            return NotImplemented
        return remainder(y, self)

    # POWER
    def __pow__(self, other):
        """ z = self ** other """
        if isinstance(other, dsarray):
            return pow(self, other)
        if isinstance(other, numbers.Integral):
            return powi(self, other)
        if isinstance(other, numbers.Real):
            return powf(self, other)
        return NotImplemented
    def __rpow__(self, other):
        """ z = other ** self """
        if not isinstance(other, numbers.Real):
            return NotImplemented
        return rpow(other, self)

    # UNARY OPERATIONS
    def __neg__(self):
        """ z = -self """
        return dsarray(self.compiler, -self.d)
    def __pos__(self):
        """ z = +self"""
        return self.copy()
    def __abs__(self):
        """ z = abs(self), with the sign taken from the value (including -0.0) """
        if self.d[0] == 0 and self.nd > 1:
            warnings.warn("abs() of a zero value: derivatives follow the sign bit", RuntimeWarning)
        if np.signbit(self.d[0]):
            return -self
        return self.copy()

    def taylor(self, *delta):
        """
        Evaluate the Taylor expansion at a displacement.

        Parameters
        ----------
        *delta : float
            Displacement of each variable.

        Returns
        -------
        float
            The value of the expansion.

        """
        return self.compiler.taylor(self.d, 0, *delta)


def array(d, k, ni, copyd = False):
    """
    Create a dsarray object from a raw derivative array.

    Parameters
    ----------
    d : array_like
        The derivative array.
    k : int
        The maximum derivative order.
    ni : int
        The number of independent variables.
    copyd : boolean, optional
        If True, a copy of `d` will be made for returned
        dsarray. If False, the dsarray will use
        the same reference when `d` is already a float64
        ndarray. The default is False.

    Returns
    -------
    dsarray

    """
    if copyd:
        d = np.array(d, dtype = np.float64)
    else:
        d = np.asarray(d, dtype = np.float64)

    if d.ndim != 1:
        raise ValueError("d must be 1-dimensional")

    return dsarray(get_compiler(ni, k), d)


def const(value, k, ni):
    """
    Create a :class:`dsarray` object for a constant.

    Parameters
    ----------
    value : float
        The constant value.
    k : int
        The maximum derivative order.
    ni : int
        The number of independent variables.

    Returns
    -------
    dsarray
        A constant dsarray object.

    Examples
    --------
    >>> const(1., 2, 2).d
    array([1., 0., 0., 0., 0., 0.])

    """
    c = dsarray(get_compiler(ni, k))
    c.d[0] = value
    return c


def sym(value, i, k, ni):
    """
    Create a :class:`dsarray` for a symbol (i.e. one
    the independent variables with respect to which derivatives
    are being taken).

    Parameters
    ----------
    value : float
        The value of the variable.
    i : int
        The variable index, `i` = 0, ... , `ni` - 1
    k, ni : int
        The maximum derivative order and the number of variables.

    Returns
    -------
    dsarray
        A :class:`dsarray` object for variable `i` and value `value`.

    Examples
    --------
    >>> sym(2.0, 0, 2, 2).d
    array([2., 1., 0., 0., 0., 0.])

    >>> sym(3.0, 1, 2, 2).d
    array([3., 0., 0., 1., 0., 0.])

    """

    if k < 0:
        raise ValueError("k must be >= 0")
    if ni < 1:
        raise ValueError("ni must be >= 1 to construct symbol")
    if i >= ni or i < 0:
        raise ValueError('Symbol index i must be 0, ..., ni-1')

    x = const(value, k, ni)
    if k > 0:
        orders = [0] * ni
        orders[i] = 1
        x.d[x.compiler.get_partial_derivative_index(*orders)] = 1.0

    return x


###########################################
# Arithmetic
#
def _binary(fun, x, y):
    x.compiler.check_compatibility(y.compiler)
    out = x._like()
    fun(x.d, 0, y.d, 0, out.d, 0)
    return out

def add(x, y):
    """ x + y """
    return _binary(x.compiler.add, x, y)

def subtract(x, y):
    """ x - y """
    return _binary(x.compiler.subtract, x, y)

def mul(x, y):
    """
    Multiply x * y

    Parameters
    ----------
    x,y : dsarray
        Input argument

    Returns
    -------
    dsarray
        Result.

    """
    return _binary(x.compiler.multiply, x, y)

def div(x, y):
    """ x / y """
    return _binary(x.compiler.divide, x, y)

def remainder(x, y):
    """ IEEE remainder of x / y """
    return _binary(x.compiler.remainder, x, y)

def pow(x, y):
    """ x ** y for two dsarray objects """
    return _binary(x.compiler.pow_ds, x, y)

def linear_combination(a, x):
    """
    Sum of a[i] * x[i].

    Parameters
    ----------
    a : sequence of float
        The coefficients.
    x : sequence of dsarray
        The terms.

    Returns
    -------
    dsarray
        Result.

    """
    if len(a) != len(x):
        raise ValueError("a and x must have the same length")
    if len(x) == 0:
        raise ValueError("at least one term is required")
    for xi in x[1:]:
        x[0].compiler.check_compatibility(xi.compiler)
    out = x[0]._like()
    out.compiler.linear_combination([(ai, xi.d, 0) for ai, xi in zip(a, x)], out.d, 0)
    return out

def compose(df, x):
    """
    Calculate f(x) via chain rule.

    Parameters
    ----------
    df : array_like
        Single-variable derivatives of f w.r.t. its argument,
        up to order ``x.k``.
    x : dsarray
        Argument of f(`x`)

    Returns
    -------
    dsarray
        The result f(`x`).

    """
    out = x._like()
    x.compiler.compose(x.d, 0, df, out.d, 0)
    return out

def taylor(x, *delta):
    """ Evaluate the Taylor expansion of `x` at a displacement. """
    return x.taylor(*delta)


###########################################
# Elementary functions
#
def _unary(fun, x, *args):
    out = x._like()
    fun(x.d, 0, *args, out.d, 0)
    return out

def exp(x):
    """
    Exponential for :class:`dsarray` objects.

    Examples
    --------
    >>> exp(sym(1.0, 0, 3, 1)).d
    array([2.71828183, 2.71828183, 2.71828183, 2.71828183])

    """
    return _unary(x.compiler.exp, x)

def expm1(x):
    """ exp(x) - 1 """
    return _unary(x.compiler.expm1, x)

def log(x):
    """ Natural logarithm for :class:`dsarray` objects. """
    return _unary(x.compiler.log, x)

def log1p(x):
    """ log(1 + x) """
    return _unary(x.compiler.log1p, x)

def log10(x):
    """ Base-10 logarithm """
    return _unary(x.compiler.log10, x)

def sin(x):
    """
    Sine for :class:`dsarray` objects.

    Examples
    --------
    >>> sin(sym(1.0, 0, 3, 1)).d
    array([ 0.84147098,  0.54030231, -0.84147098, -0.54030231])

    """
    return _unary(x.compiler.sin, x)

def cos(x):
    """ Cosine for :class:`dsarray` objects. """
    return _unary(x.compiler.cos, x)

def tan(x):
    return _unary(x.compiler.tan, x)

def asin(x):
    return _unary(x.compiler.asin, x)

def acos(x):
    return _unary(x.compiler.acos, x)

def atan(x):
    return _unary(x.compiler.atan, x)

def atan2(y, x):
    """
    Two-argument arc tangent of y / x.

    The value is exactly :func:`numpy.arctan2` of the values.
    """
    return _binary(y.compiler.atan2, y, x)

def sinh(x):
    return _unary(x.compiler.sinh, x)

def cosh(x):
    return _unary(x.compiler.cosh, x)

def tanh(x):
    return _unary(x.compiler.tanh, x)

def asinh(x):
    return _unary(x.compiler.asinh, x)

def acosh(x):
    return _unary(x.compiler.acosh, x)

def atanh(x):
    return _unary(x.compiler.atanh, x)

def powi(x, n):
    """
    x**n for integer n

    Derivatives beyond order `n` vanish exactly when `n` > 0.
    """
    return _unary(x.compiler.pow, x, int(n))

def powf(x, p):
    """
    x**p for general real p

    Examples
    --------
    >>> powf(sym(4.0, 0, 3, 1), 0.5).d
    array([ 2.        ,  0.25      , -0.03125   ,  0.01171875])

    """
    return _unary(x.compiler.pow, x, float(p))

def rpow(a, x):
    """
    a**x for a constant base a

    ``a == 0`` follows the conventions of
    :func:`derivstruct.elementary.rpow`.
    """
    out = x._like()
    x.compiler.rpow(a, x.d, 0, out.d, 0)
    return out

def reciprocal(x):
    """ 1 / x """
    return powi(x, -1)

def root_n(x, n):
    """ n-th root of x """
    return _unary(x.compiler.root_n, x, n)

def sqrt(x):
    """ Square root """
    return root_n(x, 2)

def cbrt(x):
    """ Cube root, defined for negative arguments """
    return root_n(x, 3)


###########################################
# Rounding, sign and scaling
#
def _constant_like(x, value):
    out = x._like()
    out.d[0] = value
    return out

def floor(x):
    """ floor(x), a constant: all derivatives are zero """
    return _constant_like(x, np.floor(x.d[0]))

def ceil(x):
    """ ceil(x), a constant: all derivatives are zero """
    return _constant_like(x, np.ceil(x.d[0]))

def rint(x):
    """ Round to the nearest integer (ties to even), a constant """
    return _constant_like(x, np.rint(x.d[0]))

def signum(x):
    """ Sign of the value (-1, 0 or +1, NaN for NaN), a constant """
    return _constant_like(x, np.sign(x.d[0]))

def copysign(x, sign):
    """
    x with the sign of `sign`.

    Parameters
    ----------
    x : dsarray
        The magnitude.
    sign : float or dsarray
        Only the sign bit of the value is used.

    Returns
    -------
    dsarray
        `x` or -`x`.

    """
    if isinstance(sign, dsarray):
        x.compiler.check_compatibility(sign.compiler)
        sign = sign.d[0]
    if np.signbit(x.d[0]) == np.signbit(sign):
        return x.copy()
    return -x

def scalb(x, n):
    """ x * 2**n, exact for every derivative """
    return dsarray(x.compiler, np.ldexp(x.d, int(n)))

def to_degrees(x):
    """ Convert an angle in radians to degrees """
    return dsarray(x.compiler, np.degrees(x.d))

def to_radians(x):
    """ Convert an angle in degrees to radians """
    return dsarray(x.compiler, np.radians(x.d))

def _exponent(v):
    # unbiased binary exponent, -1023 for zero and subnormals
    if v == 0:
        return -1023
    return max(int(np.frexp(v)[1]) - 1, -1023)

def hypot(x, y):
    """
    sqrt(x**2 + y**2) without intermediate overflow or underflow.

    If either value is infinite the result is the constant +Inf,
    and otherwise if either is NaN the constant NaN. When the
    magnitudes differ by more than 2**27 the smaller argument
    is negligible and ``abs()`` of the larger one is returned.

    Examples
    --------
    >>> z = hypot(sym(3.0, 0, 1, 2), sym(4.0, 1, 1, 2))
    >>> z.d
    array([5. , 0.6, 0.8])

    """
    x.compiler.check_compatibility(y.compiler)
    x0, y0 = x.d[0], y.d[0]
    if np.isinf(x0) or np.isinf(y0):
        return _constant_like(x, np.inf)
    if np.isnan(x0) or np.isnan(y0):
        return _constant_like(x, np.nan)

    exp_x = _exponent(x0)
    exp_y = _exponent(y0)
    if exp_x > exp_y + 27:
        return abs(x)
    if exp_y > exp_x + 27:
        return abs(y)

    # scale both to a magnitude near 1
    middle = (exp_x + exp_y) // 2
    sx = scalb(x, -middle)
    sy = scalb(y, -middle)
    return scalb(sqrt(sx * sx + sy * sy), middle)
