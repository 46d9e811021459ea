"""
derivstruct.elementary
----------------------

Univariate derivatives of elementary functions.

Each routine returns the array ``[f(x), f'(x), f''(x), ..., f^(k)(x)]``
of the *un-normalized* derivatives of a single-argument function at the
scalar `x`. These arrays are the `f` argument of
:meth:`~derivstruct.dscompiler.DSCompiler.compose`, which applies the
multivariate chain rule.

The inverse trigonometric/hyperbolic functions and ``tan``/``tanh`` use
polynomial recurrences. For example the n**th derivative of atan(x)
is Q_n(x) / (1 + x**2)**n with

    Q_1 = 1,  Q_n' relation  Q_{n+1} = Q_n' (1 + x**2) - 2 n x Q_n

and only the coefficients of Q_n are tracked. The parity of the
polynomials lets the evaluation run over x**2.

Domain problems (log of a negative number, 0 ** -1, ...) are not
raised. They produce NaN or Inf following float64 arithmetic.

"""

import numpy as np


def _empty(k):
    return np.zeros(k + 1, dtype = np.float64)


def exp(x, k):
    """
    Derivatives of exp(x) up to order `k`.

    Parameters
    ----------
    x : float
        The argument.
    k : int
        The maximum derivative order.

    Returns
    -------
    ndarray
        (`k` + 1,) derivative array.

    Examples
    --------
    >>> exp(0.0, 2)
    array([1., 1., 1.])

    """
    df = _empty(k)
    df.fill(np.exp(x))
    return df


def expm1(x, k):
    """ Derivatives of exp(x) - 1 up to order `k`. """
    df = _empty(k)
    df[0] = np.expm1(x)
    df[1:] = np.exp(x)
    return df


def _log_tail(df, inv):
    # (1/x)**i (-1)**(i-1) (i-1)!
    xk = df[1]
    for i in range(1, df.size):
        df[i] = xk
        xk *= -i * inv


def log(x, k):
    """
    Derivatives of the natural logarithm up to order `k`.

    Examples
    --------
    >>> log(1.0, 3)
    array([ 0.,  1., -1.,  2.])

    """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.log(x)
    if k > 0:
        inv = 1.0 / x
        df[1] = inv
        _log_tail(df, inv)
    return df


def log1p(x, k):
    """ Derivatives of log(1 + x) up to order `k`. """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.log1p(x)
    if k > 0:
        inv = 1.0 / (1.0 + x)
        df[1] = inv
        _log_tail(df, inv)
    return df


def log10(x, k):
    """ Derivatives of the base-10 logarithm up to order `k`. """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.log10(x)
    if k > 0:
        inv = 1.0 / x
        df[1] = inv / np.log(10.0)
        _log_tail(df, inv)
    return df


def sin(x, k):
    """
    Derivatives of sin(x) up to order `k`.

    The derivatives cycle as sin, cos, -sin, -cos.

    Examples
    --------
    >>> sin(0.0, 4)
    array([ 0.,  1., -0., -1.,  0.])

    """
    df = _empty(k)
    df[0] = np.sin(x)
    if k > 0:
        df[1] = np.cos(x)
        for i in range(2, k+1):
            df[i] = -df[i-2]
    return df


def cos(x, k):
    """ Derivatives of cos(x) up to order `k`. """
    df = _empty(k)
    df[0] = np.cos(x)
    if k > 0:
        df[1] = -np.sin(x)
        for i in range(2, k+1):
            df[i] = -df[i-2]
    return df


def sinh(x, k):
    """ Derivatives of sinh(x) up to order `k`. """
    df = _empty(k)
    df[0] = np.sinh(x)
    if k > 0:
        df[1] = np.cosh(x)
        for i in range(2, k+1):
            df[i] = df[i-2]
    return df


def cosh(x, k):
    """ Derivatives of cosh(x) up to order `k`. """
    df = _empty(k)
    df[0] = np.cosh(x)
    if k > 0:
        df[1] = np.sinh(x)
        for i in range(2, k+1):
            df[i] = df[i-2]
    return df


def _tan_family(t, k, sign):
    #
    # The n**th derivative of tan is a polynomial P_n(t) in t = tan(x),
    #
    #   P_{n+1}(t) = (1 + t**2) P_n'(t)
    #
    # (and (1 - t**2) P_n'(t) for tanh, i.e. sign = -1).
    # p holds the coefficients of the current P_n, which has
    # the parity of n + 1, so only every other entry is used.
    #
    df = _empty(k)
    df[0] = t
    if k > 0:
        p = np.zeros(k + 2)
        p[1] = 1
        t2 = t * t
        for n in range(1, k+1):
            v = 0.0
            p[n+1] = sign * n * p[n]
            for j in range(n+1, -1, -2):
                v = v * t2 + p[j]
                if j > 2:
                    p[j-2] = (j-1) * p[j-1] + sign * (j-3) * p[j-3]
                elif j == 2:
                    p[0] = p[1]
            if n % 2 == 0:
                v *= t
            df[n] = v
    return df


def tan(x, k):
    """
    Derivatives of tan(x) up to order `k`.

    Examples
    --------
    >>> tan(0.0, 3)
    array([0., 1., 0., 2.])

    """
    return _tan_family(np.tan(x), k, +1)


def tanh(x, k):
    """ Derivatives of tanh(x) up to order `k`. """
    return _tan_family(np.tanh(x), k, -1)


def _inverse_family(x, f, coeff, p0, lead, update, reflect, k, df):
    #
    # Shared loop for asin, acos, atan, asinh, acosh, atanh.
    # The n**th derivative is
    #
    #    coeff * f**(n-1) * P_n(x)
    #
    # where `coeff` is the first-derivative prefactor, `f` the
    # per-order factor and P_n is a polynomial of parity n - 1.
    # `lead(n)` gives the new leading coefficient multiplier and
    # `update(j, n)` the pair of multipliers used to step the
    # lower coefficients. `reflect` is the sign applied when
    # copying p[1] into p[0].
    #
    p = np.zeros(k)
    p[0] = p0
    x2 = x * x
    df[1] = coeff * p[0]
    for n in range(2, k+1):
        v = 0.0
        p[n-1] = lead(n) * p[n-2]
        for j in range(n-1, -1, -2):
            v = v * x2 + p[j]
            if j > 2:
                a, b = update(j, n)
                p[j-2] = a * p[j-1] + b * p[j-3]
            elif j == 2:
                p[0] = reflect * p[1]
        if n % 2 == 0:
            v *= x
        coeff *= f
        df[n] = coeff * v
    return df


def asin(x, k):
    """ Derivatives of asin(x) up to order `k`. """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.arcsin(x)
    if k > 0:
        f = 1.0 / (1.0 - x * x)
        _inverse_family(x, f, np.sqrt(f), 1.0,
                        lambda n: n - 1,
                        lambda j, n: (j - 1, 2 * n - j),
                        1.0, k, df)
    return df


def acos(x, k):
    """ Derivatives of acos(x) up to order `k`. """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.arccos(x)
    if k > 0:
        f = 1.0 / (1.0 - x * x)
        _inverse_family(x, f, np.sqrt(f), -1.0,
                        lambda n: n - 1,
                        lambda j, n: (j - 1, 2 * n - j),
                        1.0, k, df)
    return df


def atan(x, k):
    """
    Derivatives of atan(x) up to order `k`.

    Examples
    --------
    >>> atan(0.0, 3)
    array([ 0.,  1., -0., -2.])

    """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.arctan(x)
    if k > 0:
        f = 1.0 / (1.0 + x * x)
        _inverse_family(x, f, f, 1.0,
                        lambda n: -n,
                        lambda j, n: (j - 1, j - 1 - 2 * n),
                        1.0, k, df)
    return df


def asinh(x, k):
    """ Derivatives of asinh(x) up to order `k`. """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.arcsinh(x)
    if k > 0:
        f = 1.0 / (1.0 + x * x)
        _inverse_family(x, f, np.sqrt(f), 1.0,
                        lambda n: 1 - n,
                        lambda j, n: (j - 1, j - 2 * n),
                        1.0, k, df)
    return df


def acosh(x, k):
    """ Derivatives of acosh(x) up to order `k`. """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.arccosh(x)
    if k > 0:
        f = 1.0 / (x * x - 1.0)
        _inverse_family(x, f, np.sqrt(f), 1.0,
                        lambda n: 1 - n,
                        lambda j, n: (1 - j, j - 2 * n),
                        -1.0, k, df)
    return df


def atanh(x, k):
    """ Derivatives of atanh(x) up to order `k`. """
    x = np.float64(x)
    df = _empty(k)
    df[0] = np.arctanh(x)
    if k > 0:
        f = 1.0 / (1.0 - x * x)
        _inverse_family(x, f, f, 1.0,
                        lambda n: n,
                        lambda j, n: (j - 1, 2 * n - j + 1),
                        1.0, k, df)
    return df


def powf(x, p, k):
    """
    Derivatives of x ** `p` for real `p` up to order `k`.

    Parameters
    ----------
    x : float
        The base.
    p : float
        The exponent.
    k : int
        The maximum derivative order.

    Returns
    -------
    ndarray
        (`k` + 1,) derivative array.

    Notes
    -----
    The powers of `x` are built upward from x ** (`p` - `k`) so that
    a single call to :func:`numpy.power` is made.

    """
    x = np.float64(x)
    df = _empty(k)
    xk = np.power(x, p - k)
    for i in range(k, 0, -1):
        df[i] = xk
        xk *= x
    df[0] = xk
    coeff = p
    for i in range(1, k+1):
        df[i] *= coeff
        coeff *= p - i
    return df


def powi(x, n, k):
    """
    Derivatives of x ** `n` for integer `n` up to order `k`.

    Derivatives above order `n` of a positive power vanish
    exactly.

    Examples
    --------
    >>> powi(2.0, 3, 2)
    array([ 8., 12., 12.])

    """
    x = np.float64(x)
    df = _empty(k)
    if n > 0:
        kmax = min(k, n)
        xk = np.power(x, n - kmax)
        for i in range(kmax, 0, -1):
            df[i] = xk
            xk *= x
        df[0] = xk
    else:
        inv = 1.0 / x
        xk = np.power(inv, -n)
        for i in range(k+1):
            df[i] = xk
            xk *= inv
    coeff = n
    for i in range(1, k+1):
        df[i] *= coeff
        coeff *= n - i
    return df


def rpow(a, x, k):
    """
    Derivatives of `a` ** x with respect to x up to order `k`.

    Parameters
    ----------
    a : float
        The constant base.
    x : float
        The exponent.
    k : int
        The maximum derivative order.

    Returns
    -------
    ndarray
        (`k` + 1,) derivative array.

    Notes
    -----
    For `a` = 0 the conventions are: `x` = 0 gives the value 1
    followed by derivatives alternating -Inf, +Inf, ...; `x` < 0
    gives all NaN; `x` > 0 gives all zero.

    """
    x = np.float64(x)
    df = _empty(k)
    if a == 0:
        if x == 0:
            df[0] = 1.0
            infinity = np.inf
            for i in range(1, k+1):
                infinity = -infinity
                df[i] = infinity
        elif x < 0:
            df.fill(np.nan)
    else:
        df[0] = np.power(a, x)
        ln_a = np.log(a)
        for i in range(1, k+1):
            df[i] = ln_a * df[i-1]
    return df


def root_n(x, n, k):
    """
    Derivatives of the `n`-th root of x up to order `k`.

    ``n == 2`` and ``n == 3`` use :func:`numpy.sqrt` and
    :func:`numpy.cbrt` for the value, so that negative
    arguments of the cube root are handled.

    """
    x = np.float64(x)
    df = _empty(k)
    if n == 2:
        df[0] = np.sqrt(x)
        xk = 0.5 / df[0]
    elif n == 3:
        df[0] = np.cbrt(x)
        xk = 1.0 / (3.0 * df[0] * df[0])
    else:
        df[0] = np.power(x, 1.0 / n)
        xk = 1.0 / (n * np.power(df[0], n - 1))
    n_inv = 1.0 / n
    x_inv = 1.0 / x
    for i in range(1, k+1):
        df[i] = xk
        xk *= x_inv * (n_inv - i)
    return df
