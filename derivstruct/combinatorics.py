"""
derivstruct.combinatorics
-------------------------

Exact integer combinatorics used for structure sizes
and Taylor expansions.

"""

import scipy.special

from .errors import MathInternalError


def nck(n, k):
    """
    Calculate the binomial coefficient (`n` choose `k`).

    Parameters
    ----------
    n, k : int
        Arguments of the binomial coefficient.

    Returns
    -------
    int
        The binomial coefficient (`n` choose `k`). This is
        zero if `k` > `n` or either argument is negative.

    Examples
    --------
    >>> nck(4,2)
    6

    >>> nck(4,0)
    1

    """

    if k > n or k < 0 or n < 0:
        return 0
    return int(scipy.special.comb(n, k, exact = True))


def nderiv(deriv, nvar):
    """
    The number of derivatives up to order `deriv`,
    inclusively, in `nvar` variables. This equals
    the binomial coefficient (`deriv` + `nvar`, `nvar`).

    Parameters
    ----------
    deriv : int
        The maximum derivative order.
    nvar : int
        The number of independent variables.

    Returns
    -------
    int
        The number of derivatives.

    Examples
    --------
    >>> nderiv(2, 3)
    10

    """
    return nck(deriv + nvar, nvar)


def factorial(n):
    """
    Factorial of `n` as a float.

    Parameters
    ----------
    n : int
        Non-negative argument.

    Returns
    -------
    float
        `n`!

    Raises
    ------
    MathInternalError
        If `n` is negative or `n`! is too large for a float.
        Derivation orders are small, so either case means
        an index table is corrupt.

    """

    if n < 0:
        raise MathInternalError(f"factorial of negative order {n:d}")
    try:
        return float(scipy.special.factorial(n, exact = True))
    except OverflowError as e:
        raise MathInternalError(f"{n:d}! cannot be represented") from e
