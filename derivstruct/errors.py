"""
derivstruct.errors
------------------

Exceptions for structural (shape) errors. Numerical domain
problems are not exceptions: they propagate as NaN or Inf
through the derivative arrays.

"""


class DimensionMismatchError(ValueError):
    """
    A length or parameter count does not match what is expected.

    Attributes
    ----------
    got : int
        The offending dimension.
    expected : int
        The required dimension.

    """

    def __init__(self, got, expected):
        self.got = got
        self.expected = expected
        super().__init__(f"dimension mismatch: got {got:d}, expected {expected:d}")


class OrderTooLargeError(ValueError):
    """
    A derivation order (or structure size) exceeds its limit.

    Attributes
    ----------
    got : int
        The offending value.
    limit : int
        The largest allowed value.

    """

    def __init__(self, got, limit):
        self.got = got
        self.limit = limit
        super().__init__(f"{got:d} is larger than the maximum ({limit:d})")


class MathInternalError(RuntimeError):
    """ An internal invariant was violated. This is a bug. """

    def __init__(self, message = "internal error, please report"):
        super().__init__(message)
