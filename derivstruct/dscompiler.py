"""
derivstruct.dscompiler
----------------------

Table-driven algebra on flat derivative arrays.

A :class:`DSCompiler` is built for a fixed number of free parameters
and a fixed maximum derivation order. It holds index tables that turn
the generalized Leibniz rule and the multivariate Faa di Bruno formula
into plain loops over precomputed terms. Compilers are normally
obtained from :func:`derivstruct.cache.get_compiler`, which builds
them recursively from smaller compilers and caches them.

Derivative array layout
~~~~~~~~~~~~~~~~~~~~~~~

A derivative array for `p` parameters and order `o` is a 1D float64
ndarray segment of length ``C(p + o, o)``. ``d[0]`` is the value and the
remaining elements are the partial derivatives, *un-normalized* (no
inverse multi-index factorial). The ordering is defined recursively:
first the derivatives of order `o` that do not involve the last
parameter (laid out as for `p` - 1 parameters), then those that do
(laid out as for `p` parameters at order `o` - 1, with one extra
derivative w.r.t. the last parameter). For two parameters and order 2
this gives

    [f, df/dx, d2f/dx2, df/dy, d2f/dxdy, d2f/dy2]

Use :meth:`DSCompiler.get_partial_derivative_index` and
:meth:`DSCompiler.get_partial_derivative_orders` rather than relying on
this ordering.

All operations take ``(array, offset)`` pairs so that several
structures may share one buffer. Results may alias inputs.

"""

import collections
import math

import numpy as np

from . import combinatorics
from . import elementary
from .errors import DimensionMismatchError, MathInternalError, OrderTooLargeError

INDEX_DTYPE = np.int32

MultiplicationTerm = collections.namedtuple('MultiplicationTerm',
                                            ['multiplicity', 'left', 'right'])
MultiplicationTerm.__doc__ = """
``out[i] += multiplicity * lhs[left] * rhs[right]``
"""

CompositionTerm = collections.namedtuple('CompositionTerm',
                                         ['multiplicity', 'f_index', 'operands'])
CompositionTerm.__doc__ = """
``out[i] += multiplicity * f[f_index] * prod(x[j] for j in operands)``

`operands` is a sorted tuple of derivative-array indices. Its length
is the number of factors of the term and varies from term to term.
"""


class DSCompiler:

    """
    Index tables and algebra for one (parameters, order) pair.

    Attributes
    ----------
    sizes : ndarray
        (`parameters` + 1, `order` + 1) table; ``sizes[p, o]`` is the
        size of a derivative array with `p` parameters to order `o`.
    derivatives_indirection : ndarray
        (`size`, `parameters`) multi-index table.
    lower_indirection : ndarray
        Positions of the order-reduced sub-structure. Only used to
        build `mult_indirection`.
    mult_indirection : tuple
        For each output index, a tuple of :class:`MultiplicationTerm`.
    comp_indirection : tuple
        For each output index, a tuple of :class:`CompositionTerm`.

    Notes
    -----
    Instances are immutable. The numpy tables are flagged read-only.

    """

    def __init__(self, parameters, order, value_compiler = None, derivative_compiler = None):
        """
        Build the tables for (`parameters`, `order`).

        Parameters
        ----------
        parameters : int
            The number of free parameters.
        order : int
            The maximum derivation order.
        value_compiler : DSCompiler
            The compiler for (`parameters` - 1, `order`). Ignored
            (and may be None) if `parameters` is 0.
        derivative_compiler : DSCompiler
            The compiler for (`parameters`, `order` - 1). Ignored
            (and may be None) if `order` is 0.

        """

        if parameters > 0 and (value_compiler is None or
                               value_compiler.parameters != parameters - 1 or
                               value_compiler.order != order):
            raise ValueError("value_compiler must be the compiler for (parameters - 1, order)")
        if order > 0 and (derivative_compiler is None or
                          derivative_compiler.parameters != parameters or
                          derivative_compiler.order != order - 1):
            raise ValueError("derivative_compiler must be the compiler for (parameters, order - 1)")

        self._parameters = parameters
        self._order = order

        self.sizes = _compile_sizes(parameters, order, value_compiler)
        self.derivatives_indirection = _compile_derivatives_indirection(
            parameters, order, value_compiler, derivative_compiler)
        self.lower_indirection = _compile_lower_indirection(
            parameters, order, value_compiler, derivative_compiler)
        self.mult_indirection = _compile_multiplication_indirection(
            parameters, order, value_compiler, derivative_compiler,
            self.lower_indirection)
        self.comp_indirection = _compile_composition_indirection(
            parameters, order, value_compiler, derivative_compiler,
            self.sizes, self.derivatives_indirection)

        for tab in (self.sizes, self.derivatives_indirection, self.lower_indirection):
            tab.flags.writeable = False

    def __repr__(self):
        return f"DSCompiler(parameters={self._parameters:d}, order={self._order:d})"

    @property
    def parameters(self):
        """ int : The number of free parameters. """
        return self._parameters

    @property
    def order(self):
        """ int : The maximum derivation order. """
        return self._order

    @property
    def size(self):
        """ int : The length of a derivative array. """
        return int(self.sizes[self._parameters, self._order])

    ###########################################
    # Index conversion
    #
    def get_partial_derivative_index(self, *orders):
        """
        Get the array position of a partial derivative.

        Parameters
        ----------
        *orders : int
            The derivation order with respect to each
            parameter.

        Returns
        -------
        int
            The index in the derivative array.

        Raises
        ------
        DimensionMismatchError
            If the number of `orders` is not `parameters`.
        OrderTooLargeError
            If the total order exceeds `order`.

        Examples
        --------
        >>> from derivstruct import get_compiler
        >>> c = get_compiler(2, 2)
        >>> c.get_partial_derivative_index(1, 1)
        4

        """
        if len(orders) != self._parameters:
            raise DimensionMismatchError(len(orders), self._parameters)
        return _partial_derivative_index(self._parameters, self._order, self.sizes, orders)

    def get_partial_derivative_orders(self, index):
        """
        Get the multi-index of the derivative stored at `index`.

        Parameters
        ----------
        index : int
            Position in the derivative array.

        Returns
        -------
        ndarray
            The derivation orders, one per parameter.

        Raises
        ------
        IndexError
            If `index` is outside [0, `size`).

        """
        if index < 0 or index >= self.size:
            raise IndexError(f"index {index:d} outside of [0, {self.size:d})")
        return self.derivatives_indirection[index].copy()

    def check_compatibility(self, compiler):
        """
        Check that `compiler` has the same parameters and order.

        Raises
        ------
        DimensionMismatchError
            If the parameters or the order differ.

        """
        if self._parameters != compiler.parameters:
            raise DimensionMismatchError(self._parameters, compiler.parameters)
        if self._order != compiler.order:
            raise DimensionMismatchError(self._order, compiler.order)

    def _segment(self, array, offset):
        """ A view of the derivative array at `offset`. """
        n = self.size
        if offset < 0 or len(array) - offset < n:
            raise DimensionMismatchError(len(array) - offset, n)
        return array[offset:offset + n]

    ###########################################
    # Linear operations
    #
    def add(self, lhs, lhs_offset, rhs, rhs_offset, result, result_offset):
        """ result = lhs + rhs """
        np.add(self._segment(lhs, lhs_offset), self._segment(rhs, rhs_offset),
               out = self._segment(result, result_offset))

    def subtract(self, lhs, lhs_offset, rhs, rhs_offset, result, result_offset):
        """ result = lhs - rhs """
        np.subtract(self._segment(lhs, lhs_offset), self._segment(rhs, rhs_offset),
                    out = self._segment(result, result_offset))

    def linear_combination(self, terms, result, result_offset):
        """
        result = a1 * c1 + a2 * c2 + ...

        Parameters
        ----------
        terms : sequence of tuple
            ``(a, c, offset)`` triples of a scalar coefficient
            and a derivative array at `offset`.
        result : ndarray
            Output array.
        result_offset : int
            Output offset.

        Notes
        -----
        Each element is summed with :func:`math.fsum` to limit
        cancellation between the terms. Elements with a non-finite
        product or sum fall back to a plain sum, so that NaN and Inf
        propagate.

        """
        products = np.zeros((len(terms), self.size))
        for row, (a, c, offset) in zip(products, terms):
            np.multiply(a, self._segment(c, offset), out = row)
        out = self._segment(result, result_offset)

        plain = products.sum(axis = 0)
        combined = np.empty(self.size)
        for i in range(self.size):
            column = products[:, i]
            if np.isfinite(plain[i]) and np.isfinite(column).all():
                try:
                    combined[i] = math.fsum(column)
                except OverflowError:
                    combined[i] = plain[i]
            else:
                combined[i] = plain[i]
        np.copyto(out, combined)

    ###########################################
    # Products
    #
    def multiply(self, lhs, lhs_offset, rhs, rhs_offset, result, result_offset):
        """
        result = lhs * rhs via the generalized Leibniz rule.
        """
        x = self._segment(lhs, lhs_offset)
        y = self._segment(rhs, rhs_offset)
        out = self._segment(result, result_offset)

        z = np.zeros(self.size)
        for i, row in enumerate(self.mult_indirection):
            r = 0.0
            for term in row:
                r += term.multiplicity * x[term.left] * y[term.right]
            z[i] = r
        np.copyto(out, z)

    def divide(self, lhs, lhs_offset, rhs, rhs_offset, result, result_offset):
        """ result = lhs / rhs, computed as lhs * rhs**-1 """
        reciprocal = np.empty(self.size)
        self.pow(rhs, rhs_offset, -1, reciprocal, 0)
        self.multiply(lhs, lhs_offset, reciprocal, 0, result, result_offset)

    def remainder(self, lhs, lhs_offset, rhs, rhs_offset, result, result_offset):
        """
        IEEE remainder of lhs / rhs.

        The quotient k = rint((lhs - rem) / rhs) is treated as
        a constant, so the derivatives are lhs - k * rhs. This is
        discontinuous wherever lhs crosses a multiple of rhs.
        """
        x = self._segment(lhs, lhs_offset)
        y = self._segment(rhs, rhs_offset)
        out = self._segment(result, result_offset)

        x0 = np.float64(x[0])
        y0 = np.float64(y[0])
        rem = _ieee_remainder(x0, y0)
        k = np.rint((x0 - rem) / y0)

        np.subtract(x[1:], k * y[1:], out = out[1:])
        out[0] = rem

    ###########################################
    # Composition
    #
    def compose(self, operand, operand_offset, f, result, result_offset):
        """
        result = f(operand) via the multivariate chain rule.

        Parameters
        ----------
        operand : ndarray
            Derivative array of the argument.
        operand_offset : int
            Offset of the argument.
        f : array_like
            ``[f(x0), f'(x0), ..., f^(order)(x0)]``, the derivatives
            of the single-argument function at the argument value.
        result : ndarray
            Output array.
        result_offset : int
            Output offset.

        Raises
        ------
        DimensionMismatchError
            If `f` does not have ``order + 1`` elements.

        """
        f = np.asarray(f, dtype = np.float64)
        if f.shape != (self._order + 1,):
            raise DimensionMismatchError(f.size, self._order + 1)

        x = self._segment(operand, operand_offset)
        out = self._segment(result, result_offset)

        z = np.zeros(self.size)
        for i, row in enumerate(self.comp_indirection):
            r = 0.0
            for term in row:
                product = term.multiplicity * f[term.f_index]
                for j in term.operands:
                    product *= x[j]
                r += product
            z[i] = r
        np.copyto(out, z)

    def _compose_with(self, coefficients, operand, operand_offset, result, result_offset):
        # coefficients(x0, order) -> univariate derivative array
        x0 = np.float64(self._segment(operand, operand_offset)[0])
        self.compose(operand, operand_offset, coefficients(x0, self._order),
                     result, result_offset)

    ###########################################
    # Power functions
    #
    def pow(self, operand, operand_offset, p, result, result_offset):
        """
        result = operand ** p

        Parameters
        ----------
        p : int or float
            The exponent. Integral exponents use an exact integer
            recurrence, so that e.g. x**3 has vanishing fourth
            derivatives and x**0 is the constant 1.

        """
        if isinstance(p, (int, np.integer)):
            if p == 0:
                out = self._segment(result, result_offset)
                out.fill(0.0)
                out[0] = 1.0
                return
            self._compose_with(lambda x0, k: elementary.powi(x0, int(p), k),
                               operand, operand_offset, result, result_offset)
        else:
            self._compose_with(lambda x0, k: elementary.powf(x0, p, k),
                               operand, operand_offset, result, result_offset)

    def rpow(self, a, operand, operand_offset, result, result_offset):
        """
        result = a ** operand for a scalar base `a`.

        ``a == 0`` follows the conventions of :func:`elementary.rpow`.
        """
        self._compose_with(lambda x0, k: elementary.rpow(a, x0, k),
                           operand, operand_offset, result, result_offset)

    def pow_ds(self, x, x_offset, y, y_offset, result, result_offset):
        """ result = x ** y = exp(y * log(x)) for two derivative arrays. """
        log_x = np.empty(self.size)
        self.log(x, x_offset, log_x, 0)
        y_log_x = np.empty(self.size)
        self.multiply(log_x, 0, y, y_offset, y_log_x, 0)
        self.exp(y_log_x, 0, result, result_offset)

    def root_n(self, operand, operand_offset, n, result, result_offset):
        """ result = operand ** (1/n) """
        self._compose_with(lambda x0, k: elementary.root_n(x0, n, k),
                           operand, operand_offset, result, result_offset)

    ###########################################
    # Exponential and logarithms
    #
    def exp(self, operand, operand_offset, result, result_offset):
        """ result = exp(operand) """
        self._compose_with(elementary.exp, operand, operand_offset, result, result_offset)

    def expm1(self, operand, operand_offset, result, result_offset):
        """ result = exp(operand) - 1 """
        self._compose_with(elementary.expm1, operand, operand_offset, result, result_offset)

    def log(self, operand, operand_offset, result, result_offset):
        """ result = log(operand) """
        self._compose_with(elementary.log, operand, operand_offset, result, result_offset)

    def log1p(self, operand, operand_offset, result, result_offset):
        """ result = log(1 + operand) """
        self._compose_with(elementary.log1p, operand, operand_offset, result, result_offset)

    def log10(self, operand, operand_offset, result, result_offset):
        """ result = log10(operand) """
        self._compose_with(elementary.log10, operand, operand_offset, result, result_offset)

    ###########################################
    # Trigonometric functions
    #
    def sin(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.sin, operand, operand_offset, result, result_offset)

    def cos(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.cos, operand, operand_offset, result, result_offset)

    def tan(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.tan, operand, operand_offset, result, result_offset)

    def asin(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.asin, operand, operand_offset, result, result_offset)

    def acos(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.acos, operand, operand_offset, result, result_offset)

    def atan(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.atan, operand, operand_offset, result, result_offset)

    def atan2(self, y, y_offset, x, x_offset, result, result_offset):
        """
        result = atan2(y, x)

        The derivatives are computed from the half-angle forms
        2 atan(y / (r + x)) for x >= 0 and +/-pi - 2 atan(y / (r - x))
        for x < 0, with r = sqrt(x**2 + y**2). The value is then
        replaced by :func:`numpy.arctan2` of the values, which
        handles signed zeros and infinities exactly.
        """
        y_seg = self._segment(y, y_offset)
        x_seg = self._segment(x, x_offset)
        out = self._segment(result, result_offset)
        # value read up front, result may alias y or x
        y0 = np.float64(y_seg[0])
        x0 = np.float64(x_seg[0])

        tmp1 = np.empty(self.size)
        tmp2 = np.empty(self.size)
        self.multiply(x_seg, 0, x_seg, 0, tmp1, 0)   # x**2
        self.multiply(y_seg, 0, y_seg, 0, tmp2, 0)   # y**2
        self.add(tmp1, 0, tmp2, 0, tmp2, 0)          # x**2 + y**2
        self.root_n(tmp2, 0, 2, tmp1, 0)             # r

        if x0 >= 0:
            self.add(tmp1, 0, x_seg, 0, tmp2, 0)         # r + x
            self.divide(y_seg, 0, tmp2, 0, tmp1, 0)      # y / (r + x)
            self.atan(tmp1, 0, tmp2, 0)
            np.multiply(2.0, tmp2, out = out)
        else:
            self.subtract(tmp1, 0, x_seg, 0, tmp2, 0)    # r - x
            self.divide(y_seg, 0, tmp2, 0, tmp1, 0)      # y / (r - x)
            self.atan(tmp1, 0, tmp2, 0)
            np.multiply(-2.0, tmp2, out = out)

        out[0] = np.arctan2(y0, x0)

    ###########################################
    # Hyperbolic functions
    #
    def sinh(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.sinh, operand, operand_offset, result, result_offset)

    def cosh(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.cosh, operand, operand_offset, result, result_offset)

    def tanh(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.tanh, operand, operand_offset, result, result_offset)

    def asinh(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.asinh, operand, operand_offset, result, result_offset)

    def acosh(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.acosh, operand, operand_offset, result, result_offset)

    def atanh(self, operand, operand_offset, result, result_offset):
        self._compose_with(elementary.atanh, operand, operand_offset, result, result_offset)

    ###########################################
    # Taylor expansion
    #
    def taylor(self, ds, ds_offset, *delta):
        """
        Evaluate the Taylor expansion of a derivative structure.

        Parameters
        ----------
        ds : ndarray
            Derivative array.
        ds_offset : int
            Offset of `ds`.
        *delta : float
            The displacement of each parameter.

        Returns
        -------
        float
            The value of the expansion at `delta`.

        Raises
        ------
        DimensionMismatchError
            If the number of `delta` values is not `parameters`.

        """
        if len(delta) != self._parameters:
            raise DimensionMismatchError(len(delta), self._parameters)
        d = self._segment(ds, ds_offset)

        value = 0.0
        # Sum the smallest (highest order) terms first
        for i in range(self.size - 1, -1, -1):
            orders = self.derivatives_indirection[i]
            term = np.float64(d[i])
            for k in range(self._parameters):
                if orders[k] > 0:
                    term *= np.power(delta[k], orders[k]) / combinatorics.factorial(int(orders[k]))
            value += term
        return value


def _ieee_remainder(x, y):
    # math.remainder raises where IEEE 754 returns NaN
    if y == 0 or np.isinf(x) or np.isnan(x) or np.isnan(y):
        return np.float64(np.nan)
    return np.float64(math.remainder(x, y))


def _partial_derivative_index(parameters, order, sizes, orders):
    """
    Encode a multi-index.

    Each unit of derivation w.r.t. parameter `i` skips the block
    of ``sizes[i, m]`` derivatives that do not involve it, where
    `m` is the order still available. Parameters are consumed
    from last to first.
    """
    index = 0
    m = order
    orders_sum = 0
    for i in range(parameters - 1, -1, -1):
        derivative_order = int(orders[i])
        if derivative_order < 0:
            raise ValueError("derivation orders must be >= 0")
        orders_sum += derivative_order
        if orders_sum > order:
            raise OrderTooLargeError(orders_sum, order)
        for _ in range(derivative_order):
            index += int(sizes[i, m])
            m -= 1
    return index


def _convert_index(index, src_p, src_derivatives_indirection, dest_p, dest_o, dest_sizes):
    """
    Renumber `index` from a source layout to a destination
    layout with `dest_p` parameters and order `dest_o`.

    The source multi-index is zero-padded (or truncated) to
    `dest_p` parameters.
    """
    if index < 0 or index >= src_derivatives_indirection.shape[0]:
        raise MathInternalError(f"index {index:d} outside of the source structure")
    orders = np.zeros(dest_p, dtype = INDEX_DTYPE)
    n = min(src_p, dest_p)
    orders[:n] = src_derivatives_indirection[index, :n]
    try:
        return _partial_derivative_index(dest_p, dest_o, dest_sizes, orders)
    except OrderTooLargeError as e:
        raise MathInternalError(f"index {index:d} cannot be converted") from e


def _merge_terms(row):
    """
    Merge terms with identical indices by summing their
    multiplicities.

    `row` is a list of mutable terms ``[multiplicity, i1, i2, ...]``.
    Every pair of terms is compared. The first occurrence keeps
    its position and absorbs the later ones.
    """
    combined = []
    for j, term_j in enumerate(row):
        if term_j[0] > 0:
            for term_k in row[j+1:]:
                if term_j[1:] == term_k[1:]:
                    term_j[0] += term_k[0]
                    term_k[0] = 0
            combined.append(term_j)
    return combined


def _compile_sizes(parameters, order, value_compiler):
    sizes = np.zeros((parameters + 1, order + 1), dtype = np.int64)
    if parameters == 0:
        sizes[0, :] = 1
    else:
        sizes[:parameters] = value_compiler.sizes
        sizes[parameters, 0] = 1
        for i in range(order):
            sizes[parameters, i+1] = sizes[parameters, i] + sizes[parameters - 1, i+1]
    return sizes


def _compile_derivatives_indirection(parameters, order, value_compiler, derivative_compiler):
    if parameters == 0 or order == 0:
        return np.zeros((1, parameters), dtype = INDEX_DTYPE)

    v_idx = value_compiler.derivatives_indirection
    d_idx = derivative_compiler.derivatives_indirection
    v_size = v_idx.shape[0]

    idx = np.zeros((v_size + d_idx.shape[0], parameters), dtype = INDEX_DTYPE)
    # Derivatives not involving the last parameter
    idx[:v_size, :parameters - 1] = v_idx
    # Derivatives involving the last parameter at least once
    idx[v_size:, :] = d_idx
    idx[v_size:, parameters - 1] += 1
    return idx


def _compile_lower_indirection(parameters, order, value_compiler, derivative_compiler):
    if parameters == 0 or order <= 1:
        return np.zeros(1, dtype = INDEX_DTYPE)
    return np.concatenate((value_compiler.lower_indirection,
                           value_compiler.size + derivative_compiler.lower_indirection)).astype(INDEX_DTYPE)


def _compile_multiplication_indirection(parameters, order, value_compiler,
                                        derivative_compiler, lower_indirection):
    if parameters == 0 or order == 0:
        return ((MultiplicationTerm(1, 0, 0),),)

    v_size = len(value_compiler.mult_indirection)
    lower = [int(i) for i in lower_indirection]

    mult = list(value_compiler.mult_indirection)
    for d_row in derivative_compiler.mult_indirection:
        #
        # Differentiating one more time w.r.t. the last parameter
        # acts on either the left or the right factor of each term
        #
        row = []
        for term in d_row:
            row.append([term.multiplicity, lower[term.left], v_size + term.right])
            row.append([term.multiplicity, v_size + term.left, lower[term.right]])
        mult.append(tuple(MultiplicationTerm(*t) for t in _merge_terms(row)))

    return tuple(mult)


def _compile_composition_indirection(parameters, order, value_compiler, derivative_compiler,
                                     sizes, derivatives_indirection):
    if parameters == 0 or order == 0:
        return ((CompositionTerm(1, 0, ()),),)

    src_idx = derivative_compiler.derivatives_indirection

    # d/dx_last of the argument
    first = np.zeros(parameters, dtype = INDEX_DTYPE)
    first[parameters - 1] = 1
    g1 = _partial_derivative_index(parameters, order, sizes, first)

    comp = list(value_compiler.comp_indirection)
    for d_row in derivative_compiler.comp_indirection:
        row = []
        for term in d_row:
            operands = [_convert_index(g, parameters, src_idx, parameters, order, sizes)
                        for g in term.operands]

            # Differentiate the outer function f^(m) -> f^(m+1) * dx/dx_last
            row.append([term.multiplicity, term.f_index + 1] + sorted(operands + [g1]))

            # Differentiate each inner factor in turn
            for l in range(len(operands)):
                bumped = list(operands)
                orders = derivatives_indirection[bumped[l]].copy()
                orders[parameters - 1] += 1
                bumped[l] = _partial_derivative_index(parameters, order, sizes, orders)
                row.append([term.multiplicity, term.f_index] + sorted(bumped))

        comp.append(tuple(CompositionTerm(t[0], t[1], tuple(t[2:]))
                          for t in _merge_terms(row)))

    return tuple(comp)
