"""
derivstruct.cache
-----------------

Memoized construction of :class:`~derivstruct.dscompiler.DSCompiler`
objects.

The compiler for (p, o) is built from the compilers for (p - 1, o) and
(p, o - 1). A :class:`CompilerCache` keeps every compiler it has built
in a rectangular arena ``arena[p][o]`` and fills missing entries along
ascending diagonals p + o, so both dependencies of an entry are always
available when it is built.

The published arena is an immutable tuple of tuples. Readers never
lock. A thread that misses builds a larger copy and publishes it only
if nobody else has published in the meantime. Losing that race just
discards the copy: construction is deterministic and compilers are
immutable, so duplicate work is harmless.

"""

import threading

import numpy as np

from . import combinatorics
from .dscompiler import DSCompiler, INDEX_DTYPE
from .errors import OrderTooLargeError
from .logger import derivstruct_logger

# Largest derivative array that can be addressed by the index tables
MAX_SIZE = int(np.iinfo(INDEX_DTYPE).max)


class CompilerCache:

    """
    Thread-safe store of compilers keyed by (parameters, order).

    Examples
    --------
    >>> cache = CompilerCache()
    >>> cache.get_compiler(2, 3).size
    10

    """

    def __init__(self):
        self._arena = None
        self._publish_lock = threading.Lock()

    def get_compiler(self, parameters, order):
        """
        Get the compiler for (`parameters`, `order`).

        Parameters
        ----------
        parameters : int
            The number of free parameters, >= 0.
        order : int
            The maximum derivation order, >= 0.

        Returns
        -------
        DSCompiler
            The compiler.

        Raises
        ------
        OrderTooLargeError
            If the derivative arrays would be too large to index.

        """

        if parameters < 0:
            raise ValueError("parameters must be >= 0")
        if order < 0:
            raise ValueError("order must be >= 0")

        arena = self._arena
        if (arena is not None and len(arena) > parameters and
                len(arena[parameters]) > order and
                arena[parameters][order] is not None):
            return arena[parameters][order]

        size = combinatorics.nderiv(order, parameters)
        if size > MAX_SIZE:
            raise OrderTooLargeError(size, MAX_SIZE)

        new_arena = _grow(arena, parameters, order)

        with self._publish_lock:
            if self._arena is arena:
                self._arena = new_arena
                derivstruct_logger.debug("published compiler arena %dx%d",
                                         len(new_arena), len(new_arena[0]))
            else:
                derivstruct_logger.debug("compiler arena replaced concurrently, "
                                         "discarding %dx%d copy",
                                         len(new_arena), len(new_arena[0]))

        return new_arena[parameters][order]

    def clear(self):
        """ Drop every cached compiler. """
        with self._publish_lock:
            self._arena = None


def _grow(arena, parameters, order):
    """
    Copy `arena` into a table large enough to hold (`parameters`, `order`)
    and fill the rectangle [0, parameters] x [0, order].
    """

    n_p = max(parameters + 1, 0 if arena is None else len(arena))
    n_o = max(order + 1, 0 if arena is None else len(arena[0]))

    new_arena = [[None] * n_o for _ in range(n_p)]
    if arena is not None:
        for p, row in enumerate(arena):
            new_arena[p][:len(row)] = row

    for diag in range(parameters + order + 1):
        for o in range(max(0, diag - parameters), min(order, diag) + 1):
            p = diag - o
            if new_arena[p][o] is None:
                value_compiler = None if p == 0 else new_arena[p-1][o]
                derivative_compiler = None if o == 0 else new_arena[p][o-1]
                new_arena[p][o] = DSCompiler(p, o, value_compiler, derivative_compiler)
                derivstruct_logger.debug("built compiler for %d parameters, order %d", p, o)

    return tuple(tuple(row) for row in new_arena)


# Process-wide default cache
_default_cache = CompilerCache()


def get_compiler(parameters, order):
    """
    Get the compiler for (`parameters`, `order`) from the
    process-wide cache.

    See Also
    --------
    CompilerCache.get_compiler

    """
    return _default_cache.get_compiler(parameters, order)
