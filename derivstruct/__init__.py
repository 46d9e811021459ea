"""
DERIVSTRUCT
===========

Table-driven forward automatic differentiation to
arbitrary order in any number of variables.

A value and all of its partial derivatives up to a fixed
order are stored in one flat array. A compiler, obtained
with :func:`get_compiler`, holds the index tables that
implement products (generalized Leibniz rule) and
compositions (multivariate Faa di Bruno formula) on
these arrays. The :mod:`~derivstruct.forward` module wraps
them in the ``dsarray`` object.

"""

# Import sub-packages and modules into namespace
from . import combinatorics
from . import elementary
from . import dscompiler
from . import cache
from . import forward

from .cache import get_compiler, CompilerCache
from .dscompiler import DSCompiler, MultiplicationTerm, CompositionTerm
from .errors import DimensionMismatchError, OrderTooLargeError, MathInternalError

__version__ = '0.1.dev0'
