"""
derivstruct.logger
------------------

Package logger. ``derivstruct`` logs through the standard
:mod:`logging` library under the name ``"derivstruct"``.
Only compiler construction emits messages, at ``DEBUG`` level,
so nothing is displayed unless the calling application
configures it, e.g.::

    >>> import logging
    >>> logging.basicConfig(level=logging.DEBUG)

"""
import logging

logger_name = "derivstruct"
derivstruct_logger = logging.getLogger(logger_name)
