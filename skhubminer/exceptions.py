# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
The :mod:`skhubminer.exceptions` module includes all custom warnings and error
classes used across scikit-hubminer.
"""

__all__ = [
    "ConfigurationError",
    "DataConsistencyError",
    "NeighborSetFormatError",
]


class ConfigurationError(ValueError):
    """ Invalid configuration of a neighbor set computation.

    Raised for neighborhood sizes out of range, missing distance matrices,
    missing or single-class labels where multiple classes are required,
    and neighborhood sizes that exceed the smallest class.
    """


class NeighborSetFormatError(OSError):
    """ Malformed or truncated neighbor set or distance matrix file. """


class DataConsistencyError(AssertionError):
    """ Violated invariant of computed neighbor sets or occurrence statistics.

    This should never be raised for neighbor sets computed by this package.
    """
