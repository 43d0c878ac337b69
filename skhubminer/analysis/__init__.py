# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
The :mod:`skhubminer.analysis` package provides neighbor occurrence statistics
and methods for measuring hubness.
"""
from .estimation import hubness_measures, VALID_HUBNESS_MEASURES
from .occurrence import DEFAULT_LAPLACE, OccurrenceStatistics

__all__ = ['DEFAULT_LAPLACE',
           'hubness_measures',
           'OccurrenceStatistics',
           'VALID_HUBNESS_MEASURES',
           ]
