# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

""" Python package for hubness-aware exact k-nearest neighbor analysis."""

__version__ = '0.1.0'

from . import analysis
from . import exceptions
from . import neighbors
from . import utils
from .neighbors import HitMissNetwork, NeighborSetFinder, SharedNeighborFinder


__all__ = ['analysis',
           'exceptions',
           'HitMissNetwork',
           'NeighborSetFinder',
           'neighbors',
           'SharedNeighborFinder',
           'utils',
           ]
