# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
"""
The :mod:`skhubminer.neighbors` package provides exact k-nearest neighbor
sets on precomputed distance matrices, hit-miss networks, and shared
neighbor counts.
"""
from .distance_matrix import DistanceMatrix, load_distance_matrix, save_distance_matrix
from .hit_miss import HitMissNetwork
from .neighbor_set_finder import DEFAULT_NEIGHBORHOOD_SIZE, NeighborSetFinder
from .search import ExternalQuery, FunctionSource, MatrixSource, TabuTable, kneighbors_search
from .shared_neighbors import SharedNeighborFinder


__all__ = [
    "DEFAULT_NEIGHBORHOOD_SIZE",
    "DistanceMatrix",
    "ExternalQuery",
    "FunctionSource",
    "HitMissNetwork",
    "kneighbors_search",
    "load_distance_matrix",
    "MatrixSource",
    "NeighborSetFinder",
    "save_distance_matrix",
    "SharedNeighborFinder",
    "TabuTable",
]
