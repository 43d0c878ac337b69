# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of scikit-hubminer.

Hit-miss networks: for each object, its k nearest neighbors from the same
class (hits), and its k nearest neighbors from other classes (misses).
"""
from __future__ import annotations
from typing import List

import numpy as np

from .distance_matrix import check_distance_matrix
from .search import KNeighbors, MatrixSource, TabuTable, kneighbors_search
from ..analysis.occurrence import occurrence_counts, reverse_neighbor_lists
from ..exceptions import ConfigurationError
from ..utils.check import check_labels
from ..utils.multiprocessing import validate_n_jobs

__all__ = [
    "HitMissNetwork",
]


class HitMissNetwork:
    """ Nearest hits and misses of all objects of a labeled data set.

    Parameters
    ----------
    y : array-like of shape (n_samples, )
        Class labels
    distances : DistanceMatrix, ndarray, or list of rows
        Distances among all objects
    k : int, default = 1
        Number of hits and misses per object
    n_jobs : int, default = 1
        Number of worker threads
    verbose : int, default = 0
        If verbose > 0, show progress bars.

    Attributes
    ----------
    hits, misses : ndarray of shape (n_samples, k)
        Indices of the nearest same-class and other-class objects, nearest first.
        Unused slots hold -1.
    hit_distances, miss_distances : ndarray of shape (n_samples, k)
        Corresponding distances; unused slots hold inf.
    hit_lengths, miss_lengths : ndarray of shape (n_samples, )
        Number of valid hits and misses. Objects of the smallest class have
        ``class_size - 1`` hits, if `k` equals the size of that class.
    """

    def __init__(self, y, distances, k: int = 1, n_jobs: int = 1, verbose: int = 0):
        self._y, self.classes_ = check_labels(y)
        self._distances = None if distances is None else check_distance_matrix(distances)
        self.k = k
        self.n_jobs = validate_n_jobs(n_jobs)
        self.verbose = verbose
        self._hits = None
        self._misses = None

    @property
    def n_samples(self) -> int:
        return self._y.shape[0]

    def _validate(self) -> int:
        n_samples = self.n_samples
        if n_samples == 0:
            raise ConfigurationError("Cannot build a hit-miss network of an empty data set.")
        if not np.issubdtype(type(self.k), np.integer):
            raise TypeError(f"Neighborhood size k does not take {type(self.k)} value, enter integer value")
        if not 0 < self.k <= n_samples:
            raise ConfigurationError(f"Neighborhood size k={self.k} must lie in [1, {n_samples}].")
        if self._distances is None:
            raise ConfigurationError("No distance matrix provided.")
        if self._distances.n_samples != n_samples:
            raise ConfigurationError(f"Distance matrix holds {self._distances.n_samples} objects, "
                                     f"but there are {n_samples} labels.")
        class_sizes = np.bincount(self._y)
        if class_sizes.size < 2:
            raise ConfigurationError("A hit-miss network requires at least two classes.")
        if self.k > class_sizes.min():
            raise ConfigurationError(f"Neighborhood size k={self.k} exceeds the size of the "
                                     f"smallest class ({class_sizes.min()}).")
        return int(self.k)

    def _class_tabu(self, hits: bool) -> TabuTable:
        """ One tabu mask per class: other classes for hits, the own class for misses. """
        n_classes = len(self.classes_)
        same_class = self._y[np.newaxis, :] == np.arange(n_classes)[:, np.newaxis]
        masks = ~same_class if hits else same_class
        return TabuTable(masks, self._y)

    def _assign(self, hits: KNeighbors, misses: KNeighbors):
        """ Reverse lists and occurrence counts, reduced after all rows are searched. """
        self._hits = hits
        self._misses = misses
        self._hit_reverse = reverse_neighbor_lists(hits.indices, hits.lengths)
        self._miss_reverse = reverse_neighbor_lists(misses.indices, misses.lengths)
        self._hit_occurrence = occurrence_counts(hits.indices, hits.lengths)
        self._miss_occurrence = occurrence_counts(misses.indices, misses.lengths)

    def generate_network(self):
        """ Compute the nearest hits and misses of all objects by exhaustive search. """
        k = self._validate()
        source = MatrixSource(self._distances)
        hits = kneighbors_search(source, k, tabu=self._class_tabu(hits=True),
                                 n_jobs=self.n_jobs, verbose=self.verbose)
        misses = kneighbors_search(source, k, tabu=self._class_tabu(hits=False),
                                   n_jobs=self.n_jobs, verbose=self.verbose)
        self._assign(hits, misses)

    def generate_network_from_existing_nsf(self, nsf):
        """ Derive hits and misses from precomputed neighbor sets.

        Hits and misses are collected in order from the kNN sets of `nsf`.
        Objects with fewer than k hits (or misses) among them are completed
        by a search restricted to the respective candidates.
        Falls back to :meth:`generate_network`, if `nsf` holds fewer than k neighbors.

        Parameters
        ----------
        nsf : NeighborSetFinder
            Neighbor sets of the same objects
        """
        k = self._validate()
        if nsf.k_neighbors is None or nsf.k < k:
            return self.generate_network()
        if nsf.k_neighbors.shape[0] != self.n_samples:
            raise ConfigurationError(f"Neighbor sets hold {nsf.k_neighbors.shape[0]} objects, "
                                     f"but there are {self.n_samples} labels.")
        hits = self._collect(nsf, k, same_class=True)
        misses = self._collect(nsf, k, same_class=False)
        self._assign(self._complete(hits, k, same_class=True),
                     self._complete(misses, k, same_class=False))

    def _collect(self, nsf, k: int, same_class: bool) -> KNeighbors:
        n_samples = self.n_samples
        indices = np.full((n_samples, k), -1, dtype=np.int64)
        distances = np.full((n_samples, k), np.inf, dtype=np.float64)
        lengths = np.zeros(n_samples, dtype=np.int64)
        for i in range(n_samples):
            length = nsf.k_current_len[i]
            neighbors = nsf.k_neighbors[i, :length]
            selected = (self._y[neighbors] == self._y[i]) == same_class
            found = neighbors[selected][:k]
            indices[i, :found.size] = found
            distances[i, :found.size] = nsf.k_distances[i, :length][selected][:k]
            lengths[i] = found.size
        return KNeighbors(indices, distances, lengths)

    def _complete(self, collected: KNeighbors, k: int, same_class: bool) -> KNeighbors:
        class_sizes = np.bincount(self._y)
        available = class_sizes[self._y] - 1 if same_class else self.n_samples - class_sizes[self._y]
        incomplete = np.flatnonzero(collected.lengths < np.minimum(k, available))
        if not incomplete.size:
            return collected
        same = self._y[np.newaxis, :] == self._y[incomplete][:, np.newaxis]
        tabu = ~same if same_class else same
        # Candidates already collected must not be offered again
        seed = KNeighbors(*(arr[incomplete] for arr in collected))
        for r, length in enumerate(seed.lengths):
            tabu[r, seed.indices[r, :length]] = True
        result = kneighbors_search(MatrixSource(self._distances), k, query=incomplete,
                                   tabu=tabu, seed=seed, n_jobs=self.n_jobs)
        for arr, part in zip(collected, result):
            arr[incomplete] = part
        return collected

    def _require_network(self):
        if self._hits is None:
            raise ConfigurationError("The hit-miss network has not been generated yet.")

    @property
    def hits(self) -> np.ndarray:
        self._require_network()
        return self._hits.indices

    @property
    def hit_distances(self) -> np.ndarray:
        self._require_network()
        return self._hits.distances

    @property
    def hit_lengths(self) -> np.ndarray:
        self._require_network()
        return self._hits.lengths

    @property
    def misses(self) -> np.ndarray:
        self._require_network()
        return self._misses.indices

    @property
    def miss_distances(self) -> np.ndarray:
        self._require_network()
        return self._misses.distances

    @property
    def miss_lengths(self) -> np.ndarray:
        self._require_network()
        return self._misses.lengths

    @property
    def hit_occurrence(self) -> np.ndarray:
        """ How often each object is among the hits of others. """
        self._require_network()
        return self._hit_occurrence

    @property
    def miss_occurrence(self) -> np.ndarray:
        """ How often each object is among the misses of others. """
        self._require_network()
        return self._miss_occurrence

    @property
    def hit_reverse_neighbors(self) -> List[List[int]]:
        self._require_network()
        return self._hit_reverse

    @property
    def miss_reverse_neighbors(self) -> List[List[int]]:
        self._require_network()
        return self._miss_reverse

    def nearest_miss_distances(self) -> np.ndarray:
        """ Margin of each object, that is, the distance to its nearest miss. """
        self._require_network()
        return self._misses.distances[:, 0].copy()
