# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of scikit-hubminer.

Shared neighbor counts, optionally weighted to reduce the influence of hubs.
"""
from __future__ import annotations
from typing import Dict, List, Tuple

import numpy as np
from tqdm.auto import tqdm
import numba

from .distance_matrix import DistanceMatrix
from ..analysis.occurrence import logistic, z_standardize
from ..exceptions import ConfigurationError
from ..utils.multiprocessing import map_row_slices, validate_n_jobs

__all__ = [
    "SharedNeighborFinder",
]

_EPSILON = 0.00001


@numba.njit(nogil=True)
def _count_shared_rows(neighbors, lengths, weights, offsets, start, stop, counts):
    """ Weighted shared neighbor counts of pairs (i, j), i in start:stop, j > i. """
    n_samples = neighbors.shape[0]
    marker = np.zeros(n_samples, dtype=np.bool_)
    for i in range(start, stop):
        for r in range(lengths[i]):
            marker[neighbors[i, r]] = True
        for j in range(i + 1, n_samples):
            total = 0.
            for r in range(lengths[j]):
                m = neighbors[j, r]
                if marker[m]:
                    total += weights[m]
            counts[offsets[i] + j - i - 1] = total
        for r in range(lengths[i]):
            marker[neighbors[i, r]] = False


class SharedNeighborFinder:
    """ Count shared k-nearest neighbors between all pairs of objects.

    Parameters
    ----------
    nsf : NeighborSetFinder
        Precomputed neighbor sets
    k_classification : int, default = 5
        Neighborhood size for class-to-class occurrence in
        :meth:`obtain_weights_for_class_imbalanced_data`
    n_classes : int, optional
        Number of classes. Defaults to the classes known to `nsf`.
        With zero classes, weighting schemes do not use labels.
    n_jobs : int, default = 1
        Number of worker threads for counting
    verbose : int, default = 0
        If verbose > 0, show progress bar.

    Notes
    -----
    The neighborhood size for shared neighbors defaults to that of `nsf`,
    and can be reduced with :meth:`set_snk`.
    Pairwise counting marks the neighbors of one object in a boolean array.
    :attr:`neighbor_hashes` serves rank lookups and the stored shared lists.
    """

    def __init__(self, nsf, k_classification: int = 5, n_classes: int = None,
                 n_jobs: int = 1, verbose: int = 0):
        if nsf.k_neighbors is None:
            raise ConfigurationError("Neighbor sets must be calculated before counting shared neighbors.")
        self.nsf = nsf
        self.k_classification = k_classification
        self.n_classes = nsf.n_classes if n_classes is None else n_classes
        self.n_jobs = validate_n_jobs(n_jobs)
        self.verbose = verbose
        self._weights = None
        self.set_snk(nsf.k)

    @property
    def k(self) -> int:
        """ Neighborhood size for shared neighbor counts. """
        return self._k

    @property
    def n_samples(self) -> int:
        return self.nsf.k_neighbors.shape[0]

    def set_snk(self, k: int):
        """ Use the first `k` neighbors of each object. Discards previous counts. """
        if not 0 < k <= self.nsf.k:
            raise ConfigurationError(f"Shared neighbor k={k} must lie in [1, {self.nsf.k}].")
        self._k = int(k)
        self._hashes = None
        self._counts = None
        self._shared_lists = None

    def _neighbors(self) -> Tuple[np.ndarray, np.ndarray]:
        neighbors = np.ascontiguousarray(self.nsf.k_neighbors[:, :self._k])
        lengths = np.minimum(self.nsf.k_current_len, self._k).astype(np.int64)
        return neighbors, lengths

    @property
    def neighbor_hashes(self) -> List[Dict[int, int]]:
        """ For each object, a mapping of its neighbors to their ranks. """
        if self._hashes is None:
            neighbors, lengths = self._neighbors()
            self._hashes = [
                {int(j): rank for rank, j in enumerate(neighbors[i, :lengths[i]])}
                for i in range(self.n_samples)
            ]
        return self._hashes

    # ------------------------------------------------------------- weights

    @property
    def instance_weights(self) -> np.ndarray:
        return self._weights

    def set_weights(self, weights):
        weights = np.asarray(weights, dtype=np.float64).ravel()
        if weights.shape[0] != self.n_samples:
            raise ConfigurationError(f"Expected {self.n_samples} instance weights, got {weights.shape[0]}.")
        self._weights = weights
        self._counts = None

    def remove_weights(self):
        self._weights = None
        self._counts = None

    def obtain_weights_from_general_hubness(self):
        """ Hubs contribute less to similarity, when found as shared neighbors. """
        self.set_weights(self.nsf.penalize_hubness_weights(k=self._k))

    def obtain_weights_from_bad_hubness(self):
        """ Bad hubs contribute less, which increases intraclass similarity. """
        self.set_weights(self.nsf.hwknn_weights(k=self._k))

    def obtain_weights_from_hubness_information(self, theta: float = 0.):
        """ Hubness information weights, see :meth:`NeighborSetFinder.simhub_weights`. """
        supervised = self.n_classes > 0 and self.nsf.y is not None
        self.set_weights(self.nsf.simhub_weights(theta=theta, k=self._k, supervised=supervised))

    def obtain_weights_for_class_imbalanced_data(self):
        """ Instance weights for shared neighbor similarity in class-imbalanced data.

        The weight of an object is the product of

        - its occurrence self-information, scaled to at most one,
        - the purity of its reverse neighbor set, where reverse neighbors are
          weighted by the relevance of their class (classes often confused
          with others are more relevant), and
        - the squashed, standardized difference of class-relevance-weighted
          good and bad pairs of reverse neighbors.
        """
        nsf = self.nsf
        n_samples = self.n_samples
        n_classes = nsf.n_classes
        if n_classes < 1:
            raise ConfigurationError("Class labels are required for class-imbalanced weights.")
        if not 0 < self.k_classification <= nsf.k:
            raise ConfigurationError(f"k_classification={self.k_classification} must lie in [1, {nsf.k}].")
        class_sizes = nsf.class_sizes()
        class_data = nsf.class_data_neighbor_relation_non_normalized(self._k).astype(np.float64)
        class_to_class = nsf.class_to_class_non_normalized(self.k_classification).astype(np.float64)

        # ratio[c1, c2]: occurrences of class c1 among neighbors of class c2, per kNN slot
        ratio = (class_to_class + _EPSILON) / (self.k_classification * class_sizes + _EPSILON)[np.newaxis, :]
        relevance = 1. - np.diag(ratio)
        reverse_entropy = nsf.reverse_entropies(self._k, class_weights=relevance)
        occurrence = nsf.occurrence_statistics(self._k).occurrence

        information = np.log2(n_samples / (occurrence + 1.))
        information /= max(np.abs(information).max(), 1.)

        good_pairs = (class_data * (class_data - 1) / 2 * relevance[:, np.newaxis]).sum(axis=0)
        confusion = ratio + ratio.T
        np.fill_diagonal(confusion, 0.)
        bad_pairs = 0.5 * np.einsum("ci,cd,di->i", class_data, confusion, class_data)
        goodness = np.where(occurrence < 1, 1., good_pairs - bad_pairs)
        goodness = logistic(z_standardize(goodness))

        purity = np.log2(n_classes) - reverse_entropy
        self.set_weights(information * purity * goodness)

    # ------------------------------------------------------------ counting

    def count_shared_neighbors(self, store_lists: bool = False):
        """ Count shared neighbors between all pairs of objects.

        With instance weights, each shared neighbor contributes its weight
        instead of one.

        Parameters
        ----------
        store_lists : bool, default = False
            Also keep the shared neighbors of each pair (memory intensive),
            see :meth:`shared_neighbors`.
        """
        n_samples = self.n_samples
        neighbors, lengths = self._neighbors()
        weights = np.ones(n_samples) if self._weights is None else self._weights
        i = np.arange(n_samples, dtype=np.int64)
        offsets = i * n_samples - i * (i + 1) // 2
        counts = np.zeros(n_samples * (n_samples - 1) // 2, dtype=np.float64)
        progress = tqdm(total=n_samples, desc="Shared neighbors", disable=self.verbose < 1)

        def _count_rows(rows: slice):
            _count_shared_rows(neighbors, lengths, weights, offsets, rows.start, rows.stop, counts)
            progress.update(rows.stop - rows.start)

        try:
            map_row_slices(_count_rows, n_rows=n_samples, n_jobs=self.n_jobs)
        finally:
            progress.close()
        self._counts = counts
        self._offsets = offsets
        if store_lists:
            hashes = self.neighbor_hashes
            self._shared_lists = {
                (a, b): [j for j in hashes[a] if j in hashes[b]]
                for a in range(n_samples) for b in range(a + 1, n_samples)
            }
        else:
            self._shared_lists = None

    def _require_counts(self):
        if self._counts is None:
            raise ConfigurationError("Shared neighbors have not been counted yet.")

    @property
    def shared_neighbor_counts(self) -> np.ndarray:
        """ Condensed vector of counts for all pairs i < j. """
        self._require_counts()
        return self._counts

    def shared_count(self, i: int, j: int) -> float:
        """ (Weighted) number of shared neighbors of objects `i` and `j`. """
        self._require_counts()
        if i == j:
            return float(min(self.nsf.k_current_len[i], self._k))
        if i > j:
            i, j = j, i
        return float(self._counts[self._offsets[i] + j - i - 1])

    def count_shared_between(self, first, second) -> float:
        """ (Weighted) number of shared neighbors of two arbitrary kNN lists. """
        second = set(int(j) for j in second)
        shared = [int(j) for j in first if int(j) in second]
        if self._weights is None:
            return float(len(shared))
        return float(self._weights[shared].sum())

    def shared_neighbors(self, i: int, j: int) -> List[int]:
        """ Shared neighbors of `i` and `j`, in the neighbor order of the smaller index. """
        if self._shared_lists is None:
            raise ConfigurationError("Call count_shared_neighbors(store_lists=True) first.")
        if i > j:
            i, j = j, i
        return self._shared_lists[(i, j)]

    def similarity(self) -> np.ndarray:
        """ Condensed shared neighbor similarity in [0, 1]. """
        self._require_counts()
        if self._weights is None:
            return self._counts / self._k
        max_weight = self._weights.max()
        if max_weight <= 0:
            return np.zeros_like(self._counts)
        return self._counts / (self._k * max_weight)

    def distance_matrix(self) -> DistanceMatrix:
        """ Shared neighbor distances ``1 - similarity``. """
        distances = 1. - self.similarity()
        np.clip(distances, 0., None, out=distances)
        return DistanceMatrix(distances, n_samples=self.n_samples)
