# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of scikit-hubminer.

Exact k-nearest neighbor sets and neighbor occurrence (hubness) statistics.
"""
from __future__ import annotations
import logging
import warnings
from typing import List, Union

import numpy as np
from sklearn.utils.validation import check_array

from ._topk import complete_condensed, insert_neighbor
from .distance_matrix import DistanceMatrix, check_distance_matrix
from .search import ExternalQuery, FunctionSource, KNeighbors, MatrixSource, kneighbors_search
from ..analysis import occurrence as occ
from ..exceptions import ConfigurationError, NeighborSetFormatError
from ..utils.check import check_indices, check_labels, check_n_neighbors, check_neighbor_sets
from ..utils.io import read_neighbor_sets, write_neighbor_sets
from ..utils.multiprocessing import map_row_slices, validate_n_jobs

__all__ = [
    "DEFAULT_NEIGHBORHOOD_SIZE",
    "NeighborSetFinder",
]

#: Neighborhood size used when none is given
DEFAULT_NEIGHBORHOOD_SIZE = 5


class NeighborSetFinder:
    """ Exact kNN sets, reverse neighbor sets, and hubness statistics of a data set.

    Neighbors are found by exhaustive search in a precomputed distance matrix,
    without spatial indexing, which is of little use in high-dimensional data.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features), optional
        Vector data. Required to compute the distance matrix and for external queries.
    y : array-like of shape (n_samples, ), optional
        Class labels. Required for good/bad occurrences and class-conditional estimates.
    distances : DistanceMatrix, ndarray, or list of rows, optional
        Precomputed distances. If None, they are computed eagerly from `X`.
    metric : str or callable, default = "euclidean"
        Distance function for `X`, as accepted by :func:`sklearn.metrics.pairwise_distances`.
    metric_params : dict, optional
        Additional keyword arguments for the metric
    n_jobs : int, default = 1
        Number of worker threads for distance computation and neighbor search.
        ``-1`` uses all CPU cores.
    verbose : int, default = 0
        If verbose > 0, show progress bars.

    Notes
    -----
    Instances are not safe for concurrent modification. The distance matrix
    may be shared among several instances, as it is never modified.

    Examples
    --------
    >>> from sklearn.datasets import make_classification
    >>> X, y = make_classification(random_state=0)
    >>> nsf = NeighborSetFinder(X, y)
    >>> nsf.calculate_neighbor_sets(k=5)
    >>> nsf.k_neighbors.shape
    (100, 5)
    """

    def __init__(
            self,
            X=None,
            y=None,
            distances=None,
            metric: Union[str, callable] = "euclidean",
            metric_params: dict = None,
            n_jobs: int = 1,
            verbose: int = 0,
    ):
        self.metric = metric
        self.metric_params = metric_params
        self.n_jobs = validate_n_jobs(n_jobs)
        self.verbose = verbose

        self._X = None if X is None else check_array(X, accept_sparse="csr")
        n_samples = None if self._X is None else self._X.shape[0]
        if y is None:
            self._y = None
            self.classes_ = None
        else:
            self._y, self.classes_ = check_labels(y, n_samples)
            n_samples = self._y.shape[0]

        self._distances = None
        self._reset_neighbor_sets()
        if distances is not None:
            self._distances = check_distance_matrix(distances, n_samples)
        elif self._X is not None:
            self.calculate_distances()

    # ------------------------------------------------------------------ state

    def _reset_neighbor_sets(self):
        self._k = None
        self._k_neighbors = None
        self._k_distances = None
        self._k_current_len = None
        self._reverse_neighbors = None
        self._statistics = None
        self._active = None
        self._entropy_cache = {}

    def _assign_neighbor_sets(self, k: int, neighbors, distances, lengths, statistics=None):
        """ Replace neighbor sets, and derive reverse sets and statistics in one step. """
        reverse = occ.reverse_neighbor_lists(neighbors, lengths)
        if statistics is None:
            statistics = occ.occurrence_statistics(neighbors, lengths, self._y, k)
        self._k = k
        self._k_neighbors = neighbors
        self._k_distances = distances
        self._k_current_len = lengths
        self._reverse_neighbors = reverse
        self._statistics = statistics
        self._entropy_cache = {}

    def _refresh_statistics(self):
        self._statistics = occ.occurrence_statistics(
            self._k_neighbors, self._k_current_len, self._y, self._k)
        self._entropy_cache = {}

    def _require_distances(self) -> DistanceMatrix:
        if self._distances is None:
            raise ConfigurationError("No distance matrix available. Provide distances or vector data X.")
        return self._distances

    def _require_neighbor_sets(self):
        if self._k_neighbors is None:
            raise ConfigurationError("Neighbor sets have not been calculated yet.")

    def _require_labels(self):
        if self._y is None:
            raise ConfigurationError("Class labels y are required for this operation.")

    def _check_k(self, k: int = None) -> int:
        self._require_neighbor_sets()
        if k is None:
            return self._k
        if not 0 < k <= self._k:
            raise ConfigurationError(f"Neighborhood size k={k} must lie in [1, {self._k}], "
                                     f"the size of the calculated neighbor sets.")
        return int(k)

    # -------------------------------------------------------------- accessors

    @property
    def n_samples(self) -> int:
        if self._distances is not None:
            return self._distances.n_samples
        if self._y is not None:
            return self._y.shape[0]
        if self._X is not None:
            return self._X.shape[0]
        return 0

    @property
    def n_classes(self) -> int:
        return 0 if self.classes_ is None else len(self.classes_)

    @property
    def X(self):
        return self._X

    @property
    def y(self) -> np.ndarray:
        """ Class labels encoded as ``0..n_classes-1``. """
        return self._y

    @property
    def distances(self) -> DistanceMatrix:
        return self._distances

    @property
    def k(self) -> int:
        return self._k

    @property
    def k_neighbors(self) -> np.ndarray:
        """ Neighbor indices of shape (n_samples, k), nearest first; -1 marks unused slots. """
        return self._k_neighbors

    @property
    def k_distances(self) -> np.ndarray:
        """ Neighbor distances of shape (n_samples, k), ascending; inf marks unused slots. """
        return self._k_distances

    @property
    def k_current_len(self) -> np.ndarray:
        """ Number of valid neighbors per object. """
        return self._k_current_len

    @property
    def reverse_neighbors(self) -> List[List[int]]:
        """ For each object, the objects that have it among their neighbors. """
        return self._reverse_neighbors

    @property
    def statistics(self) -> occ.OccurrenceStatistics:
        return self._statistics

    @property
    def occurrence(self) -> np.ndarray:
        """ Neighbor occurrence frequencies (k-occurrence). """
        self._require_neighbor_sets()
        return self._statistics.occurrence

    @property
    def good_occurrence(self) -> np.ndarray:
        self._require_neighbor_sets()
        self._require_labels()
        return self._statistics.good_occurrence

    @property
    def bad_occurrence(self) -> np.ndarray:
        self._require_neighbor_sets()
        self._require_labels()
        return self._statistics.bad_occurrence

    def class_sizes(self) -> np.ndarray:
        self._require_labels()
        return np.bincount(self._y, minlength=self.n_classes)

    # -------------------------------------------------------------- distances

    def calculate_distances(self):
        """ Compute the distance matrix from `X` (O(n^2) distance evaluations). """
        if self._X is None:
            raise ConfigurationError("Vector data X is required to calculate distances.")
        self._distances = DistanceMatrix.from_data(
            self._X,
            metric=self.metric,
            metric_params=self.metric_params,
            n_jobs=self.n_jobs,
            verbose=self.verbose,
        )
        self._reset_neighbor_sets()

    def set_distances(self, distances):
        """ Replace the distance matrix. Previously calculated neighbor sets are discarded. """
        n_samples = None
        if self._y is not None:
            n_samples = self._y.shape[0]
        elif self._X is not None:
            n_samples = self._X.shape[0]
        self._distances = check_distance_matrix(distances, n_samples)
        self._reset_neighbor_sets()

    # ---------------------------------------------------------- kNN search

    def calculate_neighbor_sets(self, k: int = DEFAULT_NEIGHBORHOOD_SIZE, tabu=None):
        """ Calculate the k nearest neighbors of all objects.

        Parameters
        ----------
        k : int
            Neighborhood size, ``0 < k < n_samples``
        tabu : iterable of int or boolean ndarray, optional
            Objects that must not be used as neighbors (e.g. everything but
            the selected prototypes in instance selection).
        """
        distances = self._require_distances()
        k = check_n_neighbors(k, distances.n_samples)
        result = kneighbors_search(
            MatrixSource(distances), k, tabu=tabu, n_jobs=self.n_jobs, verbose=self.verbose)
        if tabu is not None and np.any(result.lengths < k):
            warnings.warn(f"Some objects have fewer than k={k} admissible neighbors. "
                          f"Their neighbor sets are only partially filled.")
        self._assign_neighbor_sets(k, *result)

    def kneighbors_of_instance(self, X, k: int = None, tabu=None):
        """ Nearest neighbors of external objects, using the metric on vector data.

        Parameters
        ----------
        X : array-like of shape (n_queries, n_features) or (n_features, )
            Query objects (not part of the data set)
        k : int, optional
            Neighborhood size. Defaults to the size of the calculated neighbor sets.
        tabu : iterable of int or boolean ndarray, optional
            Objects that must not be returned as neighbors

        Returns
        -------
        neigh_dist, neigh_ind : ndarray, ndarray
            Arrays of shape (n_queries, k)
        """
        if self._X is None:
            raise ConfigurationError("Vector data X is required for external queries.")
        X = np.atleast_2d(X) if not hasattr(X, "tocsr") else X
        k = self._external_k(k)
        source = FunctionSource(self._X, metric=self.metric, metric_params=self.metric_params)
        result = kneighbors_search(source, k, query=ExternalQuery(X=X), tabu=tabu,
                                   n_jobs=self.n_jobs, verbose=self.verbose)
        return result.distances, result.indices

    def kneighbors_from_distances(self, distances, k: int = None, tabu=None):
        """ Nearest neighbors of external objects from their distances to all objects.

        Parameters
        ----------
        distances : array-like of shape (n_queries, n_samples) or (n_samples, )
            Distances of each query to all objects of the data set

        Returns
        -------
        neigh_dist, neigh_ind : ndarray, ndarray
        """
        distances = np.atleast_2d(np.asarray(distances, dtype=np.float64))
        k = self._external_k(k)
        source = MatrixSource(self._require_distances())
        result = kneighbors_search(source, k, query=ExternalQuery(distances=distances), tabu=tabu,
                                   n_jobs=self.n_jobs, verbose=self.verbose)
        return result.distances, result.indices

    def _external_k(self, k: int = None) -> int:
        if k is None:
            if self._k is None:
                raise ConfigurationError("Provide k, or calculate neighbor sets first.")
            k = self._k
        return check_n_neighbors(k, self.n_samples, upper_inclusive=True)

    # --------------------------------------------------- incremental construction

    def start_incremental(self, k: int):
        """ Start incremental construction with empty neighbor sets and no active objects. """
        distances = self._require_distances()
        k = check_n_neighbors(k, distances.n_samples)
        n_samples = distances.n_samples
        self._assign_neighbor_sets(
            k,
            np.full((n_samples, k), -1, dtype=np.int64),
            np.full((n_samples, k), np.inf, dtype=np.float64),
            np.zeros(n_samples, dtype=np.int64),
        )
        self._active = np.zeros(n_samples, dtype=bool)

    @property
    def active(self) -> np.ndarray:
        """ Objects inserted during incremental construction (None otherwise). """
        return self._active

    def insert_points(self, indices):
        """ Insert objects into incrementally constructed neighbor sets.

        Each object obtains its nearest neighbors among the already active
        objects, and is offered as a neighbor candidate to each of them.
        Reverse neighbor sets are patched along the way; occurrence statistics
        are recalculated once all objects are inserted.
        """
        if self._active is None:
            raise ConfigurationError("Call start_incremental(k) before inserting objects.")
        distances = self._require_distances()
        indices = check_indices(indices, distances.n_samples)
        if np.any(self._active[indices]) or np.unique(indices).size != indices.size:
            raise ConfigurationError("Objects can only be inserted once.")
        source = MatrixSource(distances)
        for p in indices:
            active = np.flatnonzero(self._active)
            if active.size:
                own = kneighbors_search(source, self._k, query=[p], tabu=~self._active)
                self._k_neighbors[p] = own.indices[0]
                self._k_distances[p] = own.distances[0]
                self._k_current_len[p] = own.lengths[0]
                for j in own.indices[0, :own.lengths[0]]:
                    self._reverse_neighbors[j].append(int(p))
                for q, d in zip(active, distances.take(active, np.full(active.size, p))):
                    self._offer(q, p, d)
            self._active[p] = True
        self._refresh_statistics()

    def consider_neighbor(self, i: int, j: int, distance: float = None) -> bool:
        """ Offer object `j` as a neighbor candidate to object `i`.

        Returns
        -------
        inserted : bool
            Whether `j` entered the neighbor set of `i`
        """
        self._require_neighbor_sets()
        if i == j:
            raise ConfigurationError("An object cannot be its own neighbor.")
        if distance is None:
            distance = self._require_distances().get(i, j)
        inserted = self._offer(i, j, distance)
        if inserted:
            self._refresh_statistics()
        return inserted

    def _offer(self, i: int, j: int, distance: float) -> bool:
        length = self._k_current_len[i]
        row = self._k_neighbors[i]
        if j in row[:length]:
            return False
        evicted = -1
        if length == self._k and distance < self._k_distances[i, -1]:
            evicted = int(row[-1])
        new_length = insert_neighbor(row, self._k_distances[i], length, j, distance)
        inserted = new_length > length or evicted >= 0
        if inserted:
            self._k_current_len[i] = new_length
            self._reverse_neighbors[j].append(int(i))
            if evicted >= 0:
                self._reverse_neighbors[evicted].remove(int(i))
        return inserted

    # ------------------------------------------------------- neighborhood restriction

    def get_sub_nsf(self, k_smaller: int, prototype_indices=None, prototype_distances=None) -> NeighborSetFinder:
        """ Neighbor sets for a smaller neighborhood, optionally restricted to a subset.

        Parameters
        ----------
        k_smaller : int
            Neighborhood size of the new object
        prototype_indices : array-like of int, optional
            Restrict the data set to these objects (e.g. selected prototypes).
            Objects are renumbered in the given order.
        prototype_distances : DistanceMatrix or ndarray, optional
            Distances among the prototypes. By default, taken from the current
            distance matrix.

        Returns
        -------
        nsf : NeighborSetFinder
            Identical to calculating neighbor sets of size `k_smaller` from scratch.
        """
        self._require_neighbor_sets()
        if prototype_indices is None:
            return self._truncated(k_smaller)
        return self._restricted(k_smaller, prototype_indices, prototype_distances)

    def _spawn(self, X, y, distances: DistanceMatrix) -> NeighborSetFinder:
        sub = NeighborSetFinder(
            X=None,
            y=None,
            distances=distances,
            metric=self.metric,
            metric_params=self.metric_params,
            n_jobs=self.n_jobs,
            verbose=self.verbose,
        )
        sub._X = X
        sub._y = y
        sub.classes_ = self.classes_
        return sub

    def _truncated(self, k_smaller: int) -> NeighborSetFinder:
        k_smaller = self._check_k(k_smaller)
        neighbors = self._k_neighbors[:, :k_smaller].copy()
        distances = self._k_distances[:, :k_smaller].copy()
        lengths = np.minimum(self._k_current_len, k_smaller)

        # Remove the contributions of the dropped columns from the occurrence counts
        n_samples = neighbors.shape[0]
        columns = np.arange(self._k)[np.newaxis, :]
        dropped = (columns >= k_smaller) & (columns < self._k_current_len[:, np.newaxis])
        queries, cols = np.nonzero(dropped)
        removed = self._k_neighbors[queries, cols]
        stats = self._statistics
        occurrence = stats.occurrence - np.bincount(removed, minlength=n_samples)
        if self._y is None:
            statistics = occ.statistics_from_counts(k_smaller, occurrence)
        else:
            good = self._y[queries] == self._y[removed]
            statistics = occ.statistics_from_counts(
                k_smaller,
                occurrence,
                stats.good_occurrence - np.bincount(removed[good], minlength=n_samples),
                stats.bad_occurrence - np.bincount(removed[~good], minlength=n_samples),
            )
        sub = self._spawn(self._X, self._y, self._distances)
        sub._assign_neighbor_sets(k_smaller, neighbors, distances, lengths, statistics)
        return sub

    def _restricted(self, k_smaller: int, prototype_indices, prototype_distances) -> NeighborSetFinder:
        n_samples = self.n_samples
        prototypes = check_indices(prototype_indices, n_samples)
        if np.unique(prototypes).size != prototypes.size:
            raise ConfigurationError("Prototype indices must be unique.")
        n_protos = prototypes.size
        if prototype_distances is None:
            proto_dist = self._require_distances().subset(prototypes)
        else:
            proto_dist = check_distance_matrix(prototype_distances, n_protos)
        k_smaller = check_n_neighbors(k_smaller, n_protos)

        local = np.full(n_samples, -1, dtype=np.int64)
        local[prototypes] = np.arange(n_protos)
        neighbors = np.full((n_protos, k_smaller), -1, dtype=np.int64)
        distances = np.full((n_protos, k_smaller), np.inf, dtype=np.float64)
        lengths = np.zeros(n_protos, dtype=np.int64)
        for p, g in enumerate(prototypes):
            candidates = local[self._k_neighbors[g, :self._k_current_len[g]]]
            found = candidates[candidates >= 0][:k_smaller]
            neighbors[p, :found.size] = found
            distances[p, :found.size] = proto_dist.take(np.full(found.size, p), found)
            lengths[p] = found.size

        # Neighbors outside the prototypes leave gaps, filled by search among the prototypes
        incomplete = np.flatnonzero(lengths < k_smaller)
        if incomplete.size:
            # Unused slots sort last
            skip = np.where(neighbors[incomplete] >= 0, neighbors[incomplete], n_protos)
            skip.sort(axis=1)
            skip_lengths = lengths[incomplete].copy()
            part = KNeighbors(neighbors[incomplete], distances[incomplete], lengths[incomplete])

            def _complete(rows: slice):
                complete_condensed(proto_dist.data, proto_dist.offsets, incomplete,
                                   rows.start, rows.stop, skip, skip_lengths, *part)

            map_row_slices(_complete, n_rows=incomplete.size, n_jobs=self.n_jobs)
            neighbors[incomplete] = part.indices
            distances[incomplete] = part.distances
            lengths[incomplete] = part.lengths

        X = None
        if self._X is not None:
            X = self._X[prototypes]
        y = None if self._y is None else self._y[prototypes]
        sub = self._spawn(X, y, proto_dist)
        sub._assign_neighbor_sets(k_smaller, neighbors, distances, lengths)
        return sub

    # ------------------------------------------------------------ statistics

    def occurrence_statistics(self, k: int = None) -> occ.OccurrenceStatistics:
        """ Occurrence statistics for the first `k` neighbors, without modifying this object. """
        k = self._check_k(k)
        if k == self._k:
            return self._statistics
        return occ.occurrence_statistics(self._k_neighbors, self._k_current_len, self._y, k)

    def calculate_occ_freq_mean_and_variance(self):
        """ Mean and standard deviation of the neighbor occurrence frequencies.

        Returns
        -------
        mean, std : float, float
        """
        self._require_neighbor_sets()
        self._refresh_statistics()
        return self._statistics.mean_occurrence, self._statistics.std_occurrence

    def major_hub_index(self, k: int = None) -> int:
        """ Index of the most frequent neighbor (the first one on ties). """
        return int(np.argmax(self.occurrence_statistics(k).occurrence))

    def major_hub_instance(self, k: int = None):
        """ Vector of the most frequent neighbor. """
        if self._X is None:
            raise ConfigurationError("Vector data X is required to retrieve instances.")
        return self._X[self.major_hub_index(k)]

    def error_inducing_hubness(self, k: int = None, labels=None) -> np.ndarray:
        """ Occurrences in kNN sets whose majority vote misclassifies the query.

        Parameters
        ----------
        k : int, optional
            Neighborhood size of the vote
        labels : array-like of shape (n_samples, ), optional
            Alternative labels (e.g. predicted or noisy ones) used instead of `y`

        Returns
        -------
        error_inducing : ndarray of shape (n_samples, )

        Notes
        -----
        On ties, the vote goes to the class with the smallest (encoded) index.
        """
        k = self._check_k(k)
        if labels is None:
            self._require_labels()
            y, n_classes = self._y, self.n_classes
        else:
            y, classes = check_labels(labels, self.n_samples)
            n_classes = len(classes)
        return occ.error_inducing_occurrence(self._k_neighbors, self._k_current_len, y, n_classes, k)

    # ---------------------------------------------- class-conditional occurrence

    def _class_args(self, k):
        k = self._check_k(k)
        self._require_labels()
        return self._k_neighbors, self._k_current_len, self._y, self.n_classes, k

    def class_to_class_non_normalized(self, k: int = None, extend_by_element: bool = False) -> np.ndarray:
        """ Counts [c1, c2] of objects of class c1 among the neighbors of class c2 objects. """
        return occ.class_to_class_counts(*self._class_args(k), extend_by_element=extend_by_element)

    def class_to_class_bayesian(self, k: int = None, laplace: float = occ.DEFAULT_LAPLACE,
                                extend_by_element: bool = False) -> np.ndarray:
        """ P(neighbor of class c1 | query of class c2), smoothed. Columns sum to one. """
        k = self._check_k(k)
        counts = self.class_to_class_non_normalized(k, extend_by_element)
        return occ.class_to_class_bayesian(counts, self.class_sizes(), k, laplace, extend_by_element)

    def class_to_class_fuzzy(self, k: int = None, laplace: float = occ.DEFAULT_LAPLACE,
                             extend_by_element: bool = False) -> np.ndarray:
        """ P(query of class c2 | neighbor of class c1), smoothed. Rows sum to one. """
        counts = self.class_to_class_non_normalized(k, extend_by_element)
        return occ.class_to_class_fuzzy(counts, laplace)

    def class_data_neighbor_relation_non_normalized(self, k: int = None,
                                                    extend_by_element: bool = False) -> np.ndarray:
        """ Counts [c, x] of occurrences of x among the neighbors of class c objects. """
        return occ.class_data_counts(*self._class_args(k), extend_by_element=extend_by_element)

    def class_data_neighbor_relation(self, k: int = None, laplace: float = occ.DEFAULT_LAPLACE,
                                     extend_by_element: bool = False) -> np.ndarray:
        """ Smoothed class-conditional occurrence estimates of each object. """
        k = self._check_k(k)
        counts = self.class_data_neighbor_relation_non_normalized(k, extend_by_element)
        return occ.class_data_bayesian(counts, self.class_sizes(), k, laplace, extend_by_element)

    def fuzzy_class_data_neighbor_relation(self, k: int = None, laplace: float = occ.DEFAULT_LAPLACE,
                                           extend_by_element: bool = False) -> np.ndarray:
        """ Class distribution of each object's reverse neighbors, smoothed.

        Computed for any k up to the current one without modifying this object.
        """
        counts = self.class_data_neighbor_relation_non_normalized(k, extend_by_element)
        return occ.class_data_fuzzy(counts, laplace)

    # -------------------------------------------------------------- entropies

    def direct_entropies(self, k: int = None) -> np.ndarray:
        """ Label entropy within each kNN set (cached). """
        args = self._class_args(k)
        key = ("direct", args[-1], None)
        if key not in self._entropy_cache:
            self._entropy_cache[key] = occ.direct_entropies(*args)
        return self._entropy_cache[key]

    def reverse_entropies(self, k: int = None, class_weights=None) -> np.ndarray:
        """ Label entropy within each reverse neighbor set (cached).

        Parameters
        ----------
        class_weights : array-like of shape (n_classes, ), optional
            Weight of reverse neighbors of each class
        """
        args = self._class_args(k)
        weights = None if class_weights is None else tuple(float(w) for w in class_weights)
        key = ("reverse", args[-1], weights)
        if key not in self._entropy_cache:
            self._entropy_cache[key] = occ.reverse_entropies(*args, class_weights=class_weights)
        return self._entropy_cache[key]

    # ---------------------------------------------------------------- weights

    def penalize_hubness_weights(self, k: int = None) -> np.ndarray:
        """ Instance weights decreasing with neighbor occurrence. """
        return occ.penalize_hubness_weights(self.occurrence_statistics(k).occurrence)

    def hwknn_weights(self, k: int = None) -> np.ndarray:
        """ Instance weights decreasing with bad occurrence (hw-kNN). """
        self._require_labels()
        return occ.hwknn_weights(self.occurrence_statistics(k).bad_occurrence)

    def simhub_weights(self, theta: float = 0., k: int = None, supervised: bool = True) -> np.ndarray:
        """ Hubness information instance weights.

        Parameters
        ----------
        theta : float, default = 0
            Trade-off between reverse neighbor purity (0) and relative
            good-minus-bad occurrence (1)
        supervised : bool, default = True
            Use class information, if labels are available.
        """
        stats = self.occurrence_statistics(k)
        if not supervised or self._y is None:
            return occ.simhub_weights(stats.occurrence)
        return occ.simhub_weights(
            stats.occurrence,
            reverse_entropy=self.reverse_entropies(stats.k),
            good_occurrence=stats.good_occurrence,
            bad_occurrence=stats.bad_occurrence,
            n_classes=self.n_classes,
            theta=theta,
        )

    # ------------------------------------------------------------ persistence

    def check_consistency(self):
        """ Verify neighbor set invariants. Raises DataConsistencyError on violation. """
        self._require_neighbor_sets()
        check_neighbor_sets(self._k_neighbors, self._k_distances, self._k_current_len, self._statistics)

    def save_neighbor_sets(self, path):
        """ Write the neighbor sets to a plain text file. """
        self._require_neighbor_sets()
        write_neighbor_sets(path, self._k_neighbors, self._k_distances, self._k_current_len, self._k)

    def load_neighbor_sets(self, path):
        """ Load neighbor sets from a plain text file, and recalculate all statistics.

        Raises
        ------
        NeighborSetFormatError
            If the file cannot be parsed, or does not match the data set.
            This object is left unchanged in that case.
        """
        try:
            neighbors, distances, lengths, k = read_neighbor_sets(path)
            n_samples = neighbors.shape[0]
            if self.n_samples and n_samples != self.n_samples:
                raise NeighborSetFormatError(f"{path}: holds {n_samples} objects, "
                                             f"but the data set has {self.n_samples}.")
            check_neighbor_sets(neighbors, distances, lengths)
        except (OSError, AssertionError) as e:
            logging.warning(f"Could not load neighbor sets from {path}: {e}")
            if isinstance(e, NeighborSetFormatError):
                raise
            raise NeighborSetFormatError(f"Could not load neighbor sets from {path}.") from e
        self._assign_neighbor_sets(k, neighbors, distances, lengths)
        self._active = None

    @classmethod
    def from_file(cls, path, X=None, y=None, distances=None, **kwargs) -> NeighborSetFinder:
        """ Create an instance from a neighbor set file. """
        nsf = cls(X=None, y=y, distances=distances, **kwargs)
        if X is not None:
            nsf._X = check_array(X, accept_sparse="csr")
        nsf.load_neighbor_sets(path)
        return nsf
