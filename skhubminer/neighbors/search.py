# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of scikit-hubminer.

A single entry point for all exact kNN search variants. Instead of one
method per combination, a search is parameterized by

- a distance source: a precomputed :class:`DistanceMatrix` (:class:`MatrixSource`)
  or vector data with a metric (:class:`FunctionSource`),
- a candidate filter: no restriction, or a tabu set of forbidden candidates
  (shared by all queries, one per query, or a :class:`TabuTable`), and
- the queries: internal objects (by index), or external objects
  (:class:`ExternalQuery`, as vectors or precomputed distance rows).
"""
from __future__ import annotations
from collections import namedtuple
from typing import Union

import numpy as np
from sklearn.metrics import pairwise_distances
from sklearn.utils.validation import check_array
from tqdm.auto import tqdm

from ._topk import search_condensed, search_dense
from .distance_matrix import DistanceMatrix
from ..exceptions import ConfigurationError
from ..utils.check import check_indices, check_tabu
from ..utils.multiprocessing import map_row_slices

__all__ = [
    "ExternalQuery",
    "FunctionSource",
    "KNeighbors",
    "MatrixSource",
    "TabuTable",
    "kneighbors_search",
]

#: Result of a kNN search. Unused slots hold index -1 and distance inf.
KNeighbors = namedtuple("KNeighbors", ["indices", "distances", "lengths"])

#: Boolean masks of forbidden candidates (n_masks, n_samples), and the mask
#: used by each query (-1 for none).
TabuTable = namedtuple("TabuTable", ["masks", "rows"])


class MatrixSource:
    """ Distances looked up in a precomputed :class:`DistanceMatrix`. """

    def __init__(self, distances: DistanceMatrix):
        self.distances = distances

    @property
    def n_samples(self) -> int:
        return self.distances.n_samples


class FunctionSource:
    """ Distances computed on demand from vector data.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        Data to search neighbors among
    metric : str or callable, default = "euclidean"
        Any metric accepted by :func:`sklearn.metrics.pairwise_distances`.
    metric_params : dict, optional
        Additional keyword arguments for the metric
    """

    def __init__(self, X, metric: Union[str, callable] = "euclidean", metric_params: dict = None):
        self.X = check_array(X, accept_sparse="csr")
        self.metric = metric
        self.metric_params = {} if metric_params is None else metric_params

    @property
    def n_samples(self) -> int:
        return self.X.shape[0]

    def pairwise(self, A) -> np.ndarray:
        """ Distances between rows of `A` and all objects. """
        D = pairwise_distances(A, self.X, metric=self.metric, **self.metric_params)
        return np.asarray(D, dtype=np.float64)


class ExternalQuery:
    """ Queries that are not part of the searched data.

    Provide either vectors `X` (requires a :class:`FunctionSource`),
    or `distances` of shape (n_queries, n_samples) to all searched objects.
    """

    def __init__(self, X=None, distances=None):
        if (X is None) == (distances is None):
            raise ConfigurationError("Provide either query vectors X or query distances.")
        self.X = None if X is None else check_array(X, accept_sparse="csr")
        self.distances = None if distances is None else check_array(distances, dtype=np.float64)

    @property
    def n_queries(self) -> int:
        return (self.X if self.X is not None else self.distances).shape[0]


def _tabu_table(tabu, n_samples: int, n_queries: int) -> TabuTable:
    if isinstance(tabu, TabuTable):
        masks = np.ascontiguousarray(tabu.masks, dtype=bool)
        rows = np.asarray(tabu.rows, dtype=np.int64)
        if masks.ndim != 2 or masks.shape[1] != n_samples or rows.shape != (n_queries, ):
            raise ConfigurationError("Tabu table does not match the number of objects and queries.")
        return TabuTable(masks, rows)
    mask = check_tabu(tabu, n_samples, n_queries)
    if mask is None:
        return TabuTable(np.zeros((1, 1), dtype=bool), np.full(n_queries, -1, dtype=np.int64))
    if mask.ndim == 1:
        return TabuTable(mask.reshape(1, -1), np.zeros(n_queries, dtype=np.int64))
    return TabuTable(np.ascontiguousarray(mask), np.arange(n_queries, dtype=np.int64))


def _init_result(k: int, n_queries: int, seed: KNeighbors = None) -> KNeighbors:
    if seed is None:
        return KNeighbors(
            indices=np.full((n_queries, k), -1, dtype=np.int64),
            distances=np.full((n_queries, k), np.inf, dtype=np.float64),
            lengths=np.zeros(n_queries, dtype=np.int64),
        )
    indices = np.array(seed.indices, dtype=np.int64)
    distances = np.array(seed.distances, dtype=np.float64)
    lengths = np.array(seed.lengths, dtype=np.int64)
    if indices.shape != (n_queries, k) or distances.shape != (n_queries, k) \
            or lengths.shape != (n_queries, ):
        raise ConfigurationError(f"Seed neighbor lists must have shape ({n_queries}, {k}).")
    return KNeighbors(indices, distances, lengths)


def kneighbors_search(
        source: Union[MatrixSource, FunctionSource],
        k: int,
        query=None,
        tabu=None,
        seed: KNeighbors = None,
        n_jobs: int = 1,
        verbose: int = 0,
) -> KNeighbors:
    """ Exact k-nearest neighbor search.

    Parameters
    ----------
    source : MatrixSource or FunctionSource
        Where distances come from
    k : int
        Neighborhood size (capacity of each neighbor list)
    query : None, array-like of int, or ExternalQuery
        If None, search neighbors of all objects in `source`.
        If an index array, search neighbors of these objects.
        Internal queries are never returned as their own neighbors.
    tabu : None, iterable of int, boolean ndarray, or TabuTable
        Forbidden neighbor candidates. See :func:`skhubminer.utils.check.check_tabu`.
    seed : KNeighbors, optional
        Partially filled neighbor lists to continue from. Seeded candidates
        must not be offered again (make them tabu).
    n_jobs : int, default = 1
        Number of worker threads, each processing a contiguous range of queries.
    verbose : int, default = 0
        If verbose > 0, show progress bar.

    Returns
    -------
    result : KNeighbors
        Neighbor indices and distances of shape (n_queries, k), ascending per
        row, and the number of valid entries per row.
    """
    if k < 1:
        raise ConfigurationError(f"Expected neighborhood size k > 0. Got {k}.")
    n_samples = source.n_samples
    external = isinstance(query, ExternalQuery)
    if external:
        queries = None
        n_queries = query.n_queries
        if query.distances is not None and query.distances.shape[1] != n_samples:
            raise ConfigurationError(f"Query distances must have {n_samples} columns, "
                                     f"got {query.distances.shape[1]}.")
        if query.X is not None and not isinstance(source, FunctionSource):
            raise ConfigurationError("External query vectors require a distance function source.")
    else:
        if query is None:
            queries = np.arange(n_samples, dtype=np.int64)
        else:
            queries = check_indices(query, n_samples)
        n_queries = queries.size

    tabu = _tabu_table(tabu, n_samples, n_queries)
    result = _init_result(k, n_queries, seed)
    progress = tqdm(total=n_queries, desc="kNN search", disable=verbose < 1)

    def _search_rows(rows: slice):
        if isinstance(source, MatrixSource) and not external:
            search_condensed(
                source.distances.data, source.distances.offsets, queries,
                rows.start, rows.stop, tabu.masks, tabu.rows, *result,
            )
        else:
            if external and query.distances is not None:
                block = query.distances[rows]
            elif external:
                block = source.pairwise(query.X[rows])
            elif isinstance(source, FunctionSource):
                block = source.pairwise(source.X[queries[rows]])
            else:
                raise ConfigurationError(f"Unknown distance source {type(source)}.")
            exclude = np.full(n_queries, -1, dtype=np.int64) if external else queries
            search_dense(
                np.ascontiguousarray(block, dtype=np.float64), rows.start, exclude,
                tabu.masks, tabu.rows, *result,
            )
        progress.update(rows.stop - rows.start)

    try:
        map_row_slices(_search_rows, n_rows=n_queries, n_jobs=n_jobs)
    finally:
        progress.close()
    return result
