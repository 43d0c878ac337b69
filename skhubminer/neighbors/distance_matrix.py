# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of scikit-hubminer.

Symmetric distance matrices in upper triangular (condensed) storage.
For N objects, row i holds the N-i-1 distances d(i, j) for j > i, so that
d(i, j), i < j, is found in row i at column j-i-1. The rows are concatenated
into a single condensed vector, identical to the layout used by
:func:`scipy.spatial.distance.squareform`.
"""
from __future__ import annotations
from typing import List, Sequence, Union

import numpy as np
from scipy.spatial.distance import squareform
from sklearn.metrics import pairwise_distances
from sklearn.utils.validation import check_array
from tqdm.auto import tqdm
import numba

from ..exceptions import ConfigurationError
from ..utils.check import check_indices
from ..utils.io import read_distance_rows, write_distance_rows
from ..utils.multiprocessing import map_row_slices

__all__ = [
    "DistanceMatrix",
    "check_distance_matrix",
    "load_distance_matrix",
    "save_distance_matrix",
]


@numba.njit(nogil=True)
def condensed_distance(data: np.ndarray, offsets: np.ndarray, i: int, j: int) -> float:
    """ d(i, j) from condensed storage, for compiled kernels. Requires i != j. """
    if i < j:
        return data[offsets[i] + j - i - 1]
    return data[offsets[j] + i - j - 1]


def _n_samples_from_condensed(n_entries: int) -> int:
    n_samples = int(round((1. + np.sqrt(1. + 8. * n_entries)) / 2.))
    if n_samples * (n_samples - 1) // 2 != n_entries:
        raise ConfigurationError(f"A condensed distance matrix cannot hold {n_entries} entries.")
    return n_samples


class DistanceMatrix:
    """ Immutable symmetric distance matrix in upper triangular storage.

    Parameters
    ----------
    condensed : array-like of shape (n_samples * (n_samples - 1) / 2, )
        Concatenated upper triangular rows (without the zero diagonal).
    n_samples : int, optional
        Number of objects. Inferred from the length of `condensed` if omitted.
        Required to tell apart zero and one objects.

    Notes
    -----
    All index arithmetic for the triangular layout is confined to this class.
    Callers only use :meth:`get`, :meth:`take`, :meth:`row` and
    :meth:`distances_from`.
    """

    def __init__(self, condensed, n_samples: int = None):
        data = np.array(condensed, dtype=np.float64).ravel()
        if n_samples is None:
            n_samples = _n_samples_from_condensed(data.size)
        elif n_samples * (n_samples - 1) // 2 != data.size:
            raise ConfigurationError(f"Condensed distances of length {data.size} "
                                     f"do not match {n_samples} objects.")
        if np.any(np.isnan(data)):
            raise ConfigurationError("Distance matrix must not contain NaN.")
        if np.any(data < 0):
            raise ConfigurationError("Distances must be non-negative.")
        data.setflags(write=False)
        self._data = data
        self._n_samples = int(n_samples)
        i = np.arange(self._n_samples, dtype=np.int64)
        self._offsets = i * self._n_samples - i * (i + 1) // 2

    @classmethod
    def from_dense(cls, D, check_symmetric: bool = True) -> DistanceMatrix:
        """ Create from a square distance matrix. Only the upper triangle is kept. """
        D = check_array(D, dtype=np.float64)
        n, m = D.shape
        if n != m:
            raise ConfigurationError(f"Distance matrix must be square, got shape {D.shape}.")
        if check_symmetric and not np.allclose(D, D.T):
            raise ConfigurationError("Distance matrix must be symmetric.")
        if n < 2:
            return cls(np.empty(0), n_samples=n)
        return cls(D[np.triu_indices(n, k=1)], n_samples=n)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> DistanceMatrix:
        """ Create from variable-length upper triangular rows.

        Row i must hold N-i-1 distances. The last row (empty) may be omitted.
        """
        rows = [np.asarray(r, dtype=np.float64).ravel() for r in rows]
        if len(rows) and rows[-1].size != 0:
            rows.append(np.empty(0))
        n_samples = len(rows)
        for i, r in enumerate(rows):
            if r.size != n_samples - i - 1:
                raise ConfigurationError(f"Row {i} of the upper triangular distance matrix "
                                         f"must hold {n_samples - i - 1} entries, got {r.size}.")
        condensed = np.concatenate(rows) if n_samples else np.empty(0)
        return cls(condensed, n_samples=n_samples)

    @classmethod
    def from_data(
            cls,
            X,
            metric: Union[str, callable] = "euclidean",
            metric_params: dict = None,
            n_jobs: int = 1,
            verbose: int = 0,
    ) -> DistanceMatrix:
        """ Compute all pairwise distances of objects in `X`.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Vector data
        metric : str or callable, default = "euclidean"
            Any metric accepted by :func:`sklearn.metrics.pairwise_distances`,
            including callables ``dist(a, b)``.
        metric_params : dict, optional
            Additional keyword arguments for the metric
        n_jobs : int, default = 1
            Number of worker threads, each computing a contiguous range of rows.
        verbose : int, default = 0
            If verbose > 0, show progress bar.
        """
        X = check_array(X, accept_sparse="csr")
        n_samples = X.shape[0]
        metric_params = {} if metric_params is None else metric_params
        condensed = np.empty(n_samples * (n_samples - 1) // 2, dtype=np.float64)
        i = np.arange(n_samples, dtype=np.int64)
        offsets = i * n_samples - i * (i + 1) // 2
        progress = tqdm(total=n_samples, desc="Distances", disable=verbose < 1)

        def _fill_rows(rows: slice):
            # Only the upper triangle of the row block is needed
            block = pairwise_distances(X[rows], X[rows.start:], metric=metric, **metric_params)
            for local, row in enumerate(range(rows.start, rows.stop)):
                start = offsets[row]
                end = start + n_samples - row - 1
                condensed[start:end] = block[local, local + 1:]
                progress.update(1)

        try:
            map_row_slices(_fill_rows, n_rows=n_samples, n_jobs=n_jobs)
        finally:
            progress.close()
        # Rounding may produce tiny negative values for some metrics
        np.clip(condensed, 0., None, out=condensed)
        return cls(condensed, n_samples=n_samples)

    @property
    def n_samples(self) -> int:
        return self._n_samples

    @property
    def size(self) -> int:
        """ Number of stored distances, N * (N - 1) / 2. """
        return self._data.size

    @property
    def data(self) -> np.ndarray:
        """ Read-only condensed vector of all upper triangular rows. """
        return self._data

    def __len__(self):
        return self._n_samples

    def __getitem__(self, item):
        i, j = item
        return self.get(i, j)

    def __repr__(self):
        return f"DistanceMatrix(n_samples={self._n_samples})"

    @property
    def offsets(self) -> np.ndarray:
        """ Start of each upper triangular row within :attr:`data`. """
        return self._offsets

    def get(self, i: int, j: int) -> float:
        """ Distance between objects `i` and `j` (symmetric, zero on the diagonal). """
        if i == j:
            return 0.
        if i > j:
            i, j = j, i
        return float(self._data[self._offsets[i] + j - i - 1])

    def take(self, rows, cols) -> np.ndarray:
        """ Vectorized :meth:`get` for paired index arrays. """
        rows = np.atleast_1d(np.asarray(rows, dtype=np.int64))
        cols = np.atleast_1d(np.asarray(cols, dtype=np.int64))
        low = np.minimum(rows, cols)
        high = np.maximum(rows, cols)
        same = low == high
        if not self._data.size:
            return np.zeros(low.shape)
        pos = np.where(same, 0, self._offsets[low] + high - low - 1)
        return np.where(same, 0., self._data[pos])

    def row(self, i: int) -> np.ndarray:
        """ Upper triangular row `i`, that is, d(i, j) for j = i+1, ..., N-1. """
        start = self._offsets[i]
        return self._data[start:start + self._n_samples - i - 1]

    def rows(self) -> List[np.ndarray]:
        """ All N upper triangular rows; the last one is empty. """
        return [self.row(i) for i in range(self._n_samples)]

    def distances_from(self, i: int) -> np.ndarray:
        """ Distances from object `i` to all objects, with d(i, i) = 0. """
        j = np.arange(i, dtype=np.int64)
        lower = self._data[self._offsets[j] + i - j - 1]
        return np.concatenate([lower, [0.], self.row(i)])

    def subset(self, indices) -> DistanceMatrix:
        """ Distance matrix among the objects in `indices` (in the given order). """
        indices = check_indices(indices, self._n_samples)
        m = indices.size
        if m < 2:
            return DistanceMatrix(np.empty(0), n_samples=m)
        a, b = np.triu_indices(m, k=1)
        return DistanceMatrix(self.take(indices[a], indices[b]), n_samples=m)

    def to_dense(self) -> np.ndarray:
        """ Square symmetric distance matrix. """
        if self._n_samples < 2:
            return np.zeros((self._n_samples, self._n_samples))
        return squareform(self._data, checks=False)


def check_distance_matrix(distances, n_samples: int = None) -> DistanceMatrix:
    """ Accept a DistanceMatrix, a square array, or a list of upper triangular rows. """
    if distances is None:
        raise ConfigurationError("No distance matrix provided.")
    if isinstance(distances, DistanceMatrix):
        dm = distances
    elif isinstance(distances, np.ndarray) and distances.ndim == 2:
        dm = DistanceMatrix.from_dense(distances)
    elif isinstance(distances, np.ndarray) and distances.ndim == 1:
        dm = DistanceMatrix(distances)
    else:
        rows = list(distances)
        lengths = [np.size(r) for r in rows]
        if len(rows) > 1 and lengths[0] == len(rows) and lengths[-1] == len(rows):
            dm = DistanceMatrix.from_dense(np.asarray(rows, dtype=np.float64))
        else:
            dm = DistanceMatrix.from_rows(rows)
    if n_samples is not None and dm.n_samples != n_samples:
        raise ConfigurationError(f"Distance matrix holds {dm.n_samples} objects, "
                                 f"but the data set has {n_samples}.")
    return dm


def save_distance_matrix(path, distances: DistanceMatrix):
    """ Write a distance matrix as comma-separated upper triangular rows. """
    write_distance_rows(path, distances.n_samples, distances.rows())


def load_distance_matrix(path) -> DistanceMatrix:
    """ Read a distance matrix written by :func:`save_distance_matrix`.

    Raises
    ------
    NeighborSetFormatError
        If the file is truncated or malformed
    """
    rows = read_distance_rows(path)
    if not rows:
        return DistanceMatrix(np.empty(0), n_samples=0)
    return DistanceMatrix.from_rows(rows)
