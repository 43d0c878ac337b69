# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
from typing import Tuple

import numpy as np
from sklearn.utils.validation import check_array
import numba

from ..exceptions import ConfigurationError, DataConsistencyError

__all__ = [
    "check_n_neighbors",
    "check_labels",
    "check_tabu",
    "check_indices",
    "check_neighbor_sets",
]


@numba.jit(nopython=True)
def _is_sorted_per_row(arr: np.ndarray, lengths: np.ndarray) -> bool:
    n, _ = arr.shape
    for i in range(n):
        for j in range(lengths[i] - 1):
            if arr[i, j] > arr[i, j + 1]:
                return False
    return True


def check_n_neighbors(k, n_samples: int, upper_inclusive: bool = False) -> int:
    """ Ensure a valid neighborhood size.

    Parameters
    ----------
    k : int
        Neighborhood size
    n_samples : int
        Number of objects to search neighbors among
    upper_inclusive : bool, default = False
        Whether ``k == n_samples`` is allowed. Self-excluding searches
        require ``k < n_samples``.

    Returns
    -------
    k : int
    """
    if not np.issubdtype(type(k), np.integer):
        raise TypeError(f"Neighborhood size k does not take {type(k)} value, enter integer value")
    k = int(k)
    if k <= 0:
        raise ConfigurationError(f"Expected neighborhood size k > 0. Got {k}.")
    if upper_inclusive and k > n_samples:
        raise ConfigurationError(f"Neighborhood size k={k} must not exceed the number of objects ({n_samples}).")
    if not upper_inclusive and k >= n_samples:
        raise ConfigurationError(f"Neighborhood size k={k} must be less than the number of objects ({n_samples}).")
    return k


def check_labels(y, n_samples: int = None) -> Tuple[np.ndarray, np.ndarray]:
    """ Encode class labels to ``0..n_classes-1``.

    Returns
    -------
    y_encoded, classes : ndarray, ndarray
    """
    y = np.asarray(y)
    if y.ndim != 1:
        y = check_array(y, ensure_2d=False, dtype=None).ravel()
    if n_samples is not None and y.shape[0] != n_samples:
        raise ConfigurationError(f"Expected {n_samples} class labels, got {y.shape[0]}.")
    classes, y_encoded = np.unique(y, return_inverse=True)
    return y_encoded.astype(np.int64), classes


def check_tabu(tabu, n_samples: int, n_queries: int = None):
    """ Convert a tabu set of forbidden neighbor candidates into a boolean mask.

    Parameters
    ----------
    tabu : None, iterable of int, or boolean array
        Indices that must not be returned as neighbors. Boolean arrays of shape
        (n_samples, ) apply to all queries; boolean arrays of shape
        (n_queries, n_samples) hold one tabu mask per query.
    n_samples : int
        Number of candidate objects
    n_queries : int, optional
        Number of queries; required for per-query masks.

    Returns
    -------
    mask : ndarray of bool or None
    """
    if tabu is None:
        return None
    if isinstance(tabu, np.ndarray) and tabu.dtype == bool:
        if tabu.ndim == 1 and tabu.shape[0] == n_samples:
            return tabu
        if tabu.ndim == 2 and tabu.shape == (n_queries, n_samples):
            return tabu
        raise ConfigurationError(f"Boolean tabu mask of shape {tabu.shape} does not match "
                                 f"{n_samples} candidates (and {n_queries} queries).")
    if isinstance(tabu, dict):
        tabu = list(tabu.keys())
    indices = np.fromiter((int(t) for t in tabu), dtype=np.int64)
    mask = np.zeros(n_samples, dtype=bool)
    if indices.size:
        check_indices(indices, n_samples)
        mask[indices] = True
    return mask


def check_indices(indices, n_samples: int) -> np.ndarray:
    """ Ensure integer indices within ``0..n_samples-1``. """
    indices = np.asarray(indices, dtype=np.int64).ravel()
    if indices.size and (indices.min() < 0 or indices.max() >= n_samples):
        raise ConfigurationError(f"Indices must lie in [0, {n_samples}), got "
                                 f"range [{indices.min()}, {indices.max()}].")
    return indices


def check_neighbor_sets(
        k_neighbors: np.ndarray,
        k_distances: np.ndarray,
        lengths: np.ndarray,
        statistics=None,
):
    """ Verify the invariants of computed neighbor sets.

    Checks that no object is its own neighbor, that distances are non-negative
    and ascending per row, and (if `statistics` are given) that good and bad
    occurrences add up to total occurrences.

    Raises
    ------
    DataConsistencyError
    """
    n_samples = k_neighbors.shape[0]
    valid = np.arange(k_neighbors.shape[1])[np.newaxis, :] < lengths[:, np.newaxis]
    own = np.arange(n_samples)[:, np.newaxis]
    if np.any((k_neighbors == own) & valid):
        raise DataConsistencyError("Neighbor sets must not contain the query object itself.")
    if np.any(k_distances[valid] < 0):
        raise DataConsistencyError("Neighbor distances must be non-negative.")
    if not _is_sorted_per_row(k_distances, lengths.astype(np.int64)):
        raise DataConsistencyError("Neighbor distances must be sorted in ascending order per row.")
    if statistics is not None and statistics.good_occurrence is not None:
        if np.any(statistics.good_occurrence + statistics.bad_occurrence != statistics.occurrence):
            raise DataConsistencyError("Good and bad occurrences do not add up to total occurrences.")
