# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of scikit-hubminer.

Neighbor occurrence statistics derived from k-nearest neighbor sets.

All functions are pure: they take neighbor index arrays (with the number of
valid entries per row) and class labels, and return new arrays. Restricting
to a smaller neighborhood size ``k`` only considers the first ``k`` neighbors
of each row, so statistics for any smaller k are available without modifying
the neighbor sets.
"""
from __future__ import annotations
from collections import namedtuple
from typing import List

import numpy as np

__all__ = [
    "OccurrenceStatistics",
    "valid_neighbors",
    "occurrence_counts",
    "occurrence_statistics",
    "statistics_from_counts",
    "reverse_neighbor_lists",
    "error_inducing_occurrence",
    "class_data_counts",
    "class_to_class_counts",
    "class_to_class_bayesian",
    "class_to_class_fuzzy",
    "class_data_bayesian",
    "class_data_fuzzy",
    "direct_entropies",
    "reverse_entropies",
    "z_standardize",
    "logistic",
    "penalize_hubness_weights",
    "hwknn_weights",
    "simhub_weights",
]

#: Default additive smoothing for class-conditional occurrence estimates
DEFAULT_LAPLACE = 0.05

OccurrenceStatistics = namedtuple("OccurrenceStatistics", [
    "k",
    "occurrence",
    "good_occurrence",
    "bad_occurrence",
    "mean_occurrence",
    "std_occurrence",
    "mean_good",
    "std_good",
    "mean_bad",
    "std_bad",
    "mean_good_minus_bad",
    "std_good_minus_bad",
    "mean_relative_good_minus_bad",
    "std_relative_good_minus_bad",
])


def valid_neighbors(k_neighbors: np.ndarray, lengths: np.ndarray, k: int = None):
    """ Queries and neighbors of all valid entries among the first `k` columns.

    Returns
    -------
    queries, neighbors : ndarray, ndarray
        Paired flat arrays in row-major order
    """
    if k is None:
        k = k_neighbors.shape[1]
    k = min(k, k_neighbors.shape[1])
    columns = np.arange(k)[np.newaxis, :]
    valid = columns < np.minimum(lengths, k)[:, np.newaxis]
    queries, cols = np.nonzero(valid)
    return queries, k_neighbors[queries, cols]


def occurrence_counts(k_neighbors: np.ndarray, lengths: np.ndarray, k: int = None) -> np.ndarray:
    """ How often each object occurs among the first `k` neighbors of others. """
    n_samples = k_neighbors.shape[0]
    _, neighbors = valid_neighbors(k_neighbors, lengths, k)
    return np.bincount(neighbors, minlength=n_samples).astype(np.int64)


def _mean_std(arr: np.ndarray):
    if arr.size == 0:
        return 0., 0.
    return float(arr.mean()), float(arr.std(ddof=0))


def occurrence_statistics(
        k_neighbors: np.ndarray,
        lengths: np.ndarray,
        y: np.ndarray = None,
        k: int = None,
) -> OccurrenceStatistics:
    """ Occurrence frequencies and their means and standard deviations.

    Parameters
    ----------
    k_neighbors : ndarray of shape (n_samples, k_max)
        Neighbor indices, ascending by distance
    lengths : ndarray of shape (n_samples, )
        Number of valid neighbors per row
    y : ndarray of shape (n_samples, ), optional
        Encoded class labels. Without labels, good and bad occurrences are None.
    k : int, optional
        Only consider the first `k` neighbors of each object.

    Returns
    -------
    statistics : OccurrenceStatistics
        Good occurrences are those of a neighbor sharing the query's label,
        bad occurrences those of a neighbor with a different label.
        Standard deviations are population deviations.
        The relative difference (good - bad) / occurrence is zero for objects
        that never occur as neighbors.
    """
    if k is None:
        k = k_neighbors.shape[1]
    n_samples = k_neighbors.shape[0]
    queries, neighbors = valid_neighbors(k_neighbors, lengths, k)
    occurrence = np.bincount(neighbors, minlength=n_samples).astype(np.int64)
    if y is None:
        return statistics_from_counts(k, occurrence)
    good = y[queries] == y[neighbors]
    good_occurrence = np.bincount(neighbors[good], minlength=n_samples).astype(np.int64)
    bad_occurrence = np.bincount(neighbors[~good], minlength=n_samples).astype(np.int64)
    return statistics_from_counts(k, occurrence, good_occurrence, bad_occurrence)


def statistics_from_counts(
        k: int,
        occurrence: np.ndarray,
        good_occurrence: np.ndarray = None,
        bad_occurrence: np.ndarray = None,
) -> OccurrenceStatistics:
    """ Means and standard deviations for given occurrence count arrays. """
    mean_occ, std_occ = _mean_std(occurrence)
    if good_occurrence is None or bad_occurrence is None:
        return OccurrenceStatistics(k, occurrence, None, None, mean_occ, std_occ,
                                    *([None] * 8))
    n_samples = occurrence.size
    difference = good_occurrence - bad_occurrence
    relative = np.zeros(n_samples, dtype=np.float64)
    occurring = occurrence > 0
    relative[occurring] = difference[occurring] / occurrence[occurring]
    return OccurrenceStatistics(
        k,
        occurrence,
        good_occurrence,
        bad_occurrence,
        mean_occ,
        std_occ,
        *_mean_std(good_occurrence),
        *_mean_std(bad_occurrence),
        *_mean_std(difference),
        *_mean_std(relative),
    )


def reverse_neighbor_lists(k_neighbors: np.ndarray, lengths: np.ndarray, k: int = None) -> List[List[int]]:
    """ For each object j, the list of objects i with j among the neighbors of i (ascending i). """
    n_samples = k_neighbors.shape[0]
    queries, neighbors = valid_neighbors(k_neighbors, lengths, k)
    order = np.lexsort((queries, neighbors))
    queries = queries[order]
    splits = np.cumsum(np.bincount(neighbors, minlength=n_samples))[:-1]
    return [part.tolist() for part in np.split(queries, splits)]


def error_inducing_occurrence(
        k_neighbors: np.ndarray,
        lengths: np.ndarray,
        y: np.ndarray,
        n_classes: int,
        k: int = None,
) -> np.ndarray:
    """ Occurrences in kNN sets whose majority vote misclassifies the query.

    For each query, the majority class among its first `k` neighbors is
    determined. On ties, the smallest class index wins. If the vote differs from
    the query's label, every neighbor with a label different from the query's
    label gains one error-inducing occurrence.
    """
    if k is None:
        k = k_neighbors.shape[1]
    n_samples = k_neighbors.shape[0]
    error_inducing = np.zeros(n_samples, dtype=np.int64)
    for i in range(n_samples):
        neighbors = k_neighbors[i, :min(k, lengths[i])]
        if neighbors.size == 0:
            continue
        labels = y[neighbors]
        votes = np.bincount(labels, minlength=n_classes)
        # argmax returns the first maximum
        if np.argmax(votes) != y[i]:
            error_inducing[neighbors[labels != y[i]]] += 1
    return error_inducing


def class_data_counts(
        k_neighbors: np.ndarray,
        lengths: np.ndarray,
        y: np.ndarray,
        n_classes: int,
        k: int = None,
        extend_by_element: bool = False,
) -> np.ndarray:
    """ Class-conditional occurrence counts of shape (n_classes, n_samples).

    Entry [c, x] counts how often x occurs among the neighbors of objects of class c.
    With `extend_by_element`, each object counts as its own 0th neighbor.
    """
    n_samples = k_neighbors.shape[0]
    queries, neighbors = valid_neighbors(k_neighbors, lengths, k)
    counts = np.zeros((n_classes, n_samples), dtype=np.int64)
    np.add.at(counts, (y[queries], neighbors), 1)
    if extend_by_element:
        counts[y, np.arange(n_samples)] += 1
    return counts


def class_to_class_counts(
        k_neighbors: np.ndarray,
        lengths: np.ndarray,
        y: np.ndarray,
        n_classes: int,
        k: int = None,
        extend_by_element: bool = False,
) -> np.ndarray:
    """ Class-to-class occurrence counts of shape (n_classes, n_classes).

    Entry [c1, c2] counts how often an object of class c1 occurs among the
    neighbors of an object of class c2.
    """
    queries, neighbors = valid_neighbors(k_neighbors, lengths, k)
    counts = np.zeros((n_classes, n_classes), dtype=np.int64)
    np.add.at(counts, (y[neighbors], y[queries]), 1)
    if extend_by_element:
        counts[np.diag_indices(n_classes)] += np.bincount(y, minlength=n_classes)
    return counts


def class_to_class_bayesian(
        counts: np.ndarray,
        class_sizes: np.ndarray,
        k: int,
        laplace: float = DEFAULT_LAPLACE,
        extend_by_element: bool = False,
) -> np.ndarray:
    """ Probability of a neighbor of class c1, given a query of class c2.

    ``(counts[c1, c2] + laplace) / (k_eff * class_sizes[c2] + n_classes * laplace)``
    with ``k_eff = k + 1`` for extended neighbor sets. Columns sum to one.
    """
    n_classes = counts.shape[0]
    k_eff = k + 1 if extend_by_element else k
    denominator = k_eff * np.asarray(class_sizes, dtype=np.float64) + n_classes * laplace
    return (counts + laplace) / denominator[np.newaxis, :]


def class_to_class_fuzzy(counts: np.ndarray, laplace: float = DEFAULT_LAPLACE) -> np.ndarray:
    """ Probability of a query of class c2, given a neighbor of class c1.

    Each row is normalized by the total occurrence (hubness) of the giving class c1:
    ``(counts[c1, c2] + laplace) / (sum_c counts[c1, c] + n_classes * laplace)``.
    Rows sum to one.
    """
    n_classes = counts.shape[0]
    denominator = counts.sum(axis=1).astype(np.float64) + n_classes * laplace
    return (counts + laplace) / denominator[:, np.newaxis]


def class_data_bayesian(
        counts: np.ndarray,
        class_sizes: np.ndarray,
        k: int,
        laplace: float = DEFAULT_LAPLACE,
        extend_by_element: bool = False,
) -> np.ndarray:
    """ Per-object occurrence estimates given the query class, shape (n_classes, n_samples).

    ``(counts[c, x] + laplace) / (k_eff * class_sizes[c] + n_classes * laplace)``
    """
    n_classes = counts.shape[0]
    k_eff = k + 1 if extend_by_element else k
    denominator = k_eff * np.asarray(class_sizes, dtype=np.float64) + n_classes * laplace
    return (counts + laplace) / denominator[:, np.newaxis]


def class_data_fuzzy(counts: np.ndarray, laplace: float = DEFAULT_LAPLACE) -> np.ndarray:
    """ Per-object class affiliation of its reverse neighbors, shape (n_classes, n_samples).

    ``(counts[c, x] + laplace) / (sum_c counts[c, x] + n_classes * laplace)``,
    so that each column sums to one. Objects that never occur get the uniform
    distribution.
    """
    n_classes = counts.shape[0]
    denominator = counts.sum(axis=0).astype(np.float64) + n_classes * laplace
    return (counts + laplace) / denominator[np.newaxis, :]


def _entropies(histogram: np.ndarray) -> np.ndarray:
    totals = histogram.sum(axis=1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        p = np.where(totals > 0, histogram / totals, 0.)
        terms = np.where(p > 0, -p * np.log2(p), 0.)
    return terms.sum(axis=1)


def direct_entropies(
        k_neighbors: np.ndarray,
        lengths: np.ndarray,
        y: np.ndarray,
        n_classes: int,
        k: int = None,
) -> np.ndarray:
    """ Base 2 entropy of the label distribution within each object's kNN set. """
    n_samples = k_neighbors.shape[0]
    queries, neighbors = valid_neighbors(k_neighbors, lengths, k)
    histogram = np.zeros((n_samples, n_classes), dtype=np.float64)
    np.add.at(histogram, (queries, y[neighbors]), 1.)
    return _entropies(histogram)


def reverse_entropies(
        k_neighbors: np.ndarray,
        lengths: np.ndarray,
        y: np.ndarray,
        n_classes: int,
        k: int = None,
        class_weights: np.ndarray = None,
) -> np.ndarray:
    """ Base 2 entropy of the label distribution within each reverse neighbor set.

    Objects with at most one reverse neighbor have zero entropy.
    With `class_weights`, each reverse neighbor of class c contributes
    ``class_weights[c]`` instead of one.
    """
    n_samples = k_neighbors.shape[0]
    queries, neighbors = valid_neighbors(k_neighbors, lengths, k)
    if class_weights is None:
        weights = np.ones(queries.size, dtype=np.float64)
    else:
        weights = np.asarray(class_weights, dtype=np.float64)[y[queries]]
    histogram = np.zeros((n_samples, n_classes), dtype=np.float64)
    np.add.at(histogram, (neighbors, y[queries]), weights)
    entropies = _entropies(histogram)
    entropies[np.bincount(neighbors, minlength=n_samples) <= 1] = 0.
    return entropies


def z_standardize(arr: np.ndarray) -> np.ndarray:
    """ Zero mean, unit variance. Constant arrays map to zeros. """
    arr = np.asarray(arr, dtype=np.float64)
    std = arr.std()
    if std == 0:
        return np.zeros_like(arr)
    return (arr - arr.mean()) / std


def logistic(arr: np.ndarray) -> np.ndarray:
    return 1. / (1. + np.exp(-arr))


def penalize_hubness_weights(occurrence: np.ndarray) -> np.ndarray:
    """ Instance weights ``exp(-h)`` of standardized occurrence h; hubs get low weights. """
    return np.exp(-z_standardize(occurrence))


def hwknn_weights(bad_occurrence: np.ndarray) -> np.ndarray:
    """ Hubness-weighted kNN instance weights ``exp(-h_b)`` of standardized bad occurrence [1]_.

    References
    ----------
    .. [1] Radovanović, M., Nanopoulos, A., & Ivanović, M. (2009).
           Nearest neighbors in high-dimensional data: The emergence and
           influence of hubs. ICML 2009, 865–872.
    """
    return np.exp(-z_standardize(bad_occurrence))


def simhub_weights(
        occurrence: np.ndarray,
        reverse_entropy: np.ndarray = None,
        good_occurrence: np.ndarray = None,
        bad_occurrence: np.ndarray = None,
        n_classes: int = None,
        theta: float = 0.,
) -> np.ndarray:
    """ Hubness information instance weights.

    Combines the self-information of occurrence ``log2(n / (occurrence + 1))``,
    the purity of the reverse neighbor sets ``log2(n_classes) - reverse_entropy``,
    and the relative good-minus-bad occurrence. Each factor is standardized and
    squashed with the logistic function. The purity and good-minus-bad factors
    are blended with the trade-off `theta` in [0, 1]; without class information,
    only the occurrence factor is used.

    Returns
    -------
    weights : ndarray of shape (n_samples, ), values in (0, 1)
    """
    occurrence = np.asarray(occurrence, dtype=np.float64)
    n_samples = occurrence.size
    occurrence_info = logistic(z_standardize(np.log2(n_samples / (occurrence + 1.))))
    if reverse_entropy is None or n_classes is None:
        return occurrence_info
    if not 0. <= theta <= 1.:
        raise ValueError(f"Trade-off parameter theta must lie in [0, 1], got {theta}.")
    purity = logistic(z_standardize(np.log2(n_classes) - reverse_entropy))
    if good_occurrence is None or bad_occurrence is None:
        return occurrence_info * purity
    relative = np.zeros(n_samples, dtype=np.float64)
    occurring = occurrence > 0
    relative[occurring] = (good_occurrence[occurring] - bad_occurrence[occurring]) / occurrence[occurring]
    goodness = logistic(z_standardize(relative))
    return occurrence_info * ((1. - theta) * purity + theta * goodness)
