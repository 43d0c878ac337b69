# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of scikit-hubminer.

Hubness measures computed from neighbor occurrence frequencies.
"""
from __future__ import annotations
from typing import Union

import numpy as np
from scipy import stats
from tqdm.auto import tqdm

from ..exceptions import ConfigurationError

__all__ = [
    "hubness_measures",
    "VALID_HUBNESS_MEASURES",
]

#: Available hubness measures
VALID_HUBNESS_MEASURES = [
    "all",
    "all_but_gini",
    "antihub_occurrence",
    "atkinson",
    "gini",
    "groupie_ratio",
    "hub_occurrence",
    "k_skewness",
    "k_skewness_truncnorm",
    "kurtosis",
    "robinhood",
]


def skewness_truncnorm(k_occurrence: np.ndarray) -> float:
    """ Hubness measure; corrected for non-negativity of k-occurrence.

    Hubness as skewness of truncated normal distribution estimated from k-occurrence histogram.

    Parameters
    ----------
    k_occurrence : np.ndarray
        Reverse nearest neighbor count for each object.
    """
    clip_left = 0
    clip_right = np.iinfo(np.int64).max
    k_occurrence_mean = k_occurrence.mean()
    k_occurrence_std = k_occurrence.std(ddof=1)
    a = (clip_left - k_occurrence_mean) / k_occurrence_std
    b = (clip_right - k_occurrence_mean) / k_occurrence_std
    return float(stats.truncnorm(a, b).moment(3))


def gini_index(k_occurrence: np.ndarray, limiting: str = "memory", verbose: int = 0) -> float:
    """ Hubness measure; Gini index

    Parameters
    ----------
    k_occurrence : np.ndarray
        Reverse nearest neighbor count for each object.
    limiting : "memory" or "cpu"
        If "cpu", use fast implementation with high memory usage,
        if "memory", use slightly slower, but memory-efficient implementation.
    """
    n = k_occurrence.size
    if limiting in ["memory", "space"]:
        numerator = np.int64(0)
        for i in tqdm(range(n), disable=verbose < 1, desc="Gini"):
            numerator += np.sum(np.abs(k_occurrence - k_occurrence[i]))
    elif limiting in ["time", "cpu"]:
        numerator = np.sum(np.abs(k_occurrence.reshape(1, -1) - k_occurrence.reshape(-1, 1)))
    else:
        raise ConfigurationError(f"Unknown limiting factor '{limiting}'. Use 'memory' or 'cpu'.")
    denominator = 2 * n * np.sum(k_occurrence)
    return float(numerator / denominator)


def robinhood_index(k_occurrence: np.ndarray) -> float:
    """ Hubness measure; Robin hood/Hoover/Schutz index.

    What share of k-occurrence must be redistributed, so that all objects
    are equally often nearest neighbors to others?

    References
    ----------
    .. [1] `Feldbauer, R.; Leodolter, M.; Plant, C. & Flexer, A.
            Fast approximate hubness reduction for large high-dimensional data.
            IEEE International Conference of Big Knowledge (2018).`
    """
    numerator = .5 * float(np.sum(np.abs(k_occurrence - k_occurrence.mean())))
    denominator = float(np.sum(k_occurrence))
    return numerator / denominator


def atkinson_index(k_occurrence: np.ndarray, eps: float = .5) -> float:
    """ Hubness measure; Atkinson index.

    Parameters
    ----------
    eps: float, default = 0.5
        "Income" weight. Turns the index into a normative measure.
    """
    if eps == 1:
        term = np.prod(k_occurrence) ** (1. / k_occurrence.size)
    else:
        term = np.mean(k_occurrence ** (1 - eps)) ** (1 / (1 - eps))
    return float(1. - 1. / k_occurrence.mean() * term)


def antihub_occurrence(k_occurrence: np.ndarray):
    """ Antihubs (objects never among the nearest neighbors of others), and their proportion. """
    antihubs = np.argwhere(k_occurrence == 0).ravel()
    return antihubs, antihubs.size / k_occurrence.size


def hub_occurrence(k: int, k_occurrence: np.ndarray, n_queries: int, hub_size: float = 2):
    """ Hubs (k-occurrence >= hub_size * k), and the proportion of neighbor slots they occupy. """
    hubs = np.argwhere(k_occurrence >= hub_size * k).ravel()
    return hubs, k_occurrence[hubs].sum() / k / n_queries


def hubness_measures(
        nsf_or_occurrence,
        k: int = None,
        return_value: str = "all",
        hub_size: float = 2,
        verbose: int = 0,
) -> Union[float, dict]:
    """ Estimate hubness from neighbor occurrence frequencies.

    Parameters
    ----------
    nsf_or_occurrence : NeighborSetFinder or array-like of shape (n_samples, )
        Neighbor sets, or their k-occurrence
    k : int, optional
        Neighborhood size. Defaults to the size of the neighbor sets.
        Required if k-occurrences are given.
    return_value : str, default = "all"
        Hubness measure to return. Use "all_but_gini" to return all measures
        except the Gini index, which is slow on large datasets.
        Use "all" to return a dict of all available measures,
        or check `VALID_HUBNESS_MEASURES` for available measures.
    hub_size : float
        Hubs are defined as objects with k-occurrence >= hub_size * k.
    verbose : int
        If verbose > 0, show progress bar for the Gini index.

    Returns
    -------
    hubness_measure: float or dict
        The hubness measure indicated by `return_value`.
        If return_value starts with "all", a dict of all hubness measures,
        including hubs and antihubs.

    References
    ----------
    .. [1] `Radovanović, M.; Nanopoulos, A. & Ivanovic, M.
            Hubs in space: Popular nearest neighbors in high-dimensional data.
            Journal of Machine Learning Research, 2010, 11, 2487-2531`
    """
    if return_value not in VALID_HUBNESS_MEASURES:
        raise ConfigurationError(f"Unknown return value: {return_value}. "
                                 f"Allowed hubness measures: {VALID_HUBNESS_MEASURES}.")
    if hub_size <= 0:
        raise ConfigurationError("Hub size must be greater than zero.")
    if hasattr(nsf_or_occurrence, "occurrence_statistics"):
        statistics = nsf_or_occurrence.occurrence_statistics(k)
        k = statistics.k
        k_occurrence = statistics.occurrence
    else:
        if k is None:
            raise ConfigurationError("Neighborhood size k is required for k-occurrence input.")
        k_occurrence = np.asarray(nsf_or_occurrence, dtype=np.int64).ravel()
    if k < 1:
        raise ConfigurationError(f"Neighborhood size 'k' must be >= 1, but is {k}")
    n_samples = k_occurrence.size

    measures = {}
    calc_all = return_value.startswith("all")
    if calc_all or return_value == "k_skewness":
        measures["k_skewness"] = float(stats.skew(k_occurrence))
    if calc_all or return_value == "k_skewness_truncnorm":
        measures["k_skewness_truncnorm"] = skewness_truncnorm(k_occurrence)
    if calc_all or return_value == "kurtosis":
        measures["kurtosis"] = float(stats.kurtosis(k_occurrence))
    # don't calc gini in case of "all_but_gini"
    if return_value in ["gini", "all"]:
        limiting = "space" if n_samples > 10_000 else "time"
        measures["gini"] = gini_index(k_occurrence, limiting, verbose=verbose)
    if calc_all or return_value == "robinhood":
        measures["robinhood"] = robinhood_index(k_occurrence)
    if calc_all or return_value == "atkinson":
        measures["atkinson"] = atkinson_index(k_occurrence)
    if calc_all or return_value == "antihub_occurrence":
        antihubs, measures["antihub_occurrence"] = antihub_occurrence(k_occurrence)
        if calc_all:
            measures["antihubs"] = antihubs
    if calc_all or return_value == "hub_occurrence":
        hubs, measures["hub_occurrence"] = hub_occurrence(k, k_occurrence, n_samples, hub_size)
        if calc_all:
            measures["hubs"] = hubs
    if calc_all or return_value == "groupie_ratio":
        measures["groupie_ratio"] = k_occurrence.max() / n_samples / k
    if calc_all:
        measures["k_occurrence"] = k_occurrence
        return measures
    return measures[return_value]
