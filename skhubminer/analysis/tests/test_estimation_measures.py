# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import pytest

import numpy as np
from scipy.spatial.distance import squareform
from sklearn.datasets import make_classification

from skhubminer import NeighborSetFinder
from skhubminer.analysis import hubness_measures, VALID_HUBNESS_MEASURES
from skhubminer.analysis.estimation import gini_index
from skhubminer.exceptions import ConfigurationError

DIST = squareform(np.array([.2, .1, .8, .4, .3, .5, .7, 1., .6, .9]))


def fitted_nsf(k=2):
    nsf = NeighborSetFinder(distances=DIST)
    nsf.calculate_neighbor_sets(k)
    return nsf


def test_hubness():
    """Test hubness against ground truth calc on spreadsheet"""
    HUBNESS_TRUE = -0.2561204163  # Hubness truth: skewness calculated with bias
    Sk2 = hubness_measures(fitted_nsf(), return_value="k_skewness")
    np.testing.assert_almost_equal(Sk2, HUBNESS_TRUE, decimal=10)


def test_hand_computed_measures():
    measures = hubness_measures(fitted_nsf(), return_value="all")
    np.testing.assert_array_equal(measures["k_occurrence"], [4, 3, 3, 0, 0])
    np.testing.assert_almost_equal(measures["robinhood"], .4)
    np.testing.assert_almost_equal(measures["antihub_occurrence"], .4)
    np.testing.assert_array_equal(measures["antihubs"], [3, 4])
    np.testing.assert_array_equal(measures["hubs"], [0])
    np.testing.assert_almost_equal(measures["hub_occurrence"], .4)
    np.testing.assert_almost_equal(measures["groupie_ratio"], .4)


@pytest.mark.parametrize("return_value", VALID_HUBNESS_MEASURES)
def test_return_values(return_value):
    X, _ = make_classification(random_state=123)
    nsf = NeighborSetFinder(X)
    nsf.calculate_neighbor_sets(10)
    result = hubness_measures(nsf, return_value=return_value)
    if return_value.startswith("all"):
        assert isinstance(result, dict)
        assert ("gini" in result) == (return_value == "all")
    else:
        assert np.isscalar(result)


def test_occurrence_input():
    nsf = fitted_nsf()
    from_nsf = hubness_measures(nsf, return_value="all_but_gini")
    from_occurrence = hubness_measures(nsf.occurrence, k=2, return_value="all_but_gini")
    for key in ["k_skewness", "robinhood", "atkinson", "hub_occurrence"]:
        np.testing.assert_almost_equal(from_nsf[key], from_occurrence[key])
    with pytest.raises(ConfigurationError):
        hubness_measures(nsf.occurrence)


def test_smaller_k_from_neighbor_sets():
    nsf = fitted_nsf(k=3)
    measures = hubness_measures(nsf, k=2)
    np.testing.assert_array_equal(measures["k_occurrence"], [4, 3, 3, 0, 0])


def test_invalid_arguments():
    nsf = fitted_nsf()
    with pytest.raises(ConfigurationError):
        hubness_measures(nsf, return_value="k_neighbors")
    with pytest.raises(ConfigurationError):
        hubness_measures(nsf, hub_size=0)


def test_limiting_factor():
    """ Different implementations of Gini index calculation should give the same result. """
    X, _ = make_classification()
    nsf = NeighborSetFinder(X)
    nsf.calculate_neighbor_sets(10)
    k_occ = nsf.occurrence
    gini = {x: gini_index(k_occ, limiting=x) for x in ["memory", "cpu"]}
    np.testing.assert_almost_equal(gini["memory"], gini["cpu"])
    with pytest.raises(ConfigurationError):
        gini_index(k_occ, limiting="naive")
