# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal, assert_array_equal
import pytest

from skhubminer.analysis import occurrence as occ

# Partially filled neighbor sets of four objects; -1 marks unused slots
K_NEIGHBORS = np.array([[1, 2], [0, -1], [1, 3], [-1, -1]])
LENGTHS = np.array([2, 1, 2, 0])
Y = np.array([0, 0, 1, 1])


def test_valid_neighbors():
    queries, neighbors = occ.valid_neighbors(K_NEIGHBORS, LENGTHS)
    assert_array_equal(queries, [0, 0, 1, 2, 2])
    assert_array_equal(neighbors, [1, 2, 0, 1, 3])
    queries, neighbors = occ.valid_neighbors(K_NEIGHBORS, LENGTHS, k=1)
    assert_array_equal(queries, [0, 1, 2])
    assert_array_equal(neighbors, [1, 0, 1])


def test_occurrence_statistics():
    stats = occ.occurrence_statistics(K_NEIGHBORS, LENGTHS, Y)
    assert stats.k == 2
    assert_array_equal(stats.occurrence, [1, 2, 1, 1])
    assert_array_equal(stats.good_occurrence, [1, 1, 0, 1])
    assert_array_equal(stats.bad_occurrence, [0, 1, 1, 0])
    assert_almost_equal(stats.mean_occurrence, 1.25)
    assert_almost_equal(stats.std_occurrence, np.std([1, 2, 1, 1]))
    assert_almost_equal(stats.mean_good_minus_bad, 0.25)
    assert_almost_equal(stats.mean_relative_good_minus_bad, (1 + 0 - 1 + 1) / 4)


def test_statistics_without_labels():
    stats = occ.occurrence_statistics(K_NEIGHBORS, LENGTHS)
    assert stats.good_occurrence is None
    assert stats.std_bad is None
    assert_array_equal(stats.occurrence, [1, 2, 1, 1])


def test_statistics_from_counts_orphans():
    stats = occ.statistics_from_counts(1, np.array([0, 2]), np.array([0, 1]), np.array([0, 1]))
    assert_array_equal(stats.occurrence, [0, 2])
    assert_almost_equal(stats.mean_relative_good_minus_bad, 0.)


def test_reverse_neighbor_lists():
    reverse = occ.reverse_neighbor_lists(K_NEIGHBORS, LENGTHS)
    assert reverse == [[1], [0, 2], [0], [2]]
    assert occ.reverse_neighbor_lists(K_NEIGHBORS, LENGTHS, k=1) == [[1], [0, 2], [], []]


def test_class_counts():
    class_data = occ.class_data_counts(K_NEIGHBORS, LENGTHS, Y, n_classes=2)
    assert_array_equal(class_data, [[1, 1, 1, 0], [0, 1, 0, 1]])
    assert_array_equal(class_data.sum(axis=0), occ.occurrence_counts(K_NEIGHBORS, LENGTHS))
    class_to_class = occ.class_to_class_counts(K_NEIGHBORS, LENGTHS, Y, n_classes=2)
    assert_array_equal(class_to_class, [[2, 1], [1, 1]])
    extended = occ.class_data_counts(K_NEIGHBORS, LENGTHS, Y, n_classes=2, extend_by_element=True)
    assert_array_equal(extended - class_data, [[1, 1, 0, 0], [0, 0, 1, 1]])


@pytest.mark.parametrize("laplace", [0.05, 1.])
def test_normalized_relations_sum_to_one(laplace):
    counts = occ.class_to_class_counts(K_NEIGHBORS, LENGTHS, Y, n_classes=2)
    fuzzy = occ.class_to_class_fuzzy(counts, laplace)
    assert_array_almost_equal(fuzzy.sum(axis=1), [1., 1.])
    class_data = occ.class_data_counts(K_NEIGHBORS, LENGTHS, Y, n_classes=2)
    assert_array_almost_equal(occ.class_data_fuzzy(class_data, laplace).sum(axis=0), np.ones(4))


def test_error_inducing_occurrence():
    # Object 2 (class 1) has neighbors of classes 0 and 1; the tie goes to class 0
    error_inducing = occ.error_inducing_occurrence(K_NEIGHBORS, LENGTHS, Y, n_classes=2)
    assert_array_equal(error_inducing, [0, 1, 0, 0])


def test_entropies():
    direct = occ.direct_entropies(K_NEIGHBORS, LENGTHS, Y, n_classes=2)
    assert_array_almost_equal(direct, [1., 0., 1., 0.])
    reverse = occ.reverse_entropies(K_NEIGHBORS, LENGTHS, Y, n_classes=2)
    # Object 1 has reverse neighbors 0 and 2 of different classes
    assert_array_almost_equal(reverse, [0., 1., 0., 0.])


def test_z_standardize_constant():
    assert_array_equal(occ.z_standardize(np.full(5, 3.)), np.zeros(5))
    z = occ.z_standardize(np.array([1., 2., 3.]))
    assert_almost_equal(z.mean(), 0.)
    assert_almost_equal(z.std(), 1.)


def test_weights():
    occurrence = np.array([0, 1, 5, 2])
    penalized = occ.penalize_hubness_weights(occurrence)
    assert np.argmin(penalized) == 2
    assert np.argmax(penalized) == 0
    assert_array_equal(occ.hwknn_weights(np.zeros(4)), np.ones(4))
    unsupervised = occ.simhub_weights(occurrence)
    assert np.argmin(unsupervised) == 2
    with pytest.raises(ValueError):
        occ.simhub_weights(occurrence, np.zeros(4), n_classes=2, theta=-0.1)
