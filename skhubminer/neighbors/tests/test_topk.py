# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
from numpy.testing import assert_array_equal
import pytest

from skhubminer.neighbors._topk import complete_condensed, insert_neighbor
from skhubminer.neighbors.distance_matrix import DistanceMatrix


def _empty(k):
    return np.full(k, -1, dtype=np.int64), np.full(k, np.inf, dtype=np.float64)


def test_insert_into_empty_list():
    neighbors, distances = _empty(3)
    length = insert_neighbor(neighbors, distances, 0, 4, 2.5)
    assert length == 1
    assert neighbors[0] == 4
    assert distances[0] == 2.5


def test_insert_keeps_ascending_order():
    neighbors, distances = _empty(4)
    length = 0
    for index, distance in [(0, 3.), (1, 1.), (2, 2.), (3, 0.5)]:
        length = insert_neighbor(neighbors, distances, length, index, distance)
    assert length == 4
    assert_array_equal(neighbors, [3, 1, 2, 0])
    assert_array_equal(distances, [0.5, 1., 2., 3.])


def test_full_list_discards_farther_candidates():
    neighbors, distances = _empty(2)
    length = 0
    for index, distance in [(0, 1.), (1, 2.), (2, 5.)]:
        length = insert_neighbor(neighbors, distances, length, index, distance)
    assert length == 2
    assert_array_equal(neighbors, [0, 1])
    length = insert_neighbor(neighbors, distances, length, 3, 1.5)
    assert_array_equal(neighbors, [0, 3])
    assert_array_equal(distances, [1., 1.5])


def test_ties_favor_earlier_candidates():
    """ Pinned behavior: on exact ties, the first encountered candidate stays in front. """
    neighbors, distances = _empty(3)
    length = 0
    length = insert_neighbor(neighbors, distances, length, 5, 1.)
    length = insert_neighbor(neighbors, distances, length, 7, 1.)
    assert_array_equal(neighbors[:length], [5, 7])
    length = insert_neighbor(neighbors, distances, length, 2, .5)
    assert_array_equal(neighbors, [2, 5, 7])
    # Tied with the current k-th distance: rejected
    length = insert_neighbor(neighbors, distances, length, 9, 1.)
    assert_array_equal(neighbors, [2, 5, 7])
    length = insert_neighbor(neighbors, distances, length, 4, .7)
    assert length == 3
    assert_array_equal(neighbors, [2, 4, 5])
    assert_array_equal(distances, [.5, .7, 1.])


@pytest.mark.parametrize("k", [1, 2, 4])
def test_complete_seeded_lists(k):
    rng = np.random.RandomState(12)
    X = rng.rand(7, 3)
    D = np.sqrt(((X[:, np.newaxis, :] - X[np.newaxis, :, :]) ** 2).sum(axis=-1))
    dm = DistanceMatrix.from_dense(D)
    query = 3
    expected = [j for j in np.argsort(D[query], kind="stable") if j != query][:k]

    # Seed with the nearest neighbor only, and let the scan skip it
    neighbors = np.full((1, k), -1, dtype=np.int64)
    distances = np.full((1, k), np.inf)
    neighbors[0, 0] = expected[0]
    distances[0, 0] = D[query, expected[0]]
    lengths = np.array([1], dtype=np.int64)
    skip = np.array([[expected[0]]], dtype=np.int64)
    complete_condensed(dm.data, dm.offsets, np.array([query]), 0, 1,
                       skip, np.array([1]), neighbors, distances, lengths)
    assert lengths[0] == k
    assert_array_equal(neighbors[0], expected)
