# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
from numpy.testing import assert_array_almost_equal, assert_array_equal
import pytest
from scipy.spatial.distance import squareform
from sklearn.datasets import make_classification
from sklearn.metrics import euclidean_distances

from skhubminer.exceptions import ConfigurationError, NeighborSetFormatError
from skhubminer.neighbors import DistanceMatrix, load_distance_matrix, save_distance_matrix
from skhubminer.neighbors.distance_matrix import check_distance_matrix

CONDENSED = np.array([.2, .1, .8, .4, .3, .5, .7, 1., .6, .9])


def test_layout_matches_squareform():
    dm = DistanceMatrix(CONDENSED)
    D = squareform(CONDENSED)
    assert dm.n_samples == 5
    assert len(dm) == 5
    for i in range(5):
        for j in range(5):
            assert dm.get(i, j) == D[i, j]
            assert dm[i, j] == dm[j, i]
    assert_array_equal(dm.to_dense(), D)


def test_rows():
    dm = DistanceMatrix(CONDENSED)
    assert_array_equal(dm.row(0), [.2, .1, .8, .4])
    assert_array_equal(dm.row(3), [.9])
    rows = dm.rows()
    assert len(rows) == 5
    assert rows[-1].size == 0
    assert_array_equal(DistanceMatrix.from_rows(rows).data, CONDENSED)
    # The empty last row may be omitted
    assert_array_equal(DistanceMatrix.from_rows(rows[:-1]).data, CONDENSED)


def test_take_and_distances_from():
    dm = DistanceMatrix(CONDENSED)
    D = squareform(CONDENSED)
    rows = np.array([0, 4, 2, 3])
    cols = np.array([1, 1, 2, 0])
    assert_array_equal(dm.take(rows, cols), D[rows, cols])
    for i in range(5):
        assert_array_equal(dm.distances_from(i), D[i])


def test_subset():
    dm = DistanceMatrix(CONDENSED)
    D = squareform(CONDENSED)
    indices = [4, 0, 2]
    assert_array_equal(dm.subset(indices).to_dense(), D[np.ix_(indices, indices)])
    assert dm.subset([1]).n_samples == 1


def test_data_is_read_only():
    dm = DistanceMatrix(CONDENSED)
    with pytest.raises(ValueError):
        dm.data[0] = 10.


@pytest.mark.parametrize("value", [np.nan, -1.])
def test_invalid_distances(value):
    condensed = CONDENSED.copy()
    condensed[3] = value
    with pytest.raises(ConfigurationError):
        DistanceMatrix(condensed)


def test_invalid_shapes():
    with pytest.raises(ConfigurationError):
        DistanceMatrix(np.ones(4))
    with pytest.raises(ConfigurationError):
        DistanceMatrix.from_dense(np.ones((3, 4)))
    with pytest.raises(ConfigurationError):
        DistanceMatrix.from_dense(np.array([[0., 1.], [2., 0.]]))
    with pytest.raises(ConfigurationError):
        DistanceMatrix.from_rows([[1., 2.], [3., 4.]])


@pytest.mark.parametrize("n_jobs", [1, 2, -1])
def test_from_data(n_jobs):
    X, _ = make_classification(n_samples=30, random_state=123)
    dm = DistanceMatrix.from_data(X, n_jobs=n_jobs)
    assert dm.n_samples == 30
    assert_array_almost_equal(dm.to_dense(), euclidean_distances(X), decimal=10)


def test_from_data_with_metric_params():
    X, _ = make_classification(n_samples=10, random_state=1)
    dm = DistanceMatrix.from_data(X, metric="minkowski", metric_params={"p": 1})
    manhattan = np.abs(X[:, np.newaxis, :] - X[np.newaxis, :, :]).sum(axis=-1)
    assert_array_almost_equal(dm.to_dense(), manhattan)


def test_check_distance_matrix():
    D = squareform(CONDENSED)
    dm = DistanceMatrix(CONDENSED)
    assert check_distance_matrix(dm) is dm
    for distances in [D, CONDENSED, D.tolist(), dm.rows()]:
        assert_array_equal(check_distance_matrix(distances).data, CONDENSED)
    with pytest.raises(ConfigurationError):
        check_distance_matrix(D, n_samples=4)
    with pytest.raises(ConfigurationError):
        check_distance_matrix(None)


def test_save_and_load(tmp_path):
    path = tmp_path / "distances.txt"
    dm = DistanceMatrix(CONDENSED)
    save_distance_matrix(path, dm)
    loaded = load_distance_matrix(path)
    assert_array_equal(loaded.data, dm.data)


def test_load_malformed(tmp_path):
    path = tmp_path / "distances.txt"
    path.write_text("3\n0.5,abc\n0.1\n")
    with pytest.raises(NeighborSetFormatError):
        load_distance_matrix(path)
    path.write_text("3\n0.5,0.2\n")
    with pytest.raises(NeighborSetFormatError):
        load_distance_matrix(path)
