# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
from numpy.testing import assert_array_almost_equal, assert_array_equal
import pytest
from sklearn.datasets import make_classification

from skhubminer.exceptions import ConfigurationError
from skhubminer.neighbors import (
    DistanceMatrix, ExternalQuery, FunctionSource, MatrixSource, TabuTable, kneighbors_search,
)
from skhubminer.neighbors.search import KNeighbors

X, y = make_classification(n_samples=40, n_features=10, random_state=42)
DM = DistanceMatrix.from_data(X)
D = DM.to_dense()


def brute_force(D, k, tabu=None, exclude_self=True):
    indices = []
    for i, row in enumerate(D):
        order = [j for j in np.argsort(row, kind="stable")
                 if not (exclude_self and j == i) and (tabu is None or not tabu[j])]
        indices.append(order[:k])
    return np.array(indices)


@pytest.mark.parametrize("k", [1, 5, 39])
@pytest.mark.parametrize("n_jobs", [1, 3])
def test_matrix_source(k, n_jobs):
    result = kneighbors_search(MatrixSource(DM), k, n_jobs=n_jobs)
    assert_array_equal(result.lengths, k)
    assert_array_equal(result.indices, brute_force(D, k))
    assert_array_equal(result.distances, np.take_along_axis(D, result.indices, axis=1))


@pytest.mark.parametrize("n_jobs", [1, 2])
def test_function_source_matches_matrix_source(n_jobs):
    k = 5
    matrix = kneighbors_search(MatrixSource(DM), k)
    function = kneighbors_search(FunctionSource(X), k, n_jobs=n_jobs)
    assert_array_equal(function.indices, matrix.indices)
    assert_array_almost_equal(function.distances, matrix.distances)


def test_internal_query_subset():
    queries = [7, 0, 13]
    result = kneighbors_search(MatrixSource(DM), 4, query=queries)
    assert result.indices.shape == (3, 4)
    assert_array_equal(result.indices, brute_force(D, 4)[queries])


def test_shared_tabu():
    tabu = [1, 2, 3, 10]
    mask = np.zeros(40, dtype=bool)
    mask[tabu] = True
    result = kneighbors_search(MatrixSource(DM), 6, tabu=tabu)
    assert not np.any(np.isin(result.indices, tabu))
    assert_array_equal(result.indices, brute_force(D, 6, tabu=mask))


def test_per_class_tabu_table():
    same_class = y[np.newaxis, :] == np.unique(y)[:, np.newaxis]
    table = TabuTable(~same_class, y)
    result = kneighbors_search(MatrixSource(DM), 3, tabu=table)
    assert np.all(y[result.indices] == y[:, np.newaxis])


def test_partial_rows_under_tabu():
    tabu = np.ones(40, dtype=bool)
    tabu[[0, 1, 2]] = False
    result = kneighbors_search(MatrixSource(DM), 5, tabu=tabu)
    assert result.lengths[0] == 2
    assert result.lengths[10] == 3
    assert_array_equal(result.indices[10, 3:], -1)
    assert np.all(np.isinf(result.distances[10, 3:]))


def test_external_queries():
    k = 4
    query = X[:5] + 0.01
    by_vectors = kneighbors_search(FunctionSource(X), k, query=ExternalQuery(X=query))
    rows = FunctionSource(X).pairwise(query)
    by_distances = kneighbors_search(MatrixSource(DM), k, query=ExternalQuery(distances=rows))
    assert_array_equal(by_vectors.indices, by_distances.indices)
    # External queries may return any object, including the closest original point
    assert_array_equal(by_vectors.indices[:, 0], np.arange(5))


def test_seeded_search():
    k = 3
    full = kneighbors_search(MatrixSource(DM), k, query=[0])
    first = full.indices[0, 0]
    seed = (np.array([[first, -1, -1]]), np.array([[full.distances[0, 0], np.inf, np.inf]]), np.array([1]))
    result = kneighbors_search(MatrixSource(DM), k, query=[0], tabu=[first], seed=KNeighbors(*seed))
    assert_array_equal(result.indices, full.indices)


def test_invalid_arguments():
    with pytest.raises(ConfigurationError):
        kneighbors_search(MatrixSource(DM), 0)
    with pytest.raises(ConfigurationError):
        kneighbors_search(MatrixSource(DM), 3, query=ExternalQuery(X=X[:2]))
    with pytest.raises(ConfigurationError):
        kneighbors_search(MatrixSource(DM), 3, query=ExternalQuery(distances=np.ones((2, 3))))
    with pytest.raises(ConfigurationError):
        ExternalQuery()
    with pytest.raises(ConfigurationError):
        kneighbors_search(MatrixSource(DM), 3, query=[0, 40])
