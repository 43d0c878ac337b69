# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
Compiled kernels for exact k-nearest neighbor search.

All searches maintain sorted, fixed-capacity neighbor lists with
:func:`insert_neighbor`. Candidates of a query are always visited in
ascending index order, so that ties are broken by first encounter,
no matter how queries are distributed over threads.

Tabu (forbidden) candidates are given as a table of boolean masks together
with one table row per query (``-1`` for no restriction). This covers a
single mask for all queries, one mask per query, and one mask per class.
"""
import numpy as np
import numba

from .distance_matrix import condensed_distance

__all__ = [
    "insert_neighbor",
    "search_condensed",
    "search_dense",
    "complete_condensed",
]


@numba.njit(nogil=True)
def insert_neighbor(neighbors, distances, length, index, distance):
    """ Offer a candidate to a sorted neighbor list of capacity ``neighbors.size``.

    Parameters
    ----------
    neighbors, distances : ndarray of shape (k, )
        Neighbor indices and ascending distances; the first `length` are valid.
    length : int
        Number of valid entries, ``0 <= length <= k``
    index : int
        Candidate object
    distance : float
        Distance to the candidate

    Returns
    -------
    length : int
        Updated number of valid entries

    Notes
    -----
    Only strictly smaller distances move a candidate before existing entries.
    Among equal distances, earlier candidates stay in front, and a full list
    rejects a candidate tied with its current k-th distance.
    """
    k = neighbors.shape[0]
    if length == 0:
        neighbors[0] = index
        distances[0] = distance
        return 1
    if length < k:
        if distance >= distances[length - 1]:
            neighbors[length] = index
            distances[length] = distance
            return length + 1
        pos = length
        new_length = length + 1
    else:
        if distance >= distances[k - 1]:
            return k
        pos = k - 1
        new_length = k
    while pos > 0 and distance < distances[pos - 1]:
        neighbors[pos] = neighbors[pos - 1]
        distances[pos] = distances[pos - 1]
        pos -= 1
    neighbors[pos] = index
    distances[pos] = distance
    return new_length


@numba.njit(nogil=True)
def search_condensed(data, offsets, queries, start, stop,
                     tabu_table, tabu_rows, neighbors, distances, lengths):
    """ kNN search for internal queries ``queries[start:stop]`` in a condensed matrix.

    Writes only rows ``start:stop`` of `neighbors`, `distances` and `lengths`.
    Rows may be pre-seeded; `lengths` holds the number of seeded entries.
    """
    n_samples = offsets.shape[0]
    for q in range(start, stop):
        i = queries[q]
        tabu_row = tabu_rows[q]
        length = lengths[q]
        for j in range(n_samples):
            if j == i:
                continue
            if tabu_row >= 0 and tabu_table[tabu_row, j]:
                continue
            length = insert_neighbor(neighbors[q], distances[q], length, j,
                                     condensed_distance(data, offsets, i, j))
        lengths[q] = length


@numba.njit(nogil=True)
def search_dense(block, row_start, exclude, tabu_table, tabu_rows,
                 neighbors, distances, lengths):
    """ kNN search from precomputed distance rows.

    Row ``r`` of `block` holds the distances of query ``row_start + r`` to all
    candidates. ``exclude[q]`` is a candidate skipped for query q (its own
    index for internal queries), or -1.
    """
    n_rows, n_samples = block.shape
    for r in range(n_rows):
        q = row_start + r
        skip = exclude[q]
        tabu_row = tabu_rows[q]
        length = lengths[q]
        for j in range(n_samples):
            if j == skip:
                continue
            if tabu_row >= 0 and tabu_table[tabu_row, j]:
                continue
            length = insert_neighbor(neighbors[q], distances[q], length, j, block[r, j])
        lengths[q] = length


@numba.njit(nogil=True)
def complete_condensed(data, offsets, queries, start, stop, skip, skip_lengths,
                       neighbors, distances, lengths):
    """ Complete pre-seeded neighbor lists of queries ``queries[start:stop]``.

    Row q of `skip` holds the sorted indices already present in the list of
    object ``queries[q]`` (``skip_lengths[q]`` of them). Only the index
    intervals between them are scanned, so known neighbors are never
    offered twice.
    """
    n_samples = offsets.shape[0]
    for q in range(start, stop):
        i = queries[q]
        length = lengths[q]
        low = 0
        for s in range(skip_lengths[q] + 1):
            high = skip[q, s] if s < skip_lengths[q] else n_samples
            for j in range(low, high):
                if j == i:
                    continue
                length = insert_neighbor(neighbors[q], distances[q], length, j,
                                         condensed_distance(data, offsets, i, j))
            low = high + 1
        lengths[q] = length
