# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
from numpy.testing import assert_array_equal
import pytest

from skhubminer.exceptions import NeighborSetFormatError
from skhubminer.utils.io import read_distance_rows, read_neighbor_sets, write_distance_rows, write_neighbor_sets

K_NEIGHBORS = np.array([[1, 2], [2, -1], [0, 1]])
K_DISTANCES = np.array([[.1, 1 / 3], [.25, np.inf], [1 / 3, np.pi]])
LENGTHS = np.array([2, 1, 2])


def test_neighbor_sets_round_trip(tmp_path):
    path = tmp_path / "neighbors.txt"
    write_neighbor_sets(path, K_NEIGHBORS, K_DISTANCES, LENGTHS, k=2)
    lines = path.read_text().splitlines()
    assert lines[:4] == ["size:3", "k:2", "1 2", "0.1 0.3333333333333333"]
    assert lines[4] == "2"
    k_neighbors, k_distances, lengths, k = read_neighbor_sets(path)
    assert k == 2
    assert_array_equal(k_neighbors, K_NEIGHBORS)
    assert_array_equal(k_distances, K_DISTANCES)
    assert_array_equal(lengths, LENGTHS)


@pytest.mark.parametrize("content", [
    "",
    "size:3\n",
    "n:3\nk:2\n",
    "size:three\nk:2\n",
    "size:2\nk:1\n1\n0.5\n",
    "size:2\nk:1\n1\nabc\n0\n0.5\n",
    "size:2\nk:1\n5\n0.5\n0\n0.5\n",
    "size:2\nk:0\n\n\n\n\n",
])
def test_malformed_neighbor_sets(tmp_path, content):
    path = tmp_path / "neighbors.txt"
    path.write_text(content)
    with pytest.raises(NeighborSetFormatError):
        read_neighbor_sets(path)


def test_malformed_record_is_logged(tmp_path, caplog):
    path = tmp_path / "neighbors.txt"
    path.write_text("size:2\nk:1\n1\nabc\n0\n0.5\n")
    with pytest.raises(NeighborSetFormatError):
        read_neighbor_sets(path)
    assert "object 0" in caplog.text


def test_distance_rows_round_trip(tmp_path):
    path = tmp_path / "distances.txt"
    rows = [np.array([.5, 1 / 3]), np.array([2.])]
    write_distance_rows(path, 3, rows)
    assert path.read_text().splitlines()[0] == "3"
    loaded = read_distance_rows(path)
    assert len(loaded) == 3
    assert_array_equal(loaded[0], rows[0])
    assert_array_equal(loaded[1], rows[1])
    assert loaded[2].size == 0


@pytest.mark.parametrize("content", ["", "x\n", "3\n0.5\n1.0\n", "3\n0.5,0.1,0.2\n1.0\n"])
def test_malformed_distance_rows(tmp_path, content):
    path = tmp_path / "distances.txt"
    path.write_text(content)
    with pytest.raises(NeighborSetFormatError):
        read_distance_rows(path)


@pytest.mark.parametrize("content", [
    "size:2\nk:2\n1 0\n0.5\n0\n0.5\n",
    "size:2\nk:2\n1\n0.5 0.7\n0\n0.5\n",
    "size:3\nk:1\n1 2\n0.5 0.7\n0\n0.5\n0\n0.7\n",
])
def test_inconsistent_neighbor_record(tmp_path, caplog, content):
    path = tmp_path / "neighbors.txt"
    path.write_text(content)
    with pytest.raises(NeighborSetFormatError):
        read_neighbor_sets(path)
    assert "object 0" in caplog.text


def test_undecodable_files(tmp_path, caplog):
    path = tmp_path / "neighbors.txt"
    path.write_bytes(b"size:3\nk:1\n\xff\xfe\n0.5\n")
    with pytest.raises(NeighborSetFormatError):
        read_neighbor_sets(path)
    assert "Could not decode" in caplog.text
    path.write_bytes(b"3\n0.5,\xff\n0.1\n")
    with pytest.raises(NeighborSetFormatError):
        read_distance_rows(path)


def test_failed_write_keeps_previous_file(tmp_path, monkeypatch, caplog):
    path = tmp_path / "neighbors.txt"
    write_neighbor_sets(path, K_NEIGHBORS, K_DISTANCES, LENGTHS, k=2)
    previous = path.read_text()

    def _fail(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("skhubminer.utils.io.os.replace", _fail)
    with pytest.raises(OSError):
        write_neighbor_sets(path, K_NEIGHBORS[:1], K_DISTANCES[:1], LENGTHS[:1], k=2)
    with pytest.raises(OSError):
        write_distance_rows(tmp_path / "distances.txt", 2, [np.array([.5])])
    assert path.read_text() == previous
    assert sorted(p.name for p in tmp_path.iterdir()) == ["neighbors.txt"]
    assert "disk full" in caplog.text


def test_write_replaces_existing_file(tmp_path):
    path = tmp_path / "distances.txt"
    path.write_text("stale\n")
    write_distance_rows(path, 2, [np.array([.5])])
    assert path.read_text() == "2\n0.5\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["distances.txt"]
