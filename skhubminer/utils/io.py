# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
"""
Plain text persistence of neighbor sets and distance matrices.

Neighbor set files::

    size:<N>
    k:<K>
    <space-separated neighbor indices of object 0>
    <space-separated neighbor distances of object 0>
    ...

Distance matrix files hold N in the first line, followed by N-1 lines with the
comma-separated upper triangular rows (row i holds N-i-1 distances).
"""
import logging
import os
from tempfile import mkstemp
from typing import Tuple, Union

import numpy as np

from ..exceptions import NeighborSetFormatError

__all__ = [
    "write_neighbor_sets",
    "read_neighbor_sets",
    "write_distance_rows",
    "read_distance_rows",
]

PathType = Union[str, os.PathLike]


def _format_float(value) -> str:
    # repr round-trips float64 exactly
    return repr(float(value))


def _write_lines_atomic(path: PathType, lines):
    """ Write `lines` to a temporary file next to `path`, then move it into place.

    On failure, the temporary file is removed and `path` is left untouched.
    """
    directory = os.path.dirname(os.path.abspath(os.fspath(path)))
    handle, tmp_path = mkstemp(prefix=".tmp-", suffix=".txt", dir=directory)
    try:
        with os.fdopen(handle, mode="w", encoding="utf-8") as fid:
            for line in lines:
                fid.write(line + "\n")
        os.replace(tmp_path, path)
    except OSError as e:
        logging.warning(f"Could not write {path}: {e}")
        raise
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def _read_lines(path: PathType) -> list:
    try:
        with open(path, mode="r", encoding="utf-8") as fid:
            return fid.read().splitlines()
    except UnicodeDecodeError as e:
        logging.warning(f"Could not decode {path}: {e}")
        raise NeighborSetFormatError(f"{path}: not a plain text file.") from e


def write_neighbor_sets(
        path: PathType,
        k_neighbors: np.ndarray,
        k_distances: np.ndarray,
        lengths: np.ndarray,
        k: int,
):
    """ Write neighbor sets to a plain text file. Only valid entries of each row are written. """
    n_samples = k_neighbors.shape[0]

    def _lines():
        yield f"size:{n_samples}"
        yield f"k:{k}"
        for i in range(n_samples):
            length = lengths[i]
            yield " ".join(str(int(j)) for j in k_neighbors[i, :length])
            yield " ".join(_format_float(d) for d in k_distances[i, :length])

    _write_lines_atomic(path, _lines())


def _parse_header(line: str, key: str, path: PathType) -> int:
    name, sep, value = line.strip().partition(":")
    if not sep or name.strip() != key:
        raise NeighborSetFormatError(f"{path}: expected header '{key}:<int>', got '{line.strip()}'.")
    try:
        return int(value)
    except ValueError:
        raise NeighborSetFormatError(f"{path}: header '{key}' must be an integer, got '{value}'.")


def read_neighbor_sets(path: PathType) -> Tuple[np.ndarray, np.ndarray, np.ndarray, int]:
    """ Read neighbor sets from a plain text file.

    Records with fewer than k entries yield partially filled rows. The index
    and distance lines of a record must hold the same number of entries.

    Returns
    -------
    k_neighbors, k_distances, lengths, k
        Unused slots hold index -1 and distance inf.

    Raises
    ------
    NeighborSetFormatError
        If the file is truncated or any token cannot be parsed.
        Nothing is returned in this case, so that callers keep their state.
    """
    lines = _read_lines(path)
    if len(lines) < 2:
        raise NeighborSetFormatError(f"{path}: missing 'size' and 'k' headers.")
    n_samples = _parse_header(lines[0], "size", path)
    k = _parse_header(lines[1], "k", path)
    if n_samples < 0 or k < 1:
        raise NeighborSetFormatError(f"{path}: invalid size={n_samples} or k={k}.")
    if len(lines) < 2 + 2 * n_samples:
        raise NeighborSetFormatError(f"{path}: truncated file, expected {2 * n_samples} "
                                     f"neighbor lines, found {len(lines) - 2}.")

    k_neighbors = np.full((n_samples, k), -1, dtype=np.int64)
    k_distances = np.full((n_samples, k), np.inf, dtype=np.float64)
    lengths = np.zeros(n_samples, dtype=np.int64)
    for i in range(n_samples):
        line_no = 2 + 2 * i
        index_tokens = lines[line_no].split()
        dist_tokens = lines[line_no + 1].split()
        length = len(index_tokens)
        if length != len(dist_tokens) or length > k:
            logging.warning(f"Neighbor record of object {i} in {path} holds {length} indices and "
                            f"{len(dist_tokens)} distances, k={k} (lines {line_no + 1}-{line_no + 2}).")
            raise NeighborSetFormatError(f"{path}: inconsistent neighbor record of object {i}.")
        try:
            indices = [int(t) for t in index_tokens]
            distances = [float(t) for t in dist_tokens]
        except ValueError as e:
            logging.warning(f"Invalid neighbor record of object {i} in {path} "
                            f"(lines {line_no + 1}-{line_no + 2}): {e}")
            raise NeighborSetFormatError(f"{path}: invalid neighbor record of object {i}.") from e
        if any(j < 0 or j >= n_samples for j in indices):
            logging.warning(f"Neighbor index out of range for object {i} in {path} (line {line_no + 1}).")
            raise NeighborSetFormatError(f"{path}: neighbor index out of range for object {i}.")
        k_neighbors[i, :length] = indices
        k_distances[i, :length] = distances
        lengths[i] = length
    return k_neighbors, k_distances, lengths, k


def write_distance_rows(path: PathType, n_samples: int, rows):
    """ Write upper triangular distance rows (row i holding N-i-1 values). """
    lines = [str(n_samples)]
    lines.extend(",".join(_format_float(d) for d in rows[i]) for i in range(n_samples - 1))
    _write_lines_atomic(path, lines)


def read_distance_rows(path: PathType) -> list:
    """ Read upper triangular distance rows; the last (empty) row is included.

    Raises
    ------
    NeighborSetFormatError
        If the file is truncated, rows have wrong lengths, or values cannot be parsed.
    """
    lines = _read_lines(path)
    if not lines:
        raise NeighborSetFormatError(f"{path}: empty distance matrix file.")
    try:
        n_samples = int(lines[0].strip())
    except ValueError as e:
        raise NeighborSetFormatError(f"{path}: first line must hold the number of objects.") from e
    if len(lines) < n_samples:
        raise NeighborSetFormatError(f"{path}: truncated file, expected {max(n_samples - 1, 0)} rows.")
    rows = []
    for i in range(n_samples - 1):
        tokens = [t for t in lines[i + 1].split(",") if t.strip()]
        try:
            row = np.array([float(t) for t in tokens], dtype=np.float64)
        except ValueError as e:
            logging.warning(f"Invalid distance in row {i} of {path}: {e}")
            raise NeighborSetFormatError(f"{path}: invalid distance in row {i}.") from e
        if row.size != n_samples - i - 1:
            raise NeighborSetFormatError(f"{path}: row {i} must hold {n_samples - i - 1} "
                                         f"distances, found {row.size}.")
        rows.append(row)
    if n_samples > 0:
        rows.append(np.empty(0))
    return rows
