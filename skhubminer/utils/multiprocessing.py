# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
from multiprocessing import cpu_count
from typing import Callable, List

from joblib import Parallel, delayed
from sklearn.utils import gen_even_slices

__all__ = [
    "validate_n_jobs",
    "row_slices",
    "map_row_slices",
]


def validate_n_jobs(n_jobs):
    """ Handle special integers and non-integer `n_jobs` values. """
    if n_jobs is None:
        n_jobs = 1
    elif n_jobs == -1:
        n_jobs = cpu_count()
    elif n_jobs < -1 or n_jobs == 0:
        raise ValueError(f"Number of parallel threads 'n_jobs' must be "
                         f"a positive integer, or ``-1`` to use all local"
                         f" CPU cores. Was {n_jobs} instead.")
    return int(n_jobs)


def row_slices(n_rows: int, n_jobs: int) -> List[slice]:
    """ Partition rows ``0..n_rows-1`` into at most `n_jobs` contiguous slices. """
    n_jobs = validate_n_jobs(n_jobs)
    if n_rows < 1:
        return []
    n_packs = min(n_jobs, n_rows)
    return list(gen_even_slices(n_rows, n_packs))


def map_row_slices(func: Callable, n_rows: int, n_jobs: int = 1, **kwargs) -> list:
    """ Call ``func(row_slice, **kwargs)`` for contiguous row slices.

    With more than one job, slices are processed by a pool of worker threads,
    which are all joined before returning. Results are returned in slice order,
    so that any reduction over them is sequential and deterministic.

    Parameters
    ----------
    func : callable
        Worker function. Must only write to rows within its slice.
    n_rows : int
        Number of rows to partition
    n_jobs : int
        Number of worker threads. ``-1`` uses all CPU cores.

    Returns
    -------
    results : list
        Return values of `func`, one per slice.
    """
    slices = row_slices(n_rows, n_jobs)
    if len(slices) <= 1:
        return [func(s, **kwargs) for s in slices]
    return Parallel(n_jobs=len(slices), prefer="threads")(
        delayed(func)(s, **kwargs) for s in slices
    )
