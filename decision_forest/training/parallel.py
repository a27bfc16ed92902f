"""Parallel map over joblib workers.

Trees are built with the 'threading' backend: every worker reads the same
read-only training set and reports through one shared lock, which a process
pool could not offer. One job or one item runs as a plain loop.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from joblib import Parallel, cpu_count, delayed

from decision_forest.config import JOBLIB_BACKEND, JOBLIB_VERBOSITY, N_JOBS

T = TypeVar("T")
R = TypeVar("R")


def get_n_jobs(n_jobs: int | None = None) -> int:
    """Resolve a joblib-style job count against the available cores.

    Args:
        n_jobs: None or -1 for every core, a negative value to leave
            ``-n_jobs - 1`` cores free, or a positive count (capped at the
            core count).

    Returns:
        Worker count, never below one.
    """
    requested = N_JOBS if n_jobs is None else n_jobs
    n_cores = cpu_count() or 1
    if requested < 0:
        return max(1, n_cores + 1 + requested)
    return max(1, min(requested, n_cores))


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    n_jobs: int | None = None,
    backend: str | None = None,
    verbose: int | None = None,
) -> list[R]:
    """Apply ``func`` to every item and return the results in input order.

    The first exception raised by a call propagates to the caller.

    Example:
        >>> parallel_map(lambda x: x * 2, [1, 2, 3], n_jobs=2)
        [2, 4, 6]
    """
    workers = get_n_jobs(n_jobs)
    pending = list(items)
    if workers == 1 or len(pending) <= 1:
        return [func(item) for item in pending]

    runner = Parallel(
        n_jobs=workers,
        backend=backend or JOBLIB_BACKEND,
        verbose=JOBLIB_VERBOSITY if verbose is None else verbose,
    )
    return list(runner(delayed(func)(item) for item in pending))
