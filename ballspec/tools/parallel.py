"""
Tools for running mode-parallel work.

"""

from concurrent.futures import ThreadPoolExecutor

from .config import config

import logging
logger = logging.getLogger(__name__.split('.')[-1])

WORKERS_DEFAULT = config['parallelism'].getint('WORKERS')


def resolve_workers(workers=None):
    """Resolve worker count, defaulting to the configured value."""
    if workers is None:
        workers = WORKERS_DEFAULT
    workers = int(workers)
    if workers < 1:
        raise ValueError("Number of workers must be positive.")
    return workers


def map_modes(function, items, workers=None):
    """
    Apply a function to independent items, optionally in a thread pool.

    Results are returned in the order of `items` once every item has finished,
    so callers can assemble outputs after the implicit join.

    Parameters
    ----------
    function : callable
        Function of a single item.
    items : iterable
        Independent work items (e.g. spherical-harmonic degrees).
    workers : int, optional
        Number of worker threads. Default: [parallelism] WORKERS.

    """
    items = list(items)
    workers = resolve_workers(workers)
    if workers == 1 or len(items) <= 1:
        return [function(item) for item in items]
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        return list(executor.map(function, items))

