from __future__ import annotations

import logging

from ndbins.backends.sequential import SequentialBackend
from ndbins.backends.thread_pool import ThreadPoolBackend
from ndbins.contracts import ParallelBackend
from ndbins.memory import compute_max_workers

logger = logging.getLogger(__name__)


def resolve_backend(
    num_workers: int | None, *, bytes_per_worker: int | None = None
) -> ParallelBackend:
    """Map a ``num_workers`` setting onto a backend.

    ``None`` or ``1`` runs sequentially, ``0`` auto-detects a safe worker
    count and any other value is used as-is.
    """
    if num_workers is None or num_workers == 1:
        return SequentialBackend()
    if num_workers < 0:
        raise ValueError("num_workers must not be negative.")
    if num_workers == 0:
        if bytes_per_worker is None:
            workers = compute_max_workers()
        else:
            workers = compute_max_workers(bytes_per_worker=bytes_per_worker)
        logger.debug("Auto-detected %d workers.", workers)
        if workers == 1:
            return SequentialBackend()
        return ThreadPoolBackend(workers)
    return ThreadPoolBackend(num_workers)
