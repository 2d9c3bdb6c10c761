from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

_FALLBACK_MEMORY_BYTES = 2 * 1024**3


def _psutil_available() -> int | None:
    try:
        import psutil  # type: ignore[import-untyped]
    except ImportError:
        return None
    return int(psutil.virtual_memory().available)


def _meminfo_available(path: str = "/proc/meminfo") -> int | None:
    try:
        with open(path) as meminfo:
            for line in meminfo:
                key, _, rest = line.partition(":")
                if key == "MemAvailable":
                    return int(rest.split()[0]) * 1024
    except OSError:
        return None
    return None


def available_memory_bytes() -> int:
    """Bytes of memory free for partial count arrays.

    Asks ``psutil`` (the ``memory`` extra) when installed, then
    ``/proc/meminfo``, and otherwise assumes 2 GiB.
    """
    for probe in (_psutil_available, _meminfo_available):
        found = probe()
        if found is not None:
            return found
    logger.debug(
        "Could not read available memory, assuming %d bytes.", _FALLBACK_MEMORY_BYTES
    )
    return _FALLBACK_MEMORY_BYTES


_AUTO_MAX_WORKERS = 8
"""Hard ceiling for auto-detection; partial count arrays scale with workers."""


def partial_counts_bytes(n_cells: int, chunk_rows: int, ndim: int) -> int:
    """Memory one counting worker holds: its partial counts plus index buffers."""
    return 8 * n_cells + 8 * chunk_rows * (ndim + 2)


def compute_max_workers(
    bytes_per_worker: int = 64 * 1024 * 1024,
    memory_fraction: float = 0.25,
    max_workers: int | None = None,
) -> int:
    """Compute a safe number of parallel workers.

    Each worker owns one partial result in flight, so the memory budget
    is ``available * memory_fraction / bytes_per_worker``.  The result
    is clamped to ``[1, min(cpu_count, _AUTO_MAX_WORKERS)]`` and
    optionally capped by *max_workers*.
    """
    mem = available_memory_bytes()
    if bytes_per_worker > 0:
        budget = int(mem * memory_fraction / bytes_per_worker)
    else:
        budget = 1
    cpu_count = os.cpu_count() or 1
    workers = max(1, min(budget, cpu_count, _AUTO_MAX_WORKERS))
    if max_workers is not None:
        workers = min(workers, max(1, max_workers))
    return workers
