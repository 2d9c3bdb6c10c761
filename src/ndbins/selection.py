"""Parallel order-statistic selection and sorting over numpy buffers.

Every routine here returns exactly what its sequential numpy counterpart
would: selection only depends on the order of values, never on how the
buffer was split or which worker finished first.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from ndbins.contracts import ParallelBackend

logger = logging.getLogger(__name__)


def split_chunks(
    data: NDArray[np.float64], num_workers: int, min_chunk_size: int
) -> list[NDArray[np.float64]]:
    """Split *data* into at most *num_workers* contiguous views."""
    count = max(1, min(num_workers, data.size // max(1, min_chunk_size)))
    return [chunk for chunk in np.array_split(data, count) if chunk.size]


def _chunk_median(chunk: NDArray[np.float64]) -> float:
    middle = (chunk.size - 1) // 2
    chunk.partition(middle)
    return float(chunk[middle])


def select_nth(
    data: NDArray[np.float64],
    rank: int,
    backend: ParallelBackend,
    *,
    min_chunk_size: int = 65_536,
) -> float:
    """Return the value of rank *rank* (0-based) in *data*.

    Each round picks the median of the chunk medians as pivot, has every
    worker count its elements below and equal to the pivot, then keeps only
    the side that still contains *rank*.  Once the candidates fit into one
    chunk the search finishes with ``partition``.  Chunks of the first round
    are views into *data*, so the buffer may be reordered.
    """
    if not 0 <= rank < data.size:
        raise IndexError(f"rank {rank} out of bounds for {data.size} values.")

    chunks = split_chunks(data, backend.num_workers, min_chunk_size)
    remaining = data.size
    rounds = 0
    while remaining > min_chunk_size and len(chunks) > 1:
        rounds += 1
        medians = sorted(backend.map(_chunk_median, chunks))
        pivot = medians[(len(medians) - 1) // 2]

        def _count(chunk: NDArray[np.float64], pivot: float = pivot) -> tuple[int, int]:
            return (
                int(np.count_nonzero(chunk < pivot)),
                int(np.count_nonzero(chunk == pivot)),
            )

        tallies = backend.map(_count, chunks)
        below = sum(tally[0] for tally in tallies)
        equal = sum(tally[1] for tally in tallies)

        if rank < below:
            chunks = backend.map(lambda chunk, p=pivot: chunk[chunk < p], chunks)
            remaining = below
        elif rank < below + equal:
            logger.debug("Selected rank %d after %d rounds.", rank, rounds)
            return pivot
        else:
            chunks = backend.map(lambda chunk, p=pivot: chunk[chunk > p], chunks)
            rank -= below + equal
            remaining -= below + equal
        chunks = [chunk for chunk in chunks if chunk.size]

    rest = chunks[0] if len(chunks) == 1 else np.concatenate(chunks)
    rest.partition(rank)
    logger.debug("Selected rank after %d rounds and a final partition.", rounds)
    return float(rest[rank])


def select_many(
    data: NDArray[np.float64],
    ranks: list[int],
    backend: ParallelBackend,
    *,
    min_chunk_size: int = 65_536,
) -> dict[int, float]:
    return {
        rank: select_nth(data, rank, backend, min_chunk_size=min_chunk_size)
        for rank in sorted(set(ranks))
    }


def _merge_sorted(
    pair: tuple[NDArray[np.float64], NDArray[np.float64]],
) -> NDArray[np.float64]:
    left, right = pair
    if not right.size:
        return left
    merged = np.empty(left.size + right.size, dtype=np.result_type(left, right))
    # Each right value lands after every left value it is not smaller than.
    right_slots = np.searchsorted(left, right, side="right") + np.arange(right.size)
    left_mask = np.ones(merged.size, dtype=bool)
    left_mask[right_slots] = False
    merged[right_slots] = right
    merged[left_mask] = left
    return merged


def parallel_sort(
    data: NDArray[np.float64],
    backend: ParallelBackend,
    *,
    min_chunk_size: int = 65_536,
) -> None:
    """Sort *data* in place by sorting chunks in parallel and merging pairwise."""
    chunks = split_chunks(data, backend.num_workers, min_chunk_size)
    if len(chunks) <= 1:
        data.sort()
        return

    runs: list[NDArray[np.float64]] = backend.map(np.sort, chunks)
    while len(runs) > 1:
        pairs = [
            (runs[i], runs[i + 1] if i + 1 < len(runs) else runs[i][:0])
            for i in range(0, len(runs), 2)
        ]
        runs = backend.map(_merge_sorted, pairs)
    data[:] = runs[0]
