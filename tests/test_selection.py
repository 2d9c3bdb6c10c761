from __future__ import annotations

import numpy as np
import pytest

from ndbins.backends import SequentialBackend, ThreadPoolBackend
from ndbins.interpolation import Interpolation
from ndbins.quantile import quantile, quantiles
from ndbins.selection import parallel_sort, select_nth, split_chunks


def _random_samples(seed: int) -> list[np.ndarray]:
    rng = np.random.default_rng(seed)
    return [
        rng.normal(size=3001),
        rng.integers(0, 40, size=2500).astype(np.float64),  # heavy ties
        np.sort(rng.exponential(size=2048)),  # already sorted
    ]


@pytest.mark.parametrize("seed", range(4))
@pytest.mark.parametrize("workers", [2, 3, 4, 8])
def test_parallel_quantile_equals_sequential(seed: int, workers: int) -> None:
    backend = ThreadPoolBackend(workers)
    for values in _random_samples(seed):
        for q in (0.0, 0.01, 0.25, 0.5, 0.73, 0.99, 1.0):
            for interpolation in Interpolation:
                sequential = quantile(values, q, interpolation)
                parallel = quantile(
                    values, q, interpolation, backend=backend, min_chunk_size=64
                )
                assert parallel == sequential


@pytest.mark.parametrize("workers", [2, 5])
def test_select_nth_matches_sorted_order(workers: int) -> None:
    rng = np.random.default_rng(99)
    values = rng.normal(size=1000)
    expected = np.sort(values)
    backend = ThreadPoolBackend(workers)

    for rank in (0, 1, 499, 500, 998, 999):
        buffer = values.copy()
        assert select_nth(buffer, rank, backend, min_chunk_size=32) == expected[rank]


def test_select_nth_with_sequential_backend() -> None:
    values = np.array([5.0, 2.0, 9.0, 1.0, 7.0])
    assert select_nth(values.copy(), 2, SequentialBackend(), min_chunk_size=1) == 5.0


def test_select_nth_rejects_out_of_bounds_rank() -> None:
    with pytest.raises(IndexError):
        select_nth(np.ones(3), 3, SequentialBackend())


@pytest.mark.parametrize("workers", [2, 3, 7])
def test_parallel_sort_matches_numpy(workers: int) -> None:
    rng = np.random.default_rng(workers)
    values = rng.normal(size=1237)
    buffer = values.copy()

    parallel_sort(buffer, ThreadPoolBackend(workers), min_chunk_size=50)

    np.testing.assert_array_equal(buffer, np.sort(values))


def test_parallel_bulk_quantiles_equal_sequential() -> None:
    rng = np.random.default_rng(21)
    values = rng.normal(size=4000)
    qs = np.linspace(0.0, 1.0, 41)

    sequential = quantiles(values, qs)
    parallel = quantiles(values, qs, backend=ThreadPoolBackend(4), min_chunk_size=100)

    np.testing.assert_array_equal(parallel, sequential)


def test_split_chunks_respects_minimum_size() -> None:
    values = np.arange(100, dtype=np.float64)
    assert len(split_chunks(values, 8, 40)) == 2
    assert len(split_chunks(values, 8, 1000)) == 1
    assert sum(chunk.size for chunk in split_chunks(values, 3, 10)) == 100
