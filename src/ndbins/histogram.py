from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ndbins.backends import resolve_backend
from ndbins.contracts import ParallelBackend
from ndbins.errors import EmptySample, NonFinite, OutOfRange
from ndbins.grid import Grid
from ndbins.memory import partial_counts_bytes
from ndbins.models import HistogramConfig
from ndbins.strategies import BinStrategy, StrategySpec
from ndbins.tensor_utils import as_float_array, as_sample_matrix

logger = logging.getLogger(__name__)


class Histogram:
    """Dense per-cell counts over a :class:`Grid`."""

    def __init__(self, grid: Grid) -> None:
        self._grid = grid
        self._counts: NDArray[np.int64] = np.zeros(grid.shape, dtype=np.int64)

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def ndim(self) -> int:
        return self._grid.ndim

    @property
    def counts(self) -> NDArray[np.int64]:
        """Read-only view of the count array, shaped like the grid."""
        view = self._counts.view()
        view.flags.writeable = False
        return view

    @property
    def total(self) -> int:
        return int(self._counts.sum())

    def add_sample(self, point: ArrayLike) -> tuple[int, ...]:
        """Count one sample and return the cell it landed in.

        Raises :class:`OutOfRange` when any coordinate falls outside its
        dimension; the counts are left unchanged.
        """
        index = self._grid.index_of(point)
        self._counts[index] += 1
        return index

    def add_observations(
        self,
        rows: ArrayLike | Any,
        *,
        skip_out_of_range: bool = False,
        backend: ParallelBackend | None = None,
        min_chunk_size: int = 65_536,
    ) -> int:
        """Count every row of a ``(n_samples, ndim)`` array.

        Every row is located and the batch validated before any partial
        count array is allocated.  By default a single out-of-range row
        raises :class:`OutOfRange` and nothing is counted; with
        *skip_out_of_range* such rows are dropped instead.  Returns the number
        of rows counted.

        With a multi-worker *backend* the rows are split into contiguous
        partitions, each located and counted into its own partial array, and
        the partials are summed once every worker is done.
        """
        matrix = as_float_array(rows)
        if matrix.ndim == 1 and self.ndim == 1:
            matrix = matrix.reshape(-1, 1)
        if matrix.ndim != 2 or matrix.shape[1] != self.ndim:
            raise ValueError(
                f"Expected rows of shape (n, {self.ndim}), got {matrix.shape}."
            )
        n_rows = int(matrix.shape[0])
        if n_rows == 0:
            return 0

        parallel = (
            backend
            if backend is not None
            and backend.num_workers > 1
            and n_rows > min_chunk_size
            else None
        )
        if parallel is not None:
            parts = min(parallel.num_workers, -(-n_rows // min_chunk_size))
            chunks = np.array_split(matrix, parts)
            logger.debug("Counting %d rows in %d partitions.", n_rows, parts)
            located = parallel.map(self._grid.flat_indices, chunks)
        else:
            located = [self._grid.flat_indices(matrix)]

        accepted = sum(int(np.count_nonzero(in_range)) for _, in_range in located)
        rejected = n_rows - accepted
        if rejected and not skip_out_of_range:
            logger.debug("Rejecting batch: %d of %d rows out of range.", rejected, n_rows)
            raise OutOfRange(f"{rejected} of {n_rows} rows fall outside the grid.")

        flats = [flat for flat, _ in located]
        if parallel is None:
            partials = [self._count_cells(flat) for flat in flats]
        else:
            partials = parallel.map(self._count_cells, flats)
        merged = partials[0]
        for partial in partials[1:]:
            merged = merged + partial
        self._counts += merged.reshape(self._grid.shape)
        if rejected:
            logger.debug("Skipped %d out-of-range rows.", rejected)
        return accepted

    def _count_cells(self, flat: NDArray[np.intp]) -> NDArray[np.int64]:
        return np.bincount(flat, minlength=self._grid.n_cells).astype(np.int64)

    def merge(self, other: Histogram) -> None:
        """Add the counts of *other*, which must share this grid."""
        if other.grid != self._grid:
            raise ValueError("Histograms over different grids cannot be merged.")
        self._counts += other._counts

    def __repr__(self) -> str:
        return f"Histogram(shape={self._grid.shape}, total={self.total})"


def build_histogram(
    samples: ArrayLike | Any,
    strategies: StrategySpec | Sequence[StrategySpec] = BinStrategy.AUTO,
    config: HistogramConfig | None = None,
) -> Histogram:
    """Fit a grid to *samples* and count every sample into it.

    *samples* is a ``(n_samples, n_dims)`` array (a 1-D array is one
    dimension).  *strategies* is one strategy for all dimensions or one per
    dimension.  Either a complete histogram is returned or an error is
    raised; no partially counted histogram escapes.
    """
    config = config or HistogramConfig()
    matrix = as_sample_matrix(samples)
    if matrix.shape[0] == 0:
        logger.error("build_histogram called without samples.")
        raise EmptySample("Cannot build a histogram from zero samples.")
    if not np.all(np.isfinite(matrix)):
        logger.error("Samples contain NaN or Inf values.")
        raise NonFinite("Samples contain NaN or infinite values.")

    grid = Grid.from_samples(matrix, strategies, config)
    chunk_rows = min(config.min_chunk_size, int(matrix.shape[0]))
    backend = resolve_backend(
        config.num_workers,
        bytes_per_worker=partial_counts_bytes(grid.n_cells, chunk_rows, grid.ndim),
    )
    histogram = Histogram(grid)
    histogram.add_observations(
        matrix, backend=backend, min_chunk_size=config.min_chunk_size
    )
    logger.debug("Built %r with %d workers.", histogram, backend.num_workers)
    return histogram
