from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ndbins.errors import BinCountOverflow, DegenerateRange, NonFinite, OutOfRange
from ndbins.models import DEFAULT_MAX_CELLS, HistogramConfig
from ndbins.stats import summarize_dimension
from ndbins.strategies import (
    BinStrategy,
    EquiSpaced,
    StrategySpec,
    coerce_strategy,
    n_bins_for,
    requires_quartiles,
)
from ndbins.tensor_utils import as_float_array, as_sample_matrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Edges:
    """Strictly increasing, finite bin boundaries of one dimension.

    The input is sorted and de-duplicated, so ``Edges([10, 0, 5, 5])`` has
    edges ``0, 5, 10`` and two bins.  The stored array is read-only.
    """

    values: NDArray[np.float64]

    def __post_init__(self) -> None:
        raw = as_float_array(self.values).ravel()
        if not np.all(np.isfinite(raw)):
            logger.error("Edges contain NaN or Inf values.")
            raise NonFinite("Bin edges must be finite.")
        edges = np.unique(raw)
        if edges.size < 2:
            raise ValueError("At least two distinct edges are needed.")
        edges.setflags(write=False)
        object.__setattr__(self, "values", edges)

    @classmethod
    def equispaced(cls, min_value: float, max_value: float, n_bins: int) -> Edges:
        """``n_bins`` equal-width bins over ``[min_value, max_value]``."""
        if n_bins < 1:
            raise ValueError("n_bins must be positive.")
        if not min_value < max_value:
            raise DegenerateRange(f"Empty interval [{min_value}, {max_value}].")
        edges = np.linspace(min_value, max_value, n_bins + 1, dtype=np.float64)
        edges[0] = min_value
        edges[-1] = max_value
        if np.any(np.diff(edges) <= 0.0):
            logger.error(
                "Range [%s, %s] is too narrow for %d distinct bins.",
                min_value,
                max_value,
                n_bins,
            )
            raise DegenerateRange(
                f"Range [{min_value}, {max_value}] cannot hold {n_bins} bins."
            )
        return cls(edges)

    @classmethod
    def from_strategy(
        cls,
        values: ArrayLike | Any,
        strategy: StrategySpec = BinStrategy.AUTO,
        config: HistogramConfig | None = None,
    ) -> Edges:
        """Fit equal-width edges to *values* with the bin count *strategy* picks."""
        config = config or HistogramConfig()
        spec = coerce_strategy(strategy)
        stats = summarize_dimension(values, with_quartiles=requires_quartiles(spec))
        n_bins = n_bins_for(spec, stats, config.max_n_bins)
        return cls.equispaced(stats.min, stats.max, n_bins)

    @property
    def n_bins(self) -> int:
        return int(self.values.size) - 1

    @property
    def first(self) -> float:
        return float(self.values[0])

    @property
    def last(self) -> float:
        return float(self.values[-1])

    def __len__(self) -> int:
        return int(self.values.size)

    def __getitem__(self, index: int) -> float:
        return float(self.values[index])

    def __iter__(self) -> Iterator[float]:
        return iter(self.values.tolist())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Edges):
            return NotImplemented
        return bool(np.array_equal(self.values, other.values))

    def __repr__(self) -> str:
        return f"Edges({self.values.tolist()!r})"

    def locate(self, values: ArrayLike) -> tuple[NDArray[np.intp], NDArray[np.bool_]]:
        """Vectorised bin lookup.

        Returns the bin index of every value and a mask of values inside
        ``[first, last]``.  The last bin is closed on the right, so ``last``
        itself maps to bin ``n_bins - 1``.  Indices of masked-out values are
        meaningless.
        """
        points = np.asarray(values, dtype=np.float64)
        in_range = (points >= self.values[0]) & (points <= self.values[-1])
        indices = np.searchsorted(self.values, points, side="right") - 1
        indices = np.minimum(indices, self.n_bins - 1)
        return indices, in_range

    def indices_of(self, value: float) -> tuple[int, int]:
        """Indices of the left and right edge enclosing *value*."""
        indices, in_range = self.locate(value)
        if not bool(in_range):
            logger.debug("Value %s outside [%s, %s].", value, self.first, self.last)
            raise OutOfRange(f"{value} is outside [{self.first}, {self.last}].")
        left = int(indices)
        return left, left + 1


@dataclass(frozen=True, eq=False)
class Bins:
    """Edges of one dimension plus value-to-bin lookup."""

    edges: Edges

    @classmethod
    def from_strategy(
        cls,
        values: ArrayLike | Any,
        strategy: StrategySpec = BinStrategy.AUTO,
        config: HistogramConfig | None = None,
    ) -> Bins:
        return cls(Edges.from_strategy(values, strategy, config))

    def __len__(self) -> int:
        return self.edges.n_bins

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bins):
            return NotImplemented
        return self.edges == other.edges

    def __repr__(self) -> str:
        return f"Bins({self.edges!r})"

    def index_of(self, value: float) -> int:
        """Index of the bin holding *value*, by binary search over the edges.

        Values outside ``[min, max]`` raise :class:`OutOfRange`; they are
        never clipped into the outer bins.
        """
        return self.edges.indices_of(value)[0]

    def indices_of(
        self, values: ArrayLike
    ) -> tuple[NDArray[np.intp], NDArray[np.bool_]]:
        return self.edges.locate(values)

    def range_of(self, value: float) -> tuple[float, float]:
        left, right = self.edges.indices_of(value)
        return self.edges[left], self.edges[right]

    def bin_range(self, index: int) -> tuple[float, float]:
        if not 0 <= index < len(self):
            raise IndexError(f"bin {index} out of bounds for {len(self)} bins.")
        return self.edges[index], self.edges[index + 1]


@dataclass(frozen=True, eq=False)
class Grid:
    """Cartesian product of per-dimension :class:`Bins`."""

    projections: tuple[Bins, ...]
    max_cells: int = DEFAULT_MAX_CELLS

    def __post_init__(self) -> None:
        projections = tuple(self.projections)
        if not projections:
            raise ValueError("A grid needs at least one dimension.")
        object.__setattr__(self, "projections", projections)
        n_cells = math.prod(len(bins) for bins in projections)
        if n_cells > self.max_cells:
            logger.error(
                "Grid of shape %s has %d cells, more than %d.",
                self.shape,
                n_cells,
                self.max_cells,
            )
            raise BinCountOverflow(n_cells, self.max_cells, what="cells")

    @classmethod
    def from_samples(
        cls,
        samples: ArrayLike | Any,
        strategies: StrategySpec | Sequence[StrategySpec] = BinStrategy.AUTO,
        config: HistogramConfig | None = None,
    ) -> Grid:
        """Fit one :class:`Bins` per column of a ``(n_samples, n_dims)`` array.

        *strategies* is either a single strategy applied to every dimension
        or one strategy per dimension.
        """
        config = config or HistogramConfig()
        matrix = as_sample_matrix(samples)
        specs = _per_dimension(strategies, matrix.shape[1])
        projections = tuple(
            Bins.from_strategy(matrix[:, dim], spec, config)
            for dim, spec in enumerate(specs)
        )
        grid = cls(projections, max_cells=config.max_cells)
        logger.debug("Built grid of shape %s from %d samples.", grid.shape, len(matrix))
        return grid

    @property
    def ndim(self) -> int:
        return len(self.projections)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(len(bins) for bins in self.projections)

    @property
    def n_cells(self) -> int:
        return math.prod(self.shape)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.projections == other.projections

    def index_of(self, point: ArrayLike) -> tuple[int, ...]:
        """Multi-index of the cell holding *point*."""
        coords = np.asarray(point, dtype=np.float64).ravel()
        if coords.size != self.ndim:
            raise ValueError(
                f"Point has {coords.size} coordinates, grid has {self.ndim} dimensions."
            )
        return tuple(
            bins.index_of(float(value))
            for bins, value in zip(self.projections, coords, strict=True)
        )

    def range_of(self, index: Sequence[int]) -> tuple[tuple[float, float], ...]:
        """Per-dimension ``(low, high)`` bounds of the cell at *index*."""
        if len(index) != self.ndim:
            raise ValueError(
                f"Index has {len(index)} entries, grid has {self.ndim} dimensions."
            )
        return tuple(
            bins.bin_range(int(i))
            for bins, i in zip(self.projections, index, strict=True)
        )

    def flat_indices(
        self, rows: NDArray[np.float64]
    ) -> tuple[NDArray[np.intp], NDArray[np.bool_]]:
        """Flat (C-order) cell index of every in-range row, plus the row mask."""
        if rows.ndim != 2 or rows.shape[1] != self.ndim:
            raise ValueError(
                f"Expected rows of shape (n, {self.ndim}), got {rows.shape}."
            )
        in_range = np.ones(rows.shape[0], dtype=bool)
        per_dim: list[NDArray[np.intp]] = []
        for dim, bins in enumerate(self.projections):
            indices, mask = bins.indices_of(rows[:, dim])
            in_range &= mask
            per_dim.append(indices)
        kept = tuple(indices[in_range] for indices in per_dim)
        flat = np.ravel_multi_index(kept, self.shape)
        return flat, in_range


def _per_dimension(
    strategies: StrategySpec | Sequence[StrategySpec], n_dims: int
) -> list[BinStrategy | EquiSpaced]:
    if isinstance(strategies, (BinStrategy, EquiSpaced, int, str, np.integer)):
        return [coerce_strategy(strategies)] * n_dims
    specs = [coerce_strategy(spec) for spec in strategies]
    if len(specs) != n_dims:
        raise ValueError(
            f"Got {len(specs)} strategies for {n_dims} dimensions."
        )
    return specs
