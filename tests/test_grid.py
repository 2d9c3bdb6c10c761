from __future__ import annotations

import numpy as np
import pytest

from ndbins.errors import BinCountOverflow, DegenerateRange, NonFinite, OutOfRange
from ndbins.grid import Bins, Edges, Grid
from ndbins.models import HistogramConfig
from ndbins.strategies import BinStrategy, EquiSpaced


def _grid_0_5_10() -> Grid:
    return Grid((Bins(Edges([0.0, 5.0, 10.0])), Bins(Edges([0.0, 5.0, 10.0]))))


def test_edges_are_sorted_and_deduplicated() -> None:
    edges = Edges([10.0, 0.0, 5.0, 5.0])
    assert list(edges) == [0.0, 5.0, 10.0]
    assert len(edges) == 3
    assert edges.n_bins == 2
    assert edges[1] == 5.0


def test_edges_are_read_only() -> None:
    edges = Edges([0.0, 1.0])
    with pytest.raises(ValueError):
        edges.values[0] = -1.0


def test_edges_reject_non_finite_values() -> None:
    with pytest.raises(NonFinite):
        Edges([0.0, np.nan, 1.0])
    with pytest.raises(NonFinite):
        Edges([0.0, np.inf])


def test_edges_need_two_distinct_values() -> None:
    with pytest.raises(ValueError, match="two distinct"):
        Edges([3.0, 3.0])


def test_equispaced_edges_hit_min_and_max_exactly() -> None:
    edges = Edges.equispaced(0.1, 0.7, 7)
    assert edges.first == 0.1
    assert edges.last == 0.7
    assert edges.n_bins == 7
    assert np.all(np.diff(edges.values) > 0.0)


def test_equispaced_rejects_too_narrow_range() -> None:
    with pytest.raises(DegenerateRange):
        Edges.equispaced(1e16, 1e16 + 2.0, 100)
    with pytest.raises(DegenerateRange):
        Edges.equispaced(1.0, 1.0, 3)


@pytest.mark.parametrize("seed", range(3))
def test_edges_from_strategy_cover_observed_range(seed: int) -> None:
    rng = np.random.default_rng(seed)
    values = rng.gamma(2.0, size=777)
    for strategy in [*BinStrategy, EquiSpaced(13)]:
        edges = Edges.from_strategy(values, strategy)
        assert edges.first == values.min()
        assert edges.last == values.max()
        assert np.all(np.diff(edges.values) > 0.0)


def test_edges_from_strategy_sturges_example() -> None:
    edges = Edges.from_strategy(np.arange(1.0, 11.0), BinStrategy.STURGES)
    assert edges.n_bins == 5
    np.testing.assert_allclose(edges.values, np.linspace(1.0, 10.0, 6))


def test_edges_from_strategy_respects_configured_cap() -> None:
    with pytest.raises(BinCountOverflow):
        Edges.from_strategy(
            np.arange(10_000.0), BinStrategy.SQRT, HistogramConfig(max_n_bins=10)
        )


def test_bins_index_of_uses_left_closed_bins() -> None:
    bins = Bins(Edges([0.0, 5.0, 10.0]))
    assert len(bins) == 2
    assert bins.index_of(0.0) == 0
    assert bins.index_of(4.999) == 0
    assert bins.index_of(5.0) == 1
    # The last bin is closed on the right.
    assert bins.index_of(10.0) == 1


@pytest.mark.parametrize("value", [-0.1, 10.5, float("nan"), float("inf")])
def test_bins_index_of_rejects_values_outside_range(value: float) -> None:
    bins = Bins(Edges([0.0, 5.0, 10.0]))
    with pytest.raises(OutOfRange):
        bins.index_of(value)


def test_bins_ranges() -> None:
    bins = Bins(Edges([0.0, 1.0, 4.0]))
    assert bins.range_of(2.5) == (1.0, 4.0)
    assert bins.bin_range(0) == (0.0, 1.0)
    with pytest.raises(IndexError):
        bins.bin_range(2)


def test_bins_vectorised_lookup_matches_scalar() -> None:
    bins = Bins(Edges.equispaced(-1.0, 1.0, 8))
    points = np.array([-1.0, -0.3, 0.0, 0.99, 1.0, 1.5])
    indices, in_range = bins.indices_of(points)
    np.testing.assert_array_equal(in_range, [True, True, True, True, True, False])
    for point, index in zip(points[in_range], indices[in_range], strict=True):
        assert bins.index_of(float(point)) == index


def test_grid_index_of_example() -> None:
    grid = _grid_0_5_10()
    assert grid.index_of((3.0, 7.0)) == (0, 1)
    with pytest.raises(OutOfRange):
        grid.index_of((11.0, 2.0))


def test_grid_shape_and_cells() -> None:
    grid = Grid(
        (Bins(Edges([0.0, 1.0, 2.0, 3.0])), Bins(Edges([0.0, 1.0])), Bins(Edges([0, 2, 4])))
    )
    assert grid.ndim == 3
    assert grid.shape == (3, 1, 2)
    assert grid.n_cells == 6
    assert grid.range_of((2, 0, 1)) == ((2.0, 3.0), (0.0, 1.0), (2.0, 4.0))


def test_grid_rejects_dimension_mismatch() -> None:
    grid = _grid_0_5_10()
    with pytest.raises(ValueError, match="coordinates"):
        grid.index_of((1.0, 2.0, 3.0))
    with pytest.raises(ValueError, match="entries"):
        grid.range_of((0,))


def test_grid_cell_cap() -> None:
    bins = Bins(Edges.equispaced(0.0, 1.0, 300))
    with pytest.raises(BinCountOverflow):
        Grid((bins, bins, bins), max_cells=1000)
    with pytest.raises(ValueError):
        Grid(())


def test_grid_from_samples_per_dimension_strategies() -> None:
    rng = np.random.default_rng(1)
    samples = rng.normal(size=(100, 2))

    grid = Grid.from_samples(samples, [EquiSpaced(4), 3])

    assert grid.shape == (4, 3)
    for dim, bins in enumerate(grid.projections):
        assert bins.edges.first == samples[:, dim].min()
        assert bins.edges.last == samples[:, dim].max()


def test_grid_from_samples_single_strategy_for_all_dimensions() -> None:
    samples = np.column_stack([np.arange(1.0, 11.0), np.arange(10.0, 0.0, -1.0)])
    grid = Grid.from_samples(samples, "sturges")
    assert grid.shape == (5, 5)


def test_grid_from_samples_strategy_count_mismatch() -> None:
    with pytest.raises(ValueError, match="strategies"):
        Grid.from_samples(np.ones((5, 2)) * np.arange(5.0)[:, None], [3])


def test_grid_from_samples_cell_cap() -> None:
    rng = np.random.default_rng(2)
    samples = rng.normal(size=(50, 3))
    with pytest.raises(BinCountOverflow):
        Grid.from_samples(samples, 20, HistogramConfig(max_cells=1000))


def test_grid_flat_indices() -> None:
    grid = _grid_0_5_10()
    rows = np.array([[3.0, 7.0], [11.0, 2.0], [10.0, 10.0]])
    flat, in_range = grid.flat_indices(rows)
    np.testing.assert_array_equal(in_range, [True, False, True])
    np.testing.assert_array_equal(flat, [1, 3])


def test_grid_equality() -> None:
    assert _grid_0_5_10() == _grid_0_5_10()
    assert _grid_0_5_10() != Grid((Bins(Edges([0.0, 10.0])), Bins(Edges([0.0, 10.0]))))
