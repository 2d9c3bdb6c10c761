from __future__ import annotations

import numpy as np
import pytest

from ndbins.errors import EmptySample, NonFinite
from ndbins.stats import SPREAD_FRACTIONS, summarize_dimension


def _skewness(values: np.ndarray) -> float:
    centered = values - values.mean()
    m2 = np.mean(centered**2)
    m3 = np.mean(centered**3)
    return float(m3 / m2**1.5)


@pytest.mark.parametrize("seed", range(3))
def test_moments_match_numpy(seed: int) -> None:
    rng = np.random.default_rng(seed)
    values = rng.gamma(2.0, size=501)

    stats = summarize_dimension(values)

    assert stats.count == 501
    assert stats.min == values.min()
    assert stats.max == values.max()
    assert stats.mean == pytest.approx(values.mean(), rel=1e-12)
    assert stats.std == pytest.approx(values.std(ddof=1), rel=1e-12)
    assert stats.skewness == pytest.approx(_skewness(values), rel=1e-9)
    assert stats.first_quartile is None
    assert stats.iqr is None


def test_quartiles_use_nearest_rank() -> None:
    rng = np.random.default_rng(9)
    values = rng.normal(size=101)

    stats = summarize_dimension(values, with_quartiles=True)

    # Ranks 25 and 75 are exact here, so every method agrees.
    assert stats.first_quartile == np.quantile(values, 0.25, method="lower")
    assert stats.third_quartile == np.quantile(values, 0.75, method="lower")


def test_widened_spreads_cover_narrower_tails() -> None:
    values = np.arange(1025.0)
    stats = summarize_dimension(values, with_quartiles=True)

    fractions = [at for at, _ in stats.widened_iqrs]
    assert fractions == list(SPREAD_FRACTIONS[1:])
    spreads = [iqr for _, iqr in stats.widened_iqrs]
    assert spreads == sorted(spreads)
    assert spreads[0] > stats.iqr
    # Ranks of 1/1024 in 1025 values are exactly 1 and 1023.
    assert spreads[-1] == 1022.0


def test_input_is_left_untouched() -> None:
    values = np.array([5.0, 3.0, 9.0, 1.0, 7.0])
    snapshot = values.copy()
    summarize_dimension(values, with_quartiles=True)
    np.testing.assert_array_equal(values, snapshot)


def test_single_value_has_zero_spread() -> None:
    stats = summarize_dimension([4.0], with_quartiles=True)
    assert stats.std == 0.0
    assert stats.skewness == 0.0
    assert stats.range == 0.0
    assert stats.iqr == 0.0


def test_constant_values_have_zero_skewness() -> None:
    assert summarize_dimension([2.0] * 9).skewness == 0.0


def test_rejects_bad_input() -> None:
    with pytest.raises(EmptySample):
        summarize_dimension(np.array([]))
    with pytest.raises(NonFinite):
        summarize_dimension([1.0, np.nan])


def test_range_overflow_is_rejected() -> None:
    with pytest.raises(NonFinite, match="overflows"):
        summarize_dimension([-1e308, 0.0, 1e308])


def test_huge_but_finite_values_keep_finite_moments() -> None:
    values = np.linspace(-1e200, 1e200, 101)
    unit = np.linspace(-1.0, 1.0, 101)

    stats = summarize_dimension(values)

    assert np.isfinite(stats.std)
    assert stats.std == pytest.approx(1e200 * unit.std(ddof=1), rel=1e-12)
    assert stats.skewness == pytest.approx(0.0, abs=1e-9)
