"""Heuristics deriving a bin count from the statistics of one dimension.

The set of strategies is closed: named heuristics are members of
:class:`BinStrategy`, a fixed count is :class:`EquiSpaced` (or a plain
``int``).  Formulas follow the NumPy ``histogram_bin_edges`` estimators:

- ``SQRT``: ``ceil(sqrt(n))``, used by Excel and friends for its simplicity.
- ``RICE``: ``ceil(2 * n ** (1/3))``; ignores variability, tends to
  overestimate.
- ``STURGES``: ``ceil(log2(n) + 1)``; R's default, assumes normal data and
  underestimates for large non-normal samples.
- ``DOANE``: Sturges plus a skewness correction for non-normal data.
- ``SCOTT``: bin width ``3.49 * std * n ** (-1/3)``.
- ``FREEDMAN_DIACONIS``: bin width ``2 * IQR * n ** (-1/3)``; robust to
  outliers.  When the IQR is zero or implies more than ``max_n_bins`` bins,
  ever wider improper IQRs are tried before falling back to Scott's rule.
- ``AUTO``: the larger of Sturges and Freedman-Diaconis.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np

from ndbins.errors import BinCountOverflow, DegenerateRange, EmptySample
from ndbins.models import DEFAULT_MAX_N_BINS, DimensionStats

logger = logging.getLogger(__name__)


class BinStrategy(str, Enum):
    AUTO = "auto"
    FREEDMAN_DIACONIS = "fd"
    SCOTT = "scott"
    RICE = "rice"
    STURGES = "sturges"
    DOANE = "doane"
    SQRT = "sqrt"


@dataclass(frozen=True)
class EquiSpaced:
    """A fixed number of equal-width bins."""

    n_bins: int

    def __post_init__(self) -> None:
        if isinstance(self.n_bins, bool) or not isinstance(self.n_bins, int):
            raise TypeError("n_bins must be an int.")
        if self.n_bins < 1:
            raise ValueError("n_bins must be positive.")


StrategySpec = Union[BinStrategy, EquiSpaced, int, str]


def coerce_strategy(spec: StrategySpec) -> BinStrategy | EquiSpaced:
    """Normalise a strategy name, enum member, count or :class:`EquiSpaced`."""
    if isinstance(spec, (BinStrategy, EquiSpaced)):
        return spec
    if isinstance(spec, bool):
        raise TypeError("A bool is not a bin strategy.")
    if isinstance(spec, (int, np.integer)):
        return EquiSpaced(int(spec))
    if isinstance(spec, str):
        try:
            return BinStrategy(spec.lower())
        except ValueError:
            raise ValueError(
                f"Unknown bin strategy {spec!r}; expected one of "
                f"{', '.join(member.value for member in BinStrategy)}."
            ) from None
    raise TypeError(f"Unsupported bin strategy {spec!r}.")


def requires_quartiles(spec: StrategySpec) -> bool:
    strategy = coerce_strategy(spec)
    return strategy in (BinStrategy.AUTO, BinStrategy.FREEDMAN_DIACONIS)


def _bins_for_width(stats: DimensionStats, width: float) -> int | None:
    """Bins of *width* needed to cover the range; ``None`` for unusable widths."""
    if not width > 0.0:
        return None
    ratio = stats.range / width
    if not math.isfinite(ratio):
        return None
    return max(1, math.ceil(ratio))


def _sqrt(n: int) -> int:
    return math.ceil(math.sqrt(n))


def _rice(n: int) -> int:
    return math.ceil(2.0 * float(np.cbrt(n)))


def _sturges(n: int) -> int:
    return math.ceil(math.log2(n) + 1.0)


def _doane(stats: DimensionStats) -> int:
    n = stats.count
    bins = _sturges(n)
    if n <= 2:
        return bins
    sigma_g1 = math.sqrt(6.0 * (n - 2) / ((n + 1.0) * (n + 3.0)))
    return bins + math.ceil(math.log2(1.0 + abs(stats.skewness) / sigma_g1))


def _scott(stats: DimensionStats) -> int:
    width = 3.49 * stats.std / float(np.cbrt(stats.count))
    bins = _bins_for_width(stats, width)
    if bins is None:
        logger.error("Scott's rule found no usable bin width (std=%s).", stats.std)
        raise DegenerateRange(
            f"Standard deviation {stats.std} is zero or non-finite; "
            "Scott's rule has no usable bin width."
        )
    return bins


def _freedman_diaconis(stats: DimensionStats, max_n_bins: int) -> int:
    if stats.iqr is None:
        raise ValueError(
            "Freedman-Diaconis needs quartiles; summarize with with_quartiles=True."
        )
    n_cbrt = float(np.cbrt(stats.count))
    spreads = [(0.25, stats.iqr), *stats.widened_iqrs]
    for at, iqr in spreads:
        bins = _bins_for_width(stats, iqr / ((1.0 - 2.0 * at) * n_cbrt))
        if bins is None or bins > max_n_bins:
            logger.debug(
                "Spread at=%s gives iqr=%.6f, unusable for %d values.",
                at,
                iqr,
                stats.count,
            )
            continue
        return bins

    logger.debug("IQR is degenerate, falling back to Scott's rule.")
    bins = _scott(stats)
    if bins > max_n_bins:
        raise BinCountOverflow(bins, max_n_bins)
    return bins


def n_bins_for(
    spec: StrategySpec,
    stats: DimensionStats,
    max_n_bins: int = DEFAULT_MAX_N_BINS,
) -> int:
    """Number of bins *spec* prescribes for a dimension summarised by *stats*.

    Raises :class:`EmptySample` for ``count == 0``, :class:`DegenerateRange`
    for zero spread and :class:`BinCountOverflow` when the result exceeds
    *max_n_bins*.
    """
    strategy = coerce_strategy(spec)
    n = stats.count
    if n == 0:
        logger.error("Cannot derive bins from an empty sample.")
        raise EmptySample("Cannot derive bins from an empty sample.")
    if not stats.range > 0.0:
        logger.error("Cannot derive bins: min == max == %s.", stats.min)
        raise DegenerateRange(f"All values equal {stats.min}; range is zero.")

    if isinstance(strategy, EquiSpaced):
        bins = strategy.n_bins
    elif strategy is BinStrategy.SQRT:
        bins = _sqrt(n)
    elif strategy is BinStrategy.RICE:
        bins = _rice(n)
    elif strategy is BinStrategy.STURGES:
        bins = _sturges(n)
    elif strategy is BinStrategy.DOANE:
        bins = _doane(stats)
    elif strategy is BinStrategy.SCOTT:
        bins = _scott(stats)
    elif strategy is BinStrategy.FREEDMAN_DIACONIS:
        bins = _freedman_diaconis(stats, max_n_bins)
    elif strategy is BinStrategy.AUTO:
        try:
            fd_bins = _freedman_diaconis(stats, max_n_bins)
        except BinCountOverflow:
            logger.debug("Freedman-Diaconis overflowed, using Sturges alone.")
            fd_bins = 0
        bins = max(_sturges(n), fd_bins)
    else:  # pragma: no cover
        raise TypeError(f"Unhandled bin strategy {strategy!r}.")

    if bins > max_n_bins:
        logger.error(
            "Strategy %s asks for %d bins, more than %d.", strategy, bins, max_n_bins
        )
        raise BinCountOverflow(bins, max_n_bins)
    logger.debug("Strategy %s chose %d bins for %d values.", strategy, bins, n)
    return bins
