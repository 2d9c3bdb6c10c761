from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np
from numpy.typing import ArrayLike

from ndbins.errors import EmptySample, NonFinite
from ndbins.interpolation import Interpolation
from ndbins.models import DimensionStats
from ndbins.quantile import quantiles
from ndbins.tensor_utils import as_float_array

logger = logging.getLogger(__name__)

# Tail fractions for the Freedman-Diaconis spread: the proper IQR first,
# then ever wider improper ranges for samples whose quartiles coincide.
SPREAD_FRACTIONS: tuple[float, ...] = tuple(0.5**k for k in range(2, 11))


def summarize_dimension(
    values: ArrayLike | Any, *, with_quartiles: bool = False
) -> DimensionStats:
    """Compute the statistics every bin strategy draws from.

    *values* is left untouched; quartiles are selected on a private copy.
    With *with_quartiles* the proper quartiles and the improper spreads of
    :data:`SPREAD_FRACTIONS` are selected in a single bulk pass.
    """
    data = as_float_array(values).ravel()
    count = int(data.size)
    if count == 0:
        logger.error("Dimension has no samples.")
        raise EmptySample("Cannot summarize an empty sample.")
    if not np.all(np.isfinite(data)):
        logger.error("Dimension contains NaN or Inf values.")
        raise NonFinite("Sample contains NaN or infinite values.")

    min_value = float(np.min(data))
    max_value = float(np.max(data))
    if not math.isfinite(max_value - min_value):
        logger.error("Range [%s, %s] overflows float64.", min_value, max_value)
        raise NonFinite(
            f"Range [{min_value}, {max_value}] overflows float64; rescale the values."
        )

    # Shifted and rescaled so no intermediate sum can overflow.
    mean = min_value + float(np.sum((data - min_value) / count))
    centered = data - mean
    scale = float(np.max(np.abs(centered)))
    if scale > 0.0:
        unit = centered / scale
        m2 = float(np.dot(unit, unit))
        m3 = float(np.sum(unit * unit * unit))
    else:
        m2 = m3 = 0.0
    std = scale * math.sqrt(m2 / (count - 1)) if count > 1 else 0.0
    # Population skewness g1; zero spread means no skew.
    skewness = (m3 / count) / (m2 / count) ** 1.5 if m2 > 0.0 else 0.0

    first_quartile = third_quartile = None
    widened: tuple[tuple[float, float], ...] = ()
    if with_quartiles:
        levels = list(SPREAD_FRACTIONS) + [1.0 - at for at in SPREAD_FRACTIONS]
        selected = quantiles(data, levels, Interpolation.NEAREST)
        lows = selected[: len(SPREAD_FRACTIONS)]
        highs = selected[len(SPREAD_FRACTIONS) :]
        first_quartile = float(lows[0])
        third_quartile = float(highs[0])
        widened = tuple(
            (at, float(high - low))
            for at, low, high in zip(
                SPREAD_FRACTIONS[1:], lows[1:], highs[1:], strict=True
            )
        )

    logger.debug(
        "Summarized %d values: min=%.6f max=%.6f mean=%.6f std=%.6f "
        "skewness=%.6f q1=%s q3=%s.",
        count,
        min_value,
        max_value,
        mean,
        std,
        skewness,
        first_quartile,
        third_quartile,
    )
    return DimensionStats(
        count=count,
        min=min_value,
        max=max_value,
        mean=mean,
        std=std,
        skewness=skewness,
        first_quartile=first_quartile,
        third_quartile=third_quartile,
        widened_iqrs=widened,
    )
