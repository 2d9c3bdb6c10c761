import logging
import sys

from .backends import SequentialBackend, ThreadPoolBackend
from .contracts import ParallelBackend
from .errors import (
    BinCountOverflow,
    DegenerateRange,
    EmptySample,
    HistogramError,
    InvalidProbability,
    NonFinite,
    OutOfRange,
)
from .grid import Bins, Edges, Grid
from .histogram import Histogram, build_histogram
from .interpolation import Interpolation
from .models import DimensionStats, HistogramConfig
from .quantile import (
    interquartile_range,
    quantile,
    quantile_axis,
    quantile_axis_mut,
    quantile_mut,
    quantile_skipnan,
    quantiles,
    quantiles_mut,
)
from .stats import summarize_dimension
from .strategies import BinStrategy, EquiSpaced, n_bins_for

__all__ = [
    "BinCountOverflow",
    "BinStrategy",
    "Bins",
    "DegenerateRange",
    "DimensionStats",
    "Edges",
    "EmptySample",
    "EquiSpaced",
    "Grid",
    "Histogram",
    "HistogramConfig",
    "HistogramError",
    "Interpolation",
    "InvalidProbability",
    "NonFinite",
    "OutOfRange",
    "ParallelBackend",
    "SequentialBackend",
    "ThreadPoolBackend",
    "build_histogram",
    "interquartile_range",
    "n_bins_for",
    "quantile",
    "quantile_axis",
    "quantile_axis_mut",
    "quantile_mut",
    "quantile_skipnan",
    "quantiles",
    "quantiles_mut",
    "summarize_dimension",
]

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
