from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_N_BINS = 65_535
DEFAULT_MAX_CELLS = 1 << 24


class HistogramConfig(BaseModel):
    """Limits and execution settings for grid and histogram construction."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    max_n_bins: int = Field(default=DEFAULT_MAX_N_BINS, gt=0)
    max_cells: int = Field(default=DEFAULT_MAX_CELLS, gt=0)
    # None counts sequentially, 0 auto-detects from CPU count and memory.
    num_workers: int | None = Field(default=None, ge=0)
    min_chunk_size: int = Field(default=65_536, gt=0)


class DimensionStats(BaseModel):
    """Summary statistics of one dimension, computed once and passed forward."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    count: int
    min: float
    max: float
    mean: float
    std: float
    skewness: float
    first_quartile: float | None = None
    third_quartile: float | None = None
    # (tail fraction, improper IQR) pairs for fractions narrower than 1/4.
    widened_iqrs: tuple[tuple[float, float], ...] = ()

    @property
    def range(self) -> float:
        return self.max - self.min

    @property
    def iqr(self) -> float | None:
        if self.first_quartile is None or self.third_quartile is None:
            return None
        return self.third_quartile - self.first_quartile
