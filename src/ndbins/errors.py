from __future__ import annotations


class HistogramError(ValueError):
    """Base class for every error raised by ndbins."""


class EmptySample(HistogramError):
    """The input held no observations."""


class DegenerateRange(HistogramError):
    """The observed values have zero spread (min == max)."""


class NonFinite(HistogramError):
    """The input contained NaN or infinite values."""


class InvalidProbability(HistogramError):
    """A quantile probability fell outside [0, 1]."""

    def __init__(self, q: float) -> None:
        super().__init__(f"{q!r} is not between 0 and 1 (inclusive).")
        self.q = q


class OutOfRange(HistogramError):
    """A value lies outside the coverage of the bins or grid."""


class BinCountOverflow(HistogramError):
    """A bin count or grid cell count exceeds the configured maximum."""

    def __init__(self, requested: int, maximum: int, what: str = "bins") -> None:
        super().__init__(
            f"{requested} {what} requested but at most {maximum} are allowed."
        )
        self.requested = requested
        self.maximum = maximum
