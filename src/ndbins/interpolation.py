"""Interpolation policies for order statistics that fall between two ranks."""

from __future__ import annotations

import math
from enum import Enum


def fractional_rank(q: float, length: int) -> float:
    return q * (length - 1)


def lower_index(q: float, length: int) -> int:
    return math.floor(fractional_rank(q, length))


def higher_index(q: float, length: int) -> int:
    return math.ceil(fractional_rank(q, length))


def _fraction(q: float, length: int) -> float:
    rank = fractional_rank(q, length)
    return rank - math.floor(rank)


class Interpolation(str, Enum):
    """How to combine the values at ranks ``floor(r)`` and ``ceil(r)``.

    ``r = q * (n - 1)`` is the fractional rank of probability ``q`` in a
    sample of ``n`` values.
    """

    LINEAR = "linear"
    LOWER = "lower"
    HIGHER = "higher"
    NEAREST = "nearest"
    MIDPOINT = "midpoint"

    def needs_lower(self, q: float, length: int) -> bool:
        if self is Interpolation.HIGHER:
            return False
        if self is Interpolation.NEAREST:
            return _fraction(q, length) < 0.5
        return True

    def needs_higher(self, q: float, length: int) -> bool:
        if self is Interpolation.LOWER:
            return False
        if self is Interpolation.NEAREST:
            return not self.needs_lower(q, length)
        return True

    def required_ranks(self, q: float, length: int) -> list[int]:
        """Ranks that must be selected before :meth:`interpolate` can run."""
        ranks: list[int] = []
        if self.needs_lower(q, length):
            ranks.append(lower_index(q, length))
        if self.needs_higher(q, length):
            upper = higher_index(q, length)
            if upper not in ranks:
                ranks.append(upper)
        return ranks

    def interpolate(
        self, lower: float | None, higher: float | None, q: float, length: int
    ) -> float:
        """Combine the selected neighbours of rank ``q * (length - 1)``.

        Raises :class:`ValueError` when a value this policy needs is missing.
        """
        if self.needs_lower(q, length) and lower is None:
            raise ValueError(f"{self.value} interpolation needs the lower value.")
        if self.needs_higher(q, length) and higher is None:
            raise ValueError(f"{self.value} interpolation needs the higher value.")

        if higher is None or not self.needs_higher(q, length):
            return lower  # type: ignore[return-value]
        if lower is None or not self.needs_lower(q, length):
            return higher
        if self is Interpolation.MIDPOINT:
            return lower + (higher - lower) / 2.0
        return lower + _fraction(q, length) * (higher - lower)
