"""Quantiles via partial selection.

The ``*_mut`` functions take destructive ownership of their buffer: its
elements are reordered by the selection.  The plain functions copy their
input first and never touch the caller's data.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ndbins.contracts import ParallelBackend
from ndbins.errors import EmptySample, InvalidProbability, NonFinite
from ndbins.interpolation import Interpolation, higher_index, lower_index
from ndbins.selection import parallel_sort, select_many
from ndbins.tensor_utils import as_float_array

logger = logging.getLogger(__name__)

DEFAULT_MIN_CHUNK_SIZE = 65_536


def _validate_probability(q: float) -> float:
    q = float(q)
    # NaN fails both comparisons.
    if not 0.0 <= q <= 1.0:
        logger.error("Invalid quantile probability %r.", q)
        raise InvalidProbability(q)
    return q


def _validate_buffer(data: Any) -> NDArray[np.number]:
    if not isinstance(data, np.ndarray):
        raise TypeError(
            "quantile_mut needs a numpy.ndarray buffer; use quantile() for "
            "other inputs."
        )
    if not data.flags.writeable:
        raise ValueError("Buffer is read-only; use quantile() to work on a copy.")
    if data.size == 0:
        logger.error("Quantile requested on an empty buffer.")
        raise EmptySample("Cannot compute a quantile of an empty sample.")
    if not np.all(np.isfinite(data)):
        logger.error("Quantile requested on a buffer with NaN or Inf values.")
        raise NonFinite("Sample contains NaN or infinite values.")
    return data


def _parallel_backend(
    backend: ParallelBackend | None, size: int, min_chunk_size: int
) -> ParallelBackend | None:
    """*backend* when it has several workers and *size* is worth splitting."""
    if backend is None or backend.num_workers <= 1 or size <= min_chunk_size:
        return None
    return backend


def _select_ranks(
    data: NDArray[np.number],
    ranks: list[int],
    backend: ParallelBackend | None,
    min_chunk_size: int,
) -> dict[int, float]:
    parallel = _parallel_backend(backend, data.size, min_chunk_size)
    if parallel is not None:
        return select_many(data, ranks, parallel, min_chunk_size=min_chunk_size)
    unique = sorted(set(ranks))
    data.partition(unique)
    return {rank: float(data[rank]) for rank in unique}


def _from_ranks(
    values: dict[int, float], q: float, length: int, interpolation: Interpolation
) -> float:
    lower = values.get(lower_index(q, length))
    higher = values.get(higher_index(q, length))
    return float(interpolation.interpolate(lower, higher, q, length))


def quantile_mut(
    data: NDArray[np.number],
    q: float,
    interpolation: Interpolation = Interpolation.LINEAR,
    *,
    backend: ParallelBackend | None = None,
    min_chunk_size: int = DEFAULT_MIN_CHUNK_SIZE,
) -> float:
    """Return the *q*-quantile of a one-dimensional buffer, reordering it.

    ``r = q * (n - 1)`` is the fractional rank; only the ranks around ``r``
    that *interpolation* needs are selected.  The buffer is validated before
    it is touched: empty input raises :class:`EmptySample`, NaN or infinite
    values raise :class:`NonFinite` and ``q`` outside ``[0, 1]`` raises
    :class:`InvalidProbability`.  With a multi-worker *backend* and more than
    *min_chunk_size* values the ranks are found by parallel selection; the
    result is identical to the sequential path.
    """
    buffer = _validate_buffer(data)
    if buffer.ndim != 1:
        raise ValueError(f"Expected a 1-D buffer, got {buffer.ndim} dimensions.")
    q = _validate_probability(q)
    interpolation = Interpolation(interpolation)

    length = buffer.size
    ranks = interpolation.required_ranks(q, length)
    values = _select_ranks(buffer, ranks, backend, min_chunk_size)
    result = _from_ranks(values, q, length, interpolation)
    logger.debug(
        "Quantile q=%.6f (%s) over %d values: %.6f.",
        q,
        interpolation.value,
        length,
        result,
    )
    return result


def quantile(
    data: ArrayLike | Any,
    q: float,
    interpolation: Interpolation = Interpolation.LINEAR,
    *,
    backend: ParallelBackend | None = None,
    min_chunk_size: int = DEFAULT_MIN_CHUNK_SIZE,
) -> float:
    """Non-destructive :func:`quantile_mut` over all elements of *data*."""
    buffer = as_float_array(data, copy=True).ravel()
    return quantile_mut(
        buffer, q, interpolation, backend=backend, min_chunk_size=min_chunk_size
    )


def quantiles_mut(
    data: NDArray[np.number],
    qs: Sequence[float] | NDArray[np.floating],
    interpolation: Interpolation = Interpolation.LINEAR,
    *,
    backend: ParallelBackend | None = None,
    min_chunk_size: int = DEFAULT_MIN_CHUNK_SIZE,
) -> NDArray[np.float64]:
    """Bulk variant of :func:`quantile_mut`, one selection pass for all *qs*.

    When more distinct ranks are needed than ``log2(n)`` the buffer is fully
    sorted instead, which is cheaper than repeated selection.
    """
    buffer = _validate_buffer(data)
    if buffer.ndim != 1:
        raise ValueError(f"Expected a 1-D buffer, got {buffer.ndim} dimensions.")
    probabilities = [_validate_probability(q) for q in qs]
    interpolation = Interpolation(interpolation)
    if not probabilities:
        return np.empty(0, dtype=np.float64)

    length = buffer.size
    ranks = sorted(
        {rank for q in probabilities for rank in interpolation.required_ranks(q, length)}
    )
    if len(ranks) > math.log2(length):
        logger.debug("Sorting %d values for %d ranks.", length, len(ranks))
        parallel = _parallel_backend(backend, length, min_chunk_size)
        if parallel is not None:
            parallel_sort(buffer, parallel, min_chunk_size=min_chunk_size)
        else:
            buffer.sort()
        values = {rank: float(buffer[rank]) for rank in ranks}
    else:
        values = _select_ranks(buffer, ranks, backend, min_chunk_size)

    return np.array(
        [_from_ranks(values, q, length, interpolation) for q in probabilities],
        dtype=np.float64,
    )


def quantiles(
    data: ArrayLike | Any,
    qs: Sequence[float] | NDArray[np.floating],
    interpolation: Interpolation = Interpolation.LINEAR,
    *,
    backend: ParallelBackend | None = None,
    min_chunk_size: int = DEFAULT_MIN_CHUNK_SIZE,
) -> NDArray[np.float64]:
    """Non-destructive :func:`quantiles_mut` over all elements of *data*."""
    buffer = as_float_array(data, copy=True).ravel()
    return quantiles_mut(
        buffer, qs, interpolation, backend=backend, min_chunk_size=min_chunk_size
    )


def quantile_axis_mut(
    array: NDArray[np.number],
    axis: int,
    q: float,
    interpolation: Interpolation = Interpolation.LINEAR,
) -> NDArray[np.float64]:
    """Quantile of every lane along *axis*; the axis is removed from the result.

    Lanes are partitioned in place.
    """
    if not isinstance(array, np.ndarray):
        raise TypeError("quantile_axis_mut needs a numpy.ndarray.")
    if not -array.ndim <= axis < array.ndim:
        raise ValueError(f"axis {axis} is out of bounds for {array.ndim} dimensions.")
    axis %= array.ndim
    length = array.shape[axis]
    if length == 0:
        logger.error("Quantile requested along an empty axis %d.", axis)
        raise EmptySample(f"Axis {axis} has length zero.")
    _validate_buffer(array)
    q = _validate_probability(q)
    interpolation = Interpolation(interpolation)

    ranks = interpolation.required_ranks(q, length)
    array.partition(sorted(set(ranks)), axis=axis)
    lower = higher = None
    if interpolation.needs_lower(q, length):
        lower = np.take(array, lower_index(q, length), axis=axis).astype(np.float64)
    if interpolation.needs_higher(q, length):
        higher = np.take(array, higher_index(q, length), axis=axis).astype(np.float64)
    return np.asarray(
        interpolation.interpolate(lower, higher, q, length),  # type: ignore[arg-type]
        dtype=np.float64,
    )


def quantile_axis(
    array: ArrayLike | Any,
    axis: int,
    q: float,
    interpolation: Interpolation = Interpolation.LINEAR,
) -> NDArray[np.float64]:
    """Non-destructive :func:`quantile_axis_mut`."""
    return quantile_axis_mut(as_float_array(array, copy=True), axis, q, interpolation)


def quantile_skipnan(
    data: ArrayLike | Any,
    q: float,
    interpolation: Interpolation = Interpolation.LINEAR,
) -> float:
    """Quantile of the non-NaN elements of *data*.

    Infinite values are still rejected.  An input made only of NaN raises
    :class:`EmptySample`.
    """
    buffer = as_float_array(data, copy=True).ravel()
    kept = buffer[~np.isnan(buffer)]
    if kept.size == 0:
        logger.error("Quantile requested on a sample with no non-NaN values.")
        raise EmptySample("Sample has no non-NaN values.")
    return quantile_mut(kept, q, interpolation)


def interquartile_range(
    data: ArrayLike | Any,
    interpolation: Interpolation = Interpolation.LINEAR,
) -> float:
    """``Q3 - Q1`` of *data*, leaving *data* untouched."""
    first, third = quantiles(data, [0.25, 0.75], interpolation)
    return float(third - first)
