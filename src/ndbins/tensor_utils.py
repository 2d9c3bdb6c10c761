from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray


def _is_torch_tensor(values: object) -> bool:
    return type(values).__module__.startswith("torch") and hasattr(values, "detach")


def torch_to_numpy(tensor: Any) -> NDArray[np.float64]:
    """Convert a PyTorch tensor to a float64 numpy array of the same shape.

    The tensor is detached and moved to CPU first; ``numpy()`` is zero-copy
    when the tensor already is float64, contiguous and on CPU.
    """
    import torch

    t = tensor.detach()
    if not t.is_cpu:
        t = t.cpu()
    if not t.is_contiguous():
        t = t.contiguous()
    if t.dtype != torch.float64:
        t = t.to(torch.float64)
    return t.numpy()


def as_float_array(values: ArrayLike | Any, *, copy: bool = False) -> NDArray[np.float64]:
    """Return *values* as a float64 numpy array.

    Accepts numpy arrays, nested sequences and torch tensors.  With
    ``copy=True`` the result never shares memory with the input, which is
    what the non-destructive quantile entry points rely on.
    """
    if _is_torch_tensor(values):
        array = torch_to_numpy(values)
        return array.copy() if copy else array
    if copy:
        return np.array(values, dtype=np.float64, copy=True)
    return np.asarray(values, dtype=np.float64)


def as_sample_matrix(values: ArrayLike | Any) -> NDArray[np.float64]:
    """Return samples as a ``(n_samples, n_dims)`` float64 matrix.

    A one-dimensional input is treated as ``n`` samples of one dimension.
    """
    array = as_float_array(values)
    if array.ndim == 1:
        return array.reshape(-1, 1)
    if array.ndim != 2:
        raise ValueError(
            f"Samples must be a 1-D or 2-D array, got {array.ndim} dimensions."
        )
    return array
