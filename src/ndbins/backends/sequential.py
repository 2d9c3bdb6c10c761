from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from ndbins.contracts import ParallelBackend

T = TypeVar("T")
R = TypeVar("R")


class SequentialBackend(ParallelBackend):
    """Run every task on the calling thread."""

    @property
    def num_workers(self) -> int:
        return 1

    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> list[R]:
        return [fn(item) for item in items]
