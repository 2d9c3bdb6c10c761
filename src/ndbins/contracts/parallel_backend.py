from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ParallelBackend(ABC):
    """Run independent CPU-bound tasks and hand back their results."""

    @property
    @abstractmethod
    def num_workers(self) -> int:
        """Number of tasks that may run at the same time."""
        raise NotImplementedError

    @abstractmethod
    def map(self, fn: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """Apply *fn* to every item and return the results in input order.

        Results are only returned once every task has finished, so callers
        may merge them without further synchronisation.
        """
        raise NotImplementedError
