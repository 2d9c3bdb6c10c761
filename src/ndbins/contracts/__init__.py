from .parallel_backend import ParallelBackend

__all__ = [
    "ParallelBackend",
]
