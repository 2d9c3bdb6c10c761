from .sequential import SequentialBackend
from .thread_pool import ThreadPoolBackend
from .resolve import resolve_backend

__all__ = [
    "SequentialBackend",
    "ThreadPoolBackend",
    "resolve_backend",
]
