"""
In-memory counter for standalone deployments.
"""

from __future__ import annotations

import threading

from .base import CounterStore


class InMemoryStore(CounterStore):
    """
    Thread-safe in-memory counter.

    Suitable for single-process deployments and testing.
    The count is lost on restart.
    """

    backend_name = "memory"
    descriptor = "in-memory"

    def __init__(self, start: int = 0):
        self._lock = threading.Lock()
        self._count = start

    def incr(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    def get_info(self) -> str:
        return self.descriptor

    @property
    def count(self) -> int:
        with self._lock:
            return self._count
