"""Per-key write serialization."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class KeyedLocks:
    """Hands out one lock per key so writes to the same key never interleave.

    Locks for unrelated keys are independent. An entry is dropped once no
    caller holds or waits on it.
    """

    _guard: threading.Lock = field(default_factory=threading.Lock)
    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _waiters: dict[str, int] = field(default_factory=dict)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def active_keys(self) -> set[str]:
        """Return keys currently held or awaited."""
        with self._guard:
            return set(self._locks)
