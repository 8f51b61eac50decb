"""Keyed mutual exclusion for conditional status transitions.

One ``threading.Lock`` per key, reference counted so idle keys do not
accumulate. This serializes completions inside one process; deployments
running several workers against a shared database need the provider's
conditional update as well.
"""

import threading
from contextlib import contextmanager


class KeyedLock:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._waiters: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str):
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

    def __len__(self) -> int:
        return len(self._locks)


_payment_locks = KeyedLock()


def payment_lock(key: str):
    """Hold the process-wide lock for one payment key."""
    return _payment_locks.hold(key)
