"""
Per-key lock table.

Shared resources (series store, vector index, session store) serialize
writers per key while unrelated keys proceed independently.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLocks:
    """Lazily created threading.Lock per key, guarded by one table lock."""

    def __init__(self):
        self._table_lock = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._table_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._locks)
