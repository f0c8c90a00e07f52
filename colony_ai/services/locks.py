"""Per-key locking for services that keep maps keyed by colony or player id."""

from __future__ import annotations

import threading
from collections.abc import Hashable


class KeyedLocks:
    """
    One lock per key, created on first use.

    Work on different keys never contends; only the short registry lookup
    is shared.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}

    def get(self, key: Hashable) -> threading.Lock:
        """Return the lock for ``key``, creating it if needed."""
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def discard(self, key: Hashable) -> None:
        """Forget the lock for ``key``."""
        with self._registry_lock:
            self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
