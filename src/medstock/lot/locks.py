"""Per-lot mutual exclusion.

Every write to a lot, whether it comes from the API or from an inbound order
event, runs while holding the lock for that lot's natural key. Writes to
different lots never wait on each other.
"""

import threading
from contextlib import contextmanager

import structlog

from medstock.lot.errors import LotBusy

logger = structlog.get_logger(__name__)


class LotLocks:
    """Registry of re-entrant locks keyed by ``shop:medicine:batch``.

    A key's lock exists only while some thread holds or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            remaining = self._users.get(key, 1) - 1
            if remaining > 0:
                self._users[key] = remaining
            else:
                self._users.pop(key, None)
                self._locks.pop(key, None)

    @contextmanager
    def hold(self, key: str, timeout: float = 5.0):
        """Hold the lock for ``key``; raise LotBusy if it is not free within ``timeout``."""
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=timeout):
                logger.warning("Timed out waiting for lot lock", lot_key=key, timeout=timeout)
                raise LotBusy(key, timeout)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)

    def __len__(self):
        return len(self._locks)

    def reset(self):
        """Forget all locks (useful between tests)."""
        with self._guard:
            self._locks.clear()
            self._users.clear()


lot_locks = LotLocks()
