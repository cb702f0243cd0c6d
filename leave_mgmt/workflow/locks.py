"""
Per-request mutual exclusion.

Decisions on the same leave request serialize on a lock keyed by request id;
decisions on different requests never share a lock. Entries are dropped once
no caller holds or waits on them.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


class LockTimeout(Exception):
    """Raised when a request lock could not be acquired in time."""


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class RequestLockRegistry:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[int, _Entry] = {}

    def _checkout(self, key: int) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: int, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)

    @contextmanager
    def hold(self, key: int, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the lock for `key` for the duration of the with-block.

        Raises:
            LockTimeout: if the lock is not acquired within `timeout` seconds
        """
        entry = self._checkout(key)
        acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            self._checkin(key, entry)
            raise LockTimeout(f"Timed out waiting for lock on request {key}")
        try:
            yield
        finally:
            entry.lock.release()
            self._checkin(key, entry)

    def active_keys(self) -> int:
        with self._guard:
            return len(self._entries)


request_locks = RequestLockRegistry()
