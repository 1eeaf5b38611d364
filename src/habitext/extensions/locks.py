"""Per-key coordination for dispatches and health checks.

Two dispatches for one habit would otherwise race at the merge step.
Locks are reference-counted and dropped once no caller holds or waits
on them, so the table only grows with the number of habits in flight.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from concurrent.futures import Future
from contextlib import contextmanager
from typing import Any


class KeyedLock:
    """A table of re-entrant locks keyed by entity id.

    Re-entrant so a caller holding a key can dispatch for it without
    deadlocking on itself.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._users: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Block until *key* is free, then hold it for the ``with`` body."""
        with self._guard:
            lock = self._locks.setdefault(key, threading.RLock())
            self._users[key] = self._users.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class AbandonedCalls:
    """Calls that missed their deadline, keyed by extension name.

    A key stays busy until its abandoned future finishes. Callers skip a
    busy key instead of submitting again, so a hung callable ties up at
    most one worker.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._pending: dict[str, Future[Any]] = {}

    def abandon(self, key: str, future: Future[Any]) -> None:
        with self._guard:
            self._pending[key] = future
        future.add_done_callback(lambda done: self._release(key, done))

    def busy(self, key: str) -> bool:
        with self._guard:
            return key in self._pending

    def _release(self, key: str, future: Future[Any]) -> None:
        with self._guard:
            if self._pending.get(key) is future:
                del self._pending[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._pending)
