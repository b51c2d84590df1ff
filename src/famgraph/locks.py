"""In-process locks serializing graph writes per affected subtree."""
from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

import structlog

from .config import CONFIG
from .errors import ConflictError

logger = structlog.get_logger(__name__)


class SubtreeLockManager:
    """Per-profile re-entrant locks, always taken in sorted id order.

    Writers lock every profile their change can affect (both endpoints and
    the child's descendants for parent edges; both profiles and their
    subtrees for merges). Disjoint sets proceed in parallel; overlapping
    sets queue behind each other. Sorted acquisition rules out lock-order
    deadlocks between writers.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = CONFIG.lock_timeout_seconds if timeout is None else timeout
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._refs: dict[str, int] = {}

    def _checkout(self, profile_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(profile_id)
            if lock is None:
                lock = self._locks[profile_id] = threading.RLock()
            self._refs[profile_id] = self._refs.get(profile_id, 0) + 1
            return lock

    def _checkin(self, profile_id: str) -> None:
        with self._guard:
            self._refs[profile_id] -= 1
            if self._refs[profile_id] == 0:
                del self._refs[profile_id]
                del self._locks[profile_id]

    @contextmanager
    def hold(self, profile_ids: Iterable[str], *, timeout: float | None = None) -> Iterator[list[str]]:
        ids = sorted({pid for pid in profile_ids if pid})
        deadline = time.monotonic() + (self.timeout if timeout is None else timeout)
        acquired: list[str] = []
        try:
            for pid in ids:
                lock = self._checkout(pid)
                remaining = max(0.0, deadline - time.monotonic())
                if not lock.acquire(timeout=remaining):
                    self._checkin(pid)
                    logger.warning("locks.timeout", profile_id=pid, requested=len(ids))
                    raise ConflictError("concurrent write holds this subtree", "profile", pid)
                acquired.append(pid)
            yield ids
        finally:
            for pid in reversed(acquired):
                self._locks[pid].release()
                self._checkin(pid)

    def is_locked(self, profile_id: str) -> bool:
        with self._guard:
            return profile_id in self._locks
