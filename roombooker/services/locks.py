"""Per-room serialization of conflict detection and the writes that follow it."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator

from roombooker.domain.errors import DependencyError
from roombooker.utils.config import get_settings


class RoomLockRegistry:
    """Hands out one lock per room id.

    Locks for several rooms are always taken in ascending room order so two
    writers touching the same pair of rooms cannot deadlock.
    """

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self._timeout = timeout_seconds
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def _lock_for(self, room_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(room_id, threading.Lock())

    @contextmanager
    def hold(self, room_ids: Iterable[int]) -> Iterator[None]:
        acquired = []
        try:
            for room_id in sorted(set(room_ids)):
                lock = self._lock_for(room_id)
                if not lock.acquire(timeout=self._timeout):
                    raise DependencyError(f"Timed out waiting for the schedule of room {room_id}")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


room_locks = RoomLockRegistry(get_settings().lock_timeout_seconds)
