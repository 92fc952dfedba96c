from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Dict, List, Tuple

Key = Tuple[str, str, str]


class ScheduleLocks:
    """
    Per-key locks so that check-then-write for the same (date, class) or
    (date, teacher) runs one request at a time. Only covers a single process.
    """

    def __init__(self):
        self._guard = Lock()
        self._locks: Dict[Key, Lock] = {}
        self._refs: Dict[Key, int] = {}

    @staticmethod
    def keys_for(day: date, class_code: str, teacher_id: str) -> List[Key]:
        iso = day.isoformat()
        # fixed order prevents two requests from waiting on each other
        return sorted({("class", iso, class_code), ("teacher", iso, teacher_id)})

    def _checkout(self, key: Key) -> Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = Lock()
            self._refs[key] = self._refs.get(key, 0) + 1
            return lock

    def _checkin(self, key: Key):
        with self._guard:
            self._refs[key] -= 1
            if self._refs[key] == 0:
                del self._refs[key]
                del self._locks[key]

    @contextmanager
    def hold(self, day: date, class_code: str, teacher_id: str):
        keys = self.keys_for(day, class_code, teacher_id)
        checked_out = []
        locked = []
        try:
            for key in keys:
                lock = self._checkout(key)
                checked_out.append(key)
                lock.acquire()
                locked.append(lock)
            yield
        finally:
            for lock in reversed(locked):
                lock.release()
            for key in reversed(checked_out):
                self._checkin(key)

    def active_keys(self) -> List[Key]:
        with self._guard:
            return list(self._locks)


schedule_locks = ScheduleLocks()
