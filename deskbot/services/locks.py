import threading
import weakref
from collections.abc import Hashable


class KeyedLocks:
    """
    Hands out one re-entrant lock per key; different keys never contend.

    Entries are weakly held: a key's lock lives while some caller holds a reference
    to it and is dropped from the table once the last holder lets go.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[Hashable, threading.RLock]" = weakref.WeakValueDictionary()

    def get(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
