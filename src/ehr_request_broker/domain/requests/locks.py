"""Per-key mutual exclusion.

The coordinator serializes work on the same citizen (admission) and on
the same request id (transitions) without a global lock. KeyedLock hands
out one lock per key and forgets the key once nobody holds or waits on it,
so the registry does not grow with the number of requests ever seen.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


@dataclass
class _Entry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class KeyedLock:
    """Reference-counted registry of reentrant locks keyed by string.

    Examples
    --------
    >>> locks = KeyedLock()
    >>> with locks.hold("req_123"):
    ...     request = store.find_by_id("req_123")
    ...     # check, mutate, persist
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._entries)
