"""Per-session exclusive locks."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class SessionLocks:
    """Process-local registry of one lock per session id.

    An entry lives only while some caller holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[UUID, _LockEntry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _acquire_entry(self, session_id: UUID) -> _LockEntry:
        with self._guard:
            entry = self._entries.get(session_id)
            if entry is None:
                entry = _LockEntry()
                self._entries[session_id] = entry
            entry.users += 1
            return entry

    def _release_entry(self, session_id: UUID, entry: _LockEntry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[session_id]

    @contextmanager
    def hold(self, session_id: UUID) -> Iterator[None]:
        """Hold the session's lock for the duration of the block."""
        entry = self._acquire_entry(session_id)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(session_id, entry)
