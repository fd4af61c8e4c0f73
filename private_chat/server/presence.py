"""In-memory table of which user is reachable through which session."""
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Set, Tuple


class PresenceTable:
    """Maps usernames to their live session handle.

    Mutations for one username are serialized by a lock dedicated to that
    username; unrelated users never wait on each other beyond the short
    guard used to look up the per-user lock. A per-user lock lives only
    while that user is online or some caller is using it.
    """

    def __init__(self):
        self._entries: Dict[str, Any] = {}
        # username -> (lock, number of callers holding or waiting on it)
        self._key_locks: Dict[str, Tuple[threading.Lock, int]] = {}
        self._guard = threading.Lock()

    @contextmanager
    def _locked(self, username: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._key_locks.get(username, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._key_locks[username] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                _, users = self._key_locks[username]
                if users == 1 and username not in self._entries:
                    del self._key_locks[username]
                else:
                    self._key_locks[username] = (lock, users - 1)

    def register(self, username: str, session: Any) -> Optional[Any]:
        """Bind username to session, returning the handle it replaced, if any."""
        with self._locked(username):
            previous = self._entries.get(username)
            self._entries[username] = session
        return previous if previous is not session else None

    def unregister(self, username: str, session: Any) -> bool:
        """Remove the entry only if it still points at session."""
        with self._locked(username):
            if self._entries.get(username) is not session:
                return False
            del self._entries[username]
            return True

    def lookup(self, username: str) -> Optional[Any]:
        return self._entries.get(username)

    def list_online(self) -> Set[str]:
        return set(self._entries)
