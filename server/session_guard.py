"""Per-session in-flight guard: at most one run per session at a time."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class SessionBusyError(Exception):
    def __init__(self, session_id: str):
        super().__init__(f"A run is already in progress for session {session_id}")
        self.session_id = session_id


class SessionGuard:
    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    def is_busy(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._in_flight

    @contextmanager
    def claim(self, session_id: str | None) -> Iterator[None]:
        """
        Hold the session for the duration of the block.

        Requests without a session id are not tracked. Raises SessionBusyError
        if the session already has a run in flight.
        """
        if not session_id:
            yield
            return

        with self._lock:
            if session_id in self._in_flight:
                raise SessionBusyError(session_id)
            self._in_flight.add(session_id)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(session_id)
