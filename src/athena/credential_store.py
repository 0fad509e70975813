"""Thread-safe holder of the current session."""

import threading
from typing import Optional

from .errors import NotAuthenticated
from .session import Session


class CredentialStore:
    """Holds the latest committed :class:`Session`.

    Reads are a single attribute load of an immutable object, so they never
    block and never observe a half-updated token pair. Writers serialize on a
    lock that readers do not take.
    """

    def __init__(self, session: Optional[Session] = None):
        self._session = session
        self._write_lock = threading.Lock()

    def get(self) -> Session:
        session = self._session
        if session is None:
            raise NotAuthenticated("No session has been established yet")
        return session

    def peek(self) -> Optional[Session]:
        """Return the current session, or None before the first login."""
        return self._session

    def set(self, session: Session) -> Optional[Session]:
        """Atomically replace the session and return the previous one."""
        if session is None:
            raise ValueError("session must not be None")
        with self._write_lock:
            previous = self._session
            self._session = session
        return previous

    def clear(self) -> Optional[Session]:
        with self._write_lock:
            previous = self._session
            self._session = None
        return previous

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None
