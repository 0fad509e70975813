"""
Outbound request signing.

Every request leaving the shared HTTP client passes through ``apply_to``:
user interceptors first, then the bearer, client identity and correlation
headers, unless the request already carries its own Authorization header.
"""

import threading
import uuid
from typing import Callable, Mapping, Optional, Tuple

import httpx

from ..credential_store import CredentialStore
from ..log_utils import LogEvent, LogRecord, debug, warning

InterceptorAction = Callable[[httpx.Request], Optional[httpx.Request]]

AUTHORIZATION_HEADER = "Authorization"
CORRELATION_HEADER = "X-Epic-Correlation-ID"
USER_AGENT_HEADER = "User-Agent"


def copy_with_headers(request: httpx.Request, extra: Mapping[str, str]) -> httpx.Request:
    """Return a new request equal to ``request`` with ``extra`` headers set."""
    headers = request.headers.copy()
    for name, value in extra.items():
        headers[name] = value
    try:
        body = {"content": request.content}
    except httpx.RequestNotRead:
        # Streaming upload, hand the same stream over unread
        body = {"stream": request.stream}
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        extensions=dict(request.extensions),
        **body,
    )


class RequestSigner:
    """Applies interceptors and credentials to outbound requests."""

    def __init__(self, store: CredentialStore, user_agent: str):
        self._store = store
        self._user_agent = user_agent
        # Replaced wholesale on every change so iteration never sees a mutation
        self._interceptors: Tuple[InterceptorAction, ...] = ()
        self._lock = threading.Lock()

    def add_interceptor(self, action: InterceptorAction) -> None:
        with self._lock:
            self._interceptors = self._interceptors + (action,)
        debug(LogRecord(
            event=LogEvent.INTERCEPTOR_ADDED.value,
            message=f"Added request interceptor {getattr(action, '__qualname__', action)!r}"
        ))

    def remove_interceptor(self, action: InterceptorAction) -> bool:
        with self._lock:
            if action not in self._interceptors:
                return False
            remaining = list(self._interceptors)
            remaining.remove(action)
            self._interceptors = tuple(remaining)
        debug(LogRecord(
            event=LogEvent.INTERCEPTOR_REMOVED.value,
            message=f"Removed request interceptor {getattr(action, '__qualname__', action)!r}"
        ))
        return True

    @property
    def interceptors(self) -> Tuple[InterceptorAction, ...]:
        return self._interceptors

    def _run_interceptors(self, request: httpx.Request) -> httpx.Request:
        current = request
        for action in self._interceptors:
            current = action(current)
            if current is None:
                warning(LogRecord(
                    event=LogEvent.INTERCEPTOR_FALLBACK.value,
                    message=(f"Interceptor {getattr(action, '__qualname__', action)!r} returned no request, "
                             "using the original request"),
                    data={"url": str(request.url)}
                ))
                return request
        return current

    def apply_to(self, request: httpx.Request) -> httpx.Request:
        prepared = self._run_interceptors(request)

        session = self._store.peek()
        if AUTHORIZATION_HEADER in prepared.headers or session is None:
            return prepared

        return copy_with_headers(prepared, {
            AUTHORIZATION_HEADER: f"bearer {session.access_token}",
            USER_AGENT_HEADER: self._user_agent,
            CORRELATION_HEADER: str(uuid.uuid4()),
        })
