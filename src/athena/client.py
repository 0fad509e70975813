"""
Session facade.

``AthenaClient`` is the object application code holds. Constructing it logs in;
from then on it keeps the token pair fresh, signs every request sent through
``http_client`` and keeps the optional transport connected with the current
token. ``close()`` tears everything down in order and is safe to call twice.
"""

import atexit
import threading
from enum import Enum
from typing import List, Optional

import httpx

from .accounts import Accounts
from .auth import InterceptorAction, RequestSigner, SigningAuth
from .config import Credentials, SessionConfig
from .credential_store import CredentialStore
from .errors import ApiError, AuthenticationFailed, NetworkError
from .lifecycle import LifecycleEvent, LifecycleEventBus, LifecycleHandler
from .log_utils import LogEvent, LogRecord, debug, error, info, warning
from .oauth import TokenAuthenticator
from .session import Session
from .token_refresher import JobKind, RefreshScheduler, RotationJob
from .transport import Transport


class SessionState(str, Enum):
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"
    ROTATING = "rotating"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


class AthenaClient:
    """Authenticated session with automatic credential rotation.

    Args:
        config: session options; defaults to ``SessionConfig()``.
        credentials: inputs of the configured grant.
        transport: chat/presence connection to keep in sync with the token.
            Ignored when ``config.enable_transport`` is false.
        http_client: optional pre-built client; its ``auth`` is replaced with
            the request signer until ``close()``, which puts the previous
            ``auth`` back and leaves the client open. When omitted the client
            creates and owns one.

    Raises:
        AuthenticationFailed, NetworkError, ConfigurationError: the initial
            login failed; nothing is left running.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        credentials: Optional[Credentials] = None,
        *,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self._config = config or SessionConfig()
        self._credentials = credentials or Credentials()
        self._state = SessionState.AUTHENTICATING
        self._lifecycle_lock = threading.RLock()

        self._store = CredentialStore()
        self._signer = RequestSigner(self._store, self._config.user_agent)
        self._events = LifecycleEventBus()

        self._owns_http_client = http_client is None
        if http_client is None:
            http_client = httpx.Client(
                timeout=self._config.timeout,
                proxy=self._config.proxy,
                follow_redirects=False,
            )
        self._previous_auth = http_client.auth
        http_client.auth = SigningAuth(self._signer)
        self._http = http_client

        self._authenticator = TokenAuthenticator(self._http, self._config)
        self._scheduler = RefreshScheduler(self._rotate, safety_margin=self._config.safety_margin)
        self._transport = transport if self._config.enable_transport else None
        self._transport_connected = False
        self._accounts = Accounts(self._http, self._config.account_service_url)
        self._display_name: Optional[str] = None
        self._shutdown_hook_registered = False
        self._rotating_thread: Optional[int] = None

        try:
            session = self._authenticator.login(self._credentials)
        except Exception:
            self._state = SessionState.CLOSED
            self._release_http_client()
            raise

        try:
            with self._lifecycle_lock:
                self._start(session)
        except Exception:
            self.close()
            raise

    def _start(self, session: Session) -> None:
        self._store.set(session)

        if self._config.handle_shutdown:
            atexit.register(self.close)
            self._shutdown_hook_registered = True

        if self._config.auto_refresh:
            self._scheduler.arm(session)

        if self._config.accept_eula:
            try:
                self._authenticator.accept_eula_if_needed(session)
            except (ApiError, AuthenticationFailed, NetworkError) as e:
                warning(LogRecord(
                    event=LogEvent.POST_AUTH_FAILED.value,
                    message="Failed to make additional authentication requests"
                ), exc=e)

        if self._transport is not None:
            self._transport.connect(session.account_id, session.access_token)
            self._transport_connected = True
            info(LogRecord(
                event=LogEvent.TRANSPORT_CONNECTED.value,
                message=f"Transport connected for {session.account_id}"
            ))

        self._state = SessionState.ACTIVE
        info(LogRecord(
            event=LogEvent.SESSION_READY.value,
            message=f"Session ready for {session.account_id}",
            data={"account_id": session.account_id, "auto_refresh": self._config.auto_refresh}
        ))

    # ----- read access -----

    def session(self) -> Session:
        """The current session snapshot."""
        return self._store.get()

    @property
    def account_id(self) -> str:
        return self._store.get().account_id

    def current_access_token(self) -> str:
        return self._store.get().access_token

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def http_client(self) -> httpx.Client:
        """Shared client; every request it sends is signed."""
        return self._http

    @property
    def accounts(self) -> Accounts:
        return self._accounts

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def display_name(self) -> Optional[str]:
        if self._display_name is None:
            session = self._store.get()
            if session.display_name:
                self._display_name = session.display_name
            else:
                account = self._accounts.find_one_by_account_id(session.account_id)
                self._display_name = account.display_name if account else None
        return self._display_name

    def pending_rotations(self) -> List[RotationJob]:
        return self._scheduler.pending_jobs()

    # ----- collaborators -----

    def add_lifecycle_listener(self, kind: LifecycleEvent, handler: LifecycleHandler) -> None:
        self._events.register(kind, handler)

    def remove_lifecycle_listener(self, kind: LifecycleEvent, handler: LifecycleHandler) -> bool:
        return self._events.unregister(kind, handler)

    def add_request_interceptor(self, action: InterceptorAction) -> None:
        self._signer.add_interceptor(action)

    def remove_request_interceptor(self, action: InterceptorAction) -> bool:
        return self._signer.remove_interceptor(action)

    # ----- rotation -----

    def rotate_now(self, kind: JobKind = JobKind.REFRESH) -> bool:
        """Rotate credentials on the calling thread. Returns False if skipped or failed."""
        return self._rotate(JobKind(kind))

    def _rotate(self, kind: JobKind) -> bool:
        failure = None
        with self._lifecycle_lock:
            if self._state is not SessionState.ACTIVE:
                debug(LogRecord(
                    event=LogEvent.ROTATION_SKIPPED.value,
                    message=f"Skipping {kind.value} rotation in state {self._state.value}",
                    data={"job_kind": kind.value, "state": self._state.value}
                ))
                return False

            self._state = SessionState.ROTATING
            self._rotating_thread = threading.get_ident()
            try:
                self._rotate_locked(kind)
            except Exception as e:
                # Every rotation failure is fatal
                failure = e
                error(LogRecord(
                    event=LogEvent.ROTATION_FAILED.value,
                    message=f"Failed to {kind.value} session, shutting down",
                    data={"job_kind": kind.value}
                ), exc=e)
            finally:
                self._rotating_thread = None
                if self._state is SessionState.ROTATING:
                    self._state = SessionState.ACTIVE

        if failure is not None:
            self.close()
            return False
        return self._state is SessionState.ACTIVE

    def _rotate_locked(self, kind: JobKind) -> None:
        old = self._store.get()
        info(LogRecord(
            event=LogEvent.ROTATION_STARTED.value,
            message=f"Starting {kind.value} rotation for {old.account_id}",
            data={"job_kind": kind.value, "account_id": old.account_id}
        ))

        if kind is JobKind.REFRESH:
            new = self._authenticator.refresh(old.refresh_token)
        else:
            new = self._authenticator.login(self._credentials)

        if new.account_id != old.account_id:
            self._authenticator.revoke(new.access_token)
            raise AuthenticationFailed(
                f"Rotation returned account {new.account_id}, expected {old.account_id}"
            )

        self._store.set(new)
        self._authenticator.revoke(old.access_token)

        if self._transport is not None and self._transport_connected:
            self._events.invoke(LifecycleEvent.BEFORE_ROTATION)
            if self._state is not SessionState.ROTATING:
                # A listener closed the session
                return
            self._reconnect_transport(new)
            self._events.invoke(LifecycleEvent.AFTER_ROTATION, new)

        if self._config.auto_refresh and self._config.rearm_after_rotation and not self._scheduler.stopped:
            self._scheduler.rearm(new)

        info(LogRecord(
            event=LogEvent.ROTATION_COMPLETED.value,
            message=f"Completed {kind.value} rotation for {new.account_id}",
            data={"job_kind": kind.value, "account_id": new.account_id,
                  "expires_at": new.access_token_expires_at.isoformat()}
        ))

    def _reconnect_transport(self, session: Session) -> None:
        try:
            self._transport.disconnect()
            self._transport.connect(session.account_id, session.access_token)
            self._transport_connected = True
            info(LogRecord(
                event=LogEvent.TRANSPORT_RECONNECTED.value,
                message=f"Transport reconnected for {session.account_id}"
            ))
        except Exception as e:
            self._transport_connected = False
            error(LogRecord(
                event=LogEvent.TRANSPORT_ERROR.value,
                message="Failed to reconnect transport with the new token"
            ), exc=e)

    # ----- shutdown -----

    def close(self) -> None:
        """Revoke the token, stop rotation, disconnect the transport. Idempotent."""
        with self._lifecycle_lock:
            if self._state in (SessionState.SHUTTING_DOWN, SessionState.CLOSED):
                return
            self._state = SessionState.SHUTTING_DOWN
            info(LogRecord(
                event=LogEvent.SHUTDOWN_STARTED.value,
                message="Shutting down session"
            ))

            self._events.invoke(LifecycleEvent.SHUTDOWN)
            self._scheduler.stop()
            self._teardown_transport()

            session = self._store.peek()
            if session is not None:
                self._authenticator.revoke(session.access_token)

            self._events.dispose()
            self._release_http_client()
            if self._shutdown_hook_registered:
                atexit.unregister(self.close)
                self._shutdown_hook_registered = False

            self._state = SessionState.CLOSED
            info(LogRecord(
                event=LogEvent.SHUTDOWN_COMPLETED.value,
                message="Session closed"
            ))

        # Closed from a listener mid-rotation: the worker may be waiting on our lock
        if self._rotating_thread != threading.get_ident():
            self._scheduler.join()

    def _release_http_client(self) -> None:
        if self._owns_http_client:
            self._http.close()
        else:
            self._http.auth = self._previous_auth

    def _teardown_transport(self) -> None:
        if self._transport is None:
            return
        for step in (self._transport.disconnect, self._transport.close):
            try:
                step()
            except Exception as e:
                error(LogRecord(
                    event=LogEvent.TRANSPORT_ERROR.value,
                    message=f"Transport {step.__name__} failed during shutdown"
                ), exc=e)
        self._transport_connected = False

    def __enter__(self) -> "AthenaClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
