"""Pytest configuration and fixtures for the athena session tests."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from athena.config import Credentials, GrantType, SessionConfig
from athena.log_utils import DEFAULT_LOGGER_NAME
from athena.session import Session

ACCOUNT_URL = "https://account.test"
EULA_URL = "https://eula.test"
FORTNITE_URL = "https://fortnite.test"

TOKEN_URL = f"{ACCOUNT_URL}/account/api/oauth/token"
KILL_URL = f"{ACCOUNT_URL}/account/api/oauth/sessions/kill"
EXCHANGE_URL = f"{ACCOUNT_URL}/account/api/oauth/exchange"
REVOKE_PATTERN = rf"^{ACCOUNT_URL}/account/api/oauth/sessions/kill/(?P<token>[^/?]+)$"

ACCOUNT_ID = "4735ce9132924caf8a5b17789b40f79c"


def _iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def token_payload(
    access_token: str = "eg1~access-1",
    refresh_token: str = "eg1~refresh-1",
    account_id: str = ACCOUNT_ID,
    expires_in: int = 7200,
    refresh_expires_in: int = 28800,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Body of a successful OAuth token response."""
    now = now or datetime.now(timezone.utc)
    return {
        "access_token": access_token,
        "expires_in": expires_in,
        "expires_at": _iso(now + timedelta(seconds=expires_in)),
        "token_type": "bearer",
        "refresh_token": refresh_token,
        "refresh_expires": refresh_expires_in,
        "refresh_expires_at": _iso(now + timedelta(seconds=refresh_expires_in)),
        "account_id": account_id,
        "client_id": "34a02cf8f4414e29b15921876da36f9a",
        "internal_client": True,
        "client_service": "launcher",
        "displayName": "Tester",
        "app": "launcher",
        "in_app_id": ACCOUNT_ID,
    }


def error_payload(error_code: str, message: str = "", **extra) -> Dict[str, Any]:
    body = {
        "errorCode": error_code,
        "errorMessage": message or error_code,
        "messageVars": [],
        "numericErrorCode": 18031,
        "originatingService": "com.epicgames.account.public",
        "intent": "prod",
    }
    body.update(extra)
    return body


def form_of(request: httpx.Request) -> Dict[str, str]:
    """Decode a form-encoded request body into a flat dict."""
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def make_session(index: int = 1, account_id: str = ACCOUNT_ID, expires_in: int = 7200) -> Session:
    now = datetime.now(timezone.utc)
    return Session(
        account_id=account_id,
        access_token=f"eg1~access-{index}",
        access_token_expires_at=now + timedelta(seconds=expires_in),
        refresh_token=f"eg1~refresh-{index}",
        refresh_token_expires_at=now + timedelta(seconds=expires_in * 4),
    )


class FakeTransport:
    """Records every call the session core makes on its transport."""

    def __init__(self, fail_on: Optional[str] = None):
        self.calls: List[tuple] = []
        self.fail_on = fail_on

    def _record(self, name: str, *args):
        self.calls.append((name,) + args)
        if self.fail_on == name:
            raise RuntimeError(f"transport {name} failed")

    def connect(self, account_id: str, access_token: str) -> None:
        self._record("connect", account_id, access_token)

    def disconnect(self) -> None:
        self._record("disconnect")

    def close(self) -> None:
        self._record("close")

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def reset_athena_logger():
    """Undo any setup_logging() call so caplog keeps seeing records."""
    yield
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def session_config() -> SessionConfig:
    """Config pointing at the mocked services with background work switched off."""
    return SessionConfig(
        grant_type=GrantType.DEVICE_AUTH,
        auto_refresh=False,
        kill_other_sessions=False,
        handle_shutdown=False,
        account_service_url=ACCOUNT_URL,
        eula_service_url=EULA_URL,
        fortnite_service_url=FORTNITE_URL,
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(account_id=ACCOUNT_ID, device_id="device-1", secret="device-secret")


@pytest.fixture
def epic():
    """respx router with the revoke and kill-others endpoints answering 204."""
    with respx.mock(assert_all_called=False) as router:
        router.delete(url__regex=REVOKE_PATTERN, name="revoke").mock(
            return_value=httpx.Response(204)
        )
        router.delete(KILL_URL, name="kill_others").mock(return_value=httpx.Response(204))
        yield router


@pytest.fixture
def http_client():
    with httpx.Client() as client:
        yield client


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


def revoked_tokens(router: respx.MockRouter) -> List[str]:
    """Access tokens revoked so far, in call order."""
    prefix = f"{KILL_URL}/"
    return [str(call.request.url)[len(prefix):] for call in router.routes["revoke"].calls]
