"""Tests for outbound request signing."""

import logging

import httpx
import respx

from athena.auth import (
    AUTHORIZATION_HEADER,
    CORRELATION_HEADER,
    USER_AGENT_HEADER,
    RequestSigner,
    SigningAuth,
    copy_with_headers,
)
from athena.credential_store import CredentialStore
from athena.log_utils import LogEvent

from conftest import make_session

USER_AGENT = "athena-tests/1.0"
URL = "https://fortnite.test/fortnite/api/game/v2/profile"


def _signer(session=None) -> RequestSigner:
    return RequestSigner(CredentialStore(session), USER_AGENT)


def _tag(value):
    def interceptor(request):
        seen = request.headers.get("X-Order")
        order = f"{seen},{value}" if seen else value
        return copy_with_headers(request, {"X-Order": order})
    return interceptor


class TestRequestSigner:

    def test_signs_with_bearer_user_agent_and_correlation_id(self):
        session = make_session()
        signed = _signer(session).apply_to(httpx.Request("GET", URL))

        assert signed.headers[AUTHORIZATION_HEADER] == f"bearer {session.access_token}"
        assert signed.headers[USER_AGENT_HEADER] == USER_AGENT
        assert signed.headers[CORRELATION_HEADER]

    def test_correlation_ids_are_unique_per_request(self):
        signer = _signer(make_session())

        ids = {signer.apply_to(httpx.Request("GET", URL)).headers[CORRELATION_HEADER]
               for _ in range(20)}

        assert len(ids) == 20

    def test_existing_authorization_is_left_alone(self):
        request = httpx.Request("POST", URL, headers={AUTHORIZATION_HEADER: "basic Y2xpZW50OnNlY3JldA=="})

        signed = _signer(make_session()).apply_to(request)

        assert signed.headers[AUTHORIZATION_HEADER] == "basic Y2xpZW50OnNlY3JldA=="
        assert CORRELATION_HEADER not in signed.headers

    def test_authorization_set_by_interceptor_is_kept(self):
        basic = "basic Y2xpZW50OnNlY3JldA=="
        signer = _signer(make_session())
        signer.add_interceptor(_tag("A"))
        signer.add_interceptor(lambda request: copy_with_headers(request, {AUTHORIZATION_HEADER: basic}))

        signed = signer.apply_to(httpx.Request("GET", URL))

        assert signed.headers[AUTHORIZATION_HEADER] == basic
        assert signed.headers["X-Order"] == "A"
        assert USER_AGENT_HEADER not in signed.headers
        assert CORRELATION_HEADER not in signed.headers

    def test_unsigned_without_session(self):
        request = httpx.Request("GET", URL)

        signed = _signer().apply_to(request)

        assert AUTHORIZATION_HEADER not in signed.headers
        assert CORRELATION_HEADER not in signed.headers

    def test_interceptors_run_in_registration_order(self):
        signer = _signer(make_session())
        signer.add_interceptor(_tag("A"))
        signer.add_interceptor(_tag("B"))

        signed = signer.apply_to(httpx.Request("GET", URL))

        assert signed.headers["X-Order"] == "A,B"
        assert signed.headers[AUTHORIZATION_HEADER].startswith("bearer ")

    def test_interceptor_returning_none_falls_back_to_original(self, caplog):
        caplog.set_level(logging.WARNING, logger="athena")
        signer = _signer(make_session())
        signer.add_interceptor(_tag("A"))
        signer.add_interceptor(lambda request: None)

        signed = signer.apply_to(httpx.Request("GET", URL))

        assert "X-Order" not in signed.headers
        assert signed.headers[AUTHORIZATION_HEADER].startswith("bearer ")
        events = [r.log_record.event for r in caplog.records if hasattr(r, "log_record")]
        assert LogEvent.INTERCEPTOR_FALLBACK.value in events

    def test_remove_interceptor(self):
        signer = _signer(make_session())
        tag = _tag("A")
        signer.add_interceptor(tag)

        assert signer.remove_interceptor(tag) is True
        assert signer.remove_interceptor(tag) is False
        assert signer.interceptors == ()
        assert "X-Order" not in signer.apply_to(httpx.Request("GET", URL)).headers

    def test_copy_keeps_body(self):
        request = httpx.Request("POST", URL, data={"grant_type": "refresh_token"})

        copied = copy_with_headers(request, {"X-Extra": "1"})

        assert copied.content == request.content
        assert copied.headers["X-Extra"] == "1"
        assert copied.headers["Content-Type"] == "application/x-www-form-urlencoded"


class TestSigningAuth:

    def test_client_requests_are_signed(self):
        session = make_session()
        signer = _signer(session)

        with respx.mock:
            route = respx.get(URL).mock(return_value=httpx.Response(200, json={}))
            with httpx.Client(auth=SigningAuth(signer)) as client:
                client.get(URL)

        sent = route.calls.last.request
        assert sent.headers[AUTHORIZATION_HEADER] == f"bearer {session.access_token}"
        assert sent.headers[USER_AGENT_HEADER] == USER_AGENT
