"""
Token Authenticator for the Epic Games account service.

Performs the initial grant (password with optional two-factor follow-up,
exchange code, refresh token, device auth, authorization code, or the Kairos
exchange), refreshes token pairs and revokes tokens. All calls are synchronous
and bounded by the HTTP client's timeout.
"""

from typing import Dict, Optional

import httpx
from pydantic import ValidationError

from ..config import Credentials, GrantType, SessionConfig
from ..errors import (
    ApiError,
    AuthenticationFailed,
    EpicGamesErrorResponse,
    NetworkError,
)
from ..log_utils import LogEvent, LogRecord, debug, error, info, mask_token, warning
from ..models import decode
from ..session import Session

TWO_FACTOR_REQUIRED = "errors.com.epicgames.common.two_factor_authentication.required"
KILL_OTHERS_TYPE = "OTHERS_ACCOUNT_CLIENT_SERVICE"


class TokenAuthenticator:
    """Talks to the OAuth endpoints of the account service."""

    def __init__(self, http_client: httpx.Client, config: SessionConfig):
        self._client = http_client
        self._config = config

    # ----- public operations -----

    def login(self, credentials: Credentials) -> Session:
        """Perform the configured grant and return a fresh session."""
        self._config.validate(credentials)
        grant = self._config.grant_type

        info(LogRecord(
            event=LogEvent.AUTH_REQUEST.value,
            message=f"Authenticating with grant '{grant.value}'" + (" via Kairos" if self._config.kairos else ""),
            data={"grant_type": grant.value, "kairos": self._config.kairos}
        ))

        form = self._grant_form(grant, credentials)
        if self._config.kairos:
            session = self._login_kairos(form, credentials)
        else:
            session = self._grant(form, self._config.client_token, credentials)

        info(LogRecord(
            event=LogEvent.AUTH_SUCCESS.value,
            message=f"Account {session.account_id} authenticated",
            data={"account_id": session.account_id,
                  "expires_at": session.access_token_expires_at.isoformat()}
        ))
        self._after_success(session)
        return session

    def refresh(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new pair. Failures are not retried."""
        form = {"grant_type": GrantType.REFRESH_TOKEN.value, "refresh_token": refresh_token}
        session = self._grant(form, self._client_token_for_refresh())

        info(LogRecord(
            event=LogEvent.TOKEN_REFRESHED.value,
            message=f"Refreshed session for {session.account_id}",
            data={"account_id": session.account_id,
                  "expires_at": session.access_token_expires_at.isoformat()}
        ))
        self._after_success(session)
        return session

    def revoke(self, access_token: str) -> None:
        """Best-effort server side invalidation of ``access_token``."""
        url = f"{self._config.account_service_url}/account/api/oauth/sessions/kill/{access_token}"
        try:
            response = self._send("DELETE", url, headers=self._bearer(access_token))
        except NetworkError as e:
            warning(LogRecord(
                event=LogEvent.TOKEN_REVOKE_FAILED.value,
                message=f"Failed to revoke token {mask_token(access_token)}"
            ), exc=e)
            return

        if response.is_success:
            debug(LogRecord(
                event=LogEvent.TOKEN_REVOKED.value,
                message=f"Revoked token {mask_token(access_token)}"
            ))
        else:
            warning(LogRecord(
                event=LogEvent.TOKEN_REVOKE_FAILED.value,
                message=f"Failed to revoke token {mask_token(access_token)}: HTTP {response.status_code}",
                data={"status_code": response.status_code}
            ))

    def kill_other_sessions(self, access_token: str) -> None:
        """Invalidate every other session of the account. Failures are logged only."""
        url = f"{self._config.account_service_url}/account/api/oauth/sessions/kill"
        try:
            response = self._send("DELETE", url, headers=self._bearer(access_token),
                                  params={"killType": KILL_OTHERS_TYPE})
        except NetworkError as e:
            warning(LogRecord(
                event=LogEvent.OTHER_SESSIONS_KILL_FAILED.value,
                message="Failed to kill other sessions"
            ), exc=e)
            return

        if response.is_success:
            debug(LogRecord(
                event=LogEvent.OTHER_SESSIONS_KILLED.value,
                message="Killed other sessions"
            ))
        else:
            warning(LogRecord(
                event=LogEvent.OTHER_SESSIONS_KILL_FAILED.value,
                message=f"Failed to kill other sessions: HTTP {response.status_code}",
                data={"status_code": response.status_code}
            ))

    def exchange_code(self, access_token: str) -> str:
        """Trade an access token for a one-time exchange code."""
        url = f"{self._config.account_service_url}/account/api/oauth/exchange"
        response = self._send("GET", url, headers=self._bearer(access_token))
        if not response.is_success:
            raise AuthenticationFailed.from_response(response, "Failed to create exchange code")
        try:
            code = response.json()["code"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationFailed("Exchange response did not contain a code",
                                       status_code=response.status_code) from e
        return code

    def accept_eula_if_needed(self, session: Session) -> bool:
        """Accept a pending EULA and grant game access. Returns True if one was accepted."""
        eula_base = f"{self._config.eula_service_url}/eulatracking/api/public/agreements/fn"
        headers = self._bearer(session.access_token)

        response = self._send("GET", f"{eula_base}/account/{session.account_id}", headers=headers)
        if not response.is_success:
            raise ApiError.from_response(response, "Failed to look up EULA")
        if response.status_code == 204 or not response.content:
            return False

        try:
            version = response.json()["version"]
        except (ValueError, KeyError, TypeError) as e:
            raise ApiError("EULA response did not contain a version",
                           status_code=response.status_code) from e

        accept = self._send(
            "POST",
            f"{eula_base}/version/{version}/account/{session.account_id}/accept",
            headers=headers,
            params={"locale": "en"},
        )
        if not accept.is_success:
            raise ApiError.from_response(accept, "Failed to accept EULA")

        grant = self._send(
            "POST",
            f"{self._config.fortnite_service_url}/fortnite/api/game/v2/grant_access/{session.account_id}",
            headers=headers,
        )
        # 409 means access was already granted
        if not grant.is_success and grant.status_code != 409:
            raise ApiError.from_response(grant, "Failed to grant game access")

        info(LogRecord(
            event=LogEvent.EULA_ACCEPTED.value,
            message=f"Accepted EULA version {version} for {session.account_id}",
            data={"account_id": session.account_id, "version": version}
        ))
        return True

    # ----- internals -----

    def _client_token_for_refresh(self) -> str:
        # Refresh tokens are bound to the client that issued them
        return self._config.kairos_client_token if self._config.kairos else self._config.client_token

    @staticmethod
    def _bearer(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"bearer {access_token}"}

    @staticmethod
    def _grant_form(grant: GrantType, credentials: Credentials) -> Dict[str, str]:
        if grant is GrantType.PASSWORD:
            form = {"username": credentials.email, "password": credentials.password}
        elif grant is GrantType.EXCHANGE_CODE:
            form = {"exchange_code": credentials.exchange_code}
        elif grant is GrantType.REFRESH_TOKEN:
            form = {"refresh_token": credentials.refresh_token}
        elif grant is GrantType.DEVICE_AUTH:
            form = {"account_id": credentials.account_id,
                    "device_id": credentials.device_id,
                    "secret": credentials.secret}
        else:
            form = {"code": credentials.authorization_code}
        form["grant_type"] = grant.value
        form["token_type"] = "eg1"
        return form

    def _login_kairos(self, form: Dict[str, str], credentials: Credentials) -> Session:
        launcher = self._grant(form, self._config.client_token, credentials)
        try:
            code = self.exchange_code(launcher.access_token)
            debug(LogRecord(
                event=LogEvent.AUTH_KAIROS_EXCHANGE.value,
                message="Redeeming exchange code with the Kairos client"
            ))
            return self._grant(
                {"grant_type": GrantType.EXCHANGE_CODE.value, "exchange_code": code, "token_type": "eg1"},
                self._config.kairos_client_token,
            )
        finally:
            self.revoke(launcher.access_token)

    def _grant(self, form: Dict[str, str], client_token: str,
               credentials: Optional[Credentials] = None) -> Session:
        response = self._send(
            "POST",
            self._config.token_url,
            headers={"Authorization": client_token},
            data=form,
        )
        if response.is_success:
            return self._parse_session(response)

        body = EpicGamesErrorResponse.from_response(response)
        if body.error_code == TWO_FACTOR_REQUIRED and form.get("grant_type") == GrantType.PASSWORD.value:
            return self._two_factor(body, client_token, credentials)

        failure = AuthenticationFailed.from_response(response, f"Grant '{form.get('grant_type')}' rejected")
        error(LogRecord(
            event=LogEvent.AUTH_FAILED.value,
            message=str(failure),
            data={"status_code": response.status_code, "error_code": failure.error_code}
        ))
        raise failure

    def _two_factor(self, body: EpicGamesErrorResponse, client_token: str,
                    credentials: Optional[Credentials]) -> Session:
        code = credentials.two_factor_code if credentials else None
        challenge = body.challenge or (body.metadata or {}).get("challenge")
        if not code or not challenge:
            raise AuthenticationFailed(
                "Two-factor authentication is required but no code was provided",
                error_code=TWO_FACTOR_REQUIRED,
            )
        info(LogRecord(
            event=LogEvent.AUTH_TWO_FACTOR_REQUIRED.value,
            message="Two-factor authentication required, sending one-time code"
        ))
        return self._grant({"grant_type": "otp", "otp": code, "challenge": challenge}, client_token)

    @staticmethod
    def _parse_session(response: httpx.Response) -> Session:
        try:
            return Session.from_token_response(decode("token", response.json()))
        except (ValueError, ValidationError) as e:
            raise AuthenticationFailed("Malformed token response",
                                       status_code=response.status_code) from e

    def _after_success(self, session: Session) -> None:
        if self._config.kill_other_sessions:
            self.kill_other_sessions(session.access_token)

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            error(LogRecord(
                event=LogEvent.AUTH_NETWORK_ERROR.value,
                message=f"{method} request to the account service failed: {type(e).__name__}"
            ))
            raise NetworkError(f"{method} request to the account service failed: {e}") from e
