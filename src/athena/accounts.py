"""Account lookups by display name and account ID."""

from typing import Any, Iterable, List, Optional, Union

import httpx

from .errors import ApiError, EpicGamesErrorResponse, NetworkError
from .log_utils import LogEvent, LogRecord, warning
from .models import Account, decode

ACCOUNT_NOT_FOUND = "errors.com.epicgames.account.account_not_found"


class Accounts:
    """Account lookups over the shared, signed HTTP client."""

    def __init__(self, http_client: httpx.Client, base_url: str):
        self._client = http_client
        self._base_url = f"{base_url}/account/api/public/account"

    def find_by_display_name(self, display_name: str) -> Optional[Account]:
        if display_name is None:
            raise ValueError("display_name is required")
        return self._execute_optional(
            f"Failed to find account {display_name} by display name",
            "account",
            "GET", f"{self._base_url}/displayName/{display_name}",
        )

    def find_one_by_account_id(self, account_id: str) -> Optional[Account]:
        if account_id is None:
            raise ValueError("account_id is required")
        return self._execute_optional(
            f"Failed to find account {account_id} by account ID",
            "account",
            "GET", f"{self._base_url}/{account_id}",
        )

    def find_many_by_account_id(self, *account_ids: Union[str, Iterable[str]]) -> List[Account]:
        """Accepts IDs as varargs or a single iterable; returns [] when none match."""
        if len(account_ids) == 1 and not isinstance(account_ids[0], str):
            account_ids = tuple(account_ids[0])
        if not account_ids:
            return []
        result = self._execute_optional(
            "Failed to find account(s) by ID(s)",
            "accounts",
            "GET", self._base_url,
            params=[("accountId", account_id) for account_id in account_ids],
        )
        return result or []

    def _execute_optional(self, context: str, tag: str, method: str, url: str, **kwargs) -> Optional[Any]:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{context}: {e}") from e

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return decode(tag, response.json())

        body = EpicGamesErrorResponse.from_response(response)
        if response.status_code == 404 or body.error_code == ACCOUNT_NOT_FOUND:
            return None

        warning(LogRecord(
            event=LogEvent.API_REQUEST_FAILED.value,
            message=context,
            data={"status_code": response.status_code, "error_code": body.error_code}
        ))
        raise ApiError.from_response(response, context)
