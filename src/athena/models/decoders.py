"""
Explicit JSON decoders keyed by resource type tag.

Resources ask for a payload by tag (``decode("account", data)``); the set of
tags is closed and listed in ``DECODERS``.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List

from pydantic import TypeAdapter

from ..session import TokenResponse
from .account import Account, ExternalAuth

_ACCOUNT_LIST = TypeAdapter(List[Account])
_DATETIME = TypeAdapter(datetime)


def decode_account(payload: Any) -> Account:
    return Account.model_validate(payload)


def decode_accounts(payload: Any) -> List[Account]:
    return _ACCOUNT_LIST.validate_python(payload or [])


def decode_external_auth(payload: Any) -> ExternalAuth:
    return ExternalAuth.model_validate(payload)


def decode_last_online(payload: Any) -> Dict[str, datetime]:
    """``{account_id: [{"last_online": iso8601}, ...]}`` -> ``{account_id: datetime}``."""
    result = {}
    for account_id, entries in (payload or {}).items():
        if entries:
            result[account_id] = _DATETIME.validate_python(entries[0]["last_online"])
    return result


def decode_token(payload: Any) -> TokenResponse:
    return TokenResponse.model_validate(payload)


DECODERS: Dict[str, Callable[[Any], Any]] = {
    "account": decode_account,
    "accounts": decode_accounts,
    "external_auth": decode_external_auth,
    "last_online": decode_last_online,
    "token": decode_token,
}


def decode(tag: str, payload: Any) -> Any:
    try:
        decoder = DECODERS[tag]
    except KeyError:
        raise ValueError(f"No decoder registered for resource type {tag!r}") from None
    return decoder(payload)
