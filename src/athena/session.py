"""The immutable session value held by the credential store."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .log_utils import mask_token


class TokenResponse(BaseModel):
    """Successful body of the OAuth token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: Optional[int] = None
    expires_at: datetime
    token_type: Optional[str] = None
    refresh_token: str
    refresh_expires: Optional[int] = None
    refresh_expires_at: datetime
    account_id: str
    client_id: Optional[str] = None
    displayName: Optional[str] = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Session:
    """An authenticated token pair. Replaced on rotation, never mutated."""
    account_id: str
    access_token: str
    access_token_expires_at: datetime
    refresh_token: str
    refresh_token_expires_at: datetime
    client_id: Optional[str] = None
    token_type: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_token_response(cls, response: TokenResponse) -> "Session":
        return cls(
            account_id=response.account_id,
            access_token=response.access_token,
            access_token_expires_at=_as_utc(response.expires_at),
            refresh_token=response.refresh_token,
            refresh_token_expires_at=_as_utc(response.refresh_expires_at),
            client_id=response.client_id,
            token_type=response.token_type,
            display_name=response.displayName,
        )

    def is_access_token_expired(self, buffer_seconds: int = 0, now: Optional[datetime] = None) -> bool:
        """Check if the access token is expired or will expire within buffer_seconds"""
        now = now or datetime.now(timezone.utc)
        return (self.access_token_expires_at - now).total_seconds() <= buffer_seconds

    def is_refresh_token_expired(self, buffer_seconds: int = 0, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return (self.refresh_token_expires_at - now).total_seconds() <= buffer_seconds

    def __repr__(self) -> str:
        return (
            f"Session(account_id={self.account_id!r}, "
            f"access_token={mask_token(self.access_token)!r}, "
            f"access_token_expires_at={self.access_token_expires_at.isoformat()}, "
            f"refresh_token_expires_at={self.refresh_token_expires_at.isoformat()})"
        )
