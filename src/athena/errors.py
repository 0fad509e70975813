"""Exception hierarchy and remote error payloads."""

from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class EpicGamesErrorResponse(BaseModel):
    """Error body returned by Epic Games services on non-2xx responses."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    error_code: str = Field(default="", alias="errorCode")
    error_message: str = Field(default="", alias="errorMessage")
    numeric_error_code: Optional[int] = Field(default=None, alias="numericErrorCode")
    message_vars: List[Any] = Field(default_factory=list, alias="messageVars")
    originating_service: Optional[str] = Field(default=None, alias="originatingService")
    # Set by the token endpoint when a second factor is required
    challenge: Optional[str] = None
    metadata: Optional[dict] = None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "EpicGamesErrorResponse":
        """Parse an error body, tolerating empty or non-JSON payloads."""
        try:
            return cls.model_validate(response.json())
        except (ValueError, ValidationError):
            return cls(errorMessage=response.text[:200])


class AthenaError(Exception):
    """Base class for every error raised by this package."""


class AuthenticationFailed(AthenaError):
    """Bad credentials, or an expired/revoked token or code. Never retried."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response, context: str) -> "AuthenticationFailed":
        body = EpicGamesErrorResponse.from_response(response)
        detail = body.error_message or f"HTTP {response.status_code}"
        return cls(f"{context}: {detail}", error_code=body.error_code or None,
                   status_code=response.status_code)


class NetworkError(AthenaError):
    """Transport level failure (connection, timeout). Not retried at this layer."""


class NotAuthenticated(AthenaError):
    """The credential store was read before the first successful login."""


class ApiError(AthenaError):
    """A resource endpoint answered with an error."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response, context: str) -> "ApiError":
        body = EpicGamesErrorResponse.from_response(response)
        detail = body.error_message or f"HTTP {response.status_code}"
        return cls(f"{context}: {detail}", error_code=body.error_code or None,
                   status_code=response.status_code)


class ConfigurationError(AthenaError):
    """Invalid or incomplete session configuration."""
