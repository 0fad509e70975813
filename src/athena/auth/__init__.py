"""
Outbound request signing for the shared HTTP client.
"""

from .request_signer import (
    AUTHORIZATION_HEADER,
    CORRELATION_HEADER,
    USER_AGENT_HEADER,
    InterceptorAction,
    RequestSigner,
    copy_with_headers,
)
from .middleware import SigningAuth

__all__ = [
    "AUTHORIZATION_HEADER",
    "CORRELATION_HEADER",
    "USER_AGENT_HEADER",
    "InterceptorAction",
    "RequestSigner",
    "SigningAuth",
    "copy_with_headers",
]
