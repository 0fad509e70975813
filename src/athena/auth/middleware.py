"""
httpx integration for the request signer.
"""

from typing import Generator

import httpx

from .request_signer import RequestSigner


class SigningAuth(httpx.Auth):
    """httpx auth flow that routes every request through a RequestSigner."""

    requires_request_body = False
    requires_response_body = False

    def __init__(self, signer: RequestSigner):
        self.signer = signer

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        yield self.signer.apply_to(request)
