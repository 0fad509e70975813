"""
OAuth grants against the Epic Games account service.

Provides login for every supported grant type, token refresh, token
revocation, killing other sessions and post-login EULA acceptance.
"""

from .authenticator import TokenAuthenticator, TWO_FACTOR_REQUIRED, KILL_OTHERS_TYPE

__all__ = ["TokenAuthenticator", "TWO_FACTOR_REQUIRED", "KILL_OTHERS_TYPE"]
