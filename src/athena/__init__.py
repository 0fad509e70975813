"""
Authenticated session core for the Epic Games / Fortnite services.

Log in once, keep the token pair fresh in the background, sign every outbound
request and shut down cleanly.
"""

from .accounts import Accounts
from .client import AthenaClient, SessionState
from .config import Credentials, GrantType, SessionConfig, load_config
from .credential_store import CredentialStore
from .errors import (
    ApiError,
    AthenaError,
    AuthenticationFailed,
    ConfigurationError,
    NetworkError,
    NotAuthenticated,
)
from .lifecycle import LifecycleEvent, LifecycleEventBus
from .log_utils import setup_logging
from .session import Session
from .token_refresher import JobKind, RefreshScheduler, RotationJob
from .transport import Transport

__version__ = "0.1.0"

__all__ = [
    "Accounts",
    "AthenaClient",
    "SessionState",
    "Credentials",
    "GrantType",
    "SessionConfig",
    "load_config",
    "CredentialStore",
    "ApiError",
    "AthenaError",
    "AuthenticationFailed",
    "ConfigurationError",
    "NetworkError",
    "NotAuthenticated",
    "LifecycleEvent",
    "LifecycleEventBus",
    "setup_logging",
    "Session",
    "JobKind",
    "RefreshScheduler",
    "RotationJob",
    "Transport",
]
