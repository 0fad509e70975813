"""
Session configuration.

Settings come from a ``SessionConfig`` with defaults, optionally overridden by
the ``session:`` mapping of a YAML file. Secrets never live in the YAML file:
the ``credentials:`` mapping names environment variables (``email_env``,
``password_env`` ...) that are resolved after loading a ``.env`` file.
"""

import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError
from .log_utils import LogEvent, LogRecord, info, warning

# launcherAppClient2
LAUNCHER_CLIENT_TOKEN = (
    "basic MzRhMDJjZjhmNDQxNGUyOWIxNTkyMTg3NmRhMzZmOWE6ZGFhZmJjY2M3Mzc3NDUwMzlkZmZlNTNkOTRmYzc2Y2Y="
)
# fortniteIOSGameClient, used to redeem exchange codes for the Kairos flow
KAIROS_CLIENT_TOKEN = (
    "basic MzQ0NmNkNzI2OTRjNGE0NDg1ZDgxYjc3YWRiYjIxNDE6OTIwOWQ0YTVlMjVhNDU3ZmI5YjA3NDg5ZDMxM2I0MWE="
)
DEFAULT_USER_AGENT = "Fortnite/++Fortnite+Release-11.40-CL-11039906 Windows/10.0.17134.1.768.64bit"

ACCOUNT_SERVICE_URL = "https://account-public-service-prod03.ol.epicgames.com"
EULA_SERVICE_URL = "https://eulatracking-public-service-prod-m.ol.epicgames.com"
FORTNITE_SERVICE_URL = "https://fortnite-public-service-prod11.ol.epicgames.com"


class GrantType(str, Enum):
    PASSWORD = "password"
    EXCHANGE_CODE = "exchange_code"
    REFRESH_TOKEN = "refresh_token"
    DEVICE_AUTH = "device_auth"
    AUTHORIZATION_CODE = "authorization_code"


# Credential fields each grant needs
REQUIRED_CREDENTIALS: Dict[GrantType, Tuple[str, ...]] = {
    GrantType.PASSWORD: ("email", "password"),
    GrantType.EXCHANGE_CODE: ("exchange_code",),
    GrantType.REFRESH_TOKEN: ("refresh_token",),
    GrantType.DEVICE_AUTH: ("account_id", "device_id", "secret"),
    GrantType.AUTHORIZATION_CODE: ("authorization_code",),
}


@dataclass(frozen=True)
class Credentials:
    """Inputs of the initial grant."""
    email: Optional[str] = None
    password: Optional[str] = None
    two_factor_code: Optional[str] = None
    exchange_code: Optional[str] = None
    authorization_code: Optional[str] = None
    refresh_token: Optional[str] = None
    account_id: Optional[str] = None
    device_id: Optional[str] = None
    secret: Optional[str] = None

    def __repr__(self) -> str:
        present = [f.name for f in fields(self) if getattr(self, f.name)]
        return f"Credentials(present={present})"

    @classmethod
    def from_env(cls, mapping: Dict[str, str]) -> "Credentials":
        """Build credentials from ``<field>_env`` keys naming environment variables."""
        values = {}
        for credential_field in fields(cls):
            env_name = mapping.get(f"{credential_field.name}_env")
            if env_name:
                values[credential_field.name] = os.environ.get(env_name)
        return cls(**values)


@dataclass
class SessionConfig:
    """Recognized session options and their defaults."""
    grant_type: GrantType = GrantType.PASSWORD
    kairos: bool = False
    auto_refresh: bool = True
    kill_other_sessions: bool = True
    enable_transport: bool = True
    handle_shutdown: bool = True
    accept_eula: bool = False
    rearm_after_rotation: bool = False

    safety_margin: int = 300  # seconds before expiry
    timeout: float = 30.0
    proxy: Optional[str] = None
    client_token: str = LAUNCHER_CLIENT_TOKEN
    kairos_client_token: str = KAIROS_CLIENT_TOKEN
    user_agent: str = DEFAULT_USER_AGENT

    account_service_url: str = ACCOUNT_SERVICE_URL
    eula_service_url: str = EULA_SERVICE_URL
    fortnite_service_url: str = FORTNITE_SERVICE_URL

    log_level: str = "INFO"
    log_file_path: str = ""
    log_color: bool = True

    def __post_init__(self):
        if not isinstance(self.grant_type, GrantType):
            try:
                self.grant_type = GrantType(self.grant_type)
            except ValueError:
                raise ConfigurationError(f"Unknown grant type: {self.grant_type!r}")
        if self.safety_margin < 0:
            raise ConfigurationError("safety_margin must not be negative")

    @property
    def token_url(self) -> str:
        return f"{self.account_service_url}/account/api/oauth/token"

    def validate(self, credentials: Credentials) -> None:
        """Raise ConfigurationError if the chosen grant is missing an input."""
        missing = [name for name in REQUIRED_CREDENTIALS[self.grant_type]
                   if not getattr(credentials, name)]
        if missing:
            raise ConfigurationError(
                f"Grant '{self.grant_type.value}' requires credentials: {', '.join(missing)}"
            )

    @classmethod
    def from_dict(cls, settings: Dict[str, Any]) -> "SessionConfig":
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in settings.items() if key in known}
        unknown = sorted(key for key in settings if key not in known)
        if unknown:
            warning(LogRecord(
                event=LogEvent.CONFIG_UNKNOWN_OPTION.value,
                message=f"Ignoring unknown session options: {unknown}",
                data={"options": unknown}
            ))
        return cls(**kwargs)


def load_config(config_path: Union[str, Path] = "config.yaml",
                env_file: Optional[str] = None) -> Tuple[SessionConfig, Credentials]:
    """Load session settings and credentials from a YAML file.

    A missing file yields the defaults and empty credentials; a file that
    cannot be parsed raises ConfigurationError.
    """
    load_dotenv(env_file)
    config_path = Path(config_path)

    if not config_path.exists():
        warning(LogRecord(
            event=LogEvent.CONFIG_LOAD_FAILED.value,
            message=f"Config file {config_path} not found, using defaults",
        ))
        return SessionConfig(), Credentials()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    session_config = SessionConfig.from_dict(raw.get('session', {}) or {})
    credentials = Credentials.from_env(raw.get('credentials', {}) or {})

    info(LogRecord(
        event=LogEvent.CONFIG_LOADED.value,
        message=f"Loaded session config from {config_path}",
        data={"grant_type": session_config.grant_type.value,
              "auto_refresh": session_config.auto_refresh,
              "kairos": session_config.kairos}
    ))
    return session_config, credentials
