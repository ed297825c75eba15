"""Configuration for the VCO client."""

import os
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from ..core.compat import ServerVersion
from ..core.errors import ConfigError

# Path prefixes after the host.
REST_API_BASE = "api/sdwan/v2"
JSONRPC_PATH = "portal/"
PORTAL_REST_BASE = "portal/rest"


class HTTPMethod(IntEnum):
    """HTTP methods used by the REST resource API."""

    GET = 0
    POST = 1
    PUT = 2
    PATCH = 3
    DELETE = 4

    def __str__(self) -> str:
        """Convert to string representation."""
        return self.name


class WireProtocol(str, Enum):
    """The two wire protocols the orchestrator speaks."""

    REST = "rest"
    JSONRPC = "jsonrpc"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1")


def _env_seconds(name: str, default: str) -> float:
    value = os.getenv(name, default)
    try:
        seconds = float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}") from None
    if seconds <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return seconds


@dataclass(frozen=True)
class Config:
    """Configuration for the VCO client."""

    fqdn: str
    server_version: Optional[str] = None
    verify_ssl: bool = True
    ca_bundle: Optional[str] = None
    keystore_path: Optional[str] = None
    keystore_password: Optional[str] = None
    request_timeout: float = 30.0
    login_timeout: float = 30.0
    # Sessions are refreshed this many seconds before they expire.
    refresh_margin: float = 30.0
    # Lifetime assumed for portal cookie sessions, which carry no expiry.
    session_lifetime: float = 1800.0
    page_size: int = 500
    user_agent: str = "py-vco"

    def __post_init__(self) -> None:
        fqdn = self.fqdn.strip().lower()
        if "." not in fqdn or fqdn.startswith(".") or fqdn.endswith("."):
            raise ConfigError(f'Bad FQDN format, expected at least one dot in name, not "{self.fqdn}".')
        object.__setattr__(self, "fqdn", fqdn)
        if self.server_version is not None:
            try:
                ServerVersion.parse(self.server_version)
            except ValueError as e:
                raise ConfigError(str(e)) from e

    @property
    def target_version(self) -> Optional[ServerVersion]:
        """The server version that outgoing payloads are shaped for."""
        if self.server_version is None:
            return None
        return ServerVersion.parse(self.server_version)

    @property
    def base_url(self) -> str:
        return f"https://{self.fqdn}"

    def rest_url(self, path: str) -> str:
        """Build a REST resource API URL."""
        return f"{self.base_url}/{REST_API_BASE}/{path.lstrip('/')}"

    def jsonrpc_url(self) -> str:
        """Build the JSONRPC endpoint URL."""
        return f"{self.base_url}/{JSONRPC_PATH}"

    def portal_url(self, path: str) -> str:
        """Build a portal REST URL (login and logout)."""
        return f"{self.base_url}/{PORTAL_REST_BASE}/{path.lstrip('/')}"

    @classmethod
    def from_env(cls, fqdn: Optional[str] = None) -> "Config":
        """Load configuration from environment variables."""
        fqdn = fqdn or os.getenv("VCO_FQDN")
        if not fqdn:
            raise ConfigError("An orchestrator FQDN is required (VCO_FQDN).")
        return cls(
            fqdn=fqdn,
            server_version=os.getenv("VCO_SERVER_VERSION") or None,
            verify_ssl=_env_flag("VCO_VERIFY_SSL", "true"),
            ca_bundle=os.getenv("VCO_CA_BUNDLE"),
            keystore_path=os.getenv("VCO_KEYSTORE_PATH"),
            keystore_password=os.getenv("VCO_KEYSTORE_PASSWORD"),
            request_timeout=_env_seconds("VCO_REQUEST_TIMEOUT", "30"),
            login_timeout=_env_seconds("VCO_LOGIN_TIMEOUT", "30"),
        )
