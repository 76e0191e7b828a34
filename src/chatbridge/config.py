"""
Client Configuration

Configuration objects for the two backends and the detection that picks a
backend from whichever fields a configuration provides.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_AUTH_DIR = "./auth_info"

# Fields whose presence selects the socket backend
SOCKET_FIELDS = ("auth_dir", "session_path", "auth_state")


class AuthMethod(Enum):
    BAILEYS = "baileys"
    CLOUDAPI = "cloudapi"


@dataclass
class SocketClientConfig:
    """
    Configuration for the persistent-socket backend.

    Attributes:
        auth_dir: Directory where session credentials are kept
        print_qr_in_terminal: Print pairing codes to stdout
        bridge_url: WebSocket URL of the protocol engine bridge
    """

    auth_dir: str = DEFAULT_AUTH_DIR
    print_qr_in_terminal: bool = True
    bridge_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SocketClientConfig":
        auth_dir = (
            data.get("auth_dir") or data.get("session_path") or DEFAULT_AUTH_DIR
        )
        print_qr = data.get("print_qr_in_terminal")
        return cls(
            auth_dir=auth_dir,
            print_qr_in_terminal=True if print_qr is None else bool(print_qr),
            bridge_url=data.get("bridge_url"),
        )


@dataclass
class CloudApiConfig:
    """
    Configuration for the HTTP Cloud API backend.

    Attributes:
        access_token: API access token
        phone_number_id: Sending phone number identifier
        webhook_verify_token: Token expected on webhook verification
    """

    access_token: str
    phone_number_id: str
    webhook_verify_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CloudApiConfig":
        missing = [
            name for name in ("access_token", "phone_number_id") if not data.get(name)
        ]
        if missing:
            raise ConfigurationError(
                f"Cloud API configuration requires {', '.join(missing)}"
            )
        return cls(
            access_token=data["access_token"],
            phone_number_id=str(data["phone_number_id"]),
            webhook_verify_token=data.get("webhook_verify_token"),
        )


def detect_auth_method(config: Mapping[str, Any]) -> AuthMethod:
    """
    Decide which backend a configuration targets.

    An explicit ``auth_method`` wins. Otherwise any socket-session field
    selects the socket backend, and an access token together with a phone
    number id selects the Cloud API.

    Args:
        config: Configuration mapping

    Returns:
        AuthMethod for the configuration

    Raises:
        ConfigurationError: If neither field set is present or the explicit
                            method is unknown
    """
    explicit = config.get("auth_method")
    if explicit:
        try:
            return AuthMethod(explicit)
        except ValueError:
            raise ConfigurationError(f"Unknown auth method: {explicit}")

    if any(config.get(name) for name in SOCKET_FIELDS):
        return AuthMethod.BAILEYS

    if config.get("access_token") and config.get("phone_number_id"):
        return AuthMethod.CLOUDAPI

    raise ConfigurationError(
        "Cannot detect auth method. Provide either:\n"
        "  - auth_dir (for QR code pairing)\n"
        "  - access_token + phone_number_id (for Cloud API)"
    )


def _env_flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def load_config_from_env(
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """
    Read client configuration from CHATBRIDGE_* environment variables.

    Only variables that are set appear in the result, so the mapping can be
    passed straight to detect_auth_method().
    """
    env = os.environ if environ is None else environ
    mapping = {
        "auth_method": "CHATBRIDGE_AUTH_METHOD",
        "auth_dir": "CHATBRIDGE_AUTH_DIR",
        "bridge_url": "CHATBRIDGE_BRIDGE_URL",
        "access_token": "CHATBRIDGE_ACCESS_TOKEN",
        "phone_number_id": "CHATBRIDGE_PHONE_NUMBER_ID",
        "webhook_verify_token": "CHATBRIDGE_WEBHOOK_VERIFY_TOKEN",
    }
    config: Dict[str, Any] = {
        key: env[name] for key, name in mapping.items() if env.get(name)
    }

    print_qr = _env_flag(env.get("CHATBRIDGE_PRINT_QR"))
    if print_qr is not None:
        config["print_qr_in_terminal"] = print_qr

    logger.debug("Loaded configuration keys from environment: %s", sorted(config))
    return config


def build_client_config(
    config: Mapping[str, Any],
) -> Union[SocketClientConfig, CloudApiConfig]:
    """
    Build the configuration object for the backend a mapping targets.

    Raises:
        ConfigurationError: If no backend can be detected, or the Cloud API
                            is selected without its credentials
    """
    method = detect_auth_method(config)
    if method is AuthMethod.BAILEYS:
        return SocketClientConfig.from_dict(config)
    return CloudApiConfig.from_dict(config)
