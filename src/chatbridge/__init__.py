"""
chatbridge Package

A unified chat client over a persistent-socket messaging backend. The
package provides the SocketClient facade, the ConnectionManager that owns
the session lifecycle, the MessageAdapter that normalizes message shapes,
and a WebSocket bridge transport.
"""

from .adapter import MessageAdapter
from .bridge import BridgeSession, BridgeTransport
from .client import MessagingClient, SocketClient
from .config import (
    AuthMethod,
    CloudApiConfig,
    SocketClientConfig,
    build_client_config,
    detect_auth_method,
    load_config_from_env,
)
from .connection import ConnectionManager
from .credentials import (
    CredentialStore,
    JsonFileCredentialStore,
    MemoryCredentialStore,
)
from .errors import (
    ChatBridgeError,
    ConfigurationError,
    ConnectionRejectedError,
    DisconnectError,
    NotConnectedError,
    ReconnectFailedError,
    TransientDisconnectError,
    TransportError,
    UnsupportedOperationError,
)
from .events import EventEmitter
from .qr import QRCode, TextQRRenderer
from .schemas import (
    ConnectionUpdate,
    ContentType,
    DisconnectEvent,
    MessageContent,
    MessageDirection,
    OutboundRequest,
    UnifiedMessage,
)
from .state import (
    SHORT_RECONNECT_DELAY,
    STANDARD_RECONNECT_DELAY,
    ConnectionState,
    DisconnectOutcome,
    DisconnectReason,
    ReconnectPolicy,
    classify_disconnect,
)
from .transport import Transport, TransportSession

__all__ = [
    # Client classes
    "MessagingClient",
    "SocketClient",
    "ConnectionManager",
    "MessageAdapter",
    "EventEmitter",
    # Transport
    "Transport",
    "TransportSession",
    "BridgeTransport",
    "BridgeSession",
    # Credentials
    "CredentialStore",
    "JsonFileCredentialStore",
    "MemoryCredentialStore",
    # Configuration
    "AuthMethod",
    "CloudApiConfig",
    "SocketClientConfig",
    "build_client_config",
    "detect_auth_method",
    "load_config_from_env",
    # State
    "ConnectionState",
    "DisconnectOutcome",
    "DisconnectReason",
    "ReconnectPolicy",
    "classify_disconnect",
    "SHORT_RECONNECT_DELAY",
    "STANDARD_RECONNECT_DELAY",
    # Schemas
    "ConnectionUpdate",
    "ContentType",
    "DisconnectEvent",
    "MessageContent",
    "MessageDirection",
    "OutboundRequest",
    "UnifiedMessage",
    "QRCode",
    "TextQRRenderer",
    # Errors
    "ChatBridgeError",
    "ConfigurationError",
    "ConnectionRejectedError",
    "DisconnectError",
    "NotConnectedError",
    "ReconnectFailedError",
    "TransientDisconnectError",
    "TransportError",
    "UnsupportedOperationError",
]
