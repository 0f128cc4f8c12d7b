"""Client-side session manager for the Barista relay server."""

__version__ = "0.1.0"

from .classify import applies_to, classify_query, classify_relay
from .config import BaristaConfig, load_config
from .errors import (
    BaristaClientError,
    BaristaConfigError,
    BaristaConnectionError,
    BaristaHandshakeError,
    BaristaProtocolError,
    BaristaTimeout,
)
from .identity import IdentityState
from .manager import BaristaManager
from .protocol import (
    EVENT_NAMES,
    KNOWN_QUERY_CLASSES,
    KNOWN_RELAY_CLASSES,
    ClairvoyancePayload,
    LayoutQuery,
    MessagePayload,
    RawPayload,
    TelekinesisObject,
    TelekinesisPayload,
    build_outbound,
    decode_payload,
)
from .registry import CallbackRegistry
from .transport import BaristaChannel

__all__ = [
    "EVENT_NAMES",
    "KNOWN_QUERY_CLASSES",
    "KNOWN_RELAY_CLASSES",
    "BaristaChannel",
    "BaristaClientError",
    "BaristaConfig",
    "BaristaConfigError",
    "BaristaConnectionError",
    "BaristaHandshakeError",
    "BaristaManager",
    "BaristaProtocolError",
    "BaristaTimeout",
    "CallbackRegistry",
    "ClairvoyancePayload",
    "IdentityState",
    "LayoutQuery",
    "MessagePayload",
    "RawPayload",
    "TelekinesisObject",
    "TelekinesisPayload",
    "__version__",
    "applies_to",
    "build_outbound",
    "classify_query",
    "classify_relay",
    "decode_payload",
    "load_config",
]
