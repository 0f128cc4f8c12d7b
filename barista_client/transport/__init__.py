"""Transport layer for the Barista client.

This package contains all IO and network handling.

Components:
- ws_client: relay server socket and frame normalization
- channel: Named-event channel used by the manager
"""

from .channel import BaristaChannel
from .ws_client import BaristaWsClient, BaristaWsMessage, BaristaWsMessageType

__all__ = [
    "BaristaChannel",
    "BaristaWsClient",
    "BaristaWsMessage",
    "BaristaWsMessageType",
]
