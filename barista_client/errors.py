"""Client error types for Barista relay interactions."""

from __future__ import annotations


class BaristaClientError(Exception):
    """Base error for Barista client failures."""


class BaristaTimeout(BaristaClientError):
    """Timeout while communicating with the relay server."""


class BaristaConnectionError(BaristaClientError):
    """Network connection to the relay server failed."""


class BaristaHandshakeError(BaristaClientError):
    """WebSocket handshake failed."""


class BaristaProtocolError(BaristaClientError):
    """Event frame or packet payload could not be decoded."""


class BaristaConfigError(BaristaClientError):
    """Invalid client configuration."""
