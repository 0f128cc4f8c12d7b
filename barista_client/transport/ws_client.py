"""WebSocket connection to a Barista relay server.

Received frames are normalized into `BaristaWsMessage` values so the channel
only ever sees text, a close, or a failure. Binary frames are not part of
the relay protocol and are skipped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    ConnectionClosed,
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import BaristaConnectionError, BaristaHandshakeError, BaristaTimeout

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class BaristaWsMessageType(Enum):
    """What a received relay frame turned out to be."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class BaristaWsMessage:
    """One received frame; `data` is set for TEXT only."""

    type: BaristaWsMessageType
    data: str | None = None


class BaristaWsClient:
    """Single relay server socket: open, send text, iterate frames, close."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        """Whether a connection has been opened."""
        return self._ws is not None

    async def connect(
        self,
        url: str,
        *,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
        close_timeout: float = 5.0,
    ) -> None:
        """Open the socket to the relay server.

        Args:
            url: ws:// or wss:// URL of the relay server
            ping_interval: Keepalive ping interval (None disables keepalive)
            timeout: Time allowed for the opening handshake
            close_timeout: Time allowed for the closing handshake

        Raises:
            BaristaTimeout: The handshake did not finish within `timeout`.
            BaristaHandshakeError: The URL or the server's upgrade response
                was rejected.
            BaristaConnectionError: The server could not be reached.
        """
        try:
            self._ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    ping_interval=ping_interval,
                    close_timeout=close_timeout,
                    max_size=None,
                ),
                timeout=timeout,
            )
        except TimeoutError as err:
            raise BaristaTimeout(f"Timed out connecting to {url}") from err
        except (InvalidHandshake, InvalidURI) as err:
            raise BaristaHandshakeError(f"Handshake with {url} failed: {err}") from err
        except (OSError, WebSocketException) as err:
            raise BaristaConnectionError(f"Cannot reach {url}: {err}") from err

    async def close(self) -> None:
        """Close the socket if one was opened."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, text: str) -> None:
        """Send one text frame.

        Raises:
            BaristaConnectionError: Not connected, or the peer has gone.
        """
        if self._ws is None:
            raise BaristaConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(text)
        except ConnectionClosed as err:
            raise BaristaConnectionError("WebSocket is closed") from err

    def __aiter__(self) -> AsyncIterator[BaristaWsMessage]:
        if self._ws is None:
            raise BaristaConnectionError("WebSocket is not connected")
        return self._receive(self._ws)

    @staticmethod
    async def _receive(ws: ClientConnection) -> AsyncIterator[BaristaWsMessage]:
        """Yield text frames, then exactly one CLOSED or ERROR."""
        try:
            async for frame in ws:
                if isinstance(frame, str):
                    yield BaristaWsMessage(BaristaWsMessageType.TEXT, frame)
        except ConnectionClosed:
            pass
        except Exception:
            yield BaristaWsMessage(BaristaWsMessageType.ERROR)
            return
        yield BaristaWsMessage(BaristaWsMessageType.CLOSED)
