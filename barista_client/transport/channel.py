"""Named-event channel over a relay server WebSocket.

Each WebSocket text message carries one event frame. Handlers registered
with `on` run synchronously inside the reader task, one frame at a time.
`emit` never blocks: frames are queued and written by a writer task, so
frames emitted before the socket opens go out once it does.

The ``connect`` event is synthesized locally when the socket opens.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from ..errors import BaristaClientError, BaristaConnectionError, BaristaProtocolError
from ..protocol import EVENT_CONNECT, decode_frame, encode_frame
from .ws_client import BaristaWsClient, BaristaWsMessageType

if TYPE_CHECKING:
    from ..config import BaristaConfig

_LOGGER = logging.getLogger(__name__)


class BaristaChannel:
    """Bidirectional event channel to a relay server.

    Usage:
        channel = BaristaChannel("ws://localhost:3400")
        channel.on("relay", handle_relay)
        channel.connect()
        channel.emit("relay", {"class": "message", ...})
        await channel.close()
    """

    def __init__(
        self,
        url: str,
        *,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
        close_timeout: float = 5.0,
    ) -> None:
        self.url = url
        self.id = uuid4().hex

        self._ping_interval = ping_interval
        self._timeout = timeout
        self._close_timeout = close_timeout

        self._ws: BaristaWsClient | None = None
        self._handlers: dict[str, list[Callable[[Any], None]]] = defaultdict(list)
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._run_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._closed = False

    @classmethod
    def from_config(cls, url: str, config: BaristaConfig) -> BaristaChannel:
        """Channel factory used by the manager."""
        return cls(
            url,
            ping_interval=config.ping_interval,
            timeout=config.timeout,
            close_timeout=config.close_timeout,
        )

    @property
    def closed(self) -> bool:
        """Whether the channel has stopped accepting frames."""
        return self._closed

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        """Register a handler for a named inbound event."""
        self._handlers[event].append(handler)

    def connect(self) -> None:
        """Start connecting in the background.

        Raises:
            BaristaConnectionError: If there is no running event loop or the
                channel was already started or closed.
        """
        if self._closed:
            raise BaristaConnectionError("Channel is closed")
        if self._run_task is not None:
            raise BaristaConnectionError("Channel already connecting")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as err:
            raise BaristaConnectionError("No running event loop") from err

        self._run_task = loop.create_task(self._run())

    def emit(self, event: str, payload: Any) -> None:
        """Queue one event frame for sending."""
        if self._closed:
            _LOGGER.debug("[%s] Dropping %r frame: channel closed", self.id, event)
            return
        try:
            frame = encode_frame(event, payload)
        except (TypeError, ValueError) as err:
            _LOGGER.warning("[%s] Unserializable %r frame: %s", self.id, event, err)
            return
        self._outbox.put_nowait(frame)

    async def close(self) -> None:
        """Stop the channel and close the socket."""
        _LOGGER.debug("[%s] Closing channel", self.id)
        self._finish()

        for task in (self._writer_task, self._run_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        if self._ws is not None:
            try:
                await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
            except TimeoutError:
                _LOGGER.warning("[%s] WebSocket close timed out", self.id)
            self._ws = None

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _finish(self) -> None:
        """Stop accepting frames and drop any still queued."""
        self._closed = True
        while not self._outbox.empty():
            self._outbox.get_nowait()

    def _fire(self, event: str, data: Any) -> None:
        """Run the handlers for one inbound event."""
        handlers = self._handlers.get(event)
        if not handlers:
            _LOGGER.debug("[%s] Unhandled event: %s", self.id, event)
            return

        for handler in list(handlers):
            try:
                handler(data)
            except Exception as err:
                _LOGGER.exception(
                    "[%s] Handler error for %r: %s", self.id, event, err
                )

    async def _run(self) -> None:
        """Open the socket, then read frames until it closes."""
        ws_client = BaristaWsClient()
        try:
            await ws_client.connect(
                self.url,
                ping_interval=self._ping_interval,
                timeout=self._timeout,
                close_timeout=self._close_timeout,
            )
        except BaristaClientError as err:
            _LOGGER.warning("[%s] Connection to %s failed: %s", self.id, self.url, err)
            self._finish()
            return

        self._ws = ws_client
        _LOGGER.info("[%s] Connected to %s", self.id, self.url)
        self._writer_task = asyncio.create_task(self._write())
        self._fire(EVENT_CONNECT, None)

        try:
            async for msg in ws_client:
                if msg.type is BaristaWsMessageType.TEXT:
                    try:
                        event, data = decode_frame(msg.data or "")
                    except BaristaProtocolError as err:
                        _LOGGER.warning("[%s] Invalid frame: %s", self.id, err)
                        continue
                    self._fire(event, data)

                elif msg.type is BaristaWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed by server", self.id)
                    break

                elif msg.type is BaristaWsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error", self.id)
                    break
        finally:
            self._finish()
            if self._writer_task is not None and not self._writer_task.done():
                self._writer_task.cancel()

    async def _write(self) -> None:
        """Drain the outbox onto the socket."""
        while True:
            frame = await self._outbox.get()
            if self._ws is None:
                return
            try:
                await self._ws.send_text(frame)
            except BaristaClientError as err:
                _LOGGER.warning("[%s] Failed to send frame: %s", self.id, err)
                self._finish()
                return
