"""Per-model session manager for client-to-client traffic through Barista.

Barista is a relay server: clients bound to the same model talk to each
other through it. There are two categories of traffic:

- relay: passing information on to other clients ("where I am"),
  fire-and-forget and possibly broadcast to every model;
- query: asking Barista about something it knows ("what is the layout").

Every outbound packet is stamped with this client's token and model id.
Inbound packets are dropped unless their class is known and they are
addressed to our model (broadcasts excepted), then handed to the
callbacks registered under the packet's class.

Nothing here raises for protocol conditions: sending while unbound,
unknown classes and traffic for other models are logged and ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .classify import classify_query, classify_relay
from .config import BaristaConfig
from .errors import BaristaClientError
from .identity import IdentityState
from .protocol import (
    CLASS_BROADCAST,
    CLASS_CLAIRVOYANCE,
    CLASS_MESSAGE,
    CLASS_QUERY,
    CLASS_TELEKINESIS,
    EVENT_CONNECT,
    EVENT_INITIALIZATION,
    EVENT_NAMES,
    EVENT_QUERY,
    EVENT_RELAY,
    ClairvoyancePayload,
    LayoutQuery,
    TelekinesisObject,
    TelekinesisPayload,
    build_outbound,
)
from .registry import CallbackRegistry

# Transport support - the manager stays usable (as a no-op) without it
try:
    from .transport import BaristaChannel

    transport_available = True
except ImportError:
    BaristaChannel = None  # type: ignore[assignment,misc]
    transport_available = False

_LOGGER = logging.getLogger(__name__)

ChannelFactory = Callable[[str, BaristaConfig], Any]


def _as_packet(data: Any) -> dict[str, Any]:
    """Inbound payloads that are not objects are treated as empty packets."""
    return data if isinstance(data, dict) else {}


class BaristaManager:
    """Session manager for one client bound to one model.

    Usage:
        manager = BaristaManager("ws://barista.example.org:3400", token="abc")
        manager.on("clairvoyance", show_pointer)
        manager.on("query", apply_layout)
        manager.bind("gomodel:0001")
        manager.send_clairvoyance(120, 340)
        manager.request_layout()
        await manager.close()
    """

    def __init__(
        self,
        barista_location: str | None = None,
        token: str | None = None,
        *,
        config: BaristaConfig | None = None,
        channel_factory: ChannelFactory | None = None,
    ) -> None:
        """Initialize manager.

        Args:
            barista_location: Relay server URL; ignored when config is given
            token: Identifying token; overrides the configured token
            config: Full client configuration
            channel_factory: Callable building the channel for a URL and
                config (default: BaristaChannel.from_config)
        """
        if config is None:
            if barista_location is None:
                raise TypeError("Either barista_location or config is required")
            config = BaristaConfig(location=barista_location, token=token)

        self._config = config
        self._identity = IdentityState(
            token=token if token is not None else config.token
        )
        self._registry = CallbackRegistry(EVENT_NAMES)
        self._channel: Any = None
        self._debug = config.debug

        if channel_factory is None and BaristaChannel is not None:
            channel_factory = BaristaChannel.from_config
        self._channel_factory = channel_factory

        # Check that the transport was correctly loaded.
        if not transport_available or self._channel_factory is None:
            self._ll("unable to load the relay transport; manager disabled")
            self._okay = False
        else:
            self._ll("transport available for %s", config.location)
            self._okay = True

    # -------------------------------------------------------------------------
    # Public API: State
    # -------------------------------------------------------------------------

    def okay(self) -> bool:
        """Whether the transport is usable."""
        return self._okay

    def logger(self, flag: bool | None = None) -> bool:
        """Read, or set with a bool, whether diagnostics are emitted."""
        if isinstance(flag, bool):
            self._debug = flag
        return self._debug

    @property
    def token(self) -> str | None:
        """Identifying token attached to outbound packets."""
        return self._identity.token

    @token.setter
    def token(self, value: str | None) -> None:
        self._identity.set_token(value)

    @property
    def model_id(self) -> str | None:
        """Model this manager is bound to."""
        return self._identity.model_id

    @property
    def connection_id(self) -> str | None:
        """Identifier of the underlying channel, once bound."""
        if self._channel is None:
            return None
        return getattr(self._channel, "id", None)

    @property
    def is_bound(self) -> bool:
        """Check if the manager has a channel and a model id."""
        return self._channel is not None and self._identity.bound

    @property
    def connection_state(self) -> str:
        """Get current connection state: "unbound" or "bound"."""
        return "bound" if self.is_bound else "unbound"

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on(
        self,
        event: str,
        callback: Callable[[dict[str, Any]], Any],
        *,
        priority: int = 0,
        callback_id: str | None = None,
    ) -> str:
        """Register a callback; it receives the packet as its only argument.

        Events: connect, initialization, relay, merge, rebuild, message,
        broadcast, clairvoyance, telekinesis, query.

        Returns:
            Callback id for `off`.
        """
        return self._registry.on(
            event, callback, priority=priority, callback_id=callback_id
        )

    def off(self, event: str, callback_id: str) -> bool:
        """Unregister a callback by id."""
        return self._registry.off(event, callback_id)

    # -------------------------------------------------------------------------
    # Public API: Connection
    # -------------------------------------------------------------------------

    def bind(self, model_id: str) -> bool:
        """Connect to the relay server and bind to a model.

        Required before sending anything. Must be called with a running
        event loop. Binding twice is a usage error and is refused.

        Returns:
            True if the channel was started, False otherwise
        """
        if not self.okay():
            self._ll("no usable transport; cannot bind to %s", model_id)
            return False

        if self.is_bound:
            _LOGGER.warning(
                "[%s] Already bound; refusing to bind to %s", self.model_id, model_id
            )
            return False

        channel = self._channel_factory(self._config.location, self._config)
        channel.on(EVENT_CONNECT, self._handle_connect)
        channel.on(EVENT_INITIALIZATION, self._handle_initialization)
        channel.on(EVENT_RELAY, self._handle_relay)
        channel.on(EVENT_QUERY, self._handle_query)

        try:
            channel.connect()
        except BaristaClientError as err:
            _LOGGER.warning(
                "[%s] Could not start channel to %s: %s",
                model_id,
                self._config.location,
                err,
            )
            return False

        self._channel = channel
        self._identity.bind_model(model_id)
        self._ll("bound to %s via %s", self._config.location, self.connection_id)
        return True

    connect = bind

    async def close(self) -> None:
        """Close the channel. Later sends are dropped by the closed channel."""
        if self._channel is None:
            return
        self._ll("closing channel %s", self.connection_id)
        await self._channel.close()

    # -------------------------------------------------------------------------
    # Public API: Outbound
    # -------------------------------------------------------------------------

    def relay(self, relay_class: str, data: dict[str, Any]) -> None:
        """Relay information to other clients, stamped with our identity."""
        if not self._ready() or not self._is_packet(relay_class, data):
            return
        build_outbound(relay_class, data, self._identity)
        self._channel.emit(EVENT_RELAY, data)

    def query(self, query_class: str, data: dict[str, Any]) -> None:
        """Ask Barista for something it knows, stamped with our identity."""
        if not self._ready() or not self._is_packet(query_class, data):
            return
        self._ll("sending query: %s", query_class)
        build_outbound(query_class, data, self._identity)
        self._channel.emit(EVENT_QUERY, data)

    def send_message(self, payload: dict[str, Any]) -> None:
        """Just a message, to clients on our model."""
        self.relay(CLASS_MESSAGE, payload)

    def send_broadcast(self, payload: dict[str, Any]) -> None:
        """A message to clients on every model."""
        self.relay(CLASS_BROADCAST, payload)

    def send_clairvoyance(self, top: float, left: float) -> None:
        """Remote awareness of our location."""
        self.relay(CLASS_CLAIRVOYANCE, ClairvoyancePayload(top, left).to_fields())

    def send_telekinesis(self, item_id: str, top: float, left: float) -> None:
        """Move one object at a distance."""
        payload = TelekinesisPayload(objects=(TelekinesisObject(item_id, top, left),))
        self.relay(CLASS_TELEKINESIS, payload.to_fields())

    def request_layout(self) -> None:
        """Ask for the model layout; the answer arrives on "query"."""
        self.query(CLASS_QUERY, LayoutQuery().to_fields())

    # -------------------------------------------------------------------------
    # Internal: Inbound Handlers
    # -------------------------------------------------------------------------

    def _handle_connect(self, data: Any) -> None:
        """Announce ourselves on the model, then run "connect" callbacks."""
        packet = _as_packet(data)
        packet["message_type"] = "success"
        packet["message"] = "new client connected"
        self.relay(CLASS_MESSAGE, packet)

        self._ll('apply "connect" callbacks')
        self._registry.dispatch(EVENT_CONNECT, packet)

    def _handle_initialization(self, data: Any) -> None:
        """Server-pushed initialization data, passed through unfiltered."""
        packet = _as_packet(data)
        self._ll('apply "initialization" callbacks')
        self._registry.dispatch(EVENT_INITIALIZATION, packet)

    def _handle_relay(self, data: Any) -> None:
        packet = _as_packet(data)
        event = classify_relay(packet, self.model_id)
        if event is None:
            return
        self._ll('apply (relay) "%s" callbacks', event)
        self._registry.dispatch(event, packet)

    def _handle_query(self, data: Any) -> None:
        packet = _as_packet(data)
        event = classify_query(packet, self.model_id)
        if event is None:
            return
        self._ll('apply (query) "%s" callbacks', event)
        self._registry.dispatch(event, packet)

    # -------------------------------------------------------------------------
    # Internal: Helpers
    # -------------------------------------------------------------------------

    def _ready(self) -> bool:
        """Check that sending is possible right now."""
        if not self.okay():
            self._ll("no usable transport; dropping packet")
            return False
        if not self.is_bound:
            self._ll("not bound; did you bind()?")
            return False
        return True

    def _is_packet(self, packet_class: str, data: Any) -> bool:
        """Only dict payloads can carry the class and identity stamps."""
        if isinstance(data, dict):
            return True
        self._ll("dropping %s packet: payload is not a mapping", packet_class)
        return False

    def _ll(self, msg: str, *args: Any) -> None:
        """Emit a diagnostic message when enabled."""
        if self._debug:
            _LOGGER.debug("[%s] " + msg, self.model_id, *args)
