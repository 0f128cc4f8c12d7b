"""Protocol helpers for Barista relay and query packets.

A packet is a JSON object tagged by its ``class`` key. Relays carry
client-to-client notifications; queries ask the relay server for facts it
holds. Every outbound packet is stamped with the sender's own ``model_id``
and ``token``.

Packets travel inside event frames: one WebSocket text message holding
``{"event": <name>, "data": <packet>}``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeGuard

from .errors import BaristaProtocolError

if TYPE_CHECKING:
    from .identity import IdentityState

# Wire events
EVENT_CONNECT = "connect"
EVENT_INITIALIZATION = "initialization"
EVENT_RELAY = "relay"
EVENT_QUERY = "query"

# Packet classes
CLASS_RELAY = "relay"
CLASS_MESSAGE = "message"
CLASS_BROADCAST = "broadcast"
CLASS_MERGE = "merge"
CLASS_REBUILD = "rebuild"
CLASS_CLAIRVOYANCE = "clairvoyance"
CLASS_TELEKINESIS = "telekinesis"
CLASS_QUERY = "query"

KNOWN_RELAY_CLASSES: frozenset[str] = frozenset(
    {
        CLASS_RELAY,
        CLASS_MESSAGE,
        CLASS_BROADCAST,
        CLASS_MERGE,
        CLASS_REBUILD,
        CLASS_CLAIRVOYANCE,
        CLASS_TELEKINESIS,
    }
)
KNOWN_QUERY_CLASSES: frozenset[str] = frozenset({CLASS_QUERY})

# Everything a subscriber can register for, in announcement order.
EVENT_NAMES: tuple[str, ...] = (
    EVENT_CONNECT,
    EVENT_INITIALIZATION,
    CLASS_RELAY,  # catch-all
    CLASS_MERGE,  # data is raw response
    CLASS_REBUILD,  # data is raw response
    CLASS_MESSAGE,  # talk on your model
    CLASS_BROADCAST,  # talk on all models
    CLASS_CLAIRVOYANCE,  # pointer location
    CLASS_TELEKINESIS,  # node movement
    CLASS_QUERY,
)

_IDENTITY_KEYS = ("class", "model_id", "token")


def _is_number(value: Any) -> TypeGuard[int | float]:
    """Return True for int/float values, excluding bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_number(fields_: Mapping[str, Any], key: str) -> int | float:
    value = fields_.get(key)
    if not _is_number(value):
        raise BaristaProtocolError(f"Field {key!r} must be a number, got {value!r}")
    return value


def _strip_identity(fields_: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields_.items() if k not in _IDENTITY_KEYS}


# -----------------------------------------------------------------------------
# Typed payloads
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MessagePayload:
    """Free-form talk, used by both ``message`` and ``broadcast``."""

    message_type: str | None = None
    message: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_fields(self) -> dict[str, Any]:
        result = dict(self.extra)
        if self.message_type is not None:
            result["message_type"] = self.message_type
        if self.message is not None:
            result["message"] = self.message
        return result

    @classmethod
    def from_fields(cls, fields_: Mapping[str, Any]) -> MessagePayload:
        rest = _strip_identity(fields_)
        return cls(
            message_type=rest.pop("message_type", None),
            message=rest.pop("message", None),
            extra=rest,
        )


@dataclass(frozen=True)
class RawPayload:
    """Pass-through payload for ``relay``, ``merge`` and ``rebuild``."""

    fields: dict[str, Any] = field(default_factory=dict)

    def to_fields(self) -> dict[str, Any]:
        return dict(self.fields)

    @classmethod
    def from_fields(cls, fields_: Mapping[str, Any]) -> RawPayload:
        return cls(fields=_strip_identity(fields_))


@dataclass(frozen=True)
class ClairvoyancePayload:
    """Remote awareness of a client's pointer location."""

    top: int | float
    left: int | float

    def to_fields(self) -> dict[str, Any]:
        return {"top": self.top, "left": self.left}

    @classmethod
    def from_fields(cls, fields_: Mapping[str, Any]) -> ClairvoyancePayload:
        return cls(
            top=_require_number(fields_, "top"),
            left=_require_number(fields_, "left"),
        )


@dataclass(frozen=True)
class TelekinesisObject:
    """One item moved at a distance."""

    item_id: str
    top: int | float
    left: int | float

    def to_fields(self) -> dict[str, Any]:
        return {"item_id": self.item_id, "top": self.top, "left": self.left}


@dataclass(frozen=True)
class TelekinesisPayload:
    """Moved items. Outbound packets always carry exactly one object."""

    objects: tuple[TelekinesisObject, ...]

    def to_fields(self) -> dict[str, Any]:
        return {"objects": [obj.to_fields() for obj in self.objects]}

    @classmethod
    def from_fields(cls, fields_: Mapping[str, Any]) -> TelekinesisPayload:
        raw_objects = fields_.get("objects")
        if not isinstance(raw_objects, list):
            raise BaristaProtocolError("Field 'objects' must be a list")

        objects: list[TelekinesisObject] = []
        for idx, raw in enumerate(raw_objects):
            if not isinstance(raw, Mapping) or "item_id" not in raw:
                raise BaristaProtocolError(
                    f"Telekinesis object at index {idx} has no item_id"
                )
            objects.append(
                TelekinesisObject(
                    item_id=raw["item_id"],
                    top=_require_number(raw, "top"),
                    left=_require_number(raw, "left"),
                )
            )
        return cls(objects=tuple(objects))


@dataclass(frozen=True)
class LayoutQuery:
    """Ask the relay server for the layout it holds."""

    query: str = "layout"

    def to_fields(self) -> dict[str, Any]:
        return {"query": self.query}

    @classmethod
    def from_fields(cls, fields_: Mapping[str, Any]) -> LayoutQuery:
        query = fields_.get("query")
        if not isinstance(query, str):
            raise BaristaProtocolError("Field 'query' must be a string")
        return cls(query=query)


Payload = (
    MessagePayload
    | RawPayload
    | ClairvoyancePayload
    | TelekinesisPayload
    | LayoutQuery
)

_PAYLOAD_TYPES: dict[str, Any] = {
    CLASS_RELAY: RawPayload,
    CLASS_MERGE: RawPayload,
    CLASS_REBUILD: RawPayload,
    CLASS_MESSAGE: MessagePayload,
    CLASS_BROADCAST: MessagePayload,
    CLASS_CLAIRVOYANCE: ClairvoyancePayload,
    CLASS_TELEKINESIS: TelekinesisPayload,
    CLASS_QUERY: LayoutQuery,
}


def decode_payload(packet: Mapping[str, Any]) -> Payload:
    """Return the typed payload for a packet, selected by its ``class``.

    Raises:
        BaristaProtocolError: If the class is missing or unknown, or a
            required field is absent or mistyped.
    """
    packet_class = packet.get("class")
    if not packet_class:
        raise BaristaProtocolError("Packet has no class")
    payload_type = (
        _PAYLOAD_TYPES.get(packet_class) if isinstance(packet_class, str) else None
    )
    if payload_type is None:
        raise BaristaProtocolError(f"Unknown packet class: {packet_class}")
    payload: Payload = payload_type.from_fields(packet)
    return payload


# -----------------------------------------------------------------------------
# Outbound packets
# -----------------------------------------------------------------------------


def build_outbound(
    packet_class: str,
    payload: dict[str, Any],
    identity: IdentityState,
) -> dict[str, Any]:
    """Stamp a payload with its class and the sender's identity.

    The payload is modified in place and returned; callers must not reuse
    it for another send. ``model_id`` and ``token`` are read from the
    identity at call time and overwrite whatever the caller supplied.
    """
    payload["class"] = packet_class
    payload["model_id"] = identity.model_id
    payload["token"] = identity.token
    return payload


# -----------------------------------------------------------------------------
# Event frames
# -----------------------------------------------------------------------------


def encode_frame(event: str, data: Any) -> str:
    """Serialize one named event into a text frame."""
    return json.dumps({"event": event, "data": data})


def decode_frame(message: dict[str, Any] | str) -> tuple[str, Any]:
    """Split a received frame into ``(event, data)``.

    Raises:
        BaristaProtocolError: If the frame is not a JSON object with a
            string ``event``.
    """
    if isinstance(message, str):
        try:
            message = json.loads(message)
        except ValueError as err:
            raise BaristaProtocolError(f"Frame is not valid JSON: {err}") from err

    if not isinstance(message, dict):
        raise BaristaProtocolError("Frame must be a JSON object")

    event = message.get("event")
    if not isinstance(event, str) or not event:
        raise BaristaProtocolError("Frame has no event name")

    return event, message.get("data")
