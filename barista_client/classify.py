"""Inbound packet classification.

Decides whether a received relay or query packet reaches subscribers, and
under which event name. A packet is dropped when its class is missing or
unknown for its kind, or when it is addressed to another model. Broadcast
relays are the one class delivered regardless of model.

Drops are logged at DEBUG and never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .protocol import (
    CLASS_BROADCAST,
    EVENT_QUERY,
    EVENT_RELAY,
    KNOWN_QUERY_CLASSES,
    KNOWN_RELAY_CLASSES,
)

_LOGGER = logging.getLogger(__name__)


def applies_to(packet: Mapping[str, Any], model_id: str | None) -> bool:
    """Check whether a packet is addressed to the given model."""
    mid = packet.get("model_id") or None
    if not mid or mid != model_id:
        _LOGGER.debug("[%s] skip packet--not for us", model_id)
        return False
    return True


def _known_class(
    kind: str,
    packet: Mapping[str, Any],
    known: frozenset[str],
    model_id: str | None,
) -> str | None:
    packet_class = packet.get("class")
    if not packet_class:
        _LOGGER.debug("[%s] no %s class found", model_id, kind)
        return None
    if not isinstance(packet_class, str) or packet_class not in known:
        _LOGGER.debug("[%s] unknown %s class: %s", model_id, kind, packet_class)
        return None
    return packet_class


def classify_relay(packet: Mapping[str, Any], model_id: str | None) -> str | None:
    """Return the event name for an inbound relay packet, or None to drop it.

    The class is validated first; broadcasts then bypass the model check.
    """
    packet_class = _known_class(EVENT_RELAY, packet, KNOWN_RELAY_CLASSES, model_id)
    if packet_class is None:
        return None
    if packet_class == CLASS_BROADCAST:
        return packet_class
    if not applies_to(packet, model_id):
        return None
    return packet_class


def classify_query(packet: Mapping[str, Any], model_id: str | None) -> str | None:
    """Return the event name for an inbound query packet, or None to drop it.

    The model check runs before the class is validated; no query class is
    exempt from it.
    """
    if not applies_to(packet, model_id):
        return None
    return _known_class(EVENT_QUERY, packet, KNOWN_QUERY_CLASSES, model_id)
