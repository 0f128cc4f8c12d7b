"""Callback registry: named events mapped to ordered subscriber lists."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _Subscription:
    """A registered callback and its ordering keys."""

    callback_id: str
    callback: Callable[..., Any]
    priority: int
    order: int


class CallbackRegistry:
    """Observer registry over a fixed set of event names.

    Callbacks run synchronously in priority order (highest first), and in
    registration order among equal priorities. Exceptions raised by a
    callback propagate to the caller of `dispatch`.

    Usage:
        registry = CallbackRegistry(["connect", "message"])
        cid = registry.on("message", handle_message)
        registry.dispatch("message", packet)
        registry.off("message", cid)
    """

    def __init__(self, event_names: Iterable[str]) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = {
            name: [] for name in event_names
        }
        self._counter = 0

    @property
    def event_names(self) -> tuple[str, ...]:
        """Event names this registry accepts."""
        return tuple(self._subscriptions)

    def on(
        self,
        event: str,
        callback: Callable[..., Any],
        *,
        priority: int = 0,
        callback_id: str | None = None,
    ) -> str:
        """Register a callback for an event.

        Returns:
            The callback id, usable with `off`.

        Raises:
            ValueError: If the event name is not recognized.
        """
        if event not in self._subscriptions:
            raise ValueError(f"Unknown event: {event}")

        if callback_id is None:
            callback_id = uuid4().hex
        self._counter += 1
        self._subscriptions[event].append(
            _Subscription(
                callback_id=callback_id,
                callback=callback,
                priority=priority,
                order=self._counter,
            )
        )
        return callback_id

    def off(self, event: str, callback_id: str) -> bool:
        """Unregister a callback. Returns True if one was removed."""
        subscriptions = self._subscriptions.get(event)
        if not subscriptions:
            return False

        remaining = [s for s in subscriptions if s.callback_id != callback_id]
        removed = len(remaining) != len(subscriptions)
        self._subscriptions[event] = remaining
        return removed

    def callbacks(self, event: str) -> list[Callable[..., Any]]:
        """Callbacks registered for an event, in invocation order."""
        ordered = sorted(
            self._subscriptions.get(event, ()),
            key=lambda s: (-s.priority, s.order),
        )
        return [s.callback for s in ordered]

    def dispatch(self, event: str, *args: Any) -> int:
        """Invoke every callback for an event with ``args``.

        Returns:
            Number of callbacks invoked.
        """
        callbacks = self.callbacks(event)
        if not callbacks:
            _LOGGER.debug("No callbacks for %r", event)
            return 0

        for callback in callbacks:
            callback(*args)
        return len(callbacks)
