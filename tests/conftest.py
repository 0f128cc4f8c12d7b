"""Pytest configuration and fixtures for barista_client tests."""

from __future__ import annotations

import copy
from collections import defaultdict
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from barista_client import BaristaConfig, BaristaManager

BARISTA_URL = "ws://barista.test:3400"
CONNECT_TARGET = "barista_client.transport.ws_client.websockets.connect"


def patch_connect(**kwargs: Any):
    """Patch the websockets opener; kwargs configure the AsyncMock."""
    return patch(CONNECT_TARGET, new=AsyncMock(**kwargs))


class AsyncIteratorMock:
    """Helper class to create a proper async iterator mock."""

    def __init__(self, items: list, *, raise_on_iter: Exception | None = None):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()
        self.send = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._raise_on_iter is not None:
            raise self._raise_on_iter
        if self._index >= len(self._items):
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item


class FakeChannel:
    """In-memory channel recording emitted frames.

    `fire` plays the part of the relay server delivering an event.
    """

    def __init__(self, url: str, config: BaristaConfig) -> None:
        self.url = url
        self.config = config
        self.id = "sid-0001"
        self.handlers: dict[str, list[Callable[[Any], None]]] = defaultdict(list)
        self.emitted: list[tuple[str, dict[str, Any]]] = []
        self.connected = False
        self.closed = False

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.handlers[event].append(handler)

    def connect(self) -> None:
        self.connected = True

    def emit(self, event: str, payload: Any) -> None:
        self.emitted.append((event, copy.deepcopy(payload)))

    async def close(self) -> None:
        self.closed = True

    def fire(self, event: str, data: Any = None) -> None:
        for handler in self.handlers[event]:
            handler(data)


@pytest.fixture
def channels() -> list[FakeChannel]:
    """Channels built by the fake factory, in creation order."""
    return []


@pytest.fixture
def channel_factory(channels: list[FakeChannel]) -> Callable[..., FakeChannel]:
    """Channel factory producing recording fake channels."""

    def factory(url: str, config: BaristaConfig) -> FakeChannel:
        channel = FakeChannel(url, config)
        channels.append(channel)
        return channel

    return factory


@pytest.fixture
def manager(channel_factory: Callable[..., FakeChannel]) -> BaristaManager:
    """Unbound manager with token "t1"."""
    return BaristaManager(BARISTA_URL, token="t1", channel_factory=channel_factory)


@pytest.fixture
def bound(
    manager: BaristaManager, channels: list[FakeChannel]
) -> tuple[BaristaManager, FakeChannel]:
    """Manager bound to "room1" and its channel."""
    assert manager.bind("room1")
    return manager, channels[0]
