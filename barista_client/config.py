"""Client configuration for the Barista relay channel.

Configuration is plain data: a `BaristaConfig` built from keyword
arguments, from a mapping, or from a YAML file. Only the relay location is
required; everything else has a working default.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import BaristaConfigError

_SCHEMES = ("ws://", "wss://")


def _check_seconds(name: str, value: Any) -> None:
    # bool is an int subclass but never a duration
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise BaristaConfigError(f"{name} must be a number of seconds: {value!r}")
    if value <= 0:
        raise BaristaConfigError(f"{name} must be positive: {value}")


@dataclass
class BaristaConfig:
    """Configuration for a Barista manager and its channel.

    Attributes:
        location: WebSocket URL of the relay server (ws:// or wss://)
        token: Default identifying token attached to outbound packets
        ping_interval: Keepalive ping interval in seconds (None disables)
        timeout: Connection open timeout in seconds
        close_timeout: Close handshake timeout in seconds
        debug: Whether the manager emits its diagnostic messages
    """

    location: str
    token: str | None = None
    ping_interval: int | None = 20
    timeout: float = 15.0
    close_timeout: float = 5.0
    debug: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.location, str) or not self.location.startswith(
            _SCHEMES
        ):
            raise BaristaConfigError(
                f"Relay location must be a ws:// or wss:// URL: {self.location!r}"
            )
        if self.token is not None and not isinstance(self.token, str):
            raise BaristaConfigError("Token must be a string")
        if not isinstance(self.debug, bool):
            raise BaristaConfigError(f"Debug must be true or false: {self.debug!r}")

        _check_seconds("Timeout", self.timeout)
        _check_seconds("Close timeout", self.close_timeout)
        if self.ping_interval is not None:
            _check_seconds("Ping interval", self.ping_interval)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> BaristaConfig:
        """Build a configuration from a mapping, rejecting unknown keys."""
        if not isinstance(data, dict):
            raise BaristaConfigError("Configuration must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise BaristaConfigError(
                f"Unknown configuration keys: {', '.join(unknown)}"
            )
        if "location" not in data:
            raise BaristaConfigError("Missing required key: location")

        return cls(**data)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise BaristaConfigError(f"File not found: {path}")
    with path.open() as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as err:
            raise BaristaConfigError(f"Invalid YAML in {path}: {err}") from err


def load_config(path: Path | str) -> BaristaConfig:
    """Load configuration from a YAML file.

    The file holds the configuration mapping either at the top level or
    under a ``barista:`` section.

    Raises:
        BaristaConfigError: If the file is missing or malformed.
    """
    data = _load_yaml(Path(path))
    if isinstance(data, dict) and isinstance(data.get("barista"), dict):
        data = data["barista"]
    return BaristaConfig.from_mapping(data)
