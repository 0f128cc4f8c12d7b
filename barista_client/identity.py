"""Identity held by a Barista client: its token and bound model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class IdentityState:
    """Token and model id attached to every outbound packet.

    The model id is written once, when the manager binds; the token can be
    replaced at any time and is read fresh on every send.
    """

    token: str | None = None
    model_id: str | None = None

    @property
    def bound(self) -> bool:
        """Whether a model id has been bound."""
        return self.model_id is not None

    def set_token(self, token: str | None) -> str | None:
        """Replace the token if one is given; return the current token."""
        if token:
            self.token = token
        return self.token

    def bind_model(self, model_id: str) -> bool:
        """Bind the model id. Returns False if one is already bound."""
        if self.bound:
            return False
        self.model_id = model_id
        return True
