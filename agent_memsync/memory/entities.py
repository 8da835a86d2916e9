"""Domain entities for the memory sync layer.

Turns arrive from the host as loosely-typed records; these models give them
a stable shape while keeping their position in the turn log intact (a record
that cannot be parsed still occupies its index).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class PeerRole(str, Enum):
    """The two fixed identities known to the remote store."""

    owner = "owner"
    agent = "agent"


_ROLE_TO_PEER = {
    "user": PeerRole.owner,
    "human": PeerRole.owner,
    "assistant": PeerRole.agent,
    "agent": PeerRole.agent,
}


class ContentBlock(BaseModel):
    """A typed piece of turn content (text, tool call, attachment, ...)."""

    model_config = ConfigDict(extra="allow")

    type: Any = None
    text: Any = None


class Turn(BaseModel):
    """One message of a conversation's append-only turn log."""

    model_config = ConfigDict(extra="allow")

    role: str | None = None
    content: str | list[Any] | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> Turn:
        """Parse a host record, degrading to an empty turn when malformed."""
        if isinstance(raw, Turn):
            return raw
        if not isinstance(raw, dict):
            return cls()
        try:
            return cls.model_validate(raw)
        except ValidationError:
            return cls(role=raw.get("role") if isinstance(raw.get("role"), str) else None)

    @property
    def peer(self) -> PeerRole | None:
        """Peer this turn is attributed to, or None for tool/system turns."""
        if self.role is None:
            return None
        return _ROLE_TO_PEER.get(self.role)


class ExtractedMessage(BaseModel):
    """A sanitized turn ready to be stored as a session message."""

    peer: PeerRole
    content: str
    turn_index: int | None = None


class SessionPeerConfig(BaseModel):
    """Mutual-observation flags of a peer inside a session."""

    observe_me: bool = True
    observe_others: bool = False


class TurnBatchEvent(BaseModel):
    """Host event: an agent run finished and produced the full turn log."""

    success: bool = True
    messages: list[Any] = Field(default_factory=list)
    session_key: str | None = None
    channel: str | None = None


class TurnStartEvent(BaseModel):
    """Host event: an agent run is about to start with the given prompt."""

    prompt: str | None = None
    session_key: str | None = None
    channel: str | None = None
