"""Lazy, shared registration of the owner and agent peers."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from agent_memsync import constants
from agent_memsync.memory.entities import PeerRole, SessionPeerConfig

if TYPE_CHECKING:
    from agent_memsync.memory.client import HonchoClient

logger = logging.getLogger(__name__)

# The owner is observed but does not model the agent; the agent models both.
SESSION_PEER_CONFIGS = {
    PeerRole.owner: SessionPeerConfig(observe_me=True, observe_others=False),
    PeerRole.agent: SessionPeerConfig(observe_me=True, observe_others=True),
}


class PeerRegistry:
    """Resolve both peers once, sharing one in-flight setup between callers.

    Concurrent callers await the same task; a failed setup is retried by the
    next caller instead of being cached.
    """

    def __init__(
        self,
        client: HonchoClient,
        *,
        owner_id: str = constants.OWNER_ID,
        agent_id: str = constants.AGENT_ID,
    ) -> None:
        """Bind the registry to a client; nothing is fetched yet."""
        self.client = client
        self.ids = {PeerRole.owner: owner_id, PeerRole.agent: agent_id}
        self._setup: asyncio.Task[None] | None = None

    @property
    def owner_id(self) -> str:
        """Remote id of the owner peer."""
        return self.ids[PeerRole.owner]

    @property
    def agent_id(self) -> str:
        """Remote id of the agent peer."""
        return self.ids[PeerRole.agent]

    @property
    def is_initialized(self) -> bool:
        """Whether setup completed successfully."""
        task = self._setup
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    async def ensure_initialized(self) -> None:
        """Create or fetch both peers exactly once."""
        task = self._setup
        if task is None or (task.done() and (task.cancelled() or task.exception() is not None)):
            task = self._setup = asyncio.create_task(self._initialize())
        await asyncio.shield(task)

    async def _initialize(self) -> None:
        await asyncio.gather(
            self.client.get_or_create_peer(self.owner_id),
            self.client.get_or_create_peer(self.agent_id),
        )
        logger.debug("Peers ready: %s, %s", self.owner_id, self.agent_id)

    def session_peers(self) -> dict[str, SessionPeerConfig]:
        """Session participants keyed by remote peer id."""
        return {self.ids[role]: cfg for role, cfg in SESSION_PEER_CONFIGS.items()}
