"""Host-facing entry point: reacts to conversation events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agent_memsync.constants import MIN_PROMPT_LENGTH
from agent_memsync.memory.client import HonchoClient, StoreError
from agent_memsync.memory.export import ExportService
from agent_memsync.memory.peers import PeerRegistry
from agent_memsync.memory.sanitize import wrap_memory_context
from agent_memsync.memory.session_keys import normalize_session_key
from agent_memsync.memory.sync import SyncEngine
from agent_memsync.memory.tools import MemoryTools

if TYPE_CHECKING:
    from pathlib import Path

    from agent_memsync.config import MemsyncConfig
    from agent_memsync.memory.entities import TurnBatchEvent, TurnStartEvent
    from agent_memsync.memory.sync import SyncResult

logger = logging.getLogger(__name__)


class MemoryPlugin:
    """Wire the sync engine, retrieval tools and export service together.

    Event handlers never raise: store failures are logged and the event is
    dropped, leaving the watermark where it was so the next event retries.
    """

    def __init__(
        self,
        config: MemsyncConfig,
        *,
        workspace_dir: Path | None = None,
        client: HonchoClient | None = None,
    ) -> None:
        """Build all components around one shared client."""
        self.config = config
        self.client = client or HonchoClient(config.store)
        if not self.client.has_credentials:
            logger.warning(
                "No API key configured. Set HONCHO_API_KEY or configure api_key in the config file.",
            )
        self.peers = PeerRegistry(self.client)
        self.engine = SyncEngine(self.client, self.peers, bootstrap=config.sync.bootstrap)
        self.tools = MemoryTools(self.client, self.peers)
        self.export: ExportService | None = None
        if workspace_dir is not None:
            self.export = ExportService(self.client, self.peers, workspace_dir, config.export)

    async def start(self) -> None:
        """Initialize peers and start the export schedule."""
        logger.info("Initializing Honcho memory...")
        try:
            await self.peers.ensure_initialized()
        except StoreError:
            logger.exception("Failed to initialize Honcho")
        else:
            logger.info("Honcho memory ready")
        if self.export is not None:
            self.export.start()

    async def stop(self) -> None:
        """Stop background work and close the client."""
        if self.export is not None:
            await self.export.stop()
        await self.client.aclose()

    async def on_turn_start(self, event: TurnStartEvent) -> str | None:
        """Return memory context to prepend to the prompt, if any."""
        prompt = event.prompt or ""
        if len(prompt) < MIN_PROMPT_LENGTH:
            return None
        try:
            await self.peers.ensure_initialized()
            context = await self.client.peer_chat(
                self.peers.agent_id,
                prompt,
                target=self.peers.owner_id,
            )
        except StoreError as exc:
            logger.warning("Failed to fetch Honcho context: %s", exc)
            return None
        if not context:
            return None
        return wrap_memory_context(context)

    async def on_turns_completed(self, event: TurnBatchEvent) -> SyncResult | None:
        """Store the turns of a finished run that are not stored yet."""
        if not event.success or not event.messages:
            return None
        session_id = normalize_session_key(event.session_key, event.channel)
        try:
            return await self.engine.sync_turns(session_id, event.messages)
        except StoreError:
            logger.exception("Failed to save messages to Honcho for %s", session_id)
            return None
