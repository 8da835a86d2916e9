"""FastAPI application factory exposing host events and memory tools."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI

from agent_memsync.memory.entities import TurnBatchEvent, TurnStartEvent
from agent_memsync.memory.plugin import MemoryPlugin

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from agent_memsync.config import MemsyncConfig
    from agent_memsync.memory.client import HonchoClient

LOGGER = logging.getLogger(__name__)


def create_app(
    config: MemsyncConfig,
    *,
    workspace_dir: Path | None = None,
    client: HonchoClient | None = None,
) -> FastAPI:
    """Create the FastAPI app the host posts conversation events to."""
    plugin = MemoryPlugin(config, workspace_dir=workspace_dir, client=client)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        LOGGER.info("Starting memory sync for workspace %s", config.store.workspace_id)
        await plugin.start()
        try:
            yield
        finally:
            LOGGER.info("Stopping memory sync")
            await plugin.stop()

    app = FastAPI(title="Memory Sync", lifespan=lifespan)
    app.state.plugin = plugin
    app.state.workspace_dir = workspace_dir

    @app.post("/events/turns-completed")
    async def turns_completed(event: TurnBatchEvent) -> dict[str, Any]:
        result = await plugin.on_turns_completed(event)
        if result is None:
            LOGGER.debug("Turns of %s not synced", event.session_key or "default")
            return {"synced": False}
        return {
            "synced": True,
            "session_id": result.session_id,
            "submitted": result.submitted,
            "previous_index": result.previous_index,
            "watermark": result.new_index,
        }

    @app.post("/events/turn-start")
    async def turn_start(event: TurnStartEvent) -> dict[str, Any]:
        return {"prepend_context": await plugin.on_turn_start(event)}

    @app.get("/tools/profile")
    async def profile() -> dict[str, str]:
        return {"result": await plugin.tools.profile()}

    @app.get("/tools/search")
    async def search(query: str, limit: int = 10) -> dict[str, str]:
        return {"result": await plugin.tools.search(query, limit=limit)}

    @app.get("/tools/representation")
    async def representation(query: str | None = None) -> dict[str, str]:
        return {"result": await plugin.tools.representation(query)}

    @app.get("/tools/history")
    async def history(
        session_key: str,
        channel: str | None = None,
        tokens: int = 2000,
    ) -> dict[str, str]:
        return {"result": await plugin.tools.history(session_key, channel, tokens=tokens)}

    @app.get("/tools/recall")
    async def recall(query: str) -> dict[str, str]:
        return {"result": await plugin.tools.recall(query)}

    @app.get("/tools/synthesize")
    async def synthesize(query: str) -> dict[str, str]:
        return {"result": await plugin.tools.synthesize(query)}

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "workspace_id": config.store.workspace_id,
            "base_url": config.store.base_url,
            "credentials": plugin.client.has_credentials,
            "peers_ready": plugin.peers.is_initialized,
            "export": plugin.export is not None and plugin.export.is_running,
        }

    return app
