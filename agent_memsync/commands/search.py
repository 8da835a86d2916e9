"""Semantic search over the owner's stored messages."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from agent_memsync import opts
from agent_memsync.cli import app
from agent_memsync.commands._common import build_config, run_store_command, start_logging
from agent_memsync.core.utils import console
from agent_memsync.memory.tools import UNAVAILABLE_MESSAGE, MemoryTools

if TYPE_CHECKING:
    from agent_memsync.memory.client import HonchoClient
    from agent_memsync.memory.peers import PeerRegistry


@app.command("search")
def search(
    query: str = typer.Argument(..., help="What to search for."),
    *,
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum number of results."),
    api_key: str | None = opts.API_KEY,
    base_url: str | None = opts.BASE_URL,
    workspace_id: str | None = opts.WORKSPACE_ID,
    log_level: str = opts.LOG_LEVEL,
    log_file: str | None = opts.LOG_FILE,
    quiet: bool = opts.QUIET,
    config_file: str | None = opts.CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Search what the owner has said across conversations."""
    start_logging(log_level, log_file, quiet=quiet)
    config = build_config(api_key=api_key, base_url=base_url, workspace_id=workspace_id)

    async def _search(client: HonchoClient, peers: PeerRegistry) -> str:
        return await MemoryTools(client, peers).search(query, limit=limit)

    results = run_store_command(config, _search)
    console.print(results, markup=False, highlight=False, soft_wrap=True)
    if results == UNAVAILABLE_MESSAGE:
        raise typer.Exit(1)
