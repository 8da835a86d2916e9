"""Show the connection status of the memory store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from agent_memsync import opts
from agent_memsync.cli import app
from agent_memsync.commands._common import build_config, run_store_command, start_logging
from agent_memsync.core.utils import console

if TYPE_CHECKING:
    from agent_memsync.memory.client import HonchoClient
    from agent_memsync.memory.peers import PeerRegistry


async def _collect_status(client: HonchoClient, peers: PeerRegistry) -> tuple[int, int]:
    await peers.ensure_initialized()
    owner_rep = await client.peer_representation(peers.owner_id)
    agent_rep = await client.peer_representation(peers.agent_id)
    return len(owner_rep), len(agent_rep)


@app.command("status")
def status(
    *,
    api_key: str | None = opts.API_KEY,
    base_url: str | None = opts.BASE_URL,
    workspace_id: str | None = opts.WORKSPACE_ID,
    log_level: str = opts.LOG_LEVEL,
    log_file: str | None = opts.LOG_FILE,
    quiet: bool = opts.QUIET,
    config_file: str | None = opts.CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Show Honcho connection status."""
    start_logging(log_level, log_file, quiet=quiet)
    config = build_config(api_key=api_key, base_url=base_url, workspace_id=workspace_id)
    owner_chars, agent_chars = run_store_command(config, _collect_status)

    console.print("[bold green]Connected to Honcho[/bold green]")
    console.print(f"  Workspace: [blue]{config.store.workspace_id}[/blue]")
    console.print(f"  Owner representation: {owner_chars} chars")
    console.print(f"  Agent representation: {agent_chars} chars")
