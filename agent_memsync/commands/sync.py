"""Export Honcho's knowledge into the workspace's knowledge files."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING

from agent_memsync import opts
from agent_memsync.cli import app
from agent_memsync.commands._common import build_config, run_store_command, start_logging
from agent_memsync.config import resolve_workspace_dir
from agent_memsync.core.utils import console, print_with_style
from agent_memsync.memory.export import export_workspace_files

if TYPE_CHECKING:
    from agent_memsync.memory.client import HonchoClient
    from agent_memsync.memory.peers import PeerRegistry


@app.command("sync")
def sync(
    *,
    workspace: Path | None = opts.WORKSPACE_DIR,
    api_key: str | None = opts.API_KEY,
    base_url: str | None = opts.BASE_URL,
    workspace_id: str | None = opts.WORKSPACE_ID,
    log_level: str = opts.LOG_LEVEL,
    log_file: str | None = opts.LOG_FILE,
    quiet: bool = opts.QUIET,
    config_file: str | None = opts.CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Sync Honcho representations into USER.md, SOUL.md and MEMORY.md.

    Only the "From Honcho" section of each file is rewritten; everything
    else in the files is left as it is.
    """
    start_logging(log_level, log_file, quiet=quiet)
    config = build_config(api_key=api_key, base_url=base_url, workspace_id=workspace_id)
    workspace_dir = resolve_workspace_dir(workspace)

    async def _export(client: HonchoClient, peers: PeerRegistry) -> list[Path]:
        return await export_workspace_files(client, peers, workspace_dir)

    written = run_store_command(config, _export)
    if not written:
        print_with_style("Nothing to sync yet: Honcho has no representations.", style="yellow")
        return
    print_with_style("Synced Honcho representations to workspace files")
    for path in written:
        console.print(f"  [blue]{path}[/blue]")
