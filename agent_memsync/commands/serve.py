"""Run the HTTP endpoint the host posts conversation events to."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003

import typer

from agent_memsync import opts
from agent_memsync.cli import app
from agent_memsync.commands._common import build_config, start_logging
from agent_memsync.config import resolve_workspace_dir
from agent_memsync.core.utils import console


@app.command("serve")
def serve(
    *,
    host: str = typer.Option(
        "127.0.0.1",
        help="Host to bind to",
        rich_help_panel="Server Configuration",
    ),
    port: int = typer.Option(
        8765,
        help="Port to bind to",
        rich_help_panel="Server Configuration",
    ),
    workspace: Path | None = opts.WORKSPACE_DIR,
    export: bool = typer.Option(
        True,  # noqa: FBT003
        "--export/--no-export",
        help="Periodically export Honcho's knowledge into the workspace files.",
        rich_help_panel="Export Options",
    ),
    export_on_startup: bool = typer.Option(
        True,  # noqa: FBT003
        "--export-on-startup/--no-export-on-startup",
        help="Export once as soon as the server starts.",
        rich_help_panel="Export Options",
    ),
    export_frequency: float = typer.Option(
        60,
        "--export-frequency",
        help="Minutes between exports (clamped to 1-1440).",
        rich_help_panel="Export Options",
    ),
    bootstrap: str = typer.Option(
        "full",
        "--bootstrap",
        help="First sync of a conversation: 'full' stores the backlog, 'recent' only the last exchange.",
        rich_help_panel="Sync Options",
    ),
    api_key: str | None = opts.API_KEY,
    base_url: str | None = opts.BASE_URL,
    workspace_id: str | None = opts.WORKSPACE_ID,
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set the log level (e.g., DEBUG, INFO, WARNING).",
        rich_help_panel="General Options",
    ),
    log_file: str | None = opts.LOG_FILE,
    config_file: str | None = opts.CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Start the memory sync server.

    The host posts finished turn batches to `/events/turns-completed` and
    prompts to `/events/turn-start`; retrieval tools live under `/tools/`.
    """
    start_logging(log_level, log_file, quiet=False)
    config = build_config(
        api_key=api_key,
        base_url=base_url,
        workspace_id=workspace_id,
        export={
            "enabled": export,
            "on_startup": export_on_startup,
            "frequency_minutes": export_frequency,
        },
        sync={"bootstrap": bootstrap},
    )
    workspace_dir = resolve_workspace_dir(workspace)

    import uvicorn  # noqa: PLC0415

    from agent_memsync.memory.api import create_app  # noqa: PLC0415

    console.print(f"[bold green]Starting memory sync server on {host}:{port}[/bold green]")
    console.print(f"  📂 Workspace: [blue]{workspace_dir}[/blue]")
    console.print(f"  🧠 Honcho: [blue]{config.store.base_url}[/blue] ({config.store.workspace_id})")
    if config.export.enabled:
        console.print(f"  🔄 Export every [blue]{config.export.frequency_minutes}[/blue] min")

    uvicorn.run(create_app(config, workspace_dir=workspace_dir), host=host, port=port, log_config=None)
