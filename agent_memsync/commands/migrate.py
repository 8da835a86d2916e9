"""Migrate legacy knowledge files into Honcho and archive them."""

from __future__ import annotations

import asyncio
from pathlib import Path  # noqa: TC003

import typer

from agent_memsync import opts
from agent_memsync.cli import app
from agent_memsync.commands._common import build_config, start_logging
from agent_memsync.config import resolve_workspace_dir
from agent_memsync.core.utils import console, print_error_message, print_with_style
from agent_memsync.memory.client import HonchoClient
from agent_memsync.memory.migrate import MigrationError, MigrationReport, migrate_workspace


def _print_found(report: MigrationReport) -> None:
    if not report.facts:
        console.print("No legacy memory files found.")
        return
    console.print(f"Found {len(report.facts)} files to migrate:")
    for fact in report.facts:
        console.print(f"  - {fact.source} [dim]({fact.ownership.value})[/dim]")
    console.print(f"  {len(report.owner_facts)} about the owner (USER.md, IDENTITY.md, ...)")
    console.print(f"  {len(report.agent_facts)} about the agent (SOUL.md, AGENTS.md, ...)")


def _print_archive(report: MigrationReport) -> None:
    for outcome in report.archived:
        if outcome.ok:
            console.print(f"  Archived: {outcome.source.name} -> {outcome.destination}")
        else:
            console.print(
                f"  [bold red]Failed to archive {outcome.source}: {outcome.error}[/bold red]",
            )


@app.command("migrate")
def migrate(
    *,
    workspace: Path | None = opts.WORKSPACE_DIR,
    dry_run: bool = typer.Option(
        False,  # noqa: FBT003
        "--dry-run",
        help="Only list what would be migrated; submit and archive nothing.",
    ),
    api_key: str | None = opts.API_KEY,
    base_url: str | None = opts.BASE_URL,
    workspace_id: str | None = opts.WORKSPACE_ID,
    log_level: str = opts.LOG_LEVEL,
    log_file: str | None = opts.LOG_FILE,
    quiet: bool = opts.QUIET,
    config_file: str | None = opts.CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Move legacy memory files into Honcho, then archive them.

    Files are only moved to `<workspace>/.archive` after every conclusion was
    accepted by Honcho. Without an API key, or if Honcho rejects the
    submission, all files are left in place.
    """
    start_logging(log_level, log_file, quiet=quiet)
    config = build_config(api_key=api_key, base_url=base_url, workspace_id=workspace_id)
    workspace_dir = resolve_workspace_dir(workspace)
    console.print(f"Migrating legacy memory files in [blue]{workspace_dir}[/blue]")

    async def _migrate() -> MigrationReport:
        async with HonchoClient(config.store) as client:
            return await migrate_workspace(client, workspace_dir, dry_run=dry_run)

    try:
        report = asyncio.run(_migrate())
    except MigrationError as e:
        print_error_message(str(e), e.remediation)
        raise typer.Exit(1) from e

    _print_found(report)
    if dry_run:
        print_with_style("Dry run: nothing was submitted or archived.", style="yellow")
        return
    _print_archive(report)
    if report.failures:
        print_error_message(
            f"{len(report.failures)} legacy item(s) could not be archived.",
            "Their content is already in Honcho; move them out of the workspace manually.",
        )
        raise typer.Exit(1)
    print_with_style("Migration complete!")
