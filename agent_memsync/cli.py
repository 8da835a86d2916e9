"""Shared CLI functionality for the memory sync tools."""

from __future__ import annotations

import typer

from .config import load_config, load_env_files
from .core.utils import console

app = typer.Typer(
    name="agent-memsync",
    help="Sync an agent's conversations and knowledge files with Honcho memory.",
    add_completion=True,
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
) -> None:
    """Sync an agent's conversations and knowledge files with Honcho memory."""
    if ctx.invoked_subcommand is None:
        console.print("[bold red]No command specified.[/bold red]")
        console.print("[bold yellow]Running --help for your convenience.[/bold yellow]")
        console.print(ctx.get_help())
        raise typer.Exit
    load_env_files()


def set_config_defaults(ctx: typer.Context, config_file: str | None) -> None:
    """Set the default values for the CLI based on the config file."""
    config = load_config(config_file)
    wildcard_config = config.get("defaults", {})
    # This function is executed inside the subcommand, so the command is the sub command.
    subcommand = ctx.command.name

    if not subcommand:
        ctx.default_map = wildcard_config
        return

    command_config = config.get(subcommand, {})
    defaults = {**wildcard_config, **command_config}
    ctx.default_map = defaults


# Import commands from other modules to register them
from .commands import ask, migrate, search, serve, status, sync  # noqa: E402, F401
