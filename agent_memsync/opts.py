"""Shared CLI options for the memory sync commands."""

from __future__ import annotations

import typer

from agent_memsync import constants


def _config_file_callback(ctx: typer.Context, value: str | None) -> str | None:
    from agent_memsync.cli import set_config_defaults  # noqa: PLC0415

    set_config_defaults(ctx, value)
    return value


# --- Store Options ---
API_KEY = typer.Option(
    None,
    "--api-key",
    help="Honcho API key. Falls back to HONCHO_API_KEY. `${VAR}` references are expanded.",
    rich_help_panel="Honcho Options",
)
BASE_URL = typer.Option(
    None,
    "--base-url",
    help=f"Honcho base URL. Falls back to HONCHO_BASE_URL, then {constants.DEFAULT_BASE_URL}.",
    rich_help_panel="Honcho Options",
)
WORKSPACE_ID = typer.Option(
    None,
    "--workspace-id",
    help=f"Honcho workspace id. Falls back to HONCHO_WORKSPACE_ID, then '{constants.DEFAULT_WORKSPACE_ID}'.",
    rich_help_panel="Honcho Options",
)

# --- Workspace Options ---
WORKSPACE_DIR = typer.Option(
    None,
    "--workspace",
    "-w",
    help="Agent workspace holding the knowledge files. Defaults to WORKSPACE_ROOT or the host's workspace.",
    rich_help_panel="Workspace Options",
)

# --- General Options ---
LOG_LEVEL = typer.Option(
    "WARNING",
    "--log-level",
    help="Set the log level (e.g., DEBUG, INFO, WARNING).",
    rich_help_panel="General Options",
)
LOG_FILE = typer.Option(
    None,
    "--log-file",
    help="Path to a file to write logs to.",
    rich_help_panel="General Options",
)
QUIET = typer.Option(
    False,  # noqa: FBT003
    "--quiet",
    "-q",
    help="Suppress all output except for the final result.",
    rich_help_panel="General Options",
)
CONFIG_FILE = typer.Option(
    None,
    "--config-file",
    help="Path to a custom config file.",
    callback=_config_file_callback,
    is_eager=True,
    rich_help_panel="General Options",
)
