"""Helpers shared by the CLI subcommands."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

import typer

from agent_memsync.config import ConfigError, MemsyncConfig
from agent_memsync.core.utils import print_error_message, setup_logging
from agent_memsync.memory.client import HonchoClient, StoreError
from agent_memsync.memory.peers import PeerRegistry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import Any

T = TypeVar("T")


def build_config(
    *,
    api_key: str | None,
    base_url: str | None,
    workspace_id: str | None,
    **sections: Any,
) -> MemsyncConfig:
    """Build the config from CLI values, exiting with an error panel if invalid."""
    try:
        return MemsyncConfig.from_mapping(
            {"api_key": api_key, "base_url": base_url, "workspace_id": workspace_id, **sections},
        )
    except (ConfigError, ValueError) as e:
        print_error_message(str(e), "Check your config file and environment variables.")
        raise typer.Exit(1) from e


def start_logging(log_level: str, log_file: str | None, *, quiet: bool) -> None:
    """Configure logging for a command run."""
    setup_logging(log_level, log_file, quiet=quiet)


def run_store_command(
    config: MemsyncConfig,
    operation: Callable[[HonchoClient, PeerRegistry], Awaitable[T]],
) -> T:
    """Run ``operation`` with a fresh client, exiting with status 1 on store errors."""

    async def _run() -> T:
        async with HonchoClient(config.store) as client:
            return await operation(client, PeerRegistry(client))

    try:
        return asyncio.run(_run())
    except StoreError as e:
        print_error_message(
            f"Failed to reach Honcho: {e}",
            f"Check your API key and that {config.store.base_url} is reachable.",
        )
        raise typer.Exit(1) from e
