"""Ask the memory store a question about the owner."""

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


@app.command("ask")
def ask(
    question: str = typer.Argument(..., help="Question about the owner."),
    *,
    reasoning: str = typer.Option(
        "default",
        "--reasoning",
        "-r",
        help="How much reasoning to spend: 'minimal', 'medium' or 'default'.",
    ),
    api_key: str | None = opts.API_KEY,
    base_url: str | None = opts.BASE_URL,
    workspace_id: str | None = opts.WORKSPACE_ID,
    log_level: str = opts.LOG_LEVEL,
    log_file: str | None = opts.LOG_FILE,
    quiet: bool = opts.QUIET,
    config_file: str | None = opts.CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Ask Honcho about the owner.

    Examples:
        agent-memsync ask "What communication style do they prefer?"

        agent-memsync ask "Summarize their current projects" --reasoning medium

    """
    start_logging(log_level, log_file, quiet=quiet)
    config = build_config(api_key=api_key, base_url=base_url, workspace_id=workspace_id)

    async def _ask(client: HonchoClient, peers: PeerRegistry) -> str:
        tools = MemoryTools(client, peers)
        if reasoning == "minimal":
            return await tools.recall(question)
        if reasoning == "medium":
            return await tools.synthesize(question)
        return await tools.ask(question)

    answer = run_store_command(config, _ask)
    console.print(answer, markup=False, highlight=False, soft_wrap=True)
    if answer == UNAVAILABLE_MESSAGE:
        raise typer.Exit(1)
