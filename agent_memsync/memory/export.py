"""Export the store's knowledge into managed sections of workspace files."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from agent_memsync import constants
from agent_memsync.core.utils import atomic_write_text
from agent_memsync.memory.client import StoreError

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from agent_memsync.config import ExportConfig
    from agent_memsync.memory.client import HonchoClient
    from agent_memsync.memory.peers import PeerRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# From the header up to the next top-level header or the end of the file.
_MANAGED_SECTION_PATTERN = re.compile(
    rf"^{re.escape(constants.MANAGED_SECTION_HEADER)}[ \t]*$.*?(?=\n#{{1,2}} |\Z)",
    re.DOTALL | re.MULTILINE,
)
# Headings that would end the managed section early.
_SECTION_BREAKING_HEADING = re.compile(r"^#{1,2}(?= )", re.MULTILINE)


def strip_managed_section(text: str) -> str:
    """Return ``text`` without any managed section, trimmed."""
    return _MANAGED_SECTION_PATTERN.sub("", text).strip()


def render_managed_section(content: str, timestamp: str) -> str:
    """Build the managed section for ``content`` synced at ``timestamp``.

    Top-level headings inside ``content`` are demoted so the section can be
    found again as one block on the next merge.
    """
    content = _SECTION_BREAKING_HEADING.sub("###", content)
    return "\n".join(
        [
            constants.MANAGED_SECTION_HEADER,
            "",
            constants.MANAGED_SECTION_NOTICE,
            "",
            content,
            "",
            "---",
            f"*Last synced: {timestamp}*",
        ],
    )


def merge_managed_section(path: Path, content: str, timestamp: str) -> str:
    """Replace the managed section of ``path`` with ``content``.

    Everything outside the managed section is kept; a missing file is
    treated as empty. Returns the text that was written.
    """
    try:
        existing = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        existing = ""
    static = strip_managed_section(existing)
    section = render_managed_section(content, timestamp)
    final = f"{static}\n\n{section}" if static else section
    atomic_write_text(path, final)
    return final


def format_peer_content(representation: str | None, card: list[str] | None) -> str:
    """Render a peer's card as key facts followed by its observations."""
    parts: list[str] = []
    if card:
        parts.append("### Key Facts\n")
        parts.append("\n".join(f"- {fact}" for fact in card))
    if representation:
        if parts:
            parts.append("\n")
        parts.append("### Observations\n")
        parts.append(representation)
    return "\n".join(parts)


async def _quietly(coro: Awaitable[T]) -> T | None:
    try:
        return await coro
    except StoreError as exc:
        logger.debug("Export fetch failed: %s", exc)
        return None


async def export_workspace_files(
    client: HonchoClient,
    peers: PeerRegistry,
    workspace_dir: Path,
    *,
    now: datetime | None = None,
) -> list[Path]:
    """Write owner/agent knowledge into USER.md, SOUL.md and MEMORY.md.

    Individual fetch failures only drop the affected content; a file is left
    untouched when there is nothing to write into it.
    """
    await peers.ensure_initialized()
    timestamp = (now or datetime.now(UTC)).isoformat()

    owner_rep, agent_rep, owner_card, agent_card = await asyncio.gather(
        _quietly(client.peer_representation(peers.owner_id)),
        _quietly(client.peer_representation(peers.agent_id)),
        _quietly(client.peer_card(peers.owner_id)),
        _quietly(client.peer_card(peers.agent_id)),
    )

    written: list[Path] = []
    if owner_rep or owner_card:
        path = workspace_dir / constants.USER_FILE
        merge_managed_section(path, format_peer_content(owner_rep, owner_card), timestamp)
        written.append(path)

    if agent_rep or agent_card:
        path = workspace_dir / constants.SOUL_FILE
        merge_managed_section(path, format_peer_content(agent_rep, agent_card), timestamp)
        written.append(path)

    if owner_rep or agent_rep:
        combined = "\n\n".join(
            part
            for part in (
                owner_rep and f"### About the User\n\n{owner_rep}",
                agent_rep and f"### About the Agent\n\n{agent_rep}",
            )
            if part
        )
        path = workspace_dir / constants.MEMORY_FILE
        merge_managed_section(path, combined, timestamp)
        written.append(path)

    for path in written:
        logger.info("Exported memory to %s", path)
    return written


class ExportService:
    """Background task that periodically exports memory to workspace files."""

    def __init__(
        self,
        client: HonchoClient,
        peers: PeerRegistry,
        workspace_dir: Path,
        config: ExportConfig,
    ) -> None:
        """Configure the service; call `start` from a running event loop."""
        self.client = client
        self.peers = peers
        self.workspace_dir = Path(workspace_dir)
        self.config = config
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_seconds(self) -> float:
        """Seconds between two exports."""
        return self.config.frequency_minutes * 60

    @property
    def is_running(self) -> bool:
        """Whether the background task is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic export if enabled."""
        if not self.config.enabled:
            logger.info("Memory export disabled")
            return
        if self._task is None:
            self._task = asyncio.create_task(self._run())
            logger.info("Memory export scheduled every %d min", self.config.frequency_minutes)

    async def stop(self) -> None:
        """Cancel the background task."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("Memory export stopped")

    async def run_once(self) -> list[Path]:
        """Export once, logging instead of raising on failure."""
        try:
            written = await export_workspace_files(self.client, self.peers, self.workspace_dir)
        except (StoreError, OSError):
            logger.exception("Memory export failed")
            return []
        logger.info("Memory export complete (%d files)", len(written))
        return written

    async def _run(self) -> None:
        if self.config.on_startup:
            await self.run_once()
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
