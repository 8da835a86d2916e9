"""Incremental, watermark-based sync of turn logs into store sessions.

Each session's metadata holds ``lastSavedIndex``: the number of turns of the
conversation already committed. A sync submits only ``turns[watermark:]`` and
then advances the watermark to ``len(turns)``; advancing is the commit signal.

Before submitting, the range being committed is written to the metadata as
``pending_range`` and every message carries its ``turn_index``. If a previous
run crashed after submitting but before advancing, the next run finds the
pending range, lists what already landed, and only submits the rest.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from agent_memsync.config import BootstrapPolicy
from agent_memsync.constants import (
    PENDING_RANGE_KEY,
    RECENT_BOOTSTRAP_TURNS,
    TURN_INDEX_KEY,
    WATERMARK_KEY,
)
from agent_memsync.memory.client import StoreNotFoundError
from agent_memsync.memory.sanitize import extract_messages

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agent_memsync.memory.client import HonchoClient
    from agent_memsync.memory.entities import ExtractedMessage
    from agent_memsync.memory.peers import PeerRegistry

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one sync run for a session."""

    session_id: str
    previous_index: int
    new_index: int
    submitted: int = 0
    duplicates_skipped: int = 0

    @property
    def advanced(self) -> bool:
        """Whether the watermark moved."""
        return self.new_index != self.previous_index


def initial_watermark(total_turns: int, policy: BootstrapPolicy) -> int:
    """Watermark for a session seen for the first time."""
    if policy is BootstrapPolicy.recent:
        return max(0, total_turns - RECENT_BOOTSTRAP_TURNS)
    return 0


def read_watermark(metadata: dict[str, Any]) -> int:
    """Return the stored watermark, treating junk as zero."""
    value = metadata.get(WATERMARK_KEY)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return max(0, int(value))


def _pending_range(metadata: dict[str, Any]) -> tuple[int, int] | None:
    value = metadata.get(PENDING_RANGE_KEY)
    if (
        isinstance(value, list | tuple)
        and len(value) == 2  # noqa: PLR2004
        and all(isinstance(v, int) and not isinstance(v, bool) for v in value)
    ):
        return value[0], value[1]
    return None


class SyncEngine:
    """Commit the not-yet-stored part of a conversation's turn log."""

    def __init__(
        self,
        client: HonchoClient,
        peers: PeerRegistry,
        *,
        bootstrap: BootstrapPolicy = BootstrapPolicy.full,
    ) -> None:
        """Create an engine sharing ``client`` and ``peers`` with other components."""
        self.client = client
        self.peers = peers
        self.bootstrap = bootstrap
        # Serializes overlapping events for the same session in this process;
        # a lock lives only while some caller holds or awaits it.
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    async def sync_turns(self, session_id: str, turns: Sequence[Any]) -> SyncResult | None:
        """Persist ``turns[watermark:]`` and advance the watermark.

        ``turns`` is the full turn log known for the conversation. Returns
        None when the log is empty. Store failures propagate; the watermark
        is left untouched so the next call retries the same delta.
        """
        if not turns:
            return None
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] += 1
        try:
            async with lock:
                return await self._sync(session_id, turns)
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._locks[session_id]

    async def _sync(self, session_id: str, turns: Sequence[Any]) -> SyncResult:
        await self.peers.ensure_initialized()
        total = len(turns)
        metadata = await self._resolve_metadata(session_id, total)
        await self.client.add_peers(session_id, self.peers.session_peers())

        watermark = read_watermark(metadata)
        result = SyncResult(session_id=session_id, previous_index=watermark, new_index=watermark)
        if total <= watermark:
            logger.debug("No new messages to save for %s", session_id)
            return result

        messages = extract_messages(turns[watermark:], start_index=watermark)
        messages, duplicates = await self._drop_already_stored(
            session_id,
            metadata,
            watermark,
            messages,
        )
        result.duplicates_skipped = duplicates

        if messages:
            await self.client.set_session_metadata(
                session_id,
                {**metadata, PENDING_RANGE_KEY: [watermark, total]},
            )
            await self.client.add_messages(session_id, messages, peer_ids=self.peers.ids)

        committed = {k: v for k, v in metadata.items() if k != PENDING_RANGE_KEY}
        committed[WATERMARK_KEY] = total
        await self.client.set_session_metadata(session_id, committed)

        result.new_index = total
        result.submitted = len(messages)
        if messages:
            logger.info(
                "Saved %d new messages to %s (index %d -> %d)",
                len(messages),
                session_id,
                watermark,
                total,
            )
        else:
            logger.debug(
                "Nothing storable in turns %d-%d of %s; advanced watermark",
                watermark,
                total,
                session_id,
            )
        return result

    async def _resolve_metadata(self, session_id: str, total: int) -> dict[str, Any]:
        try:
            return await self.client.get_session_metadata(session_id)
        except StoreNotFoundError:
            start = initial_watermark(total, self.bootstrap)
            logger.info("Creating session %s (watermark %d)", session_id, start)
            return await self.client.create_session(session_id, {WATERMARK_KEY: start})

    async def _drop_already_stored(
        self,
        session_id: str,
        metadata: dict[str, Any],
        watermark: int,
        messages: list[ExtractedMessage],
    ) -> tuple[list[ExtractedMessage], int]:
        pending = _pending_range(metadata)
        if not messages or pending is None or pending[0] != watermark:
            return messages, 0

        start, end = pending
        stored = await self.client.list_messages(
            session_id,
            filters={"metadata": {TURN_INDEX_KEY: {"gte": start, "lt": end}}},
        )
        stored_indexes = set()
        for item in stored:
            index = (item.get("metadata") or {}).get(TURN_INDEX_KEY)
            if isinstance(index, int) and start <= index < end:
                stored_indexes.add(index)

        remaining = [m for m in messages if m.turn_index not in stored_indexes]
        duplicates = len(messages) - len(remaining)
        if duplicates:
            logger.warning(
                "Skipping %d messages of %s already stored by an interrupted sync",
                duplicates,
                session_id,
            )
        return remaining, duplicates
