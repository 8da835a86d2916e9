"""Memory queries the agent can call in the middle of a conversation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agent_memsync.memory.client import StoreError
from agent_memsync.memory.session_keys import normalize_session_key

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from agent_memsync.memory.client import HonchoClient
    from agent_memsync.memory.peers import PeerRegistry

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Failed to query memory. Service may be unavailable."
NO_INFORMATION_MESSAGE = "No information available about this topic yet."


async def _memory_operation(operation_name: str, operation: Callable[[], Awaitable[str]]) -> str:
    """Run a query, turning store failures into a readable message."""
    try:
        return await operation()
    except StoreError:
        logger.exception("%s failed", operation_name)
        return UNAVAILABLE_MESSAGE


def _format_search_results(results: list[dict[str, Any]]) -> str:
    lines = []
    for item in results:
        content = str(item.get("content", "")).strip()
        if not content:
            continue
        peer = item.get("peer_id") or item.get("peer_name") or "unknown"
        lines.append(f"- [{peer}] {content}")
    return "\n".join(lines)


def _format_context(context: dict[str, Any]) -> str:
    parts = []
    summary = context.get("summary")
    if isinstance(summary, dict):
        summary = summary.get("content")
    if summary:
        parts.append(f"Summary:\n{summary}")
    messages = [m for m in context.get("messages") or [] if isinstance(m, dict)]
    if messages:
        lines = [f"{m.get('peer_id', 'unknown')}: {m.get('content', '')}" for m in messages]
        parts.append("Recent messages:\n" + "\n".join(lines))
    return "\n\n".join(parts)


class MemoryTools:
    """Retrieval and question-answering over the owner's memory."""

    def __init__(self, client: HonchoClient, peers: PeerRegistry) -> None:
        """Share the client and peers of the running plugin."""
        self.client = client
        self.peers = peers

    async def profile(self) -> str:
        """Key facts known about the owner."""

        async def _run() -> str:
            await self.peers.ensure_initialized()
            card = await self.client.peer_card(self.peers.agent_id, target=self.peers.owner_id)
            if not card:
                return NO_INFORMATION_MESSAGE
            return "\n".join(f"- {fact}" for fact in card)

        return await _memory_operation("profile", _run)

    async def search(self, query: str, limit: int = 10) -> str:
        """Semantic search over what the owner said."""

        async def _run() -> str:
            await self.peers.ensure_initialized()
            results = await self.client.peer_search(self.peers.owner_id, query, limit=limit)
            return _format_search_results(results) or NO_INFORMATION_MESSAGE

        return await _memory_operation("search", _run)

    async def representation(self, query: str | None = None, top_k: int = 10) -> str:
        """The agent's broad model of the owner, optionally focused by a query."""

        async def _run() -> str:
            await self.peers.ensure_initialized()
            text = await self.client.peer_representation(
                self.peers.agent_id,
                target=self.peers.owner_id,
                search_query=query,
                search_top_k=top_k if query else None,
            )
            return text or NO_INFORMATION_MESSAGE

        return await _memory_operation("representation", _run)

    async def history(
        self,
        session_key: str,
        channel: str | None = None,
        tokens: int = 2000,
    ) -> str:
        """Summary and recent messages of one conversation."""

        async def _run() -> str:
            session_id = normalize_session_key(session_key, channel)
            context = await self.client.session_context(session_id, tokens=tokens)
            return _format_context(context) or NO_INFORMATION_MESSAGE

        return await _memory_operation("history", _run)

    async def recall(self, query: str) -> str:
        """Quick answer about the owner with minimal reasoning."""
        return await self._ask("recall", query, "minimal")

    async def synthesize(self, query: str) -> str:
        """Considered answer about the owner with medium reasoning."""
        return await self._ask("synthesize", query, "medium")

    async def ask(self, query: str) -> str:
        """Answer a question about the owner with the store's default reasoning."""
        return await self._ask("ask", query, None)

    async def _ask(self, name: str, query: str, reasoning_level: Any) -> str:
        async def _run() -> str:
            await self.peers.ensure_initialized()
            answer = await self.client.peer_chat(
                self.peers.agent_id,
                query,
                target=self.peers.owner_id,
                reasoning_level=reasoning_level,
            )
            return answer or NO_INFORMATION_MESSAGE

        return await _memory_operation(name, _run)
