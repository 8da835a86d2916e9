"""Async HTTP client for the Honcho memory store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal, Self, TypeVar

import httpx

from agent_memsync.constants import TURN_INDEX_KEY

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from agent_memsync.config import StoreConfig
    from agent_memsync.memory.entities import ExtractedMessage, PeerRole, SessionPeerConfig

logger = logging.getLogger(__name__)

ReasoningLevel = Literal["minimal", "low", "medium", "high", "max"]
T = TypeVar("T", dict, list)


class StoreError(Exception):
    """Raised when the remote store cannot complete a request."""


class StoreNotFoundError(StoreError):
    """Raised when a lazily-created resource does not exist yet."""


def _expect(value: Any, kind: type[T], what: str) -> T:
    """Return ``value`` if it has the expected JSON shape; None becomes empty."""
    if value is None:
        return kind()
    if not isinstance(value, kind):
        msg = f"{what}: expected a JSON {kind.__name__}, got {type(value).__name__}"
        raise StoreError(msg)
    return value


class HonchoClient:
    """Thin async wrapper around the Honcho v2 REST API.

    Every method raises `StoreError` on failure; a 404 is raised as
    `StoreNotFoundError` so callers can treat it as a first-use signal.
    """

    def __init__(
        self,
        config: StoreConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the client; no request is made until a method is awaited."""
        self.config = config
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.AsyncClient(
            base_url=f"{config.base_url}/v2/workspaces/{config.workspace_id}",
            headers=headers,
            timeout=config.timeout,
            transport=transport,
        )

    @property
    def has_credentials(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.config.api_key)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            msg = f"{method} {path} failed with status {status}"
            if status == httpx.codes.NOT_FOUND:
                raise StoreNotFoundError(msg) from exc
            raise StoreError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise StoreError(msg) from exc
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            msg = f"{method} {path} returned a non-JSON body"
            raise StoreError(msg) from exc

    async def _request_object(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        return _expect(await self._request(method, path, **kwargs), dict, f"{method} {path}")

    async def _request_list(self, method: str, path: str, **kwargs: Any) -> list[Any]:
        return _expect(await self._request(method, path, **kwargs), list, f"{method} {path}")

    # --- Peers ---

    async def get_or_create_peer(self, peer_id: str) -> dict[str, Any]:
        """Fetch a peer, creating it on first use."""
        return await self._request_object("POST", "/peers", json={"id": peer_id}) or {"id": peer_id}

    async def peer_chat(
        self,
        peer_id: str,
        query: str,
        *,
        target: str | None = None,
        session_id: str | None = None,
        reasoning_level: ReasoningLevel | None = None,
    ) -> str | None:
        """Ask a peer's model a question, optionally about another peer."""
        body: dict[str, Any] = {"query": query}
        if target:
            body["target"] = target
        if session_id:
            body["session_id"] = session_id
        if reasoning_level:
            body["reasoning_level"] = reasoning_level
        data = await self._request_object("POST", f"/peers/{peer_id}/chat", json=body)
        content = data.get("content")
        return str(content) if content else None

    async def peer_card(self, peer_id: str, *, target: str | None = None) -> list[str] | None:
        """Return the free-text card (list of key facts) of a peer."""
        params = {"target": target} if target else None
        data = await self._request_object("GET", f"/peers/{peer_id}/card", params=params)
        card = _expect(data.get("peer_card"), list, "peer card")
        return [str(fact) for fact in card] or None

    async def peer_representation(
        self,
        peer_id: str,
        *,
        target: str | None = None,
        search_query: str | None = None,
        search_top_k: int | None = None,
        max_conclusions: int | None = None,
    ) -> str:
        """Return a peer's synthesized representation as text."""
        body: dict[str, Any] = {}
        if target:
            body["target"] = target
        if search_query:
            body["search_query"] = search_query
        if search_top_k is not None:
            body["search_top_k"] = search_top_k
        if max_conclusions is not None:
            body["max_conclusions"] = max_conclusions
        data = await self._request_object("POST", f"/peers/{peer_id}/representation", json=body)
        representation = data.get("representation")
        return str(representation) if representation else ""

    async def peer_search(self, peer_id: str, query: str, *, limit: int = 10) -> list[dict[str, Any]]:
        """Semantic search over the messages of a peer."""
        results = await self._request_list(
            "POST",
            f"/peers/{peer_id}/search",
            json={"query": query, "limit": limit},
        )
        return [item for item in results if isinstance(item, dict)]

    async def create_conclusions(
        self,
        observer_id: str,
        observed_id: str,
        contents: list[str],
    ) -> None:
        """Batch-create conclusions of ``observer_id`` about ``observed_id``.

        Passing the same id twice creates self-conclusions.
        """
        if not contents:
            return
        conclusions = [
            {"content": content, "observer_id": observer_id, "observed_id": observed_id}
            for content in contents
        ]
        await self._request("POST", "/conclusions", json={"conclusions": conclusions})

    # --- Sessions ---

    async def get_session_metadata(self, session_id: str) -> dict[str, Any]:
        """Return the metadata of an existing session."""
        data = await self._request_object("GET", f"/sessions/{session_id}")
        return dict(_expect(data.get("metadata"), dict, "session metadata"))

    async def create_session(self, session_id: str, metadata: dict[str, Any]) -> dict[str, Any]:
        """Create a session with initial metadata and return that metadata."""
        data = await self._request_object(
            "POST",
            "/sessions",
            json={"id": session_id, "metadata": metadata},
        )
        return dict(_expect(data.get("metadata"), dict, "session metadata") or metadata)

    async def set_session_metadata(self, session_id: str, metadata: dict[str, Any]) -> None:
        """Replace the metadata of a session."""
        await self._request("PUT", f"/sessions/{session_id}", json={"metadata": metadata})

    async def add_peers(self, session_id: str, peers: dict[str, SessionPeerConfig]) -> None:
        """Upsert session participants with their observation flags."""
        body = {peer_id: cfg.model_dump() for peer_id, cfg in peers.items()}
        await self._request("POST", f"/sessions/{session_id}/peers", json=body)

    async def add_messages(
        self,
        session_id: str,
        messages: list[ExtractedMessage],
        *,
        peer_ids: Mapping[PeerRole, str] | None = None,
    ) -> None:
        """Append messages to a session, attributing each to its peer."""
        peer_ids = peer_ids or {}
        payload = []
        for message in messages:
            item: dict[str, Any] = {
                "peer_id": peer_ids.get(message.peer, message.peer.value),
                "content": message.content,
            }
            if message.turn_index is not None:
                item["metadata"] = {TURN_INDEX_KEY: message.turn_index}
            payload.append(item)
        await self._request("POST", f"/sessions/{session_id}/messages", json={"messages": payload})

    async def list_messages(
        self,
        session_id: str,
        *,
        filters: dict[str, Any] | None = None,
        size: int = 100,
    ) -> list[dict[str, Any]]:
        """List stored messages of a session, following pagination."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self._request_object(
                "POST",
                f"/sessions/{session_id}/messages/list",
                json={"filters": filters or {}},
                params={"page": page, "size": size},
            )
            page_items = _expect(data.get("items"), list, "message page")
            items.extend(item for item in page_items if isinstance(item, dict))
            pages = data.get("pages")
            if not isinstance(pages, int) or page >= pages:
                return items
            page += 1

    async def session_context(
        self,
        session_id: str,
        *,
        tokens: int | None = None,
        search_query: str | None = None,
    ) -> dict[str, Any]:
        """Return the session's context (summary plus recent messages)."""
        params: dict[str, Any] = {}
        if tokens is not None:
            params["tokens"] = tokens
        if search_query:
            params["search_query"] = search_query
        return await self._request_object("GET", f"/sessions/{session_id}/context", params=params)
