"""Turn raw transcript records into plain text that is safe to store.

Two kinds of noise never reach the store:

- memory context blocks that were injected into a prompt by this package
  (re-storing them would feed retrieved memory back in as new content);
- transport envelopes the messaging platform wraps around human turns
  (a leading ``[Channel sender id:… 2026-01-28 14:03 UTC]`` header and a
  trailing ``[message_id: …]`` marker).
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from agent_memsync.constants import MEMORY_CONTEXT_TAG
from agent_memsync.memory.entities import ContentBlock, ExtractedMessage, PeerRole, Turn

if TYPE_CHECKING:
    from collections.abc import Iterable

# Older releases injected context under this tag; keep stripping it.
INJECTED_CONTEXT_TAGS = (MEMORY_CONTEXT_TAG, "honcho-memory")

_INJECTED_BLOCK_PATTERNS = tuple(
    re.compile(rf"<{tag}>.*?</{tag}>\s*", re.DOTALL | re.IGNORECASE)
    for tag in INJECTED_CONTEXT_TAGS
)
# An opening tag whose closing tag was cut off swallows the rest of the text.
_UNTERMINATED_BLOCK_PATTERNS = tuple(
    re.compile(rf"<{tag}>.*\Z", re.DOTALL | re.IGNORECASE) for tag in INJECTED_CONTEXT_TAGS
)
ENVELOPE_HEADER_PATTERN = re.compile(
    r"\A\s*\[[^\[\]\n]*\d{4}-\d{2}-\d{2}[^\[\]\n]*\]\s*",
)
MESSAGE_ID_PATTERN = re.compile(
    r"\s*\[message[_-]id:\s*[^\[\]\n]*\]\s*\Z",
    re.IGNORECASE,
)


def wrap_memory_context(context: str) -> str:
    """Wrap retrieved memory so that it can be recognized and stripped later."""
    return f"<{MEMORY_CONTEXT_TAG}>\n{context}\n</{MEMORY_CONTEXT_TAG}>"


def flatten_content(content: Any) -> str:
    """Return the text of a turn, keeping only ``text`` blocks of block lists."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    blocks = [ContentBlock.model_validate(raw) for raw in content if isinstance(raw, dict)]
    texts = [b.text for b in blocks if b.type == "text" and isinstance(b.text, str)]
    return "\n".join(texts)


def strip_injected_context(text: str) -> str:
    """Remove memory context blocks injected into a prompt."""
    for pattern in _INJECTED_BLOCK_PATTERNS:
        text = pattern.sub("", text)
    for pattern in _UNTERMINATED_BLOCK_PATTERNS:
        text = pattern.sub("", text)
    return text


def strip_envelope(text: str) -> str:
    """Remove the platform's leading header and trailing message-id marker."""
    text = ENVELOPE_HEADER_PATTERN.sub("", text, count=1)
    return MESSAGE_ID_PATTERN.sub("", text, count=1)


def sanitize_text(text: str, peer: PeerRole) -> str:
    """Strip structural noise from a turn's text and trim whitespace."""
    text = strip_injected_context(text)
    if peer is PeerRole.owner:
        text = strip_envelope(text)
    return text.strip()


def extract_messages(
    turns: Iterable[Any],
    *,
    start_index: int = 0,
) -> list[ExtractedMessage]:
    """Convert turns into ordered (peer, text) messages, dropping empty ones.

    ``start_index`` is the position of the first turn in the full turn log;
    it is recorded on each message so stored messages can be traced back.
    """
    messages: list[ExtractedMessage] = []
    for offset, raw in enumerate(turns):
        turn = Turn.from_raw(raw)
        peer = turn.peer
        if peer is None:
            continue
        text = sanitize_text(flatten_content(turn.content), peer)
        if text:
            messages.append(
                ExtractedMessage(peer=peer, content=text, turn_index=start_index + offset),
            )
    return messages
