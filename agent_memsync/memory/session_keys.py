"""Map host conversation identifiers onto the store's session id grammar."""

from __future__ import annotations

import re

DEFAULT_SESSION_KEY = "default"
DEFAULT_CONNECTOR = "_"
_TAG_SEPARATOR = "-"


def normalize_session_key(
    raw_key: str | None,
    tag: str | None = None,
    *,
    connector: str = DEFAULT_CONNECTOR,
    allowed: str = "_-",
) -> str:
    """Return a store-legal session id derived only from ``raw_key`` and ``tag``.

    Every character outside ``[A-Za-z0-9]`` plus ``allowed`` is replaced by
    ``connector``. Stores that only accept hyphens can pass
    ``connector="-", allowed="-"``.

    Distinct inputs can alias (``"a:b"`` and ``"a_b"`` both become ``"a_b"``);
    the mapping is deterministic but not injective.
    """
    if connector not in allowed:
        msg = f"Connector {connector!r} must be one of the allowed characters {allowed!r}"
        raise ValueError(msg)
    key = raw_key or DEFAULT_SESSION_KEY
    if tag:
        key = f"{key}{_TAG_SEPARATOR}{tag}"
    pattern = f"[^a-zA-Z0-9{re.escape(allowed)}]"
    return re.sub(pattern, connector, key)
