"""Tests for session key normalization."""

from __future__ import annotations

import pytest

from agent_memsync.memory.session_keys import normalize_session_key


def test_key_with_channel_tag() -> None:
    assert normalize_session_key("agent:main:main", "telegram") == "agent_main_main-telegram"


def test_missing_key_uses_default() -> None:
    assert normalize_session_key(None) == "default"
    assert normalize_session_key("") == "default"
    assert normalize_session_key(None, "discord") == "default-discord"


def test_legal_characters_are_kept() -> None:
    assert normalize_session_key("abc-DEF_123") == "abc-DEF_123"


def test_every_illegal_character_is_replaced() -> None:
    assert normalize_session_key("a b/c.d@é") == "a_b_c_d__"


def test_deterministic() -> None:
    assert normalize_session_key("x:y", "z") == normalize_session_key("x:y", "z")


def test_distinct_keys_can_alias() -> None:
    """The mapping is lossy: ':' and '_' collapse onto the same id."""
    assert normalize_session_key("a:b") == normalize_session_key("a_b")


def test_hyphen_only_grammar() -> None:
    assert normalize_session_key("agent:main_x", "tg", connector="-", allowed="-") == "agent-main-x-tg"


def test_connector_must_be_allowed() -> None:
    with pytest.raises(ValueError, match="Connector"):
        normalize_session_key("a", connector=".", allowed="_-")
