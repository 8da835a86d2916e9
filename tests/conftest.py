"""Shared test fixtures and configuration."""

from __future__ import annotations

import contextlib
import io
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from agent_memsync.memory.peers import PeerRegistry
from tests.mocks.honcho import FakeHoncho

if TYPE_CHECKING:
    from pathlib import Path


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Set default timeout for all tests."""
    for item in items:
        with contextlib.suppress(AttributeError):
            item.add_marker(pytest.mark.timeout(3))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's Honcho settings out of the tests."""
    for name in ("HONCHO_API_KEY", "HONCHO_BASE_URL", "HONCHO_WORKSPACE_ID", "WORKSPACE_ROOT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_console() -> Console:
    """Provide a console that writes to a StringIO for testing."""
    return Console(file=io.StringIO(), width=80, force_terminal=True)


@pytest.fixture
def store() -> FakeHoncho:
    """An in-memory Honcho with credentials configured."""
    return FakeHoncho()


@pytest.fixture
def peers(store: FakeHoncho) -> PeerRegistry:
    """Peer registry bound to the fake store."""
    return PeerRegistry(store)  # type: ignore[arg-type]


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An empty agent workspace."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path
