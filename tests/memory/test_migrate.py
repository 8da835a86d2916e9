"""Tests for legacy file migration and archival."""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from agent_memsync.memory.migrate import (
    MigrationError,
    Ownership,
    archive_destination,
    archive_items,
    classify,
    collect_legacy_facts,
    migrate_workspace,
)
from tests.mocks.honcho import FakeHoncho

if TYPE_CHECKING:
    from agent_memsync.memory.peers import PeerRegistry

NOW = datetime(2026, 2, 3, 4, 5, 6)  # noqa: DTZ001


def _populate(workspace: Path) -> None:
    (workspace / "USER.md").write_text("Name: Sam\n")
    (workspace / "SOUL.md").write_text("Be curious.\n")
    (workspace / "IDENTITY.md").write_text("   \n")
    (workspace / "memory").mkdir()
    (workspace / "memory" / "2026-01-01.md").write_text("Went hiking.\n")
    (workspace / "canvas" / "nested").mkdir(parents=True)
    (workspace / "canvas" / "nested" / "board.md").write_text("Plans\n")


def test_classify() -> None:
    assert classify("USER.md") is Ownership.owner
    assert classify("SOUL.md") is Ownership.agent
    assert classify("memory/2026-01-01.md") is Ownership.owner
    assert classify("canvas/unknown.txt") is Ownership.owner


def test_collect_reads_files_and_walks_directories(workspace: Path) -> None:
    _populate(workspace)
    facts = collect_legacy_facts(workspace)

    assert [f.source for f in facts] == [
        "USER.md",
        "SOUL.md",
        "memory/2026-01-01.md",
        "canvas/nested/board.md",
    ]
    assert facts[0].content == "Memory file: USER.md\n\nName: Sam"
    assert facts[1].ownership is Ownership.agent


@pytest.mark.asyncio
async def test_successful_migration_archives_files(
    store: FakeHoncho,
    peers: PeerRegistry,
    workspace: Path,
) -> None:
    _populate(workspace)
    report = await migrate_workspace(store, workspace, peers=peers, now=NOW)  # type: ignore[arg-type]

    assert report.submitted
    owner_batch, agent_batch = store.conclusions
    assert owner_batch[:2] == ("agent", "owner")
    assert len(owner_batch[2]) == 3
    assert agent_batch[:2] == ("agent", "agent")
    assert agent_batch[2] == ["Memory file: SOUL.md\n\nBe curious."]

    archive = workspace / ".archive"
    assert not (workspace / "USER.md").exists()
    assert not (workspace / "memory").exists()
    assert (archive / "USER.md").read_text() == "Name: Sam\n"
    assert (archive / "memory" / "2026-01-01.md").exists()
    # Agent-owned and non-conflicting legacy files stay in place.
    assert (workspace / "SOUL.md").exists()
    assert (workspace / "canvas").exists()
    assert not report.failures


@pytest.mark.asyncio
async def test_failed_submission_moves_nothing(
    store: FakeHoncho,
    peers: PeerRegistry,
    workspace: Path,
) -> None:
    _populate(workspace)
    store.fail_on["create_conclusions"] = 2

    with pytest.raises(MigrationError) as excinfo:
        await migrate_workspace(store, workspace, peers=peers)  # type: ignore[arg-type]

    assert "re-run" in excinfo.value.remediation
    assert (workspace / "USER.md").exists()
    assert (workspace / "memory" / "2026-01-01.md").exists()
    assert not (workspace / ".archive").exists()


@pytest.mark.asyncio
async def test_missing_credentials_touch_nothing(workspace: Path) -> None:
    _populate(workspace)
    store = FakeHoncho(api_key=None)

    with pytest.raises(MigrationError, match="HONCHO_API_KEY"):
        await migrate_workspace(store, workspace)  # type: ignore[arg-type]

    assert not store.calls
    assert (workspace / "USER.md").exists()


@pytest.mark.asyncio
async def test_dry_run_only_reports(store: FakeHoncho, workspace: Path) -> None:
    _populate(workspace)
    report = await migrate_workspace(store, workspace, dry_run=True)  # type: ignore[arg-type]

    assert len(report.owner_facts) == 3
    assert len(report.agent_facts) == 1
    assert not report.submitted
    assert not store.calls
    assert (workspace / "USER.md").exists()


def test_archive_collision_gets_timestamp_then_counter(workspace: Path) -> None:
    archive = workspace / ".archive"
    archive.mkdir()
    (archive / "USER.md").write_text("first")
    (archive / "USER-20260203-040506.md").write_text("second")

    assert archive_destination(archive, "USER.md", NOW) == archive / "USER-20260203-040506-1.md"
    assert archive_destination(archive, "MEMORY.md", NOW) == archive / "MEMORY.md"


def test_archive_never_overwrites(workspace: Path) -> None:
    archive = workspace / ".archive"
    archive.mkdir()
    (archive / "USER.md").write_text("old archive")
    (workspace / "USER.md").write_text("new")

    outcomes = archive_items(workspace, now=NOW)

    assert [o.ok for o in outcomes] == [True]
    assert (archive / "USER.md").read_text() == "old archive"
    assert (archive / "USER-20260203-040506.md").read_text() == "new"


def _fill_archived_items(workspace: Path) -> None:
    (workspace / "USER.md").write_text("Name: Sam\n")
    (workspace / "MEMORY.md").write_text("Likes tea\n")
    (workspace / "memory").mkdir()
    (workspace / "memory" / "notes.md").write_text("Went hiking.\n")


def test_move_error_is_reported_per_item(
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _fill_archived_items(workspace)
    real_move = shutil.move

    def _move(src: str, dst: str) -> str:
        if Path(src).name == "USER.md":
            msg = "Permission denied"
            raise OSError(msg)
        return real_move(src, dst)

    monkeypatch.setattr(shutil, "move", _move)
    outcomes = archive_items(workspace, now=NOW)

    failed = [o for o in outcomes if not o.ok]
    assert [o.source.name for o in failed] == ["USER.md"]
    assert "Permission denied" in (failed[0].error or "")
    assert (workspace / "USER.md").exists()
    assert (workspace / ".archive" / "MEMORY.md").exists()
    assert (workspace / ".archive" / "memory" / "notes.md").exists()
    assert not (workspace / "memory").exists()


def test_item_left_behind_by_move_is_a_failure(
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _fill_archived_items(workspace)
    real_move = shutil.move

    def _move(src: str, dst: str) -> str:
        if Path(src).name == "USER.md":
            return shutil.copy2(src, dst)
        return real_move(src, dst)

    monkeypatch.setattr(shutil, "move", _move)
    outcomes = archive_items(workspace, now=NOW)

    assert [(o.source.name, o.error) for o in outcomes if not o.ok] == [
        ("USER.md", "still present after move"),
    ]
    assert [o.source.name for o in outcomes if o.ok] == ["MEMORY.md", "memory"]


@pytest.mark.asyncio
async def test_partial_archival_lands_in_report(
    store: FakeHoncho,
    peers: PeerRegistry,
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _fill_archived_items(workspace)
    real_move = shutil.move

    def _move(src: str, dst: str) -> str:
        if Path(src).name == "MEMORY.md":
            msg = "Device busy"
            raise OSError(msg)
        return real_move(src, dst)

    monkeypatch.setattr(shutil, "move", _move)
    report = await migrate_workspace(store, workspace, peers=peers, now=NOW)  # type: ignore[arg-type]

    assert report.submitted
    assert [o.source.name for o in report.failures] == ["MEMORY.md"]
    assert (workspace / ".archive" / "USER.md").exists()
