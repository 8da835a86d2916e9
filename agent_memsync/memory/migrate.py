"""One-shot migration of legacy knowledge files into the store.

Legacy files are read, turned into conclusions (facts) tagged by whose
knowledge they hold, and submitted. Only after every submission succeeded
are the files that conflict with the managed export moved to an archive
directory; nothing is ever deleted.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from agent_memsync import constants
from agent_memsync.memory.client import StoreError
from agent_memsync.memory.peers import PeerRegistry

if TYPE_CHECKING:
    from agent_memsync.memory.client import HonchoClient

logger = logging.getLogger(__name__)


class Ownership(str, Enum):
    """Whose knowledge a legacy file holds."""

    owner = "owner"
    agent = "agent"


# File name -> ownership. Adding a legacy file type is a change to this table.
LEGACY_FILES: dict[str, Ownership] = {
    "USER.md": Ownership.owner,
    "IDENTITY.md": Ownership.owner,
    "MEMORY.md": Ownership.owner,
    "SOUL.md": Ownership.agent,
    "AGENTS.md": Ownership.agent,
    "TOOLS.md": Ownership.agent,
    "BOOTSTRAP.md": Ownership.agent,
    "HEARTBEAT.md": Ownership.agent,
}
LEGACY_DIRS: tuple[str, ...] = ("memory", "canvas")
DEFAULT_OWNERSHIP = Ownership.owner

# Items that would shadow the managed export once migrated.
ARCHIVED_ITEMS: tuple[str, ...] = ("USER.md", "MEMORY.md", "memory")

MISSING_CREDENTIALS_HINT = (
    "Set your API key first, e.g. `echo 'HONCHO_API_KEY=hc_...' >> ~/.config/agent-memsync/.env`,"
    " then re-run `agent-memsync migrate`."
)
SUBMISSION_FAILED_HINT = "Fix the issue above and re-run `agent-memsync migrate`."


class MigrationError(Exception):
    """Raised when migration cannot run or its submission fails."""

    def __init__(self, message: str, remediation: str) -> None:
        """Store the failure and the text telling the user how to recover."""
        super().__init__(message)
        self.remediation = remediation


def classify(relative_path: str | Path) -> Ownership:
    """Return the ownership of a legacy file from its name."""
    return LEGACY_FILES.get(Path(relative_path).name, DEFAULT_OWNERSHIP)


@dataclass
class LegacyFact:
    """A legacy file rendered as a single conclusion."""

    source: str
    content: str
    ownership: Ownership


@dataclass
class ArchiveOutcome:
    """Result of relocating one legacy item."""

    source: Path
    destination: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the item left its original location."""
        return self.error is None


@dataclass
class MigrationReport:
    """Summary of a migration run."""

    workspace: Path
    facts: list[LegacyFact] = field(default_factory=list)
    submitted: bool = False
    archived: list[ArchiveOutcome] = field(default_factory=list)

    @property
    def owner_facts(self) -> list[LegacyFact]:
        """Facts about the owner."""
        return [f for f in self.facts if f.ownership is Ownership.owner]

    @property
    def agent_facts(self) -> list[LegacyFact]:
        """Facts the agent holds about itself."""
        return [f for f in self.facts if f.ownership is Ownership.agent]

    @property
    def failures(self) -> list[ArchiveOutcome]:
        """Archive outcomes that did not relocate their item."""
        return [o for o in self.archived if not o.ok]


def _read_fact(path: Path, relative: str) -> LegacyFact | None:
    try:
        content = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", relative, exc)
        return None
    if not content:
        return None
    logger.info("Found: %s", relative)
    return LegacyFact(
        source=relative,
        content=f"Memory file: {relative}\n\n{content}",
        ownership=classify(relative),
    )


def collect_legacy_facts(workspace: Path) -> list[LegacyFact]:
    """Read known legacy files and recursively walk legacy directories."""
    facts: list[LegacyFact] = []
    for name in LEGACY_FILES:
        path = workspace / name
        if path.is_file() and (fact := _read_fact(path, name)):
            facts.append(fact)

    for dirname in LEGACY_DIRS:
        root = workspace / dirname
        if not root.is_dir():
            continue
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(workspace).as_posix()
            if fact := _read_fact(path, relative):
                facts.append(fact)
    return facts


async def submit_facts(
    client: HonchoClient,
    peers: PeerRegistry,
    facts: list[LegacyFact],
) -> None:
    """Submit owner facts as the agent's conclusions about the owner and the
    agent's own facts as self-conclusions, in two batches.

    Raises `MigrationError` if either batch fails.
    """
    owner_facts = [f.content for f in facts if f.ownership is Ownership.owner]
    agent_facts = [f.content for f in facts if f.ownership is Ownership.agent]
    try:
        await peers.ensure_initialized()
        if owner_facts:
            await client.create_conclusions(peers.agent_id, peers.owner_id, owner_facts)
            logger.info("Created %d conclusions about the owner", len(owner_facts))
        if agent_facts:
            await client.create_conclusions(peers.agent_id, peers.agent_id, agent_facts)
            logger.info("Created %d agent self-conclusions", len(agent_facts))
    except StoreError as exc:
        msg = f"Could not migrate to Honcho: {exc}"
        raise MigrationError(msg, SUBMISSION_FAILED_HINT) from exc


def archive_destination(archive_dir: Path, name: str, now: datetime) -> Path:
    """Return a free path for ``name`` inside ``archive_dir``.

    Collisions get a timestamp suffix, then an increasing counter.
    """
    candidate = archive_dir / name
    if not candidate.exists():
        return candidate
    original = Path(name)
    stem, suffix = original.stem, original.suffix
    stamp = now.strftime("%Y%m%d-%H%M%S")
    candidate = archive_dir / f"{stem}-{stamp}{suffix}"
    counter = 1
    while candidate.exists():
        candidate = archive_dir / f"{stem}-{stamp}-{counter}{suffix}"
        counter += 1
    return candidate


def archive_items(
    workspace: Path,
    names: tuple[str, ...] = ARCHIVED_ITEMS,
    *,
    archive_dir: Path | None = None,
    now: datetime | None = None,
) -> list[ArchiveOutcome]:
    """Move each existing item into the archive, reporting per-item failures."""
    archive_dir = archive_dir or workspace / constants.ARCHIVE_DIRNAME
    now = now or datetime.now()  # noqa: DTZ005
    outcomes: list[ArchiveOutcome] = []
    for name in names:
        source = workspace / name
        if not source.exists():
            continue
        outcome = ArchiveOutcome(source=source)
        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
            destination = archive_destination(archive_dir, name, now)
            shutil.move(str(source), str(destination))
        except OSError as exc:
            outcome.error = str(exc)
        else:
            outcome.destination = destination
            if source.exists():
                outcome.error = "still present after move"
        if outcome.ok:
            logger.info("Archived %s -> %s", source, outcome.destination)
        else:
            logger.error("Failed to archive %s: %s", source, outcome.error)
        outcomes.append(outcome)
    return outcomes


async def migrate_workspace(
    client: HonchoClient,
    workspace: Path,
    *,
    peers: PeerRegistry | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> MigrationReport:
    """Migrate legacy files of ``workspace`` and archive them on success.

    Raises `MigrationError` without touching any file when credentials are
    missing or a submission fails.
    """
    report = MigrationReport(workspace=workspace, facts=collect_legacy_facts(workspace))
    if dry_run:
        return report
    if not client.has_credentials:
        msg = "HONCHO_API_KEY not set. Legacy files will NOT be archived to prevent data loss."
        raise MigrationError(msg, MISSING_CREDENTIALS_HINT)

    await submit_facts(client, peers or PeerRegistry(client), report.facts)
    report.submitted = True
    report.archived = archive_items(workspace, now=now)
    return report
