"""Default configuration settings for the agent-memsync package."""

from __future__ import annotations

# --- Remote Store ---
DEFAULT_BASE_URL = "https://api.honcho.dev"
DEFAULT_WORKSPACE_ID = "agent"
DEFAULT_TIMEOUT = 60.0

# --- Peers ---
OWNER_ID = "owner"
AGENT_ID = "agent"

# --- Export ---
DEFAULT_EXPORT_FREQUENCY = 60  # minutes
MIN_EXPORT_FREQUENCY = 1
MAX_EXPORT_FREQUENCY = 1440
USER_FILE = "USER.md"
SOUL_FILE = "SOUL.md"
MEMORY_FILE = "MEMORY.md"
MANAGED_SECTION_HEADER = "## From Honcho"
MANAGED_SECTION_NOTICE = "*Auto-synced from Honcho. Do not edit this section manually.*"

# --- Context Injection ---
MEMORY_CONTEXT_TAG = "memory-context"
MIN_PROMPT_LENGTH = 5

# --- Sync ---
WATERMARK_KEY = "lastSavedIndex"
PENDING_RANGE_KEY = "pending_range"
TURN_INDEX_KEY = "turn_index"
RECENT_BOOTSTRAP_TURNS = 2

# --- Migration ---
ARCHIVE_DIRNAME = ".archive"
