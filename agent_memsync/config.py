"""Pydantic models for the memory sync configuration and config file loading."""

from __future__ import annotations

import json
import logging
import math
import os
import re
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from rich.console import Console

from agent_memsync import constants

console = Console()
logger = logging.getLogger(__name__)

# --- Config File Loading ---

CONFIG_DIR = Path.home() / ".config" / "agent-memsync"
CONFIG_PATH = CONFIG_DIR / "config.toml"
CONFIG_PATH_2 = Path("agent-memsync-config.toml")
ENV_PATH = CONFIG_DIR / ".env"
HOST_CONFIG_PATH = Path.home() / ".openclaw" / "openclaw.json"
DEFAULT_WORKSPACE_DIR = Path.home() / ".openclaw" / "workspace"

_ENV_REF_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ConfigError(Exception):
    """Raised when the configuration cannot be resolved."""


def _replace_dashed_keys_recursive(d: dict[str, Any]) -> dict[str, Any]:
    """Recursively replace dashed keys with underscores in a dictionary."""
    new_dict = {}
    for k, v in d.items():
        new_key = k.replace("-", "_")
        if isinstance(v, dict):
            new_dict[new_key] = _replace_dashed_keys_recursive(v)
        else:
            new_dict[new_key] = v
    return new_dict


def load_config(config_path_str: str | None = None) -> dict[str, Any]:
    """Load the TOML configuration file and process it for nested structures."""
    if config_path_str:
        config_path = Path(config_path_str)
    elif CONFIG_PATH.exists():
        config_path = CONFIG_PATH
    elif CONFIG_PATH_2.exists():
        config_path = CONFIG_PATH_2
    else:
        return {}

    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                cfg = tomllib.load(f)
                return _replace_dashed_keys_recursive(cfg)
        except tomllib.TOMLDecodeError as e:
            console.print(
                f"[bold red]Error parsing config file {config_path}: {e}[/bold red]",
            )
            return {}

    # Report error only if an explicit path was given
    if config_path_str:
        console.print(
            f"[bold red]Config file not found at {config_path_str}[/bold red]",
        )
    return {}


def load_env_files() -> None:
    """Load `.env` files without overriding variables already set."""
    load_dotenv()
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH)


def resolve_env_vars(value: str) -> str:
    """Expand ``${VAR}`` references, failing loudly on unset variables."""

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        env_value = os.environ.get(name)
        if not env_value:
            msg = f"Environment variable {name} is not set"
            raise ConfigError(msg)
        return env_value

    return _ENV_REF_PATTERN.sub(_sub, value)


# --- Pydantic Models for Configuration ---


class BootstrapPolicy(str, Enum):
    """Where the watermark of a never-seen session starts."""

    full = "full"
    recent = "recent"


class StoreConfig(BaseModel):
    """Connection settings for the remote memory store."""

    model_config = ConfigDict(validate_default=True)

    api_key: str | None = None
    base_url: str = constants.DEFAULT_BASE_URL
    workspace_id: str = constants.DEFAULT_WORKSPACE_ID
    timeout: float = constants.DEFAULT_TIMEOUT

    @field_validator("api_key", mode="before")
    @classmethod
    def _resolve_api_key(cls, v: str | None) -> str | None:
        if isinstance(v, str) and v:
            try:
                return resolve_env_vars(v)
            except ConfigError as e:
                logger.warning("Ignoring api_key: %s. Honcho requests will fail.", e)
                return None
        return os.environ.get("HONCHO_API_KEY") or None

    @field_validator("base_url", mode="before")
    @classmethod
    def _default_base_url(cls, v: str | None) -> str:
        if isinstance(v, str) and v:
            return v.rstrip("/")
        return os.environ.get("HONCHO_BASE_URL", constants.DEFAULT_BASE_URL).rstrip("/")

    @field_validator("workspace_id", mode="before")
    @classmethod
    def _default_workspace_id(cls, v: str | None) -> str:
        if isinstance(v, str) and v:
            return v
        return os.environ.get("HONCHO_WORKSPACE_ID", constants.DEFAULT_WORKSPACE_ID)


class ExportConfig(BaseModel):
    """Configuration for the periodic export of representations to files."""

    enabled: bool = True
    on_startup: bool = True
    frequency_minutes: int = constants.DEFAULT_EXPORT_FREQUENCY

    @field_validator("frequency_minutes", mode="before")
    @classmethod
    def _clamp_frequency(cls, v: Any) -> int:
        if isinstance(v, bool) or not isinstance(v, int | float) or math.isnan(v):
            return constants.DEFAULT_EXPORT_FREQUENCY
        if math.isinf(v):
            return constants.MAX_EXPORT_FREQUENCY if v > 0 else constants.MIN_EXPORT_FREQUENCY
        return max(
            constants.MIN_EXPORT_FREQUENCY,
            min(constants.MAX_EXPORT_FREQUENCY, math.floor(v)),
        )


class SyncConfig(BaseModel):
    """Configuration for the incremental transcript sync."""

    bootstrap: BootstrapPolicy = BootstrapPolicy.full


class MemsyncConfig(BaseModel):
    """Full configuration of the memory sync layer."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @classmethod
    def from_mapping(cls, cfg: dict[str, Any] | None) -> MemsyncConfig:
        """Build a config from a flat or sectioned mapping (e.g. a TOML table)."""
        cfg = cfg or {}
        store = cfg.get("store", {})
        export = cfg.get("export", {})
        sync = cfg.get("sync", {})
        flat_store = {k: cfg[k] for k in ("api_key", "base_url", "workspace_id") if k in cfg}
        return cls(
            store=StoreConfig(**{**flat_store, **store}),
            export=ExportConfig(**export),
            sync=SyncConfig(**sync),
        )


# --- Workspace Resolution ---


def _load_workspace_from_host_config(path: Path = HOST_CONFIG_PATH) -> str | None:
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(parsed, dict):
        return None
    agent = parsed.get("agent") or {}
    defaults = (parsed.get("agents") or {}).get("defaults") or {}
    candidate = agent.get("workspace") or defaults.get("workspace") or defaults.get("workspaceDir")
    return candidate if isinstance(candidate, str) else None


def resolve_workspace_dir(explicit: Path | str | None = None) -> Path:
    """Locate the agent workspace that holds the knowledge files.

    Order: explicit value, ``WORKSPACE_ROOT``, the host config file, the
    default host workspace, and finally the current directory.
    """
    if explicit:
        return Path(explicit).expanduser()
    env_workspace = os.environ.get("WORKSPACE_ROOT")
    if env_workspace:
        return Path(env_workspace).expanduser()

    candidates = [_load_workspace_from_host_config(), str(DEFAULT_WORKSPACE_DIR)]
    for candidate in candidates:
        if not candidate:
            continue
        resolved = Path(candidate).expanduser()
        if resolved.exists():
            return resolved
    return Path.cwd()
