"""Tests for configuration loading and validation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from agent_memsync import config
from agent_memsync.config import (
    BootstrapPolicy,
    ConfigError,
    ExportConfig,
    MemsyncConfig,
    StoreConfig,
    load_config,
    resolve_env_vars,
    resolve_workspace_dir,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_store_defaults() -> None:
    store = StoreConfig()
    assert store.api_key is None
    assert store.base_url == "https://api.honcho.dev"
    assert store.workspace_id == "agent"


def test_store_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HONCHO_API_KEY", "hc_env")
    monkeypatch.setenv("HONCHO_BASE_URL", "http://localhost:8000/")
    monkeypatch.setenv("HONCHO_WORKSPACE_ID", "home")
    store = StoreConfig()
    assert store.api_key == "hc_env"
    assert store.base_url == "http://localhost:8000"
    assert store.workspace_id == "home"


def test_explicit_values_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HONCHO_API_KEY", "hc_env")
    assert StoreConfig(api_key="hc_explicit").api_key == "hc_explicit"


def test_env_references_are_expanded(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MY_KEY", "hc_ref")
    assert StoreConfig(api_key="${MY_KEY}").api_key == "hc_ref"
    assert resolve_env_vars("a-${MY_KEY}-b") == "a-hc_ref-b"


def test_unset_env_reference_fails() -> None:
    with pytest.raises(ConfigError, match="NOT_SET_ANYWHERE"):
        resolve_env_vars("${NOT_SET_ANYWHERE}")


def test_unset_credential_reference_degrades_to_warning(caplog: pytest.LogCaptureFixture) -> None:
    cfg = MemsyncConfig.from_mapping({"api_key": "${MISSING_HONCHO_KEY}"})

    assert cfg.store.api_key is None
    assert "MISSING_HONCHO_KEY" in caplog.text


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (30, 30),
        (0, 1),
        (-5, 1),
        (5000, 1440),
        (2.9, 2),
        (float("nan"), 60),
        (float("inf"), 1440),
        (float("-inf"), 1),
        ("often", 60),
        (True, 60),
    ],
)
def test_export_frequency_is_clamped(value: object, expected: int) -> None:
    assert ExportConfig(frequency_minutes=value).frequency_minutes == expected  # type: ignore[arg-type]


def test_from_mapping_merges_flat_and_sections() -> None:
    cfg = MemsyncConfig.from_mapping(
        {
            "api_key": "hc_flat",
            "store": {"workspace_id": "ws"},
            "export": {"enabled": False},
            "sync": {"bootstrap": "recent"},
        },
    )
    assert cfg.store.api_key == "hc_flat"
    assert cfg.store.workspace_id == "ws"
    assert cfg.export.enabled is False
    assert cfg.sync.bootstrap is BootstrapPolicy.recent


def test_invalid_bootstrap_is_rejected() -> None:
    with pytest.raises(ValueError, match="bootstrap"):
        MemsyncConfig.from_mapping({"sync": {"bootstrap": "sometimes"}})


def test_load_config_replaces_dashes(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('[defaults]\napi-key = "hc_file"\n\n[serve]\nexport-frequency = 5\n')
    loaded = load_config(str(path))
    assert loaded == {"defaults": {"api_key": "hc_file"}, "serve": {"export_frequency": 5}}


def test_load_config_missing_explicit_file(tmp_path: Path) -> None:
    assert load_config(str(tmp_path / "nope.toml")) == {}


def test_workspace_resolution_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    explicit = tmp_path / "explicit"
    assert resolve_workspace_dir(explicit) == explicit

    monkeypatch.setenv("WORKSPACE_ROOT", str(tmp_path / "env"))
    assert resolve_workspace_dir() == tmp_path / "env"
    monkeypatch.delenv("WORKSPACE_ROOT")

    host_ws = tmp_path / "host-ws"
    host_ws.mkdir()
    host_config = tmp_path / "openclaw.json"
    host_config.write_text(json.dumps({"agent": {"workspace": str(host_ws)}}))
    assert config._load_workspace_from_host_config(host_config) == str(host_ws)
    with patch.object(config, "_load_workspace_from_host_config", return_value=str(host_ws)):
        assert resolve_workspace_dir() == host_ws

    with (
        patch.object(config, "_load_workspace_from_host_config", return_value=None),
        patch.object(config, "DEFAULT_WORKSPACE_DIR", tmp_path / "missing"),
    ):
        monkeypatch.chdir(tmp_path)
        assert resolve_workspace_dir() == tmp_path


def test_host_config_that_is_not_an_object(tmp_path: Path) -> None:
    path = tmp_path / "openclaw.json"
    path.write_text("[1, 2]")
    assert config._load_workspace_from_host_config(path) is None
