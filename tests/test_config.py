from __future__ import annotations

import json
from pathlib import Path

import pytest

from bt_accessory_monitor.config import LOG_LEVEL_ENV, OPTIONS_PATH_ENV, MonitorConfig


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(OPTIONS_PATH_ENV, raising=False)
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    config = MonitorConfig.load(str(tmp_path / "options.json"))
    assert config == MonitorConfig()
    assert config.cli_timeout_seconds == 2.0


def test_loads_options_file(tmp_path: Path) -> None:
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"log_level": "debug", "cli_tool": "/usr/bin/btctl", "cli_timeout_seconds": 1.5}))
    config = MonitorConfig.load(str(path))
    assert config.log_level == "debug"
    assert config.cli_tool == "/usr/bin/btctl"
    assert config.cli_timeout_seconds == 1.5


def test_options_path_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"log_level": "warning"}))
    monkeypatch.setenv(OPTIONS_PATH_ENV, str(path))
    assert MonitorConfig.load().log_level == "warning"


def test_malformed_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "options.json"
    path.write_text("{not json")
    assert MonitorConfig.load(str(path)) == MonitorConfig()


def test_invalid_timeout_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"log_level": "debug", "cli_timeout_seconds": 0}))
    assert MonitorConfig.load(str(path)) == MonitorConfig()


def test_env_log_level_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"log_level": "debug"}))
    monkeypatch.setenv(LOG_LEVEL_ENV, "error")
    assert MonitorConfig.load(str(path)).log_level == "error"


def test_unknown_log_level_falls_back_to_info(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")
    assert MonitorConfig.load(str(tmp_path / "none.json")).log_level == "info"
