"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from diagramdesk.services.settings import Settings, SettingsStore


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DIAGRAMDESK_LAST_OPEN_FILE", "DIAGRAMDESK_DEBUG_LOGGING", "DIAGRAMDESK_TELEMETRY_OPT_IN"):
        monkeypatch.delenv(name, raising=False)


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")

    assert store.load() == Settings()


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    original = Settings(
        flags={"disable-cmmn": False},
        telemetry_opt_in=True,
        recent_files=["/tmp/a.bpmn"],
        last_open_file="/tmp/a.bpmn",
        element_templates=[{"appliesTo": ["bpmn:Task"], "properties": []}],
    )

    SettingsStore(path).save(original)

    assert SettingsStore(path).load() == original
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1
    assert not path.with_suffix(".tmp").exists()


def test_load_ignores_unknown_fields_and_migrates(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"telemetry_opt_in": True, "legacy": "x"}), encoding="utf-8")

    loaded = SettingsStore(path).load()

    assert loaded.telemetry_opt_in is True
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1


def test_load_drops_malformed_flags(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"version": 1, "flags": ["disable-dmn"], "debug_logging": True}), encoding="utf-8")

    loaded = SettingsStore(path).load()

    assert loaded.flags == {}
    assert loaded.debug_logging is True


@pytest.mark.parametrize("body", ["not json", "[1, 2]"])
def test_load_recovers_from_corrupt_file(tmp_path: Path, body: str) -> None:
    path = tmp_path / "settings.json"
    path.write_text(body, encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_cli_flag_overrides_merge_with_persisted_flags(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(flags={"disable-cmmn": False, "disable-dmn": False}))

    loaded = SettingsStore(path).load(overrides={"flags": {"disable-dmn": True}, "unknown": 1})

    assert loaded.flags == {"disable-cmmn": False, "disable-dmn": True}


def test_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(debug_logging=False, last_open_file="/tmp/a.bpmn"))
    monkeypatch.setenv("DIAGRAMDESK_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("DIAGRAMDESK_LAST_OPEN_FILE", "/tmp/b.dmn")

    loaded = SettingsStore(path).load(overrides={"debug_logging": False})

    assert loaded.debug_logging is True
    assert loaded.last_open_file == "/tmp/b.dmn"


def test_remember_recent_file_moves_entry_to_front(tmp_path: Path) -> None:
    settings = Settings()
    first = tmp_path / "a.bpmn"
    second = tmp_path / "b.dmn"

    settings.remember_recent_file(first)
    settings.remember_recent_file(second)
    settings.remember_recent_file(first)

    assert settings.recent_files == [str(first.resolve()), str(second.resolve())]
    assert settings.last_open_file == str(first.resolve())


def test_remember_recent_file_caps_history(tmp_path: Path) -> None:
    settings = Settings()

    for index in range(15):
        settings.remember_recent_file(tmp_path / f"diagram_{index}.bpmn")

    assert len(settings.recent_files) == 10
    assert settings.recent_files[0].endswith("diagram_14.bpmn")
