"""Settings dataclass and JSON persistence."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = ["Settings", "SettingsStore", "default_settings_path"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".diagramdesk"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGRAMDESK_LAST_OPEN_FILE": "last_open_file",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGRAMDESK_DEBUG_LOGGING": "debug_logging",
    "DIAGRAMDESK_TELEMETRY_OPT_IN": "telemetry_opt_in",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_MAX_RECENT_FILES = 10


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    flags: dict[str, Any] = field(default_factory=dict)
    telemetry_opt_in: bool = False
    debug_logging: bool = False
    recent_files: list[str] = field(default_factory=list)
    last_open_file: str | None = None
    element_templates: list[dict[str, Any]] = field(default_factory=list)

    def remember_recent_file(self, path: Path | str) -> None:
        normalized = str(Path(path).expanduser().resolve())
        updated = [normalized]
        for existing in self.recent_files:
            if existing == normalized:
                continue
            updated.append(existing)
            if len(updated) >= _MAX_RECENT_FILES:
                break
        self.recent_files = updated
        self.last_open_file = normalized


def default_settings_path() -> Path:
    return _DEFAULT_SETTINGS_PATH


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            flags = data.get("flags")
            if flags is not None and not isinstance(flags, Mapping):
                LOGGER.warning("Ignoring malformed flags in %s: %r", self._path, flags)
                data.pop("flags")
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()

        if payload and payload.get("version") != _SETTINGS_VERSION:
            try:
                self.save(settings)
            except OSError as exc:  # pragma: no cover - read-only home directories
                LOGGER.warning("Failed to migrate settings payload: %s", exc)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {f.name for f in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        flags_override = filtered.get("flags")
        if isinstance(flags_override, Mapping):
            merged = dict(settings.flags or {})
            merged.update(flags_override)
            filtered["flags"] = merged
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {f.name for f in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}
