"""Service layer helpers (settings, telemetry)."""

from .settings import Settings, SettingsStore

__all__ = ["Settings", "SettingsStore"]
