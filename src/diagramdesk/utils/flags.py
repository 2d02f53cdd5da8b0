"""Feature flags consulted once while the provider registry is assembled."""

from __future__ import annotations

import logging
import os
from types import MappingProxyType
from typing import Any, Iterable, Mapping

__all__ = ["Flags", "parse_flag_value", "DISABLE_CMMN", "DISABLE_DMN"]

LOGGER = logging.getLogger(__name__)

DISABLE_CMMN = "disable-cmmn"
DISABLE_DMN = "disable-dmn"

_ENV_PREFIX = "DIAGRAMDESK_FLAG_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_flag_value(raw: Any) -> Any:
    """Coerce CLI/env strings into booleans, leaving other values untouched."""

    if not isinstance(raw, str):
        return raw
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return raw.strip()


class Flags:
    """Read-only view over named flags collected from settings, env and CLI."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        normalized = {_normalize_name(name): parse_flag_value(value) for name, value in (values or {}).items()}
        self._values: Mapping[str, Any] = MappingProxyType(normalized)

    @classmethod
    def from_sources(
        cls,
        *sources: Mapping[str, Any] | None,
        environ: Mapping[str, str] | None = None,
    ) -> "Flags":
        """Merge ``sources`` left to right, then apply ``DIAGRAMDESK_FLAG_*`` env vars."""

        merged: dict[str, Any] = {}
        for source in sources:
            if source:
                merged.update({_normalize_name(name): value for name, value in source.items()})
        env = os.environ if environ is None else environ
        for env_name, value in env.items():
            if not env_name.startswith(_ENV_PREFIX):
                continue
            name = _normalize_name(env_name[len(_ENV_PREFIX) :])
            if name:
                merged[name] = value
        flags = cls(merged)
        if merged:
            LOGGER.debug("Feature flags resolved: %s", dict(flags.items()))
        return flags

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(_normalize_name(name), default)

    def enabled(self, name: str, default: bool = False) -> bool:
        return bool(self.get(name, default))

    def items(self) -> Iterable[tuple[str, Any]]:
        return self._values.items()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _normalize_name(name) in self._values

    def __repr__(self) -> str:
        return f"Flags({dict(self._values)!r})"


def _normalize_name(name: str) -> str:
    return name.strip().lower().replace("_", "-")
