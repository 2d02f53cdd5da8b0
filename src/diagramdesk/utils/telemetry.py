"""Local, opt-in JSONL sink for usage events."""

from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from .flags import parse_flag_value

__all__ = ["TelemetryEvent", "TelemetryRecorder", "telemetry_enabled"]

LOGGER = logging.getLogger(__name__)

_DEFAULT_TELEMETRY_DIR = Path.home() / ".diagramdesk" / "telemetry"
_LOG_FILE_NAME = "telemetry.jsonl"


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """One usage event waiting to be written."""

    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_record(self, session_id: str) -> dict[str, Any]:
        return {
            "event": self.name,
            "session": session_id,
            "timestamp": self.timestamp.isoformat(),
            "payload": _jsonable(self.payload),
        }


@dataclass(slots=True)
class TelemetryRecorder:
    """Buffers usage events and appends them to ``telemetry.jsonl``.

    A disabled recorder drops events on the floor. The buffer flushes itself once
    it holds ``max_buffer`` events; callers flush explicitly on shutdown.
    """

    enabled: bool = False
    storage_dir: Path | str | None = None
    max_buffer: int = 32
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    _pending: list[TelemetryEvent] = field(default_factory=list, init=False, repr=False)

    @property
    def log_path(self) -> Path:
        directory = self.storage_dir or os.environ.get("DIAGRAMDESK_TELEMETRY_DIR") or _DEFAULT_TELEMETRY_DIR
        return Path(directory).expanduser() / _LOG_FILE_NAME

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(self, name: str, payload: Mapping[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        self._pending.append(TelemetryEvent(name=name, payload=dict(payload or {})))
        if len(self._pending) >= self.max_buffer:
            self.flush()

    def flush(self) -> Path | None:
        if not self._pending:
            return None
        target = self.log_path
        target.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(event.to_record(self.session_id), ensure_ascii=False) for event in self._pending]
        with target.open("a", encoding="utf-8") as handle:
            handle.write("\n".join(lines))
            handle.write("\n")
        LOGGER.debug("Wrote %d telemetry events to %s", len(lines), target)
        self._pending.clear()
        return target


def telemetry_enabled(settings: Any | None = None) -> bool:
    """``DIAGRAMDESK_TELEMETRY`` wins over the persisted ``telemetry_opt_in``."""

    env_value = os.environ.get("DIAGRAMDESK_TELEMETRY")
    if env_value is not None:
        return parse_flag_value(env_value) is True
    return bool(getattr(settings, "telemetry_opt_in", False))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value
