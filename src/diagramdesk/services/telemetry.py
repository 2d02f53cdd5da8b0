"""Usage events describing which diagrams get opened."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Any, Callable, Dict, Mapping, Sequence

from ..diagrams.classifier import parse_execution_platform
from ..diagrams.metrics import get_metrics
from ..tabs.sessions import DiagramFile, Tab
from ..utils.telemetry import TelemetryRecorder

__all__ = [
    "DIAGRAM_OPENED",
    "DiagramOpenedReporter",
    "emit",
    "register_event_listener",
    "summarize_element_templates",
    "unregister_event_listener",
]

LOGGER = logging.getLogger(__name__)

DIAGRAM_OPENED = "diagramOpened"

_EVENT_LISTENERS: dict[str, list[Callable[[dict[str, Any]], None]]] = {}
_BPMN_TYPES = ("bpmn", "cloud-bpmn")
_BINDING_TYPE_PROPERTY = "property"

ElementTemplatesSource = Callable[[DiagramFile], Sequence[Mapping[str, Any]] | None]
MetricsFunction = Callable[[str, str], Dict[str, Any]]


def register_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    """Register a callback invoked whenever :func:`emit` fires *event_name*."""

    if not event_name or callback is None:
        return
    listeners = _EVENT_LISTENERS.setdefault(event_name, [])
    if callback not in listeners:
        listeners.append(callback)


def unregister_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    listeners = _EVENT_LISTENERS.get(event_name)
    if listeners and callback in listeners:
        listeners.remove(callback)


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> None:
    """Broadcast a structured telemetry event to in-process listeners."""

    if not event_name:
        return
    event_payload = {"event": event_name}
    if payload:
        event_payload.update(payload)
    for callback in list(_EVENT_LISTENERS.get(event_name, ())):
        try:
            callback(dict(event_payload))
        except Exception:  # pragma: no cover - listeners must not break emitters
            LOGGER.debug("Telemetry listener %s failed", callback, exc_info=True)
    LOGGER.debug("Telemetry emit %s: %s", event_name, event_payload)


def summarize_element_templates(templates: Sequence[Mapping[str, Any]] | None) -> list[dict[str, Any]]:
    """Reduce element templates to what they apply to and how they bind."""

    summaries: list[dict[str, Any]] = []
    for template in templates or ():
        counts: Counter[str] = Counter()
        for prop in template.get("properties") or ():
            binding = prop.get("binding") or {}
            binding_type = binding.get("type")
            key = binding.get("name") if binding_type == _BINDING_TYPE_PROPERTY else binding_type
            if key:
                counts[key] += 1
        summaries.append({"appliesTo": list(template.get("appliesTo") or ()), "properties": dict(counts)})
    return summaries


class DiagramOpenedReporter:
    """Builds and publishes the ``diagramOpened`` event for a freshly shown tab.

    Cloud BPMN diagrams are reported as ``bpmn``; only platform BPMN diagrams
    carry element template summaries. Metrics are computed off the event loop.
    """

    def __init__(
        self,
        *,
        enabled: bool = False,
        recorder: TelemetryRecorder | None = None,
        element_templates: ElementTemplatesSource | None = None,
        metrics: MetricsFunction = get_metrics,
    ) -> None:
        self._enabled = enabled
        self._recorder = recorder or TelemetryRecorder(enabled=enabled)
        self._element_templates = element_templates
        self._metrics = metrics

    @property
    def enabled(self) -> bool:
        return self._enabled

    def flush(self) -> None:
        self._recorder.flush()

    async def report(self, tab: Tab) -> dict[str, Any] | None:
        if not self._enabled:
            return None
        payload = await self.build_payload(tab)
        emit(DIAGRAM_OPENED, payload)
        self._recorder.record(DIAGRAM_OPENED, payload)
        return payload

    async def build_payload(self, tab: Tab) -> dict[str, Any]:
        if tab.type not in _BPMN_TYPES:
            return {"diagramType": tab.type}

        payload: dict[str, Any] = {"diagramType": "bpmn"}
        if tab.type == "bpmn":
            templates = summarize_element_templates(self._load_element_templates(tab.file))
            payload["elementTemplates"] = templates
            payload["elementTemplateCount"] = len(templates)

        contents = tab.contents
        metrics: dict[str, Any] = {}
        if contents:
            metrics = await asyncio.to_thread(self._metrics, contents, tab.type)
        payload["diagramMetrics"] = metrics
        payload["engineProfile"] = parse_execution_platform(contents) or {}
        return payload

    def _load_element_templates(self, file: DiagramFile) -> Sequence[Mapping[str, Any]] | None:
        if self._element_templates is None:
            return None
        return self._element_templates(file)
