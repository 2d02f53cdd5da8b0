"""Diagram metrics attached to usage telemetry for BPMN dialects."""

from __future__ import annotations

import logging
from typing import Any, Iterator
from xml.etree.ElementTree import Element

from defusedxml.common import DefusedXmlException
from defusedxml.ElementTree import ParseError, fromstring

from .classifier import NAMESPACE_BPMN, NAMESPACE_CAMUNDA, NAMESPACE_ZEEBE

__all__ = ["get_metrics", "get_process_variables", "get_user_task_metrics"]

LOGGER = logging.getLogger(__name__)

_BPMN = f"{{{NAMESPACE_BPMN}}}"
_CAMUNDA = f"{{{NAMESPACE_CAMUNDA}}}"
_ZEEBE = f"{{{NAMESPACE_ZEEBE}}}"

_FORM_KINDS: tuple[str, ...] = ("embedded", "camundaForms", "external", "generated")


def get_metrics(text: str | None, diagram_type: str) -> dict[str, Any]:
    """Return process variable and user task metrics for a BPMN diagram."""

    root = _parse(text)
    return {
        "processVariablesCount": len(get_process_variables(root)) if root is not None else 0,
        "tasks": {"userTask": get_user_task_metrics(root, diagram_type)},
    }


def get_process_variables(root: Element | None) -> set[str]:
    """Collect variable names written by the diagram's extension elements."""

    if root is None:
        return set()
    names: set[str] = set()
    for element in root.iter():
        tag = element.tag
        if tag in (f"{_CAMUNDA}inputParameter", f"{_CAMUNDA}outputParameter"):
            _add(names, element.get("name"))
        elif tag in (f"{_CAMUNDA}in", f"{_CAMUNDA}out"):
            _add(names, element.get("target"))
        elif tag == f"{_CAMUNDA}formField":
            _add(names, element.get("id"))
        elif tag in (f"{_ZEEBE}input", f"{_ZEEBE}output"):
            _add(names, element.get("target"))
        elif tag == f"{_ZEEBE}calledDecision":
            _add(names, element.get("resultVariable"))
        elif tag == f"{_ZEEBE}loopCharacteristics":
            _add(names, element.get("outputElement"))
            _add(names, element.get("outputCollection"))
        _add(names, element.get(f"{_CAMUNDA}resultVariable"))
        _add(names, element.get(f"{_CAMUNDA}collection"))
    return names


def get_user_task_metrics(root: Element | None, diagram_type: str) -> dict[str, Any]:
    """Count user tasks and classify how their forms are provided."""

    form_counts = {kind: 0 for kind in _FORM_KINDS}
    tasks = list(_iter_user_tasks(root))
    with_form = 0
    for task in tasks:
        kind = _form_kind(task, diagram_type)
        if kind is None:
            continue
        with_form += 1
        form_counts[kind] += 1
    return {"count": len(tasks), "form": {"count": with_form, **form_counts}}


def _iter_user_tasks(root: Element | None) -> Iterator[Element]:
    if root is None:
        return iter(())
    return root.iter(f"{_BPMN}userTask")


def _form_kind(task: Element, diagram_type: str) -> str | None:
    if diagram_type == "cloud-bpmn":
        definition = task.find(f"{_BPMN}extensionElements/{_ZEEBE}formDefinition")
        form_key = definition.get("formKey") if definition is not None else None
    else:
        form_key = task.get(f"{_CAMUNDA}formKey")
        if not form_key and task.find(f"{_BPMN}extensionElements/{_CAMUNDA}formData") is not None:
            return "generated"
    if not form_key:
        return None
    if form_key.startswith("embedded:"):
        return "embedded"
    if form_key.startswith("camunda-forms:"):
        return "camundaForms"
    return "external"


def _parse(text: str | None) -> Element | None:
    if not text or not text.strip():
        return None
    try:
        return fromstring(text.encode("utf-8", errors="replace"), forbid_dtd=True)
    except (ParseError, DefusedXmlException) as exc:
        LOGGER.debug("Skipping metrics for unparsable diagram: %s", exc)
        return None


def _add(names: set[str], value: str | None) -> None:
    if value and value.strip():
        names.add(value.strip())
