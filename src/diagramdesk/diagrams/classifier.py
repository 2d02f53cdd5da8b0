"""Content sniffing for diagram dialects.

Everything in this module is pure and total: malformed, partial or empty text
degrades to ``"unknown"``/``None`` instead of raising, so callers on the tab
resolution path never need their own error handling.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional
from xml.etree.ElementTree import Element

from defusedxml.common import DefusedXmlException
from defusedxml.ElementTree import ParseError, iterparse

__all__ = [
    "UNKNOWN",
    "BPMN",
    "DMN",
    "CMMN",
    "NAMESPACE_BPMN",
    "NAMESPACE_CMMN",
    "NAMESPACE_DMN_11",
    "NAMESPACE_DMN_12",
    "NAMESPACE_DMN_13",
    "NAMESPACE_MODELER",
    "NAMESPACE_ZEEBE",
    "NAMESPACE_CAMUNDA",
    "NamespaceUsage",
    "classify",
    "find_namespace_usages",
    "has_namespace_usage",
    "parse_execution_platform",
    "read_root_element",
]

LOGGER = logging.getLogger(__name__)

UNKNOWN = "unknown"
BPMN = "bpmn"
DMN = "dmn"
CMMN = "cmmn"

NAMESPACE_BPMN = "http://www.omg.org/spec/BPMN/20100524/MODEL"
NAMESPACE_CMMN = "http://www.omg.org/spec/CMMN/20151109/MODEL"
NAMESPACE_DMN_11 = "http://www.omg.org/spec/DMN/20151101/dmn.xsd"
NAMESPACE_DMN_12 = "http://www.omg.org/spec/DMN/20180521/MODEL/"
NAMESPACE_DMN_13 = "https://www.omg.org/spec/DMN/20191111/MODEL/"
NAMESPACE_MODELER = "http://camunda.org/schema/modeler/1.0"
NAMESPACE_ZEEBE = "http://camunda.org/schema/zeebe/1.0"
NAMESPACE_CAMUNDA = "http://camunda.org/schema/1.0/bpmn"

_ROOT_ELEMENT = "definitions"
_DIALECTS_BY_NAMESPACE: dict[str, str] = {
    NAMESPACE_BPMN: BPMN,
    NAMESPACE_DMN_11: DMN,
    NAMESPACE_DMN_12: DMN,
    NAMESPACE_DMN_13: DMN,
    NAMESPACE_CMMN: CMMN,
}

_DECLARED_ENCODING = re.compile(r"""^(\s*<\?xml[^>]*?)\s+encoding\s*=\s*(["'])[^"']*\2""")
_NAMESPACE_DECLARATION = re.compile(r"""xmlns(?::([A-Za-z_][\w.-]*))?\s*=\s*(["'])(.*?)\2""", re.DOTALL)
_COMMENT_OR_CDATA = re.compile(r"<!--.*?-->|<!\[CDATA\[.*?\]\]>", re.DOTALL)
_START_OR_END_TAG = re.compile(r"""</?([A-Za-z_][\w.:-]*)((?:[^<>"']|"[^"]*"|'[^']*')*)/?>""", re.DOTALL)
_QUOTED_VALUE = re.compile(r"""("[^"]*"|'[^']*')""")


@dataclass(frozen=True, slots=True)
class NamespaceUsage:
    """Prefixes under which a namespace is actually referenced in a document."""

    namespace: str
    prefixes: tuple[str, ...]
    default: bool = False


def read_root_element(text: str | None) -> Optional[Element]:
    """Return the document's root element (attributes only, children not read)."""

    if not text or not text.strip():
        return None
    # re-encoded below, so a declared legacy encoding would lie; lone surrogates become "?"
    payload = _DECLARED_ENCODING.sub(r"\1", text, count=1).encode("utf-8", errors="replace")
    try:
        for _event, element in iterparse(io.BytesIO(payload), events=("start",), forbid_dtd=True):
            return element
    except (ParseError, DefusedXmlException) as exc:
        LOGGER.debug("Unable to read root element: %s", exc)
    return None


def classify(text: str | None) -> str:
    """Return the dialect tag for ``text`` or :data:`UNKNOWN`."""

    root = read_root_element(text)
    if root is None:
        return UNKNOWN
    namespace, local_name = _split_tag(root.tag)
    if local_name != _ROOT_ELEMENT:
        return UNKNOWN
    return _DIALECTS_BY_NAMESPACE.get(namespace, UNKNOWN)


def find_namespace_usages(text: str | None, namespace_uri: str) -> NamespaceUsage | None:
    """Report the prefixes bound to ``namespace_uri`` that the document uses."""

    if not text or not namespace_uri:
        return None
    used: list[str] = []
    default = False
    for match in _NAMESPACE_DECLARATION.finditer(text):
        prefix, uri = match.group(1), match.group(3)
        if uri != namespace_uri:
            continue
        if prefix is None:
            default = True
        elif prefix not in used and _prefix_referenced(text, prefix):
            used.append(prefix)
    if not used and not default:
        return None
    return NamespaceUsage(namespace=namespace_uri, prefixes=tuple(used), default=default)


def has_namespace_usage(text: str | None, namespace_uri: str) -> bool:
    return find_namespace_usages(text, namespace_uri) is not None


def parse_execution_platform(text: str | None) -> dict[str, Any] | None:
    """Return the execution platform the diagram was modelled for, if declared."""

    root = read_root_element(text)
    if root is None:
        return None
    platform = root.get(f"{{{NAMESPACE_MODELER}}}executionPlatform")
    if not platform:
        return None
    profile: dict[str, Any] = {"executionPlatform": platform}
    version = root.get(f"{{{NAMESPACE_MODELER}}}executionPlatformVersion")
    if version:
        profile["executionPlatformVersion"] = version
    return profile


def _split_tag(tag: str) -> tuple[str, str]:
    if tag.startswith("{"):
        namespace, _, local_name = tag[1:].partition("}")
        return namespace, local_name
    return "", tag


def _prefix_referenced(text: str, prefix: str) -> bool:
    # element and attribute names only, never text, comments or attribute values
    qualified = re.compile(rf"(?:^|\s){re.escape(prefix)}:[A-Za-z_][\w.-]*\s*=")
    for tag in _START_OR_END_TAG.finditer(_COMMENT_OR_CDATA.sub("", text)):
        if tag.group(1).startswith(f"{prefix}:"):
            return True
        if qualified.search(_QUOTED_VALUE.sub('""', tag.group(2))):
            return True
    return False
