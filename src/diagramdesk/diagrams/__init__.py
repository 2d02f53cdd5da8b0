"""Diagram content inspection: dialect sniffing and usage metrics."""

from .classifier import (
    BPMN,
    CMMN,
    DMN,
    UNKNOWN,
    NamespaceUsage,
    classify,
    find_namespace_usages,
    has_namespace_usage,
    parse_execution_platform,
)
from .metrics import get_metrics

__all__ = [
    "BPMN",
    "CMMN",
    "DMN",
    "UNKNOWN",
    "NamespaceUsage",
    "classify",
    "find_namespace_usages",
    "get_metrics",
    "has_namespace_usage",
    "parse_execution_platform",
]
