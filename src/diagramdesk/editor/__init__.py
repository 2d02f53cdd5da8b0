"""Editor components for diagram tabs (PySide6, loaded on demand)."""

from importlib import import_module
from typing import Any

__all__ = ["diagram_editor"]


def __getattr__(name: str) -> Any:
	if name == "diagram_editor":
		module = import_module(f"{__name__}.{name}")
		globals()[name] = module
		return module
	raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
