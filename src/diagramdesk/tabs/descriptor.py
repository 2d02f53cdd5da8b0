"""Static description of a diagram dialect and the editor that owns it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from importlib import resources
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .sessions import DiagramFile

__all__ = [
    "Encoding",
    "ExportFormat",
    "FeatureGate",
    "MenuEntry",
    "NOOP_PROVIDER",
    "ProviderConfigurationError",
    "ProviderDescriptor",
    "load_template",
]

Detector = Callable[["DiagramFile"], bool]


class ProviderConfigurationError(RuntimeError):
    """Raised when a provider is asked for something its configuration lacks."""


class Encoding(str, Enum):
    """How exported artifacts of a provider are serialized."""

    BASE64 = "base64"
    UTF8 = "utf8"


@dataclass(frozen=True, slots=True)
class ExportFormat:
    """Export target consumed by the file-export subsystem."""

    name: str
    encoding: Encoding
    extensions: tuple[str, ...]

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "encoding": self.encoding.value, "extensions": list(self.extensions)}


@dataclass(frozen=True, slots=True)
class MenuEntry:
    """Menu item or button contributed by a provider."""

    label: str
    action: str
    accelerator: str | None = None


@dataclass(frozen=True, slots=True)
class FeatureGate:
    """Removes a provider from the registry while ``flag`` evaluates true."""

    flag: str
    default: bool = False

    def disables(self, flags: Any) -> bool:
        return bool(flags.get(self.flag, self.default))


@dataclass(frozen=True, slots=True, eq=False)
class ProviderDescriptor:
    """Configuration record for one editable diagram dialect.

    ``extensions`` are authoritative and feed the registry's extension index;
    ``open_extensions`` are merely offered by open-file dialogs.
    """

    type: str
    display_name: str | None = None
    extensions: tuple[str, ...] = ()
    open_extensions: tuple[str, ...] = ()
    encoding: Encoding = Encoding.UTF8
    exports: Mapping[str, ExportFormat] = field(default_factory=dict)
    detector: Detector | None = None
    template: str | None = None
    filename_pattern: str | None = None
    component: str | None = None
    help_menu: tuple[MenuEntry, ...] = ()
    new_file_menu: tuple[MenuEntry, ...] = ()
    new_file_button: MenuEntry | None = None
    disabled_by: FeatureGate | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "extensions", _normalize_extensions(self.extensions))
        object.__setattr__(self, "open_extensions", _normalize_extensions(self.open_extensions))
        object.__setattr__(self, "exports", MappingProxyType(dict(self.exports)))

    @property
    def dialog_extensions(self) -> tuple[str, ...]:
        """Extensions offered for this provider in open-file dialogs."""

        merged = list(self.extensions)
        merged.extend(ext for ext in self.open_extensions if ext not in merged)
        return tuple(merged)

    def can_open(self, file: "DiagramFile") -> bool:
        if self.detector is None:
            return False
        return bool(self.detector(file))

    def default_contents(self) -> str | None:
        """Return the raw template for a new file, placeholders untouched."""

        if self.template is None:
            return None
        return load_template(self.template)

    def default_filename(self, counter: int) -> str:
        if not self.filename_pattern:
            raise ProviderConfigurationError(f"Provider '{self.type}' cannot create new files")
        return self.filename_pattern.format(counter=counter)

    def __repr__(self) -> str:
        return f"ProviderDescriptor(type={self.type!r}, extensions={self.extensions!r})"


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    """Read a packaged diagram template from ``diagramdesk/tabs/templates``."""

    return resources.files(__package__).joinpath("templates").joinpath(name).read_text(encoding="utf-8")


def _normalize_extensions(extensions: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    normalized: list[str] = []
    for extension in extensions:
        candidate = extension.strip().lower().lstrip(".")
        if candidate and candidate not in normalized:
            normalized.append(candidate)
    return tuple(normalized)


# the registry hands this out for unknown types
NOOP_PROVIDER = ProviderDescriptor(type="noop")
