"""Files, tabs and the factory that binds them to a provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Dict

from ..utils import file_io
from ..utils.ids import IdGenerator, generate_id, regenerate_ids
from .descriptor import ProviderConfigurationError
from .registry import ProviderRegistry
from .resolver import ProviderResolver

__all__ = [
    "CreationCounters",
    "DiagramFile",
    "SessionFactory",
    "Tab",
    "UNSAVED_TITLE",
    "UnknownProviderError",
]

LOGGER = logging.getLogger(__name__)

UNSAVED_TITLE = "unsaved"


class UnknownProviderError(KeyError):
    """Raised when a new file is requested for a type that is not registered."""


@dataclass(slots=True)
class DiagramFile:
    """A diagram file as handed to the editor, saved or not."""

    name: str
    contents: str | None = None
    path: Path | None = None

    @classmethod
    def from_path(cls, path: Path | str) -> "DiagramFile":
        target = Path(path).expanduser().resolve()
        return cls(name=target.name, contents=file_io.read_text(target), path=target)


class Tab:
    """Editing session bound to one file and one provider type.

    ``id`` and ``type`` never change; ``name``, ``path`` and ``contents`` write
    through to the owned :class:`DiagramFile`.
    """

    __slots__ = ("_id", "_file", "_type")

    def __init__(self, id: str, file: DiagramFile, type: str) -> None:
        self._id = id
        self._file = file
        self._type = type

    @property
    def id(self) -> str:
        return self._id

    @property
    def type(self) -> str:
        return self._type

    @property
    def file(self) -> DiagramFile:
        return self._file

    @property
    def name(self) -> str:
        return self._file.name

    @name.setter
    def name(self, value: str) -> None:
        self._file.name = value

    @property
    def path(self) -> Path | None:
        return self._file.path

    @path.setter
    def path(self, value: Path | str | None) -> None:
        self._file.path = Path(value) if value is not None else None

    @property
    def contents(self) -> str | None:
        return self._file.contents

    @contents.setter
    def contents(self, value: str | None) -> None:
        self._file.contents = value

    @property
    def title(self) -> str:
        path = self._file.path
        return str(path) if path is not None else UNSAVED_TITLE

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "type": self._type,
            "name": self.name,
            "title": self.title,
            "path": str(self.path) if self.path is not None else None,
        }

    def __repr__(self) -> str:
        return f"Tab(id={self._id!r}, type={self._type!r}, name={self.name!r})"


class CreationCounters:
    """Per-type count of files created through the "new file" action."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._lock = Lock()

    def next(self, provider_type: str) -> int:
        with self._lock:
            value = self._counts.get(provider_type, 0) + 1
            self._counts[provider_type] = value
            return value

    def current(self, provider_type: str) -> int:
        with self._lock:
            return self._counts.get(provider_type, 0)


class SessionFactory:
    """Creates new files and materializes tabs for new or opened files."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        resolver: ProviderResolver | None = None,
        counters: CreationCounters | None = None,
        id_generator: IdGenerator = generate_id,
    ) -> None:
        self._registry = registry
        self._resolver = resolver or ProviderResolver(registry)
        self._counters = counters or CreationCounters()
        self._id_generator = id_generator

    @property
    def resolver(self) -> ProviderResolver:
        return self._resolver

    def initial_contents(self, provider_type: str) -> str | None:
        """Return the provider's template with every id placeholder freshened."""

        raw = self._registry.get(provider_type).default_contents()
        if not raw:
            return None
        return regenerate_ids(raw, self._id_generator)

    def create_file(self, provider_type: str) -> DiagramFile:
        if provider_type not in self._registry:
            raise UnknownProviderError(provider_type)
        provider = self._registry.get(provider_type)
        if not provider.filename_pattern:
            raise ProviderConfigurationError(f"Provider '{provider_type}' cannot create new files")

        counter = self._counters.next(provider_type)
        name = provider.default_filename(counter)
        LOGGER.debug("Creating new %s file %s", provider_type, name)
        return DiagramFile(name=name, contents=self.initial_contents(provider_type), path=None)

    def create_tab(self, file: DiagramFile) -> Tab | None:
        """Bind ``file`` to its provider; ``None`` when no provider can open it."""

        provider = self._resolver.resolve(file)
        if provider is None:
            LOGGER.info("Cannot open %s: no provider recognizes this file", file.name)
            return None

        if not file.contents:
            file.contents = self.initial_contents(provider.type)

        tab = Tab(id=self._id_generator(), file=file, type=provider.type)
        LOGGER.debug("Created %r", tab)
        return tab
