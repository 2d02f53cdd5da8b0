"""Facade exposing provider lookup, resolution and tab creation to the app."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from ..utils.flags import Flags
from ..utils.ids import IdGenerator, generate_id
from .capabilities import CapabilityLoader
from .descriptor import ExportFormat, ProviderDescriptor
from .providers import default_providers
from .registry import ProviderRegistry
from .resolver import ProviderResolver
from .sessions import CreationCounters, DiagramFile, SessionFactory, Tab

__all__ = ["TabsProvider"]

LOGGER = logging.getLogger(__name__)


class TabsProvider:
    """Single entry point the editor shell uses for everything tab related."""

    def __init__(
        self,
        descriptors: Iterable[ProviderDescriptor] | None = None,
        *,
        flags: Flags | None = None,
        id_generator: IdGenerator = generate_id,
        counters: CreationCounters | None = None,
        capability_loader: CapabilityLoader | None = None,
    ) -> None:
        source = default_providers() if descriptors is None else descriptors
        self._registry = ProviderRegistry(source, flags=flags)
        self._resolver = ProviderResolver(self._registry)
        self._sessions = SessionFactory(
            self._registry,
            resolver=self._resolver,
            counters=counters,
            id_generator=id_generator,
        )
        self._capabilities = capability_loader or CapabilityLoader()

    @classmethod
    def from_settings(cls, settings: Any, *, cli_flags: Mapping[str, Any] | None = None, **kwargs: Any) -> "TabsProvider":
        """Build the provider with flags taken from settings, CLI and environment."""

        flags = Flags.from_sources(getattr(settings, "flags", None), cli_flags)
        return cls(flags=flags, **kwargs)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Provider lookup
    # ------------------------------------------------------------------
    def get_providers(self) -> Mapping[str, ProviderDescriptor]:
        return self._registry.providers()

    def get_provider_names(self) -> list[str]:
        return self._registry.provider_names()

    def get_provider(self, provider_type: str) -> ProviderDescriptor:
        return self._registry.get(provider_type)

    def has_provider(self, extension: str) -> bool:
        return self._registry.has_provider(extension)

    def get_export_formats(self, provider_type: str) -> Mapping[str, ExportFormat]:
        return self._registry.get(provider_type).exports

    def dialog_filter(self) -> str:
        """Qt-style open-file filter listing every named provider."""

        entries: list[str] = []
        all_extensions: list[str] = []
        for provider in self._registry:
            if not provider.display_name:
                continue
            extensions = provider.dialog_extensions
            if not extensions:
                continue
            patterns = " ".join(f"*.{ext}" for ext in extensions)
            entries.append(f"{provider.display_name} ({patterns})")
            all_extensions.extend(ext for ext in extensions if ext not in all_extensions)
        if not entries:
            return "All Files (*)"
        supported = " ".join(f"*.{ext}" for ext in all_extensions)
        return ";;".join([f"Supported Files ({supported})", *entries, "All Files (*)"])

    # ------------------------------------------------------------------
    # Resolution & sessions
    # ------------------------------------------------------------------
    def resolve(self, file: DiagramFile) -> ProviderDescriptor | None:
        return self._resolver.resolve(file)

    def get_initial_file_contents(self, provider_type: str) -> str | None:
        return self._sessions.initial_contents(provider_type)

    def create_file(self, provider_type: str) -> DiagramFile:
        return self._sessions.create_file(provider_type)

    def create_tab(self, file: DiagramFile) -> Tab | None:
        return self._sessions.create_tab(file)

    def create_tab_for(self, provider_type: str) -> Tab | None:
        """Create a brand-new file of ``provider_type`` and open it in a tab."""

        tab = self._sessions.create_tab(self._sessions.create_file(provider_type))
        if tab is not None and tab.type != provider_type:
            LOGGER.warning("New %s file resolved to provider %s", provider_type, tab.type)
        return tab

    # ------------------------------------------------------------------
    # Editor capabilities
    # ------------------------------------------------------------------
    async def load_capability(self, provider_type: str) -> Any:
        """Return the editor component for ``provider_type`` (``None`` if it has none)."""

        return await self._capabilities.load(self._registry.get(provider_type))
