"""Maps a file to the single provider that owns it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from .descriptor import ProviderDescriptor
from .registry import ProviderRegistry

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .sessions import DiagramFile

__all__ = ["ProviderResolver", "extension_of"]

LOGGER = logging.getLogger(__name__)


def extension_of(name: str | None) -> str | None:
    """Return the lowercased text after the last dot of ``name``, if any."""

    if not name or "." not in name:
        return None
    return name.rsplit(".", 1)[1].lower()


class ProviderResolver:
    """Picks the owning provider of a file.

    * one provider claims the extension: it wins, content is not inspected
    * several claim it: the first whose ``can_open`` accepts the file,
      otherwise the last candidate
    * none claim it: the first registered provider that can open the file,
      otherwise ``None``
    """

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def resolve(self, file: "DiagramFile") -> ProviderDescriptor | None:
        extension = extension_of(file.name)
        candidates = self._registry.candidates_for_extension(extension)

        if len(candidates) == 1:
            provider = candidates[0]
            LOGGER.debug("Resolved %s to %s (sole owner of .%s)", file.name, provider.type, extension)
            return provider

        if len(candidates) > 1:
            provider = _first_that_opens(candidates, file)
            if provider is None:
                provider = candidates[-1]
                LOGGER.debug("Resolved %s to fallback %s", file.name, provider.type)
            else:
                LOGGER.debug("Resolved %s to %s by content", file.name, provider.type)
            return provider

        provider = _first_that_opens(self._registry, file)
        if provider is None:
            LOGGER.debug("No provider can open %s", file.name)
        else:
            LOGGER.debug("Resolved %s to %s by content (extension unclaimed)", file.name, provider.type)
        return provider


def _first_that_opens(
    providers: Iterable[ProviderDescriptor], file: "DiagramFile"
) -> ProviderDescriptor | None:
    for provider in providers:
        if provider.can_open(file):
            return provider
    return None
