"""Registry of the providers that are active for this process."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from ..utils.flags import Flags
from .descriptor import NOOP_PROVIDER, ProviderDescriptor

__all__ = ["ProviderRegistry"]

LOGGER = logging.getLogger(__name__)


class ProviderRegistry:
    """Frozen ``type -> descriptor`` map plus an ``extension -> candidates`` index.

    Feature gates are evaluated exactly once, here; providers they disable never
    enter either map. Candidate lists keep declaration order, which doubles as
    resolution priority.
    """

    def __init__(self, descriptors: Iterable[ProviderDescriptor], *, flags: Flags | None = None) -> None:
        active_flags = flags or Flags()
        providers: dict[str, ProviderDescriptor] = {}
        disabled: list[str] = []
        seen: set[str] = set()
        for descriptor in descriptors:
            if descriptor.type in seen:
                raise ValueError(f"Duplicate provider type: {descriptor.type!r}")
            seen.add(descriptor.type)
            gate = descriptor.disabled_by
            if gate is not None and gate.disables(active_flags):
                disabled.append(descriptor.type)
                continue
            providers[descriptor.type] = descriptor

        index: dict[str, list[ProviderDescriptor]] = {}
        for descriptor in providers.values():
            for extension in descriptor.extensions:
                index.setdefault(extension, []).append(descriptor)

        self._providers: Mapping[str, ProviderDescriptor] = MappingProxyType(providers)
        self._by_extension: Mapping[str, tuple[ProviderDescriptor, ...]] = MappingProxyType(
            {extension: tuple(candidates) for extension, candidates in index.items()}
        )
        self._disabled: tuple[str, ...] = tuple(disabled)
        if disabled:
            LOGGER.info("Providers disabled by feature flags: %s", ", ".join(disabled))
        LOGGER.debug(
            "Provider registry ready (providers=%s, extensions=%s)",
            list(providers),
            {ext: [p.type for p in candidates] for ext, candidates in self._by_extension.items()},
        )

    def providers(self) -> Mapping[str, ProviderDescriptor]:
        return self._providers

    def provider_names(self) -> list[str]:
        """Display names of providers offered in type pickers, in registry order."""

        return [p.display_name for p in self._providers.values() if p.display_name]

    def get(self, provider_type: str) -> ProviderDescriptor:
        return self._providers.get(provider_type, NOOP_PROVIDER)

    def candidates_for_extension(self, extension: str | None) -> tuple[ProviderDescriptor, ...]:
        if not extension:
            return ()
        return self._by_extension.get(extension.lower(), ())

    def has_provider(self, extension: str) -> bool:
        return bool(self.candidates_for_extension(extension))

    def extensions(self) -> tuple[str, ...]:
        return tuple(self._by_extension)

    @property
    def disabled_types(self) -> tuple[str, ...]:
        return self._disabled

    def __contains__(self, provider_type: object) -> bool:
        return provider_type in self._providers

    def __iter__(self) -> Iterator[ProviderDescriptor]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)
