"""Provider registry, file resolution and tab sessions."""

from .capabilities import CapabilityLoader
from .descriptor import (
    NOOP_PROVIDER,
    Encoding,
    ExportFormat,
    FeatureGate,
    MenuEntry,
    ProviderConfigurationError,
    ProviderDescriptor,
)
from .registry import ProviderRegistry
from .resolver import ProviderResolver, extension_of
from .sessions import CreationCounters, DiagramFile, SessionFactory, Tab, UnknownProviderError
from .tabs_provider import TabsProvider

__all__ = [
    "CapabilityLoader",
    "CreationCounters",
    "DiagramFile",
    "Encoding",
    "ExportFormat",
    "FeatureGate",
    "MenuEntry",
    "NOOP_PROVIDER",
    "ProviderConfigurationError",
    "ProviderDescriptor",
    "ProviderRegistry",
    "ProviderResolver",
    "SessionFactory",
    "Tab",
    "TabsProvider",
    "UnknownProviderError",
    "extension_of",
]
