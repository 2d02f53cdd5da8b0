"""Lazy, memoized loading of the editor component behind each provider."""

from __future__ import annotations

import asyncio
import logging
from importlib import import_module
from typing import Any, Callable, Dict

from .descriptor import ProviderDescriptor

__all__ = ["CapabilityLoader", "import_component"]

LOGGER = logging.getLogger(__name__)

Importer = Callable[[str], Any]


def import_component(path: str) -> Any:
    """Import ``"package.module:attribute"`` and return the attribute."""

    module_name, _, attribute = path.partition(":")
    module = import_module(module_name)
    if not attribute:
        return module
    return getattr(module, attribute)


class CapabilityLoader:
    """Loads each provider's editor component at most once per process.

    Concurrent requests for the same type share one in-flight load. A failed
    load is dropped from the cache so the next display attempt starts over.
    """

    def __init__(self, importer: Importer | None = None) -> None:
        self._importer = importer or import_component
        self._loads: Dict[str, asyncio.Future[Any]] = {}

    async def load(self, provider: ProviderDescriptor) -> Any:
        if provider.component is None:
            return None
        future = self._loads.get(provider.type)
        if future is None:
            future = asyncio.ensure_future(self._import(provider))
            future.add_done_callback(lambda done, key=provider.type: self._forget_failure(key, done))
            self._loads[provider.type] = future
        # a cancelled caller must not cancel the load other callers wait on
        return await asyncio.shield(future)

    def is_loaded(self, provider_type: str) -> bool:
        future = self._loads.get(provider_type)
        if future is None or not future.done() or future.cancelled():
            return False
        return future.exception() is None

    async def _import(self, provider: ProviderDescriptor) -> Any:
        LOGGER.debug("Loading editor component for %s (%s)", provider.type, provider.component)
        return await asyncio.to_thread(self._importer, provider.component)

    def _forget_failure(self, provider_type: str, future: asyncio.Future[Any]) -> None:
        if not future.cancelled():
            exc = future.exception()
            if exc is None:
                return
            LOGGER.warning("Loading editor component for %s failed: %s", provider_type, exc)
        if self._loads.get(provider_type) is future:
            del self._loads[provider_type]
