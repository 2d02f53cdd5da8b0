"""Tests for lazy editor component loading."""

from __future__ import annotations

import asyncio
import json
import threading

import pytest

from diagramdesk.tabs.capabilities import CapabilityLoader, import_component
from diagramdesk.tabs.descriptor import ProviderDescriptor


class RecordingImporter:
    def __init__(self, *, fail_times: int = 0, delay: float = 0.0) -> None:
        self.calls: list[str] = []
        self.fail_times = fail_times
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self, path: str) -> object:
        with self._lock:
            self.calls.append(path)
            attempt = len(self.calls)
        if self.delay:
            threading.Event().wait(self.delay)
        if attempt <= self.fail_times:
            raise ImportError(f"boom {attempt}")
        return f"component:{path}"


PROVIDER = ProviderDescriptor(type="bpmn", component="pkg.module:Editor")


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_import() -> None:
    importer = RecordingImporter(delay=0.05)
    loader = CapabilityLoader(importer)

    results = await asyncio.gather(*(loader.load(PROVIDER) for _ in range(5)))

    assert results == ["component:pkg.module:Editor"] * 5
    assert importer.calls == ["pkg.module:Editor"]
    assert loader.is_loaded("bpmn")


@pytest.mark.asyncio
async def test_successful_load_is_memoized() -> None:
    importer = RecordingImporter()
    loader = CapabilityLoader(importer)

    await loader.load(PROVIDER)
    await loader.load(PROVIDER)

    assert len(importer.calls) == 1


@pytest.mark.asyncio
async def test_failed_load_is_retried_on_next_request() -> None:
    importer = RecordingImporter(fail_times=1)
    loader = CapabilityLoader(importer)

    with pytest.raises(ImportError):
        await loader.load(PROVIDER)
    assert not loader.is_loaded("bpmn")

    result = await loader.load(PROVIDER)

    assert result == "component:pkg.module:Editor"
    assert len(importer.calls) == 2
    assert loader.is_loaded("bpmn")


@pytest.mark.asyncio
async def test_provider_without_component_loads_nothing() -> None:
    importer = RecordingImporter()
    loader = CapabilityLoader(importer)

    assert await loader.load(ProviderDescriptor(type="noop")) is None
    assert importer.calls == []
    assert not loader.is_loaded("noop")


def test_import_component_resolves_attribute() -> None:
    assert import_component("json:dumps") is json.dumps
    assert import_component("json") is json
