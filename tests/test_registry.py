from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping

from pipelint.registry import TaskSchemaRegistry, task_lookup_key
from pipelint.schema import TaskSchema

BASH_TASK = {
    "name": "Bash",
    "version": {"Major": 3, "Minor": 0, "Patch": 0},
    "inputs": [{"name": "targetType", "required": True}],
}


class RecordingFetcher:
    """Fetcher returning canned payloads and recording every lookup key."""

    def __init__(self, payloads: Mapping[str, Any] | None = None, error: Exception | None = None) -> None:
        self.payloads = dict(payloads or {})
        self.error = error
        self.calls: List[str] = []

    async def fetch_task_info(self, lookup_key: str) -> Any:
        self.calls.append(lookup_key)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.payloads.get(lookup_key)


class MemoryCache:
    def __init__(self, tasks: Mapping[str, Any] | None = None, fail_on_save: bool = False) -> None:
        self.tasks = dict(tasks) if tasks is not None else None
        self.fail_on_save = fail_on_save
        self.saved: List[Dict[str, Any]] = []

    async def get_cached_tasks(self) -> Mapping[str, Any] | None:
        return self.tasks

    async def save_tasks(self, tasks: Mapping[str, Any]) -> None:
        if self.fail_on_save:
            raise OSError("disk full")
        self.saved.append(dict(tasks))


def test_task_lookup_key_replaces_version_separator() -> None:
    assert task_lookup_key("Bash@3") == "BashV3"
    assert task_lookup_key("PowerShell@2") == "PowerShellV2"


def test_fetch_populates_memory_and_cache() -> None:
    fetcher = RecordingFetcher({"BashV3": BASH_TASK})
    cache = MemoryCache()
    registry = TaskSchemaRegistry(cache, fetcher)

    async def scenario() -> TaskSchema | None:
        await registry.initialize()
        return await registry.get_task_info("Bash@3")

    schema = asyncio.run(scenario())

    assert isinstance(schema, TaskSchema)
    assert schema.required_input_names == ("targetType",)
    assert fetcher.calls == ["BashV3"]
    assert "Bash@3" in registry
    assert cache.saved == [{"Bash@3": schema}]


def test_second_lookup_is_served_from_memory() -> None:
    fetcher = RecordingFetcher({"BashV3": BASH_TASK})
    registry = TaskSchemaRegistry(MemoryCache(), fetcher)

    async def scenario() -> tuple:
        first = await registry.get_task_info("Bash@3")
        second = await registry.get_task_info("Bash@3")
        return first, second

    first, second = asyncio.run(scenario())

    assert first is second
    assert fetcher.calls == ["BashV3"]


def test_concurrent_lookups_share_one_fetch() -> None:
    fetcher = RecordingFetcher({"BashV3": BASH_TASK})
    registry = TaskSchemaRegistry(MemoryCache(), fetcher)

    async def scenario() -> list:
        return await asyncio.gather(*(registry.get_task_info("Bash@3") for _ in range(5)))

    results = asyncio.run(scenario())

    assert fetcher.calls == ["BashV3"]
    assert all(result is results[0] for result in results)


def test_initialize_loads_cached_payloads_and_normalises_on_read() -> None:
    cache = MemoryCache({"Bash@3": BASH_TASK})
    fetcher = RecordingFetcher()
    registry = TaskSchemaRegistry(cache, fetcher)

    async def scenario() -> TaskSchema | None:
        await registry.initialize()
        return await registry.get_task_info("Bash@3")

    schema = asyncio.run(scenario())

    assert isinstance(schema, TaskSchema)
    assert schema == TaskSchema.from_payload(BASH_TASK)
    assert fetcher.calls == []
    assert cache.saved == []


def test_initialize_without_cache_entry_leaves_registry_empty() -> None:
    registry = TaskSchemaRegistry(MemoryCache(None), RecordingFetcher())

    asyncio.run(registry.initialize())

    assert len(registry) == 0


def test_fetch_miss_resolves_to_none() -> None:
    cache = MemoryCache()
    registry = TaskSchemaRegistry(cache, RecordingFetcher())

    assert asyncio.run(registry.get_task_info("Missing@1")) is None
    assert "Missing@1" not in registry
    assert cache.saved == []


def test_fetch_errors_are_swallowed() -> None:
    fetcher = RecordingFetcher(error=ConnectionError("network down"))
    registry = TaskSchemaRegistry(MemoryCache(), fetcher)

    assert asyncio.run(registry.get_task_info("Bash@3")) is None
    assert fetcher.calls == ["BashV3"]


def test_malformed_fetched_payload_resolves_to_none() -> None:
    fetcher = RecordingFetcher({"BashV3": {"name": "Bash"}})
    registry = TaskSchemaRegistry(MemoryCache(), fetcher)

    assert asyncio.run(registry.get_task_info("Bash@3")) is None
    assert len(registry) == 0


def test_cache_save_failure_still_returns_schema() -> None:
    registry = TaskSchemaRegistry(MemoryCache(fail_on_save=True), RecordingFetcher({"BashV3": BASH_TASK}))

    schema = asyncio.run(registry.get_task_info("Bash@3"))

    assert schema is not None
    assert "Bash@3" in registry


def test_reinserted_schema_is_returned_unchanged() -> None:
    fetcher = RecordingFetcher({"BashV3": BASH_TASK})
    cache = MemoryCache()
    registry = TaskSchemaRegistry(cache, fetcher)
    schema = asyncio.run(registry.get_task_info("Bash@3"))

    reloaded = TaskSchemaRegistry(MemoryCache(cache.saved[-1]), RecordingFetcher())

    async def scenario() -> TaskSchema | None:
        await reloaded.initialize()
        return await reloaded.get_task_info("Bash@3")

    assert asyncio.run(scenario()) == schema
