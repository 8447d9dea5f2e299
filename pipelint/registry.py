"""Task schema registry resolving task names through memory, cache and fetch."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Protocol, runtime_checkable

from .exceptions import TaskDefinitionError
from .schema import TaskSchema, ensure_task_schema

__all__ = [
    "TaskCache",
    "TaskFetcher",
    "TaskSchemaRegistry",
    "task_lookup_key",
]

logger = logging.getLogger(__name__)

VERSION_SEPARATOR = "@"
VERSION_MARKER = "V"


@runtime_checkable
class TaskCache(Protocol):
    """Persistence collaborator holding the whole registry map."""

    async def get_cached_tasks(self) -> Mapping[str, Any] | None:
        ...

    async def save_tasks(self, tasks: Mapping[str, TaskSchema]) -> None:
        ...


@runtime_checkable
class TaskFetcher(Protocol):
    """Remote collaborator returning a task definition for a lookup key."""

    async def fetch_task_info(self, lookup_key: str) -> TaskSchema | Mapping[str, Any] | None:
        ...


def task_lookup_key(task_name: str) -> str:
    """Return the remote directory name for ``task_name`` (``Bash@3`` -> ``BashV3``)."""

    return task_name.replace(VERSION_SEPARATOR, VERSION_MARKER)


class TaskSchemaRegistry:
    """Map fully-qualified task names to their :class:`TaskSchema`.

    Lookups are served from memory first.  Misses go to the fetcher; every
    successful fetch is added to the map and the whole map is written to the
    cache before the lookup returns.  Entries are only ever added.
    """

    def __init__(self, cache: TaskCache | None, fetcher: TaskFetcher | None) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._tasks: MutableMapping[str, Any] = {}
        self._in_flight: Dict[str, asyncio.Task[TaskSchema | None]] = {}

    async def initialize(self) -> None:
        if self._cache is None:
            return
        try:
            cached = await self._cache.get_cached_tasks()
        except Exception:
            logger.exception("Failed to read the task cache")
            return
        if cached:
            self._tasks = dict(cached)
            logger.info("Loaded %d task definitions from cache", len(self._tasks))

    async def get_task_info(self, task_name: str) -> TaskSchema | None:
        """Return the schema for ``task_name`` or ``None`` when it cannot be resolved."""

        cached = self._tasks.get(task_name)
        if cached is not None:
            try:
                schema = ensure_task_schema(cached)
            except TaskDefinitionError as exc:
                logger.warning("Ignoring malformed cached definition for %s: %s", task_name, exc)
            else:
                self._tasks[task_name] = schema
                return schema

        pending = self._in_flight.get(task_name)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_and_store(task_name))
            self._in_flight[task_name] = pending
            pending.add_done_callback(lambda _: self._in_flight.pop(task_name, None))
        return await asyncio.shield(pending)

    async def _fetch_and_store(self, task_name: str) -> TaskSchema | None:
        if self._fetcher is None:
            return None
        lookup_key = task_lookup_key(task_name)
        try:
            payload = await self._fetcher.fetch_task_info(lookup_key)
            if payload is None:
                return None
            schema = ensure_task_schema(payload)
        except Exception:
            logger.exception("Error fetching task info for %s", task_name)
            return None

        self._tasks[task_name] = schema
        await self._persist()
        return schema

    async def _persist(self) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.save_tasks(self.snapshot())
        except Exception:
            logger.exception("Failed to save %d task definitions to cache", len(self._tasks))

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._tasks)

    def task_names(self) -> Iterable[str]:
        return self._tasks.keys()

    def __contains__(self, task_name: str) -> bool:
        return task_name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
