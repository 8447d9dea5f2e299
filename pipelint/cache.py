"""JSON file cache persisting the task registry between sessions."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import json
import logging
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Callable, Dict

from .schema import TaskSchema

__all__ = ["DEFAULT_CACHE_TTL_SECONDS", "JsonFileTaskCache"]

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60


class JsonFileTaskCache:
    """Store every known task definition in one JSON file with a timestamp.

    The whole cache expires ``ttl_seconds`` after it was last written.
    """

    def __init__(
        self,
        path: str | Path,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def get_cached_tasks(self) -> Dict[str, Any] | None:
        return await asyncio.to_thread(self._read)

    async def save_tasks(self, tasks: Mapping[str, Any]) -> None:
        payload = {
            "timestamp": self._clock(),
            "tasks": {name: _serialise(value) for name, value in tasks.items()},
        }
        await asyncio.to_thread(self._write, payload)
        logger.debug("Saved %d task definitions to %s", len(tasks), self.path)

    def _read(self) -> Dict[str, Any] | None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable task cache %s: %s", self.path, exc)
            return None

        if not isinstance(raw, Mapping):
            return None
        timestamp = raw.get("timestamp")
        tasks = raw.get("tasks")
        if not isinstance(timestamp, (int, float)) or not isinstance(tasks, Mapping):
            return None
        if self._clock() - timestamp >= self.ttl_seconds:
            logger.info("Task cache %s expired", self.path)
            return None
        return dict(tasks)

    def _write(self, payload: Mapping[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _serialise(value: Any) -> Any:
    if isinstance(value, TaskSchema):
        return value.as_payload()
    return value
