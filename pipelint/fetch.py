"""HTTP retrieval of ``task.json`` definitions from a task repository."""

from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import Type

import httpx

from .exceptions import TaskDefinitionError
from .schema import TaskSchema

__all__ = ["DEFAULT_TASK_REPOSITORY_URL", "HttpTaskFetcher"]

logger = logging.getLogger(__name__)

DEFAULT_TASK_REPOSITORY_URL = "https://raw.githubusercontent.com/microsoft/azure-pipelines-tasks/master/Tasks"


class HttpTaskFetcher:
    """Fetch task definitions over HTTP; every failure resolves to ``None``."""

    def __init__(
        self,
        base_url: str = DEFAULT_TASK_REPOSITORY_URL,
        timeout_seconds: float = 30,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), follow_redirects=True)

    def task_url(self, lookup_key: str) -> str:
        return f"{self.base_url}/{lookup_key}/task.json"

    async def fetch_task_info(self, lookup_key: str) -> TaskSchema | None:
        url = self.task_url(lookup_key)
        started = time.perf_counter()
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            schema = TaskSchema.from_payload(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            # TaskDefinitionError and JSON decode errors are both ValueErrors.
            status_code = None
            if isinstance(exc, httpx.HTTPStatusError):
                status_code = exc.response.status_code
            logger.error(
                "Error fetching task.json for %s: %s",
                lookup_key,
                exc,
                extra={
                    "url": url,
                    "status_code": status_code,
                    "error_type": type(exc).__name__,
                    "definition_error": isinstance(exc, TaskDefinitionError),
                },
            )
            return None
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.debug("Fetched %s from %s in %sms", schema.fully_qualified_name, url, duration_ms)
        return schema

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpTaskFetcher":
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
