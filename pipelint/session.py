"""Validation session owning the registry, diagnostics and revalidation timers."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Dict, Iterable, List

from .cache import JsonFileTaskCache
from .config import ValidatorConfig
from .documents import Diagnostic, DiagnosticCollection, PipelineDocument
from .fetch import HttpTaskFetcher
from .registry import TaskCache, TaskFetcher, TaskSchemaRegistry
from .validator import PipelineValidator

__all__ = ["ValidationSession"]

logger = logging.getLogger(__name__)


class ValidationSession:
    """Wire the validator to document events.

    Edits are debounced per document: a burst of changes results in a single
    validation ``validation_delay_seconds`` after the last one. Each validation
    takes a fresh generation for its URI and installs its diagnostics only if
    that generation is still current when it finishes, so a validation
    overtaken by a newer one or by a close leaves nothing behind.
    """

    def __init__(
        self,
        config: ValidatorConfig | None = None,
        *,
        cache: TaskCache | None = None,
        fetcher: TaskFetcher | None = None,
        diagnostics: DiagnosticCollection | None = None,
    ) -> None:
        self.config = config or ValidatorConfig()
        if cache is None and self.config.cache.enabled:
            cache = JsonFileTaskCache(self.config.cache.path, ttl_seconds=self.config.cache.ttl_seconds)
        self._owned_fetcher: HttpTaskFetcher | None = None
        if fetcher is None:
            self._owned_fetcher = HttpTaskFetcher(
                base_url=self.config.fetch.base_url,
                timeout_seconds=self.config.fetch.timeout_seconds,
            )
            fetcher = self._owned_fetcher
        self.diagnostics = diagnostics or DiagnosticCollection(self.config.source)
        self.registry = TaskSchemaRegistry(cache, fetcher)
        self.validator = PipelineValidator(self.registry, self.diagnostics, self.config.source)
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._pending: Dict[str, asyncio.Task[List[Diagnostic]]] = {}
        self._generations: Dict[str, int] = {}
        self._counter = itertools.count(1)

    async def activate(self, documents: Iterable[PipelineDocument] = ()) -> None:
        await self.registry.initialize()
        for document in documents:
            await self.validate_document(document)

    def is_pipeline_document(self, document: PipelineDocument) -> bool:
        return document.file_name.endswith(self.config.document_suffixes)

    async def validate_document(self, document: PipelineDocument) -> List[Diagnostic]:
        if not self.is_pipeline_document(document):
            return []
        generation = self._generations[document.uri] = next(self._counter)
        self.diagnostics.delete(document.uri)
        results = await self.validator.collect_diagnostics(document)
        if self._generations.get(document.uri) == generation:
            self.diagnostics.set(document.uri, results)
        else:
            logger.debug("Discarding stale diagnostics for %s", document.file_name)
        return results

    async def document_opened(self, document: PipelineDocument) -> List[Diagnostic]:
        return await self.validate_document(document)

    async def document_saved(self, document: PipelineDocument) -> List[Diagnostic]:
        return await self.validate_document(document)

    def document_changed(self, document: PipelineDocument) -> None:
        if not self.is_pipeline_document(document):
            return
        self._cancel_timer(document.uri)
        loop = asyncio.get_running_loop()
        self._timers[document.uri] = loop.call_later(
            self.config.validation_delay_seconds, self._run_debounced, document
        )

    def document_closed(self, document: PipelineDocument) -> None:
        if not self.is_pipeline_document(document):
            return
        self._cancel_timer(document.uri)
        self._generations.pop(document.uri, None)
        self.diagnostics.delete(document.uri)

    def pending_validation(self, uri: str) -> asyncio.Task[List[Diagnostic]] | None:
        """Return the debounced validation started for ``uri``, if still running."""

        return self._pending.get(uri)

    def has_scheduled_validation(self, uri: str) -> bool:
        return uri in self._timers

    async def aclose(self) -> None:
        for uri in list(self._timers):
            self._cancel_timer(uri)
        if self._pending:
            await asyncio.gather(*self._pending.values(), return_exceptions=True)
        if self._owned_fetcher is not None:
            await self._owned_fetcher.aclose()

    def _cancel_timer(self, uri: str) -> None:
        timer = self._timers.pop(uri, None)
        if timer is not None:
            timer.cancel()

    def _run_debounced(self, document: PipelineDocument) -> None:
        self._timers.pop(document.uri, None)
        task = asyncio.ensure_future(self.validate_document(document))
        self._pending[document.uri] = task

        def _done(finished: asyncio.Task[List[Diagnostic]]) -> None:
            if self._pending.get(document.uri) is finished:
                del self._pending[document.uri]
            if not finished.cancelled() and finished.exception() is not None:
                logger.error("Debounced validation of %s failed", document.file_name, exc_info=finished.exception())

        task.add_done_callback(_done)
