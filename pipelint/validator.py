"""Validate task invocations in a pipeline document against task schemas."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Callable, List, Optional

import yaml

from . import rules
from .documents import Diagnostic, DiagnosticCollection, PipelineDocument, Severity, find_task_line
from .exceptions import PipelineParseError
from .registry import TaskSchemaRegistry
from .schema import TaskSchema

__all__ = ["LineLocator", "PipelineValidator", "parse_pipeline_text"]

logger = logging.getLogger(__name__)

LineLocator = Callable[[PipelineDocument, str], Optional[int]]


def parse_pipeline_text(text: str) -> Any:
    """Parse YAML (or JSON, which YAML accepts) into plain Python containers."""

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PipelineParseError(str(exc)) from exc


class PipelineValidator:
    """Walk a parsed pipeline and report unknown tasks and missing inputs."""

    def __init__(
        self,
        registry: TaskSchemaRegistry,
        diagnostics: DiagnosticCollection,
        source: str,
        line_locator: LineLocator = find_task_line,
    ) -> None:
        self.registry = registry
        self.diagnostics = diagnostics
        self.source = source
        self._find_line = line_locator

    async def validate_pipeline_content(self, document: PipelineDocument) -> List[Diagnostic]:
        """Validate ``document`` and install the resulting diagnostics.

        Failures never propagate: a document that cannot be parsed, or whose
        walk fails unexpectedly, gets a single error on its first character.
        """

        self.diagnostics.delete(document.uri)
        results = await self.collect_diagnostics(document)
        self.diagnostics.set(document.uri, results)
        return results

    async def collect_diagnostics(self, document: PipelineDocument) -> List[Diagnostic]:
        """Validate ``document`` without touching the installed diagnostics."""

        results: List[Diagnostic] = []
        try:
            tree = parse_pipeline_text(document.text)
            await self._visit(tree, document, results)
        except Exception as exc:
            if not isinstance(exc, PipelineParseError):
                logger.exception("Unexpected failure while validating %s", document.file_name)
            results.append(
                Diagnostic(
                    line=0,
                    message=f"Error encountered while parsing {document.file_name}: {exc}",
                    severity=Severity.ERROR,
                    source=self.source,
                    end_character=1,
                )
            )
        return results

    async def _visit(self, node: Any, document: PipelineDocument, results: List[Diagnostic]) -> None:
        if isinstance(node, Mapping):
            if node.get("task"):
                await self._validate_task(node, document, results)
            for value in node.values():
                await self._visit(value, document, results)
        elif isinstance(node, list):
            for item in node:
                await self._visit(item, document, results)

    async def _validate_task(
        self,
        node: Mapping[str, Any],
        document: PipelineDocument,
        results: List[Diagnostic],
    ) -> None:
        task_name = str(node["task"])
        inputs = node.get("inputs")
        if not isinstance(inputs, Mapping):
            inputs = {}

        line = self._find_line(document, task_name)
        if line is None:
            logger.debug("No declaration line for task %s in %s", task_name, document.file_name)
            return

        schema = await self.registry.get_task_info(task_name)
        if schema is None:
            self._add(
                results,
                line,
                f"Unknown task: '{task_name}' was not found in the task registry.",
                Severity.WARNING,
            )
            return

        for input_name in schema.required_input_names:
            message = self._check_required_input(task_name, input_name, inputs, schema)
            if message is not None:
                self._add(results, line, message, Severity.ERROR)

    @staticmethod
    def _check_required_input(
        task_name: str,
        input_name: str,
        inputs: Mapping[str, Any],
        schema: TaskSchema,
    ) -> str | None:
        if inputs.get(input_name):
            return None
        definition = schema.get_input_definition(input_name)
        visible_rule = definition.visible_rule if definition else None
        if not visible_rule:
            return f"Required input '{input_name}' is missing for task '{task_name}'."
        if rules.evaluate(visible_rule, inputs):
            return (
                f"Since the rule '{visible_rule}' has been satisfied, "
                f"the input '{input_name}' is required for task {task_name}."
            )
        return None

    def _add(self, results: List[Diagnostic], line: int, message: str, severity: Severity) -> None:
        if any(existing.message == message for existing in results):
            return
        results.append(Diagnostic(line=line, message=message, severity=severity, source=self.source))
