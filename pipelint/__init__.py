"""Validation of pipeline task invocations against remote task definitions.

The package checks every ``task`` node of a YAML/JSON pipeline document for
unknown tasks and missing required inputs.  Inputs guarded by a visibility
rule are only required while their rule holds.  Task definitions are resolved
through an in-memory registry, a persisted cache and an HTTP fetch, in that
order.
"""

from .cache import JsonFileTaskCache
from .config import CacheConfig, FetchConfig, ValidatorConfig, load_config_from_dict, load_config_from_path
from .documents import Diagnostic, DiagnosticCollection, PipelineDocument, Severity, find_task_line
from .exceptions import ConfigError, PipelineParseError, PipelintError, TaskDefinitionError
from .fetch import HttpTaskFetcher
from .registry import TaskCache, TaskFetcher, TaskSchemaRegistry, task_lookup_key
from .rules import Condition, ConditionGroup, evaluate, is_valid_rule, parse_rule
from .schema import TaskGroup, TaskInput, TaskSchema, TaskVersion, ensure_task_schema
from .session import ValidationSession
from .validator import PipelineValidator, parse_pipeline_text

__all__ = [
    "CacheConfig",
    "Condition",
    "ConditionGroup",
    "ConfigError",
    "Diagnostic",
    "DiagnosticCollection",
    "FetchConfig",
    "HttpTaskFetcher",
    "JsonFileTaskCache",
    "PipelineDocument",
    "PipelineParseError",
    "PipelineValidator",
    "PipelintError",
    "Severity",
    "TaskCache",
    "TaskDefinitionError",
    "TaskFetcher",
    "TaskGroup",
    "TaskInput",
    "TaskSchema",
    "TaskSchemaRegistry",
    "TaskVersion",
    "ValidationSession",
    "ValidatorConfig",
    "ensure_task_schema",
    "evaluate",
    "find_task_line",
    "is_valid_rule",
    "load_config_from_dict",
    "load_config_from_path",
    "parse_pipeline_text",
    "parse_rule",
    "task_lookup_key",
]
