"""Custom exception types used by the pipeline validator."""

class PipelintError(Exception):
    """Base class for errors raised by this package."""


class TaskDefinitionError(PipelintError, ValueError):
    """Raised when a fetched or cached task definition is malformed."""


class PipelineParseError(PipelintError, ValueError):
    """Raised when a pipeline document cannot be parsed as YAML or JSON."""


class ConfigError(PipelintError, ValueError):
    """Raised when the validator configuration is invalid."""
