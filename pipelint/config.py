"""Utilities for loading validator configuration from declarative files."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence, Tuple

import yaml

from .cache import DEFAULT_CACHE_TTL_SECONDS
from .exceptions import ConfigError
from .fetch import DEFAULT_TASK_REPOSITORY_URL

__all__ = [
    "CacheConfig",
    "DEFAULT_CACHE_PATH",
    "FetchConfig",
    "ValidatorConfig",
    "load_config_from_dict",
    "load_config_from_path",
]

DEFAULT_CACHE_PATH = Path.home() / ".cache" / "pipelint" / "tasks.json"
DEFAULT_SOURCE = "Azure Pipelines Task Validator"


@dataclass(frozen=True)
class CacheConfig:
    """Location and lifetime of the persisted task cache."""

    path: Path = DEFAULT_CACHE_PATH
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    enabled: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path).expanduser())


@dataclass(frozen=True)
class FetchConfig:
    """Remote task repository settings."""

    base_url: str = DEFAULT_TASK_REPOSITORY_URL
    timeout_seconds: float = 30


@dataclass(frozen=True)
class ValidatorConfig:
    """Top-level configuration for a validation session."""

    source: str = DEFAULT_SOURCE
    validation_delay_seconds: float = 1.0
    document_suffixes: Tuple[str, ...] = (".yml", ".yaml")
    cache: CacheConfig = field(default_factory=CacheConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "document_suffixes", tuple(self.document_suffixes))


def load_config_from_path(path: str | Path) -> ValidatorConfig:
    """Load a configuration from a JSON or YAML file."""

    path = Path(path)
    data = _load_raw_data(path)
    if data is None:
        return ValidatorConfig()
    return load_config_from_dict(data)


def load_config_from_dict(data: Mapping[str, Any]) -> ValidatorConfig:
    """Validate *data* and build a :class:`ValidatorConfig`."""

    if not isinstance(data, Mapping):
        raise ConfigError("Validator configuration must be a mapping")

    source = data.get("source", DEFAULT_SOURCE)
    if not isinstance(source, str) or not source:
        raise ConfigError("'source' must be a non-empty string")

    delay = data.get("validation_delay_seconds", 1.0)
    if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
        raise ConfigError("'validation_delay_seconds' must be a non-negative number")

    suffixes = data.get("document_suffixes", (".yml", ".yaml"))
    if isinstance(suffixes, str) or not isinstance(suffixes, Sequence):
        raise ConfigError("'document_suffixes' must be a list of strings")
    if not all(isinstance(suffix, str) and suffix for suffix in suffixes):
        raise ConfigError("'document_suffixes' entries must be non-empty strings")

    return ValidatorConfig(
        source=source,
        validation_delay_seconds=float(delay),
        document_suffixes=tuple(suffixes),
        cache=_parse_cache_block(data.get("cache")),
        fetch=_parse_fetch_block(data.get("fetch")),
    )


def _parse_cache_block(raw_cache: Any) -> CacheConfig:
    if raw_cache is None:
        return CacheConfig()
    if not isinstance(raw_cache, Mapping):
        raise ConfigError("'cache' block must be a mapping if provided")

    path = raw_cache.get("path", DEFAULT_CACHE_PATH)
    if not isinstance(path, (str, Path)) or not str(path):
        raise ConfigError("cache.path must be a non-empty string if provided")

    ttl = raw_cache.get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl <= 0:
        raise ConfigError("cache.ttl_seconds must be a positive number if provided")

    enabled = raw_cache.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError("cache.enabled must be a boolean if provided")

    return CacheConfig(path=Path(path), ttl_seconds=float(ttl), enabled=enabled)


def _parse_fetch_block(raw_fetch: Any) -> FetchConfig:
    if raw_fetch is None:
        return FetchConfig()
    if not isinstance(raw_fetch, Mapping):
        raise ConfigError("'fetch' block must be a mapping if provided")

    base_url = raw_fetch.get("base_url", DEFAULT_TASK_REPOSITORY_URL)
    if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
        raise ConfigError("fetch.base_url must be an http(s) URL if provided")

    timeout = raw_fetch.get("timeout_seconds", 30)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("fetch.timeout_seconds must be a positive number if provided")

    return FetchConfig(base_url=base_url, timeout_seconds=float(timeout))


def _load_raw_data(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file '{path}': {exc}") from exc
    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unsupported configuration format for '{path}': {exc}") from exc
