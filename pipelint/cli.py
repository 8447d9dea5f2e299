"""Command-line entry point validating pipeline files."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
from pathlib import Path
import sys
from typing import Dict, List, Sequence, TextIO

from .config import ValidatorConfig, load_config_from_path
from .documents import Diagnostic, PipelineDocument, Severity
from .exceptions import ConfigError
from .log import configure_logging
from .registry import TaskFetcher
from .session import ValidationSession

__all__ = ["build_parser", "main", "run"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipelint",
        description="Check pipeline task invocations against their task definitions.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="Pipeline YAML or JSON files.")
    parser.add_argument("--config", type=Path, help="Validator configuration file (YAML or JSON).")
    parser.add_argument("--cache", type=Path, help="Override the task cache location.")
    parser.add_argument("--no-cache", action="store_true", help="Do not read or write the task cache.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level for diagnostics output.")
    parser.add_argument("--format", choices=("text", "json"), default="text", help="Output format.")
    return parser


def _resolve_config(args: argparse.Namespace) -> ValidatorConfig:
    config = load_config_from_path(args.config) if args.config else ValidatorConfig()
    if args.cache is not None:
        config = replace(config, cache=replace(config.cache, path=args.cache))
    if args.no_cache:
        config = replace(config, cache=replace(config.cache, enabled=False))
    return config


async def run(
    config: ValidatorConfig,
    paths: Sequence[Path],
    fetcher: TaskFetcher | None = None,
) -> Dict[str, List[Diagnostic]]:
    """Validate ``paths`` in one session and return diagnostics per file name.

    Every file is validated whatever its suffix. A file that cannot be read
    as UTF-8 text gets the same single error as an unparseable one.
    """

    session = ValidationSession(replace(config, document_suffixes=("",)), fetcher=fetcher)
    results: Dict[str, List[Diagnostic]] = {}
    try:
        await session.activate()
        for path in paths:
            try:
                document = PipelineDocument.from_path(path)
            except (OSError, UnicodeDecodeError) as exc:
                results[str(path)] = [_unreadable(path, exc, config.source)]
                continue
            results[document.file_name] = await session.validate_document(document)
    finally:
        await session.aclose()
    return results


def _unreadable(path: Path, exc: Exception, source: str) -> Diagnostic:
    return Diagnostic(
        line=0,
        message=f"Error encountered while parsing {path}: {exc}",
        severity=Severity.ERROR,
        source=source,
        end_character=1,
    )


def _write_text(results: Dict[str, List[Diagnostic]], stream: TextIO) -> None:
    for file_name, diagnostics in results.items():
        for diagnostic in diagnostics:
            stream.write(f"{file_name}:{diagnostic.line + 1}: {diagnostic.severity.value}: {diagnostic.message}\n")


def _write_json(results: Dict[str, List[Diagnostic]], stream: TextIO) -> None:
    payload = {file_name: [item.as_dict() for item in diagnostics] for file_name, diagnostics in results.items()}
    json.dump(payload, stream, indent=2)
    stream.write("\n")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    missing = [str(path) for path in args.files if not path.is_file()]
    if missing:
        parser.error(f"file not found: {', '.join(missing)}")
    try:
        config = _resolve_config(args)
    except ConfigError as exc:
        parser.error(str(exc))

    results = asyncio.run(run(config, args.files))
    if args.format == "json":
        _write_json(results, sys.stdout)
    else:
        _write_text(results, sys.stdout)

    has_errors = any(
        diagnostic.severity is Severity.ERROR for diagnostics in results.values() for diagnostic in diagnostics
    )
    return 1 if has_errors else 0
