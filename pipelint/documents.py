"""Pipeline documents, diagnostics and the diagnostics sink."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
import re
from typing import Any, Dict, Iterator, List, MutableMapping, Sequence, Tuple

__all__ = [
    "Diagnostic",
    "DiagnosticCollection",
    "PipelineDocument",
    "Severity",
    "find_task_line",
]

TASK_LINE_WIDTH = 100


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Diagnostic:
    """Message anchored to a zero-based line of a pipeline document."""

    line: int
    message: str
    severity: Severity
    source: str
    start_character: int = 0
    end_character: int = TASK_LINE_WIDTH

    def as_dict(self) -> Dict[str, Any]:
        return {
            "line": self.line,
            "start_character": self.start_character,
            "end_character": self.end_character,
            "severity": self.severity.value,
            "message": self.message,
            "source": self.source,
        }


@dataclass(frozen=True)
class PipelineDocument:
    """Text of a pipeline definition together with its identity."""

    uri: str
    file_name: str
    text: str

    @classmethod
    def from_path(cls, path: str | Path) -> "PipelineDocument":
        path = Path(path)
        return cls(uri=path.resolve().as_uri(), file_name=str(path), text=path.read_text(encoding="utf-8"))

    def lines(self) -> List[str]:
        return self.text.splitlines()


def find_task_line(document: PipelineDocument, task_name: str) -> int | None:
    """Return the first line declaring ``task_name`` as a task, if any."""

    pattern = re.compile(rf"- task:.*{re.escape(task_name)}")
    for index, line in enumerate(document.lines()):
        if pattern.search(line):
            return index
    return None


class DiagnosticCollection:
    """Installed diagnostics per document URI.

    ``set`` replaces the whole list for a document; lists are never patched.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: MutableMapping[str, Tuple[Diagnostic, ...]] = {}

    def set(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None:
        self._entries[uri] = tuple(diagnostics)

    def delete(self, uri: str) -> None:
        self._entries.pop(uri, None)

    def get(self, uri: str) -> Tuple[Diagnostic, ...]:
        return self._entries.get(uri, ())

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, uri: str) -> bool:
        return uri in self._entries

    def __iter__(self) -> Iterator[Tuple[str, Tuple[Diagnostic, ...]]]:
        return iter(list(self._entries.items()))

    def __len__(self) -> int:
        return len(self._entries)
