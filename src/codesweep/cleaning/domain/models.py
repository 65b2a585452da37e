"""
Cleaning domain models.

Value objects exchanged between the cleanup engine and the external analyzer.
Positions and ranges are zero-based and use the same conventions as the
Language Server Protocol, so analyzer adapters can map them one-to-one.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import unquote, urlparse

from codesweep.shared.domain.base_model import BaseDomainModel

# TypeScript diagnostic classification codes
UNUSED_VARIABLE_CODES: Tuple[int, ...] = (6133,)  # "'x' is declared but its value is never read."
UNUSED_FUNCTION_CODES: Tuple[int, ...] = (6192, 6196)  # all imports unused / declared but never used

SUPPORTED_EXTENSIONS = frozenset({".js", ".jsx", ".ts", ".tsx"})


class CodeActionKind:
    """Code action kinds understood by the cleanup engine."""

    QUICK_FIX = "quickfix"
    SOURCE_ORGANIZE_IMPORTS = "source.organizeImports"

    @staticmethod
    def contains(kind: Optional[str], expected: str) -> bool:
        """True if `kind` equals `expected` or is a hierarchical sub-kind of it."""
        if not kind:
            return False
        return kind == expected or kind.startswith(expected + ".")


@dataclass(frozen=True)
class FileHandle:
    """Reference to a source file on disk (absolute path)."""

    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path).absolute())

    def __fspath__(self) -> str:
        return str(self.path)

    def __str__(self) -> str:
        return str(self.path)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def uri(self) -> str:
        return self.path.as_uri()

    @classmethod
    def from_uri(cls, uri: str) -> "FileHandle":
        parsed = urlparse(uri)
        return cls(Path(unquote(parsed.path)))

    def relative_to(self, root: Union[str, Path]) -> str:
        """Path relative to `root`, or the absolute path if it lies outside."""
        return os.path.relpath(self.path, Path(root).absolute())


@dataclass(frozen=True)
class CleanupConfig:
    """
    Snapshot of the cleanup toggles for one run.

    Loaded once when the run starts and never mutated, so a run uses one
    consistent configuration even if the backing settings change.
    """

    remove_unused_variables: bool = True
    remove_unused_functions: bool = True
    remove_unused_props: bool = True


@dataclass(frozen=True)
class Position:
    line: int
    character: int


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    @classmethod
    def from_coords(cls, start_line: int, start_char: int, end_line: int, end_char: int) -> "Range":
        return cls(Position(start_line, start_char), Position(end_line, end_char))


@dataclass(frozen=True)
class Diagnostic:
    """An analyzer-reported issue at a code range, tagged with a classification code."""

    code: Union[int, str, None]
    range: Range
    message: str = ""
    source: Optional[str] = None

    @property
    def numeric_code(self) -> Optional[int]:
        """The code if it is a plain integer, else None."""
        if isinstance(self.code, int) and not isinstance(self.code, bool):
            return self.code
        return None


@dataclass(frozen=True)
class TextEdit:
    range: Range
    new_text: str


@dataclass
class WorkspaceEdit:
    """Text edits grouped by target file."""

    changes: Dict[FileHandle, List[TextEdit]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not any(self.changes.values())


@dataclass(frozen=True)
class Command:
    """A named action the analyzer can execute remotely."""

    command: str
    arguments: Tuple[Any, ...] = ()
    title: str = ""


@dataclass
class CandidateFix:
    """
    A candidate automated fix offered by the analyzer.

    Exactly one of `edit` or `command` is expected to be populated.
    """

    title: str
    kind: Optional[str] = None
    edit: Optional[WorkspaceEdit] = None
    command: Optional[Command] = None

    @property
    def is_quick_fix(self) -> bool:
        return CodeActionKind.contains(self.kind, CodeActionKind.QUICK_FIX)

    @property
    def is_organize_imports(self) -> bool:
        return CodeActionKind.contains(self.kind, CodeActionKind.SOURCE_ORGANIZE_IMPORTS)


@dataclass
class CleanupResult(BaseDomainModel):
    """Outcome of cleaning a single file."""

    file: FileHandle
    was_modified: bool


@dataclass
class ProjectProgress(BaseDomainModel):
    """
    Progress of a cleanup run.

    Counters only advance; the controller is the only writer.
    """

    total_files: int
    processed_files: int = 0
    modified_files: int = 0
    current_file: str = ""

    @property
    def percentage(self) -> int:
        if self.total_files == 0:
            return 100
        # half-up, not banker's rounding
        return math.floor(self.processed_files * 100 / self.total_files + 0.5)


class CleanupState(Enum):
    """Lifecycle of a cleanup run."""

    NOT_STARTED = "not_started"
    DISCOVERING = "discovering"
    ITERATING = "iterating"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    # Terminal no-op outcomes
    NO_PROJECT = "no_project"
    NO_FILES = "no_files"


@dataclass
class CleanupSummary(BaseDomainModel):
    """Terminal outcome of a cleanup run."""

    state: CleanupState
    total_files: int = 0
    processed_files: int = 0
    modified_files: int = 0
    message: str = ""
    results: List[CleanupResult] = field(default_factory=list)

    @property
    def modified_paths(self) -> List[str]:
        return [str(r.file) for r in self.results if r.was_modified]
