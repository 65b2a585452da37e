"""Shared test fixtures for the codesweep test suite."""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from codesweep.cleaning.domain.models import (
    CandidateFix,
    CodeActionKind,
    Command,
    Diagnostic,
    FileHandle,
    Range,
    TextEdit,
    WorkspaceEdit,
)
from codesweep.cleaning.infrastructure.documents import FileDocumentStore, TextDocument
from codesweep.shared.domain.exceptions import AnalyzerError


class RecordingDocumentStore(FileDocumentStore):
    """FileDocumentStore that counts saves."""

    def __init__(self) -> None:
        super().__init__()
        self.saved: List[FileHandle] = []

    async def save_async(self, document: TextDocument) -> None:
        await super().save_async(document)
        self.saved.append(document.file)


class FakeAnalyzer:
    """
    In-memory analyzer implementing DiagnosticsSource, FixProvider and EditApplier.

    Quick fixes are registered per diagnostic; applying a fix resolves its
    diagnostic, so a second pass finds nothing left to do.
    """

    def __init__(self, documents: FileDocumentStore) -> None:
        self.documents = documents
        self.diagnostics: Dict[FileHandle, List[Diagnostic]] = {}
        self.quick_fixes: Dict[Tuple[FileHandle, Range], List[CandidateFix]] = {}
        self.organize_actions: Dict[FileHandle, List[CandidateFix]] = {}
        self.commands: Dict[str, Callable[..., Any]] = {}
        self.failing_files: set = set()

        self.fix_requests: List[Tuple[FileHandle, Range, str]] = []
        self.applied_edits: List[WorkspaceEdit] = []
        self.invoked_commands: List[Tuple[str, List[Any]]] = []
        self._resolves: Dict[int, Tuple[FileHandle, Diagnostic]] = {}

    # --- setup helpers -------------------------------------------------

    def add_diagnostic(
        self,
        file: FileHandle,
        code: Any,
        range_: Range,
        fixes: Optional[List[CandidateFix]] = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(code=code, range=range_, message=f"diagnostic {code}")
        self.diagnostics.setdefault(file, []).append(diagnostic)
        if fixes is not None:
            self.quick_fixes[(file, range_)] = fixes
            for fix in fixes:
                if fix.edit is not None:
                    self._resolves[id(fix.edit)] = (file, diagnostic)
        return diagnostic

    def add_removal(self, file: FileHandle, code: int, range_: Range, title: str = "Remove unused declaration") -> Diagnostic:
        """Register a diagnostic whose fix deletes its range."""
        fix = CandidateFix(
            title=title,
            kind=CodeActionKind.QUICK_FIX,
            edit=WorkspaceEdit({file: [TextEdit(range_, "")]}),
        )
        return self.add_diagnostic(file, code, range_, [fix])

    def add_organize_imports(self, file: FileHandle, edits: List[TextEdit], title: str = "Organize Imports") -> CandidateFix:
        action = CandidateFix(
            title=title,
            kind=CodeActionKind.SOURCE_ORGANIZE_IMPORTS,
            edit=WorkspaceEdit({file: edits}),
        )
        self.organize_actions.setdefault(file, []).append(action)
        return action

    # --- DiagnosticsSource ---------------------------------------------

    def get_diagnostics(self, file: FileHandle) -> List[Diagnostic]:
        return list(self.diagnostics.get(file, []))

    # --- FixProvider ---------------------------------------------------

    async def get_candidate_fixes_async(self, file: FileHandle, range: Range, kind: str) -> List[CandidateFix]:
        self.fix_requests.append((file, range, kind))
        if file in self.failing_files:
            raise AnalyzerError(f"analyzer crashed on {file.name}")
        if kind == CodeActionKind.SOURCE_ORGANIZE_IMPORTS:
            return list(self.organize_actions.get(file, []))
        return list(self.quick_fixes.get((file, range), []))

    # --- EditApplier ---------------------------------------------------

    async def apply_edit_async(self, edit: WorkspaceEdit) -> bool:
        self.applied_edits.append(edit)
        for file, edits in edit.changes.items():
            document = await self.documents.open_async(file)
            document.apply_edits(edits)

        resolved = self._resolves.pop(id(edit), None)
        if resolved is not None:
            file, diagnostic = resolved
            self.diagnostics[file].remove(diagnostic)
            self.quick_fixes.pop((file, diagnostic.range), None)
        return True

    async def invoke_command_async(self, name: str, arguments: Sequence[Any]) -> Any:
        self.invoked_commands.append((name, list(arguments)))
        handler = self.commands.get(name)
        if handler is not None:
            return await handler(*arguments)
        return None


def write_source(root: Path, relative: str, content: str) -> FileHandle:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return FileHandle(path)


@pytest.fixture
def project_root(tmp_path):
    """Create a temporary project root directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def documents():
    return RecordingDocumentStore()


@pytest.fixture
def analyzer(documents):
    return FakeAnalyzer(documents)


@pytest.fixture
def unused_import_source():
    """A TypeScript module with one unused import and one unused variable."""
    return (
        "import { used, unused } from './lib';\n"
        "const leftover = 1;\n"
        "export const value = used();\n"
    )


@pytest.fixture
def dirty_ts_file(project_root, analyzer, unused_import_source):
    """
    a.ts with an organize-imports action that drops `unused` and a
    removable unused variable on line 1.
    """
    file = write_source(project_root, "a.ts", unused_import_source)
    analyzer.add_organize_imports(
        file,
        [TextEdit(Range.from_coords(0, 0, 0, 37), "import { used } from './lib';")],
    )
    analyzer.add_removal(file, 6133, Range.from_coords(1, 0, 2, 0), title="Remove unused declaration for: 'leftover'")
    return file


@pytest.fixture
def command_fix():
    def build(name: str, *arguments: Any, title: str = "Remove unused declaration") -> CandidateFix:
        return CandidateFix(title=title, kind=CodeActionKind.QUICK_FIX, command=Command(name, tuple(arguments)))

    return build


@pytest.fixture
def make_source(project_root):
    """Write a source file under the project root and return its handle."""

    def build(relative: str, content: str = "export {};\n") -> FileHandle:
        return write_source(project_root, relative, content)

    return build
