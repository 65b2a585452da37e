"""
Capability interfaces consumed by the cleanup engine.

The engine never talks to an editor or a language server directly. Each
collaborator is a narrow protocol injected into the coordinator and the
controller, so a standalone analyzer adapter or a test double can stand in
for the real service.
"""

from typing import Any, List, Optional, Protocol, Sequence

from codesweep.cleaning.domain.models import (
    CandidateFix,
    Diagnostic,
    FileHandle,
    Range,
    WorkspaceEdit,
)


class DiagnosticsSource(Protocol):
    """Pre-computed, possibly stale, diagnostics per file."""

    def get_diagnostics(self, file: FileHandle) -> List[Diagnostic]:
        ...


class FixProvider(Protocol):
    """Candidate fixes (code actions) for a range of a file."""

    async def get_candidate_fixes_async(
        self, file: FileHandle, range: Range, kind: str
    ) -> List[CandidateFix]:
        ...


class EditApplier(Protocol):
    """Applies edits and runs analyzer commands. Failures raise."""

    async def apply_edit_async(self, edit: WorkspaceEdit) -> bool:
        ...

    async def invoke_command_async(self, name: str, arguments: Sequence[Any]) -> Any:
        ...


class Document(Protocol):
    """Mutable in-memory view of a file."""

    @property
    def file(self) -> FileHandle: ...
    @property
    def text(self) -> str: ...
    @property
    def is_dirty(self) -> bool: ...
    @property
    def line_count(self) -> int: ...


class DocumentStore(Protocol):
    """Opens documents and persists them."""

    async def open_async(self, file: FileHandle) -> Document:
        ...

    async def save_async(self, document: Document) -> None:
        ...


class SettingsStore(Protocol):
    """Key/value settings, read once when the cleanup configuration is loaded."""

    def get(self, key: str, default: Any = None) -> Any:
        ...


class ProgressSink(Protocol):
    """Receives progress updates and the terminal message of a run."""

    def report(self, increment: float, message: str) -> None:
        """Advance progress by `increment` percent and show `message`."""
        ...

    def notify(self, level: str, message: str) -> None:
        """Show a one-off message. `level` is "info" or "warning"."""
        ...


class CancellationToken:
    """
    Cooperative cancellation flag.

    Checked by the controller at file boundaries only; an in-flight fix always
    runs to completion.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        self._cancelled = True
        self.reason = reason
