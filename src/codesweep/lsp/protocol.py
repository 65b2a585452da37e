"""
Conversions between LSP JSON payloads and cleaning domain models.
"""

from typing import Any, Dict, List, Optional

from codesweep.cleaning.domain.models import (
    CandidateFix,
    Command,
    Diagnostic,
    FileHandle,
    Position,
    Range,
    TextEdit,
    WorkspaceEdit,
)
from codesweep.shared.domain.exceptions import AnalyzerError

LANGUAGE_IDS: Dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".jsx": "javascriptreact",
}


def language_id_for(file: FileHandle) -> str:
    return LANGUAGE_IDS.get(file.path.suffix, "typescript")


def position_from_lsp(data: Dict[str, Any]) -> Position:
    return Position(int(data.get("line", 0)), int(data.get("character", 0)))


def range_from_lsp(data: Dict[str, Any]) -> Range:
    return Range(position_from_lsp(data.get("start", {})), position_from_lsp(data.get("end", {})))


def range_to_lsp(range_: Range) -> Dict[str, Any]:
    return {
        "start": {"line": range_.start.line, "character": range_.start.character},
        "end": {"line": range_.end.line, "character": range_.end.character},
    }


def ranges_overlap(a: Range, b: Range) -> bool:
    """Inclusive overlap; touching ranges count, as an empty cursor range must hit its diagnostic."""
    a_start = (a.start.line, a.start.character)
    a_end = (a.end.line, a.end.character)
    b_start = (b.start.line, b.start.character)
    b_end = (b.end.line, b.end.character)
    return a_start <= b_end and b_start <= a_end


def diagnostic_from_lsp(data: Dict[str, Any]) -> Diagnostic:
    return Diagnostic(
        code=data.get("code"),
        range=range_from_lsp(data.get("range", {})),
        message=data.get("message", ""),
        source=data.get("source"),
    )


def _command_from_lsp(data: Dict[str, Any]) -> Command:
    return Command(
        command=data["command"],
        arguments=tuple(data.get("arguments") or ()),
        title=data.get("title", ""),
    )


def workspace_edit_from_lsp(data: Dict[str, Any]) -> WorkspaceEdit:
    """
    Convert an LSP WorkspaceEdit.

    `documentChanges` wins over `changes` when both are present.

    Raises:
        AnalyzerError: If the edit creates, renames or deletes files
    """
    changes: Dict[FileHandle, List[TextEdit]] = {}

    document_changes = data.get("documentChanges")
    if document_changes is not None:
        for change in document_changes:
            if "kind" in change:
                raise AnalyzerError(
                    f"Unsupported resource operation: {change['kind']}",
                    context={"operation": change},
                )
            file = FileHandle.from_uri(change["textDocument"]["uri"])
            changes.setdefault(file, []).extend(_text_edits(change.get("edits", [])))
        return WorkspaceEdit(changes=changes)

    for uri, edits in (data.get("changes") or {}).items():
        changes.setdefault(FileHandle.from_uri(uri), []).extend(_text_edits(edits))
    return WorkspaceEdit(changes=changes)


def _text_edits(edits: List[Dict[str, Any]]) -> List[TextEdit]:
    return [TextEdit(range_from_lsp(e["range"]), e.get("newText", "")) for e in edits]


def candidate_fix_from_lsp(data: Dict[str, Any]) -> CandidateFix:
    """Convert a Command or CodeAction returned by textDocument/codeAction."""
    title = data.get("title", "")
    command = data.get("command")

    # A bare Command has a string "command"
    if isinstance(command, str):
        return CandidateFix(title=title, command=_command_from_lsp(data))

    edit: Optional[WorkspaceEdit] = None
    if data.get("edit"):
        edit = workspace_edit_from_lsp(data["edit"])

    return CandidateFix(
        title=title,
        kind=data.get("kind"),
        edit=edit,
        command=_command_from_lsp(command) if isinstance(command, dict) else None,
    )
