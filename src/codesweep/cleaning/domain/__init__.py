from codesweep.cleaning.domain.models import (
    SUPPORTED_EXTENSIONS,
    UNUSED_FUNCTION_CODES,
    UNUSED_VARIABLE_CODES,
    CandidateFix,
    CleanupConfig,
    CleanupResult,
    CleanupState,
    CleanupSummary,
    CodeActionKind,
    Command,
    Diagnostic,
    FileHandle,
    Position,
    ProjectProgress,
    Range,
    TextEdit,
    WorkspaceEdit,
)
from codesweep.cleaning.domain.ports import CancellationToken

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "UNUSED_FUNCTION_CODES",
    "UNUSED_VARIABLE_CODES",
    "CancellationToken",
    "CandidateFix",
    "CleanupConfig",
    "CleanupResult",
    "CleanupState",
    "CleanupSummary",
    "CodeActionKind",
    "Command",
    "Diagnostic",
    "FileHandle",
    "Position",
    "ProjectProgress",
    "Range",
    "TextEdit",
    "WorkspaceEdit",
]
