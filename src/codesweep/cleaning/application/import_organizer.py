"""
Organize imports for a whole file.

Unlike diagnostic fixes, success is verified by content: the file counts as
modified only if its text actually changed.
"""

from typing import Optional, Sequence

import structlog

from codesweep.cleaning.application.fix_applier import apply_candidate_fix_async
from codesweep.cleaning.domain.models import CandidateFix, CodeActionKind, FileHandle, Range
from codesweep.cleaning.domain.ports import DocumentStore, EditApplier, FixProvider

logger = structlog.get_logger(__name__)


def select_organize_imports(candidates: Sequence[CandidateFix]) -> Optional[CandidateFix]:
    """First candidate classified as organize-imports or titled so, in analyzer order."""
    for candidate in candidates:
        if candidate.is_organize_imports or "organize imports" in candidate.title.lower():
            return candidate
    return None


class ImportOrganizer:
    """Runs the analyzer's "organize imports" source action on a file."""

    def __init__(
        self,
        documents: DocumentStore,
        fix_provider: FixProvider,
        edit_applier: EditApplier,
    ) -> None:
        self.documents = documents
        self.fix_provider = fix_provider
        self.edit_applier = edit_applier

    async def organize_imports_async(self, file: FileHandle) -> bool:
        """
        Organize the imports of `file`.

        Returns:
            True iff the document text differs from its text before the action.
            An action that reports success but leaves identical text is a no-op.
        """
        try:
            document = await self.documents.open_async(file)
            original_content = document.text

            whole_file = Range.from_coords(0, 0, document.line_count, 0)
            candidates = await self.fix_provider.get_candidate_fixes_async(
                file, whole_file, CodeActionKind.SOURCE_ORGANIZE_IMPORTS
            )
            if not candidates:
                return False

            action = select_organize_imports(candidates)
            if action is None:
                return False

            await apply_candidate_fix_async(self.edit_applier, action)

            was_modified = document.text != original_content
            logger.debug("imports_organized", file=str(file), modified=was_modified)
            return was_modified

        except Exception as e:
            logger.error("organize_imports_failed", file=str(file), error=str(e))
            return False
