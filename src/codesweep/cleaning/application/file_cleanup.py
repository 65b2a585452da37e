"""
Per-file cleanup sequencing.

Runs organize-imports, then each enabled fix category, then saves the file
once if anything changed.
"""

from typing import Optional

import structlog

from codesweep.cleaning.application.fix_applier import DiagnosticFixApplier
from codesweep.cleaning.application.import_organizer import ImportOrganizer
from codesweep.cleaning.application.unused_props import UnusedPropsRemover
from codesweep.cleaning.domain.models import (
    UNUSED_FUNCTION_CODES,
    UNUSED_VARIABLE_CODES,
    CleanupConfig,
    FileHandle,
)
from codesweep.cleaning.domain.ports import (
    DiagnosticsSource,
    DocumentStore,
    EditApplier,
    FixProvider,
)

logger = structlog.get_logger(__name__)


class FileCleanupCoordinator:
    """
    Cleans a single file according to a fixed configuration.

    Step order:
    1. Organize imports (always)
    2. Remove unused variables (if enabled)
    3. Remove unused functions and types (if enabled)
    4. Remove unused React props (if enabled, currently a no-op)

    Edits from all steps are saved together, once. A failure in any step
    abandons the file, which is then reported as unmodified.
    """

    def __init__(
        self,
        config: CleanupConfig,
        documents: DocumentStore,
        fix_applier: DiagnosticFixApplier,
        import_organizer: ImportOrganizer,
        props_remover: Optional[UnusedPropsRemover] = None,
    ) -> None:
        self.config = config
        self.documents = documents
        self.fix_applier = fix_applier
        self.import_organizer = import_organizer
        self.props_remover = props_remover or UnusedPropsRemover(documents)

    @classmethod
    def create(
        cls,
        config: CleanupConfig,
        documents: DocumentStore,
        diagnostics: DiagnosticsSource,
        fix_provider: FixProvider,
        edit_applier: EditApplier,
    ) -> "FileCleanupCoordinator":
        """Wire a coordinator from analyzer capabilities."""
        return cls(
            config=config,
            documents=documents,
            fix_applier=DiagnosticFixApplier(diagnostics, fix_provider, edit_applier),
            import_organizer=ImportOrganizer(documents, fix_provider, edit_applier),
            props_remover=UnusedPropsRemover(documents),
        )

    async def cleanup_file_async(self, file: FileHandle) -> bool:
        """
        Apply all enabled cleanup steps to `file`.

        Returns:
            True if any step modified the file
        """
        try:
            document = await self.documents.open_async(file)
            steps: dict[str, bool] = {}

            steps["organize_imports"] = await self.import_organizer.organize_imports_async(file)

            if self.config.remove_unused_variables:
                steps["unused_variables"] = await self.fix_applier.apply_fixes_for_codes_async(
                    file, UNUSED_VARIABLE_CODES
                )

            if self.config.remove_unused_functions:
                steps["unused_functions"] = await self.fix_applier.apply_fixes_for_codes_async(
                    file, UNUSED_FUNCTION_CODES
                )

            if self.config.remove_unused_props:
                steps["unused_props"] = await self.props_remover.remove_unused_props_async(file)

            was_modified = any(steps.values())

            if was_modified and document.is_dirty:
                await self.documents.save_async(document)

            logger.debug("file_cleanup_finished", file=str(file), modified=was_modified, steps=steps)
            return was_modified

        except Exception as e:
            logger.error("file_cleanup_failed", file=str(file), error=str(e))
            return False
