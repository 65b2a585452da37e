"""
Diagnostic-driven fix application.

Turns analyzer diagnostics of selected classification codes into applied
quick fixes, one fix per diagnostic.
"""

from typing import Iterable, List, Optional, Sequence

import structlog

from codesweep.cleaning.domain.models import (
    CandidateFix,
    CodeActionKind,
    Diagnostic,
    FileHandle,
)
from codesweep.cleaning.domain.ports import DiagnosticsSource, EditApplier, FixProvider

logger = structlog.get_logger(__name__)

# Title keywords that mark a fix as a removal (matched case-insensitively)
REMOVAL_KEYWORDS = ("remove", "delete")


def select_removal_fix(candidates: Sequence[CandidateFix]) -> Optional[CandidateFix]:
    """
    Pick the fix to apply for a single diagnostic.

    Candidates titled as a removal win; otherwise the first generic quick
    fix is used. Returns None when nothing qualifies.
    """
    for candidate in candidates:
        title = candidate.title.lower()
        if any(keyword in title for keyword in REMOVAL_KEYWORDS):
            return candidate

    for candidate in candidates:
        if candidate.is_quick_fix:
            return candidate

    return None


async def apply_candidate_fix_async(edit_applier: EditApplier, fix: CandidateFix) -> bool:
    """
    Apply a candidate fix through exactly one path.

    A direct edit is applied if present; otherwise the fix's command is
    invoked with its arguments.

    Returns:
        True if an edit or command was dispatched, False if the fix carried neither
    """
    if fix.edit is not None:
        await edit_applier.apply_edit_async(fix.edit)
        return True

    if fix.command is not None:
        await edit_applier.invoke_command_async(fix.command.command, list(fix.command.arguments))
        return True

    logger.debug("fix_has_no_action", title=fix.title)
    return False


class DiagnosticFixApplier:
    """
    Applies analyzer quick fixes for diagnostics with given codes.

    Diagnostics are handled independently: a missing fix for one diagnostic
    does not stop the others. Any failure is logged and reported as "not
    modified", which callers cannot tell apart from a genuine no-op.
    """

    def __init__(
        self,
        diagnostics: DiagnosticsSource,
        fix_provider: FixProvider,
        edit_applier: EditApplier,
    ) -> None:
        self.diagnostics = diagnostics
        self.fix_provider = fix_provider
        self.edit_applier = edit_applier

    def matching_diagnostics(self, file: FileHandle, codes: Iterable[int]) -> List[Diagnostic]:
        """Known diagnostics of `file` whose numeric code is one of `codes`."""
        wanted = set(codes)
        return [
            diagnostic
            for diagnostic in self.diagnostics.get_diagnostics(file)
            if diagnostic.numeric_code is not None and diagnostic.numeric_code in wanted
        ]

    async def apply_fixes_for_codes_async(self, file: FileHandle, codes: Iterable[int]) -> bool:
        """
        Apply one quick fix per matching diagnostic.

        Args:
            file: File to fix
            codes: Diagnostic classification codes to target

        Returns:
            True if at least one fix was applied
        """
        codes = tuple(codes)
        try:
            targets = self.matching_diagnostics(file, codes)
            if not targets:
                return False

            was_modified = False
            for diagnostic in targets:
                candidates = await self.fix_provider.get_candidate_fixes_async(
                    file, diagnostic.range, CodeActionKind.QUICK_FIX
                )
                if not candidates:
                    continue

                fix = select_removal_fix(candidates)
                if fix is None:
                    continue

                if await apply_candidate_fix_async(self.edit_applier, fix):
                    logger.debug(
                        "fix_applied",
                        file=str(file),
                        code=diagnostic.code,
                        title=fix.title,
                    )
                    was_modified = True

            return was_modified

        except Exception as e:
            logger.error(
                "apply_fixes_failed",
                file=str(file),
                codes=list(codes),
                error=str(e),
            )
            return False
