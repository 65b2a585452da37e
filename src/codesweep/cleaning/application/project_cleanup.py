"""
Project-wide cleanup control loop.

Discovers files once, then cleans them one at a time, reporting progress and
honouring cooperative cancellation between files.
"""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import structlog

from codesweep.cleaning.application.discovery import FileDiscoverer
from codesweep.cleaning.application.file_cleanup import FileCleanupCoordinator
from codesweep.cleaning.domain.models import (
    CleanupConfig,
    CleanupResult,
    CleanupState,
    CleanupSummary,
    FileHandle,
    ProjectProgress,
)
from codesweep.cleaning.domain.ports import CancellationToken, ProgressSink

logger = structlog.get_logger(__name__)

NO_PROJECT_MESSAGE = "No workspace folder is open."
NO_FILES_MESSAGE = "No JavaScript/TypeScript files found in the workspace."
CANCELLED_MESSAGE = "Project cleanup was cancelled."
COMPLETED_MESSAGE = "Project clean-up complete ✅ ({modified} files modified out of {total} processed)"

CoordinatorFactory = Callable[[CleanupConfig], FileCleanupCoordinator]


class LoggingProgressSink:
    """Progress sink that only writes log events."""

    def report(self, increment: float, message: str) -> None:
        logger.debug("cleanup_progress", increment=increment, message=message)

    def notify(self, level: str, message: str) -> None:
        logger.info("cleanup_notification", level=level, message=message)


class ProjectCleanupController:
    """
    Runs a cleanup over every discovered file of a project.

    States: NOT_STARTED -> DISCOVERING -> ITERATING -> CANCELLED | COMPLETED.
    A run with no roots ends in NO_PROJECT and a run that finds no files ends
    in NO_FILES; neither enters ITERATING.

    Files are processed strictly one after another. No per-file failure stops
    the run; only the cancellation token does, and it is checked before each
    file, never in the middle of one.
    """

    def __init__(
        self,
        coordinator_factory: CoordinatorFactory,
        discoverer: Optional[FileDiscoverer] = None,
        progress_sink: Optional[ProgressSink] = None,
        yield_delay: float = 0.01,
    ) -> None:
        self.coordinator_factory = coordinator_factory
        self.discoverer = discoverer or FileDiscoverer()
        self.progress_sink: ProgressSink = progress_sink or LoggingProgressSink()
        self.yield_delay = yield_delay

        self.state = CleanupState.NOT_STARTED
        self.progress: Optional[ProjectProgress] = None

    async def run_async(
        self,
        roots: Sequence[str | Path],
        config: CleanupConfig,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> CleanupSummary:
        """
        Clean all supported files under `roots`.

        Args:
            roots: Project root directories; progress paths are relative to the first
            config: Cleanup toggles, fixed for the whole run
            cancellation_token: Optional token checked before each file

        Returns:
            CleanupSummary describing the terminal state
        """
        token = cancellation_token or CancellationToken()
        self.progress = None

        if not roots:
            logger.warning("cleanup_no_project")
            return self._finish(CleanupState.NO_PROJECT, "warning", NO_PROJECT_MESSAGE)

        self.state = CleanupState.DISCOVERING
        files = await self.discoverer.discover_async(roots)

        if not files:
            logger.info("cleanup_no_files", roots=[str(r) for r in roots])
            return self._finish(CleanupState.NO_FILES, "info", NO_FILES_MESSAGE)

        coordinator = self.coordinator_factory(config)
        return await self._iterate_async(files, Path(roots[0]), coordinator, token, config)

    async def _iterate_async(
        self,
        files: List[FileHandle],
        display_root: Path,
        coordinator: FileCleanupCoordinator,
        token: CancellationToken,
        config: CleanupConfig,
    ) -> CleanupSummary:
        self.state = CleanupState.ITERATING
        progress = ProjectProgress(total_files=len(files))
        self.progress = progress
        results: List[CleanupResult] = []
        increment = 100 / progress.total_files

        logger.info(
            "cleanup_started",
            total_files=progress.total_files,
            remove_unused_variables=config.remove_unused_variables,
            remove_unused_functions=config.remove_unused_functions,
            remove_unused_props=config.remove_unused_props,
        )

        for file in files:
            if token.is_cancellation_requested:
                logger.info(
                    "cleanup_cancelled",
                    processed_files=progress.processed_files,
                    total_files=progress.total_files,
                    reason=token.reason,
                )
                return self._finish(CleanupState.CANCELLED, "info", CANCELLED_MESSAGE, results)

            progress.current_file = file.relative_to(display_root)
            progress.processed_files += 1
            self.progress_sink.report(increment, f"{progress.percentage}% - {progress.current_file}")

            was_modified = await coordinator.cleanup_file_async(file)
            if was_modified:
                progress.modified_files += 1
            results.append(CleanupResult(file=file, was_modified=was_modified))

            # Let the host render progress before the next file
            await asyncio.sleep(self.yield_delay)

        message = COMPLETED_MESSAGE.format(
            modified=progress.modified_files, total=progress.total_files
        )
        logger.info(
            "cleanup_completed",
            modified_files=progress.modified_files,
            total_files=progress.total_files,
        )
        return self._finish(CleanupState.COMPLETED, "info", message, results)

    def _finish(
        self,
        state: CleanupState,
        level: str,
        message: str,
        results: Optional[List[CleanupResult]] = None,
    ) -> CleanupSummary:
        self.state = state
        self.progress_sink.notify(level, message)

        progress = self.progress if state in (CleanupState.CANCELLED, CleanupState.COMPLETED) else None
        return CleanupSummary(
            state=state,
            total_files=progress.total_files if progress else 0,
            processed_files=progress.processed_files if progress else 0,
            modified_files=progress.modified_files if progress else 0,
            message=message,
            results=results or [],
        )
