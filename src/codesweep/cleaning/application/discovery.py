"""
Source file discovery.

Walks project roots depth-first and collects JavaScript/TypeScript files,
pruning dependency caches, VCS metadata and build output.
"""

import asyncio
import os
from pathlib import Path
from typing import Iterable, List, Sequence

import structlog

from codesweep.cleaning.domain.models import SUPPORTED_EXTENSIONS, FileHandle

logger = structlog.get_logger(__name__)

# Directory entries that are never descended into
SKIP_DIRECTORIES = frozenset({
    "node_modules",
    ".git",
    "dist",
    ".next",
    "out",
    ".vscode",
    "coverage",
    "build",
    ".nyc_output",
})

# Hidden entries with these suffixes are still considered
HIDDEN_ALLOWED_SUFFIXES = (".js", ".ts")


class FileDiscoverer:
    """
    Discovers cleanable source files under one or more project roots.

    Roots are processed in the order given. Within a directory, entries are
    visited in the order the OS lists them; no re-sort happens, so callers
    must not rely on ordering for anything but progress display.

    Examples:
        >>> discoverer = FileDiscoverer()
        >>> files = await discoverer.discover_async([Path("/path/to/project")])
    """

    def __init__(
        self,
        extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
        skip_directories: Iterable[str] = SKIP_DIRECTORIES,
    ) -> None:
        self.extensions = frozenset(extensions)
        self.skip_directories = frozenset(skip_directories)

    async def discover_async(self, roots: Sequence[str | Path]) -> List[FileHandle]:
        """
        Discover files asynchronously.

        Args:
            roots: Project root directories

        Returns:
            Ordered list of file handles; empty if no roots were given
        """
        return await asyncio.to_thread(self.discover_sync, roots)

    def discover_sync(self, roots: Sequence[str | Path]) -> List[FileHandle]:
        """Discover files synchronously (blocks until complete)."""
        files: List[FileHandle] = []
        for root in roots:
            root_path = Path(root).absolute()
            found = self._walk_directory(root_path)
            logger.debug("root_discovered", root=str(root_path), file_count=len(found))
            files.extend(found)

        logger.info("discovery_complete", roots=len(roots), file_count=len(files))
        return files

    def should_skip(self, name: str) -> bool:
        """Check whether a directory entry is excluded by name."""
        if name.startswith(".") and not name.endswith(HIDDEN_ALLOWED_SUFFIXES):
            return True
        return name in self.skip_directories

    def is_supported(self, name: str) -> bool:
        return os.path.splitext(name)[1] in self.extensions

    def _walk_directory(self, directory: Path) -> List[FileHandle]:
        """
        Recursively walk a directory tree.

        A directory that cannot be read contributes no files; the failure is
        logged and its siblings are still visited.
        """
        files: List[FileHandle] = []

        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if self.should_skip(entry.name):
                        continue

                    # Symlinks are neither files nor directories here
                    if entry.is_dir(follow_symlinks=False):
                        files.extend(self._walk_directory(Path(entry.path)))
                    elif entry.is_file(follow_symlinks=False) and self.is_supported(entry.name):
                        files.append(FileHandle(Path(entry.path)))
        except OSError as e:
            logger.warning("directory_read_failed", directory=str(directory), error=str(e))
            return []

        return files


async def find_supported_files_async(roots: Sequence[str | Path]) -> List[FileHandle]:
    """
    Discover cleanable files with the default policy (convenience function).

    Examples:
        >>> files = await find_supported_files_async(["/path/to/project"])
    """
    return await FileDiscoverer().discover_async(roots)
