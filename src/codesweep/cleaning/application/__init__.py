from codesweep.cleaning.application.discovery import FileDiscoverer, find_supported_files_async
from codesweep.cleaning.application.file_cleanup import FileCleanupCoordinator
from codesweep.cleaning.application.fix_applier import DiagnosticFixApplier
from codesweep.cleaning.application.import_organizer import ImportOrganizer
from codesweep.cleaning.application.project_cleanup import ProjectCleanupController
from codesweep.cleaning.application.unused_props import UnusedPropsRemover

__all__ = [
    "DiagnosticFixApplier",
    "FileCleanupCoordinator",
    "FileDiscoverer",
    "ImportOrganizer",
    "ProjectCleanupController",
    "UnusedPropsRemover",
    "find_supported_files_async",
]
