"""
Cleaning module.

Orchestrates analyzer-driven cleanup of JavaScript/TypeScript projects:
file discovery, organize-imports, unused variable and function removal.
The module never parses source code; fixes come from an external analyzer.
"""

from codesweep.cleaning.application import FileCleanupCoordinator, ProjectCleanupController
from codesweep.cleaning.domain.models import CleanupConfig, CleanupSummary

__all__ = [
    "CleanupConfig",
    "CleanupSummary",
    "FileCleanupCoordinator",
    "ProjectCleanupController",
]
