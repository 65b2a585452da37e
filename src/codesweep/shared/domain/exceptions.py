"""
Domain exceptions for codesweep.

All library errors inherit from CodeSweepError. Cleanup operations catch them
at file granularity and report the file as unmodified; they are never raised
to the user.
"""


class CodeSweepError(Exception):
    """Base class for all codesweep exceptions."""

    def __init__(self, message: str, context: dict = None):
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(CodeSweepError):
    """Raised when configuration is invalid or corrupt."""

    pass


class AnalyzerError(CodeSweepError):
    """Raised when the external analyzer fails or is unavailable."""

    pass


class DocumentError(CodeSweepError):
    """Raised when a document cannot be read, edited or saved."""

    pass
