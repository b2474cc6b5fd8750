"""Custom exceptions for the gitnapped toolkit."""

from __future__ import annotations


class GitnappedError(Exception):
    """Base exception for all gitnapped errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(GitnappedError):
    """Raised when the configuration file or directory option is unusable."""

    def __init__(self, message: str, path: str | None = None):
        """Initialize configuration error.

        Args:
            message: Error message
            path: Configuration file or directory the error refers to
        """
        super().__init__(message)
        self.path = path


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(GitnappedError):
    """Base exception for invalid user input.

    Validation errors are fatal to a run: no meaningful analysis exists
    without a window and working hours.
    """

    def __init__(self, message: str, token: str | None = None):
        """Initialize validation error.

        Args:
            message: Error message
            token: The offending input token
        """
        super().__init__(message)
        self.token = token


class InvalidPeriodSyntax(ValidationError):
    """Raised when a relative period does not match ``<int><unit>``."""
    pass


class InvalidWindow(ValidationError):
    """Raised when the analysis window is empty, inverted or malformed."""
    pass


class InvalidWorkingTime(ValidationError):
    """Raised when a working-time string is malformed or out of range."""
    pass


# =============================================================================
# Data Collection Errors
# =============================================================================


class CollectionError(GitnappedError):
    """Base exception for per-repository data collection errors."""

    def __init__(self, message: str, source: str | None = None):
        """Initialize collection error.

        Args:
            message: Error message
            source: Repository path the error refers to
        """
        super().__init__(message)
        self.source = source


class RepositoryUnavailable(CollectionError):
    """Raised when a configured path is not a readable git repository."""
    pass


class CollectionTimeoutError(CollectionError):
    """Raised when reading a repository's history takes too long."""
    pass


class CommitParseError(CollectionError):
    """Raised when git returns a commit record that cannot be parsed."""
    pass


# =============================================================================
# Analysis Errors
# =============================================================================


class AnalysisError(GitnappedError):
    """Base exception for analysis errors."""
    pass


class AnalysisCancelledError(AnalysisError):
    """Raised when a run is cancelled before every repository finished."""
    pass
