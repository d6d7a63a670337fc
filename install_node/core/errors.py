"""
Error taxonomy — every failure the installer can report.

All errors are terminal: nothing in the pipeline catches an
``InstallError`` to recover from it.  The CLI is the only place that
turns one into a diagnostic line and a non-zero exit status.
"""

from __future__ import annotations


class InstallError(Exception):
    """Base class for every fatal install condition."""

    exit_code: int = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(InstallError):
    """Raised when required settings are missing or a value is invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = list(missing or [])


class DependencyError(InstallError):
    """Raised when a mandatory external tool is not on PATH."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = list(missing or [])


class PreconditionError(InstallError):
    """Raised when an install target is populated or a path cannot be written."""


class DownloadError(InstallError):
    """Raised when the transfer tool fails to fetch a URL."""

    def __init__(self, message: str, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class IntegrityError(InstallError):
    """Raised when a checksum or signature does not match."""

    def __init__(
        self,
        message: str,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ExtractionError(InstallError):
    """Raised when an archive cannot be unpacked or lacks its root."""


class BuildError(InstallError):
    """Raised when a build-from-source step exits non-zero."""


class PostInstallVerificationError(InstallError):
    """Raised when a linked executable does not answer a version query."""


class FetchCancelled(InstallError):
    """Raised inside a fetch that was stopped because the other fetch failed."""
