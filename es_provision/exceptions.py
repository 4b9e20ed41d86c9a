"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class EsProvisionError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(EsProvisionError):
    """Raised for a bad version, an unknown platform or an invalid configuration."""


class CacheMissError(EsProvisionError):
    """Raised by a repository when the requested coordinates are not installed."""


class DownloadError(EsProvisionError):
    """Raised when the artifact could not be fetched from the remote server."""


class InstallError(EsProvisionError):
    """Raised when a downloaded artifact could not be written into the repository."""


class ArtifactConsistencyError(EsProvisionError):
    """
    Raised when an artifact is still missing from the repository right after it
    was installed.
    """


class ExtractionError(EsProvisionError):
    """Raised when an archive is corrupt or its format is not supported."""


class StructuralError(EsProvisionError):
    """Raised when an extracted archive does not hold exactly one root directory."""


class ConfigMergeError(EsProvisionError):
    """Raised when the user configuration directory could not be merged."""


class CleanupError(EsProvisionError):
    """Raised when a staging directory could not be removed. Logged, never fatal."""


class ProvisioningError(EsProvisionError):
    """
    Wraps any fatal failure of an instance provisioning attempt.

    The original error is available as ``cause`` (and ``__cause__``).
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause
