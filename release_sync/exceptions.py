"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ReleaseSyncError(Exception):
    """Base exception for all application-specific errors."""


class NetworkError(ReleaseSyncError):
    """Raised when the release endpoint or an asset host is unreachable or refuses."""


class AssetNotFoundError(ReleaseSyncError):
    """Raised when a required named asset is missing from the latest release."""


class StorageError(ReleaseSyncError):
    """Raised when a local file cannot be created, written or deleted."""


class CorruptArchiveError(ReleaseSyncError):
    """Raised when a downloaded archive cannot be read or fails its checksum."""


class TreeManifestError(ReleaseSyncError):
    """Raised when the tree manifest cannot be decoded or yields no entries."""


class ConfigurationError(ReleaseSyncError):
    """Raised for issues related to configuration loading or validation."""
