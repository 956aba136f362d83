"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application, such as configuration, release
manifests, file trees and statistics.
"""

from .config import SyncConfig
from .progress import INDETERMINATE, ProgressCallbacks
from .release import (
    ActualTree,
    AssetRef,
    ExpectedTree,
    ReleaseManifest,
    TreeDiff,
)
from .stats import SyncStats

__all__ = [
    "INDETERMINATE",
    "ActualTree",
    "AssetRef",
    "ExpectedTree",
    "ProgressCallbacks",
    "ReleaseManifest",
    "SyncConfig",
    "SyncStats",
    "TreeDiff",
]
