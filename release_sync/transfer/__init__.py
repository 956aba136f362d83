"""
Transfer Layer.

This package moves release data onto the local disk: streaming downloads,
archive extraction, and whole-archive checksum validation.
"""

from .downloader import Downloader
from .extractor import ArchiveExtractor
from .integrity import sha256_of, verify_archive_checksum

__all__ = ["ArchiveExtractor", "Downloader", "sha256_of", "verify_archive_checksum"]
