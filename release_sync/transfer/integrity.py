"""
Provides whole-archive checksum verification.
"""

import hashlib
import logging
from pathlib import Path

from release_sync.exceptions import CorruptArchiveError, StorageError

log = logging.getLogger(__name__)

_READ_SIZE = 1024 * 1024


def sha256_of(path: Path) -> str:
    """
    Computes the SHA-256 hex digest of a file.

    Args:
        path: Path to the file.

    Returns:
        The lowercase hex digest.

    Raises:
        StorageError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(_READ_SIZE), b""):
                digest.update(block)
    except OSError as e:
        raise StorageError(f"Could not read '{path}': {e}") from e
    return digest.hexdigest()


def verify_archive_checksum(path: Path, expected_sha256: str) -> None:
    """
    Checks an archive against its expected SHA-256 digest before extraction.

    Raises:
        CorruptArchiveError: If the digests differ.
    """
    actual = sha256_of(path)
    if actual.lower() != expected_sha256.lower():
        log.warning(
            f"Checksum mismatch for '{Path(path).name}': expected {expected_sha256}, "
            f"got {actual}."
        )
        raise CorruptArchiveError(
            f"Checksum of '{Path(path).name}' does not match. "
            "Data may be corrupt or tampered with."
        )
    log.debug(f"Checksum verified for '{Path(path).name}'.")
