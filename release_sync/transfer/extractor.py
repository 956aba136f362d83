"""
Unpacks downloaded zip archives into the installation root.
"""

import logging
import shutil
import zipfile
import zlib
from pathlib import Path

from release_sync.exceptions import CorruptArchiveError, StorageError
from release_sync.models.progress import ProgressCallbacks
from release_sync.models.stats import SyncStats

log = logging.getLogger(__name__)


class ArchiveExtractor:
    """
    Extracts zip archives entry by entry.

    Directory entries create the directory and its ancestors. File entries
    create their parent directories and are streamed to disk, overwriting any
    existing file. There is no per-entry checksum beyond zip's own CRC; the
    installation is verified as a whole afterwards.
    """

    def __init__(self, buffer_size: int = 65536):
        self.buffer_size = buffer_size

    def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        callbacks: ProgressCallbacks | None = None,
        stats: SyncStats | None = None,
    ) -> int:
        """
        Extracts ``archive_path`` into ``target_dir``.

        Returns:
            The number of entries processed.

        Raises:
            CorruptArchiveError: The archive is unreadable, an entry fails its
                CRC, or an entry would land outside ``target_dir``.
            StorageError: A directory or file cannot be written.
        """
        callbacks = callbacks or ProgressCallbacks()
        target_dir = Path(target_dir)
        root = target_dir.resolve()
        log.info(f"Extracting [dim]{Path(archive_path).name}[/dim] into [dim]{target_dir}[/dim]")

        try:
            with zipfile.ZipFile(archive_path) as archive:
                entries = archive.infolist()
                total = len(entries)
                callbacks.fraction(0.0)
                for index, info in enumerate(entries, start=1):
                    self._extract_entry(archive, info, root, callbacks)
                    if stats:
                        stats.entries_extracted += 1
                    callbacks.fraction(index / total)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise CorruptArchiveError(
                f"Archive '{Path(archive_path).name}' is unreadable: {e}"
            ) from e
        except (RuntimeError, NotImplementedError) as e:
            # zipfile raises these for encrypted entries and unsupported compression.
            raise CorruptArchiveError(
                f"Archive '{Path(archive_path).name}' cannot be extracted: {e}"
            ) from e
        except OSError as e:
            raise StorageError(f"Extraction failed: {e}") from e

        log.debug(f"Extracted {total} entries from '{Path(archive_path).name}'.")
        return total

    def _extract_entry(
        self,
        archive: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        root: Path,
        callbacks: ProgressCallbacks,
    ) -> None:
        destination = self._safe_destination(root, info.filename)
        callbacks.text(f"Extracting: {info.filename}")

        if info.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            log.debug(f"Created directory: {destination}")
            return

        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(info) as src, open(destination, "wb") as dst:
            shutil.copyfileobj(src, dst, self.buffer_size)
        log.debug(f"Extracted file: {destination}")

    @staticmethod
    def _safe_destination(root: Path, name: str) -> Path:
        """Resolves an entry name under ``root``, rejecting paths that escape it."""
        destination = (root / name).resolve()
        if destination != root and root not in destination.parents:
            raise CorruptArchiveError(f"Archive entry escapes the target directory: {name}")
        return destination
