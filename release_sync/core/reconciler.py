"""
The orchestrator that brings an installation root into agreement with the latest
published release.
"""

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from release_sync.api.client import ReleaseClient
from release_sync.exceptions import ReleaseSyncError, StorageError, TreeManifestError
from release_sync.models.config import SyncConfig
from release_sync.models.progress import ProgressCallbacks
from release_sync.models.release import ExpectedTree, ReleaseManifest, TreeDiff
from release_sync.models.stats import SyncStats
from release_sync.storage.state_store import StateStore
from release_sync.transfer.downloader import Downloader
from release_sync.transfer.extractor import ArchiveExtractor
from release_sync.transfer.integrity import verify_archive_checksum

from .file_tree import clean_expected_paths, collect_actual_tree, compare_trees
from .tree_parser import parse_tree_file

log = logging.getLogger(__name__)

DOWNLOAD_DIR_PREFIX = ".download-"


class SyncState(Enum):
    """Steps of a reconciliation run."""

    INIT = "init"
    MANIFEST_RESOLVED = "manifest_resolved"
    UP_TO_DATE = "up_to_date"
    NEEDS_DOWNLOAD = "needs_download"
    DOWNLOADED = "downloaded"
    EXTRACTED = "extracted"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    NEEDS_RESYNC = "needs_resync"
    CLEANED_UP = "cleaned_up"
    RE_DOWNLOADED = "re_downloaded"
    RE_EXTRACTED = "re_extracted"
    RE_VERIFYING = "re_verifying"
    MISCOUNT_ERROR = "miscount_error"
    FAILED = "failed"


class SyncOutcome(Enum):
    """Terminal classification handed back to the caller."""

    SUCCESS = "success"
    FAILURE = "failure"
    # Files still disagree after one repair attempt; the caller may proceed anyway.
    MISCOUNT_ERROR = "miscount_error"


@dataclass
class SyncReport:
    """Everything the caller needs to decide what to do after a run."""

    outcome: SyncOutcome = SyncOutcome.FAILURE
    tag: Optional[str] = None
    previous_tag: Optional[str] = None
    states: list[SyncState] = field(default_factory=list)
    last_step: str = ""
    error: Optional[ReleaseSyncError] = None
    diff: Optional[TreeDiff] = None
    downloaded: bool = False
    resynced: bool = False

    @property
    def state(self) -> Optional[SyncState]:
        return self.states[-1] if self.states else None


class InstallationReconciler:
    """
    Orchestrates resolve, download, extract and verify for one installation root.

    A run downloads the archive only when the stored tag differs from the
    latest release, but it always verifies the installed files against the
    release's tree manifest. On a mismatch it deletes the listed paths,
    downloads and extracts the archive again and compares once more. The tag is
    stored only after a comparison succeeds.
    """

    def __init__(
        self,
        config: SyncConfig,
        client: ReleaseClient | None = None,
        downloader: Downloader | None = None,
        extractor: ArchiveExtractor | None = None,
        state_store: StateStore | None = None,
        callbacks: ProgressCallbacks | None = None,
        stats: SyncStats | None = None,
    ):
        self.config = config
        self.install_dir = Path(config.install_dir).expanduser()
        self.client = client or ReleaseClient(config)
        self.downloader = downloader or Downloader(
            chunk_size=config.chunk_size, user_agent=config.user_agent
        )
        self.extractor = extractor or ArchiveExtractor(buffer_size=config.chunk_size)
        self.state_store = state_store or StateStore(self.install_dir)
        self.callbacks = callbacks or ProgressCallbacks()
        self.stats = stats or SyncStats()
        self._report = SyncReport()

    async def close(self) -> None:
        """Releases the network sessions used during the run."""
        await self.client.close()
        await self.downloader.close()

    def _enter(self, state: SyncState) -> None:
        previous = self._report.state
        self._report.states.append(state)
        log.debug(
            f"Sync state: {previous.value if previous else '-'} -> {state.value}"
        )

    async def reconcile(self) -> SyncReport:
        """
        Runs one reconciliation to a terminal outcome.

        Never raises for failures of the release endpoint, the transfer or the
        local disk; those are reported as ``SyncOutcome.FAILURE`` with the error
        attached.
        """
        self._report = report = SyncReport()
        self._enter(SyncState.INIT)
        log.info(f"Starting sync in directory: [dim]{self.install_dir}[/dim]")
        self.callbacks.text("Starting setup...")
        self.callbacks.fraction(0.0)

        download_dir: Optional[Path] = None
        try:
            download_dir = await asyncio.to_thread(self._prepare_download_dir)
            report.outcome = await self._run(download_dir)
            report.last_step = self.callbacks.last_text
        except ReleaseSyncError as e:
            report.last_step = self.callbacks.last_text
            report.error = e
            report.outcome = SyncOutcome.FAILURE
            self._enter(SyncState.FAILED)
            log.error(f"[red]Sync failed: {e}[/red]")
            self.callbacks.text(f"Setup failed: {e}")
            self.callbacks.fraction(0.0)
        finally:
            if download_dir is not None:
                await asyncio.to_thread(self._remove_download_dir, download_dir)

        return report

    async def _run(self, download_dir: Path) -> SyncOutcome:
        report = self._report
        self.callbacks.text("Fetching release info...")
        manifest = await self.client.resolve()
        report.tag = manifest.tag
        self._enter(SyncState.MANIFEST_RESOLVED)

        installed = await asyncio.to_thread(self.state_store.read)
        report.previous_tag = installed
        archive_path = download_dir / self.config.archive_asset

        if installed != manifest.tag:
            self._enter(SyncState.NEEDS_DOWNLOAD)
            log.info(
                f"New release detected. Local: {installed or 'N/A'}, "
                f"Latest: {manifest.tag}"
            )
            self.callbacks.text(
                f"New release found: {manifest.tag}. Preparing download..."
            )
            await self._download_archive(manifest, archive_path)
            self._enter(SyncState.DOWNLOADED)
            await self._extract(archive_path)
            self._enter(SyncState.EXTRACTED)
        else:
            self._enter(SyncState.UP_TO_DATE)
            log.info("Local release tag matches latest. Verifying files.")
            self.callbacks.text("Release is up-to-date. Verifying files...")

        self._enter(SyncState.VERIFYING)
        expected = await self._fetch_expected_tree(manifest, download_dir)
        diff = await self._verify(expected)
        if diff.matches:
            return await self._commit(manifest)

        report.resynced = True
        self._enter(SyncState.NEEDS_RESYNC)
        log.warning(
            f"[yellow]File integrity check failed. Missing: {len(diff.missing)}, "
            f"Unexpected: {len(diff.unexpected)}, Expected count: "
            f"{diff.expected_count}, Actual count: {diff.actual_count}[/yellow]"
        )
        self.callbacks.text(
            "File integrity check failed. Re-downloading and re-extracting data."
        )
        self.callbacks.fraction(0.0)

        self.callbacks.text("Cleaning old files...")
        self.stats.paths_removed += await asyncio.to_thread(
            clean_expected_paths, self.install_dir, expected.paths
        )
        self._enter(SyncState.CLEANED_UP)

        await self._download_archive(manifest, archive_path)
        self._enter(SyncState.RE_DOWNLOADED)
        await self._extract(archive_path)
        self._enter(SyncState.RE_EXTRACTED)

        self._enter(SyncState.RE_VERIFYING)
        diff = await self._verify(expected)
        if diff.matches:
            return await self._commit(manifest)

        self._enter(SyncState.MISCOUNT_ERROR)
        log.warning("[yellow]Files still do not match after re-extraction.[/yellow]")
        self.callbacks.text("Files still do not match the release after repair.")
        return SyncOutcome.MISCOUNT_ERROR

    def _prepare_download_dir(self) -> Path:
        try:
            self.install_dir.mkdir(parents=True, exist_ok=True)
            path = Path(tempfile.mkdtemp(prefix=DOWNLOAD_DIR_PREFIX, dir=self.install_dir))
        except OSError as e:
            raise StorageError(f"Could not prepare installation directory: {e}") from e
        log.debug(f"Created temporary download directory: {path}")
        return path

    @staticmethod
    def _remove_download_dir(path: Path) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            log.warning(f"Failed to delete temporary directory '{path}': {e}")
        else:
            log.debug(f"Temporary download directory deleted: {path}")

    async def _download_archive(self, manifest: ReleaseManifest, destination: Path) -> None:
        asset = manifest.asset(self.config.archive_asset)
        await self.downloader.download(
            asset.locator,
            destination,
            asset.size_bytes,
            callbacks=self.callbacks,
            stats=self.stats,
        )
        self._report.downloaded = True

        if self.config.archive_sha256:
            self.callbacks.text(f"Checking {destination.name} checksum...")
            await asyncio.to_thread(
                verify_archive_checksum, destination, self.config.archive_sha256
            )

    async def _extract(self, archive_path: Path) -> None:
        self.callbacks.text(f"Extracting {archive_path.name}...")
        await asyncio.to_thread(
            self.extractor.extract,
            archive_path,
            self.install_dir,
            self._forward_to_loop(asyncio.get_running_loop()),
            self.stats,
        )
        self.callbacks.text("Extraction complete!")

    def _forward_to_loop(self, loop: asyncio.AbstractEventLoop) -> ProgressCallbacks:
        """Callbacks for executor threads that deliver each update on the loop's thread."""
        return ProgressCallbacks(
            on_text=lambda message: loop.call_soon_threadsafe(
                self.callbacks.text, message
            ),
            on_fraction=lambda value: loop.call_soon_threadsafe(
                self.callbacks.fraction, value
            ),
        )

    async def _fetch_expected_tree(
        self, manifest: ReleaseManifest, download_dir: Path
    ) -> ExpectedTree:
        asset = manifest.asset(self.config.tree_asset)
        tree_path = download_dir / self.config.tree_asset
        self.callbacks.text("Verifying files...")
        self.callbacks.fraction(0.0)
        await self.downloader.download(
            asset.locator,
            tree_path,
            asset.size_bytes,
            callbacks=self.callbacks,
            stats=self.stats,
        )

        self.callbacks.text("Parsing file list...")
        expected = await asyncio.to_thread(parse_tree_file, tree_path)
        if expected.is_empty:
            raise TreeManifestError(
                f"Could not verify files: '{self.config.tree_asset}' lists no entries."
            )
        return expected

    async def _verify(self, expected: ExpectedTree) -> TreeDiff:
        self.callbacks.text("Comparing installed files...")
        actual = await asyncio.to_thread(collect_actual_tree, self.install_dir)
        diff = compare_trees(expected, actual)
        self._report.diff = diff
        return diff

    async def _commit(self, manifest: ReleaseManifest) -> SyncOutcome:
        self._enter(SyncState.VERIFIED)
        log.info("All expected files are present and no unexpected files were found.")
        self.callbacks.text("All files verified.")
        await asyncio.to_thread(self.state_store.write, manifest.tag)
        self.callbacks.text("Setup complete!")
        self.callbacks.fraction(1.0)
        return SyncOutcome.SUCCESS
