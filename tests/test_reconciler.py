from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from release_sync.api.client import ReleaseClient
from release_sync.core.reconciler import (
    InstallationReconciler,
    SyncOutcome,
    SyncReport,
    SyncState,
)
from release_sync.exceptions import (
    AssetNotFoundError,
    CorruptArchiveError,
    NetworkError,
    TreeManifestError,
)
from release_sync.models.config import SyncConfig
from release_sync.models.progress import ProgressCallbacks
from release_sync.models.stats import SyncStats
from release_sync.storage.state_store import StateStore
from release_sync.transfer.downloader import Downloader
from release_sync.transfer.integrity import sha256_of

from .conftest import SAMPLE_FILES
from .fakes import FakeReleaseServer, make_zip, patch_zip_headers


def _reconciler(
    config: SyncConfig,
    server: FakeReleaseServer,
    callbacks: ProgressCallbacks | None = None,
    stats: SyncStats | None = None,
) -> InstallationReconciler:
    return InstallationReconciler(
        config,
        client=ReleaseClient(config, session=server.session),
        downloader=Downloader(chunk_size=config.chunk_size, session=server.session),
        callbacks=callbacks,
        stats=stats,
    )


def _sync(config: SyncConfig, server: FakeReleaseServer, **kwargs) -> SyncReport:
    return asyncio.run(_reconciler(config, server, **kwargs).reconcile())


def test_first_sync_installs_and_stamps_release(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    report = _sync(config, server)

    assert report.outcome is SyncOutcome.SUCCESS
    assert report.tag == "v1.0.0"
    assert report.previous_tag is None
    assert report.downloaded
    assert not report.resynced
    assert report.states == [
        SyncState.INIT,
        SyncState.MANIFEST_RESOLVED,
        SyncState.NEEDS_DOWNLOAD,
        SyncState.DOWNLOADED,
        SyncState.EXTRACTED,
        SyncState.VERIFYING,
        SyncState.VERIFIED,
    ]
    for name, data in SAMPLE_FILES.items():
        assert (install_dir / name).read_bytes() == data
    assert StateStore(install_dir).read() == "v1.0.0"


def test_download_area_is_removed_after_run(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    _sync(config, server)

    assert not list(install_dir.glob(".download-*"))


def test_second_sync_is_idempotent_and_skips_archive(
    config: SyncConfig, server: FakeReleaseServer
) -> None:
    first = _sync(config, server)
    second = _sync(config, server)

    assert first.outcome is SyncOutcome.SUCCESS
    assert second.outcome is SyncOutcome.SUCCESS
    assert not second.downloaded
    assert SyncState.UP_TO_DATE in second.states
    assert server.archive_downloads() == 1


def test_up_to_date_install_is_still_verified_and_repaired(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    _sync(config, server)
    (install_dir / "mods" / "beta.jar").unlink()

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.SUCCESS
    assert report.resynced
    assert report.states[-6:] == [
        SyncState.NEEDS_RESYNC,
        SyncState.CLEANED_UP,
        SyncState.RE_DOWNLOADED,
        SyncState.RE_EXTRACTED,
        SyncState.RE_VERIFYING,
        SyncState.VERIFIED,
    ]
    assert (install_dir / "mods" / "beta.jar").read_bytes() == SAMPLE_FILES["mods/beta.jar"]


def test_new_release_triggers_download(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    _sync(config, server)
    server.tag = "v1.1.0"
    server.archive = make_zip({**SAMPLE_FILES, "readme.txt": b"updated"})

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.SUCCESS
    assert report.previous_tag == "v1.0.0"
    assert report.downloaded
    assert (install_dir / "readme.txt").read_bytes() == b"updated"
    assert StateStore(install_dir).read() == "v1.1.0"


def test_missing_asset_fails_before_any_download(
    config: SyncConfig, server: FakeReleaseServer
) -> None:
    server.omitted_assets.add("tree.txt")

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.FAILURE
    assert isinstance(report.error, AssetNotFoundError)
    assert server.session.urls() == [server.release_url]
    assert not report.downloaded


def test_unreachable_release_endpoint_fails(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    server.release_status = 503

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.FAILURE
    assert isinstance(report.error, NetworkError)
    assert report.state is SyncState.FAILED
    assert report.last_step == "Fetching release info..."
    assert StateStore(install_dir).read() is None


def test_unexpected_user_file_ends_in_miscount_and_is_kept(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    install_dir.mkdir(parents=True)
    (install_dir / "notes.txt").write_text("mine", encoding="utf-8")

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.MISCOUNT_ERROR
    assert report.state is SyncState.MISCOUNT_ERROR
    assert report.diff is not None
    assert report.diff.unexpected == {"notes.txt"}
    assert (install_dir / "notes.txt").read_text(encoding="utf-8") == "mine"
    assert StateStore(install_dir).read() is None
    assert server.archive_downloads() == 2


def test_archive_missing_a_listed_file_ends_in_miscount(
    config: SyncConfig, server: FakeReleaseServer
) -> None:
    files = dict(SAMPLE_FILES)
    del files["readme.txt"]
    server.archive = make_zip(files)

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.MISCOUNT_ERROR
    assert report.diff is not None
    assert report.diff.missing == {"readme.txt"}


def test_empty_tree_manifest_is_a_failure(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    server.tree = ".\n\n"

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.FAILURE
    assert isinstance(report.error, TreeManifestError)
    assert StateStore(install_dir).read() is None


def test_corrupt_archive_is_a_failure(config: SyncConfig, server: FakeReleaseServer) -> None:
    server.archive = b"PK\x03\x04 definitely not a real archive"

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.FAILURE
    assert isinstance(report.error, CorruptArchiveError)


def test_encrypted_archive_is_a_failure(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    server.archive = patch_zip_headers(make_zip(SAMPLE_FILES), flag_bits=0x01)

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.FAILURE
    assert isinstance(report.error, CorruptArchiveError)
    assert StateStore(install_dir).read() is None


def test_checksum_mismatch_fails_before_extraction(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    config.archive_sha256 = "a" * 64

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.FAILURE
    assert isinstance(report.error, CorruptArchiveError)
    assert not (install_dir / "readme.txt").exists()


def test_matching_checksum_allows_install(
    config: SyncConfig, server: FakeReleaseServer, tmp_path: Path
) -> None:
    archive = tmp_path / "reference.zip"
    archive.write_bytes(server.archive)
    config.archive_sha256 = sha256_of(archive)

    assert _sync(config, server).outcome is SyncOutcome.SUCCESS


def test_hidden_files_in_root_are_ignored(
    config: SyncConfig, server: FakeReleaseServer, install_dir: Path
) -> None:
    install_dir.mkdir(parents=True)
    (install_dir / ".cache").write_text("scratch", encoding="utf-8")

    report = _sync(config, server)

    assert report.outcome is SyncOutcome.SUCCESS
    assert report.diff is not None
    assert ".cache" not in report.diff.unexpected


def test_unknown_asset_sizes_still_install(config: SyncConfig, server: FakeReleaseServer) -> None:
    server.announce_sizes = False

    assert _sync(config, server).outcome is SyncOutcome.SUCCESS


def test_progress_callbacks_receive_text_and_bounded_fractions(
    config: SyncConfig, server: FakeReleaseServer
) -> None:
    texts: list[str] = []
    fractions: list[Optional[float]] = []
    stats = SyncStats()

    report = _sync(
        config,
        server,
        callbacks=ProgressCallbacks(on_text=texts.append, on_fraction=fractions.append),
        stats=stats,
    )

    assert texts[0] == "Starting setup..."
    assert "Downloading data.zip..." in texts
    assert "Extracting: mods/alpha.jar" in texts
    assert texts[-1] == "Setup complete!"
    assert report.last_step == "Setup complete!"
    assert fractions[-1] == 1.0
    assert all(f is None or 0.0 <= f <= 1.0 for f in fractions)
    assert stats.downloads == 2
    assert stats.entries_extracted == len(SAMPLE_FILES) + 2
