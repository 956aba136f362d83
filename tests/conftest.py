from __future__ import annotations

from pathlib import Path

import pytest

from release_sync.models.config import SyncConfig

from .fakes import FakeReleaseServer, make_zip

SAMPLE_TREE = """\
.
├── config
│   └── settings.json
├── mods
│   ├── alpha.jar
│   └── beta.jar
└── readme.txt

2 directories, 4 files
"""

SAMPLE_FILES = {
    "config/settings.json": b'{"volume": 3}',
    "mods/alpha.jar": b"alpha" * 100,
    "mods/beta.jar": b"beta" * 100,
    "readme.txt": b"hello",
}


@pytest.fixture
def sample_archive() -> bytes:
    return make_zip(SAMPLE_FILES, dirs=["config", "mods"])


@pytest.fixture
def install_dir(tmp_path: Path) -> Path:
    return tmp_path / "launcher"


@pytest.fixture
def config(tmp_path: Path, install_dir: Path) -> SyncConfig:
    return SyncConfig(
        repository="acme/game",
        api_url=FakeReleaseServer.API_URL,
        install_dir=str(install_dir),
        chunk_size=1024,
        config_path=str(tmp_path),
    )


@pytest.fixture
def server(sample_archive: bytes) -> FakeReleaseServer:
    return FakeReleaseServer("acme/game", "v1.0.0", SAMPLE_TREE, sample_archive)
