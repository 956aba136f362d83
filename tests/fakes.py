"""In-memory stand-ins for the aiohttp session used by the release client and downloader."""

from __future__ import annotations

import io
import zipfile
from typing import Any, Callable, Iterable

import aiohttp


class FakeContent:
    def __init__(self, body: bytes, fail_after: int | None = None) -> None:
        self._body = body
        self._fail_after = fail_after

    async def iter_chunked(self, size: int):
        for offset in range(0, len(self._body), size):
            if self._fail_after is not None and offset >= self._fail_after:
                raise aiohttp.ClientPayloadError("Connection reset by peer")
            yield self._body[offset : offset + size]


class FakeResponse:
    def __init__(
        self,
        status: int = 200,
        body: bytes = b"",
        json_data: Any = None,
        headers: dict[str, str] | None = None,
        error: Exception | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.status = status
        self.headers = headers or {}
        self.content = FakeContent(body, fail_after)
        self._json = json_data
        self._error = error

    async def json(self, content_type: str | None = None) -> Any:
        if self._json is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json

    async def __aenter__(self) -> "FakeResponse":
        if self._error is not None:
            raise self._error
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None


class FakeSession:
    """Routes ``get`` calls through ``handler`` and records every request."""

    def __init__(self, handler: Callable[[str], FakeResponse]) -> None:
        self._handler = handler
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append((url, kwargs))
        return self._handler(url)

    def urls(self) -> list[str]:
        return [url for url, _ in self.requests]

    async def close(self) -> None:
        self.closed = True


def make_zip(files: dict[str, bytes], dirs: Iterable[str] = ()) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for directory in dirs:
            archive.writestr(directory.rstrip("/") + "/", b"")
        for name, data in files.items():
            archive.writestr(name, data)
    return buffer.getvalue()


class FakeReleaseServer:
    """A release endpoint plus asset host serving one mutable release."""

    API_URL = "https://api.example.test"
    ASSET_HOST = "https://downloads.example.test"

    def __init__(self, repository: str, tag: str, tree: str, archive: bytes) -> None:
        self.repository = repository
        self.tag = tag
        self.tree = tree
        self.archive = archive
        self.release_status = 200
        self.omitted_assets: set[str] = set()
        self.announce_sizes = True
        self.session = FakeSession(self.handle)

    @property
    def release_url(self) -> str:
        return f"{self.API_URL}/repos/{self.repository}/releases/latest"

    def asset_url(self, name: str) -> str:
        return f"{self.ASSET_HOST}/{self.tag}/{name}"

    def _assets(self) -> dict[str, bytes]:
        return {"tree.txt": self.tree.encode("utf-8"), "data.zip": self.archive}

    def release_document(self) -> dict[str, Any]:
        return {
            "tag_name": self.tag,
            "assets": [
                {
                    "name": name,
                    "browser_download_url": self.asset_url(name),
                    "size": len(body) if self.announce_sizes else 0,
                }
                for name, body in self._assets().items()
                if name not in self.omitted_assets
            ],
        }

    def handle(self, url: str) -> FakeResponse:
        if url == self.release_url:
            if self.release_status != 200:
                return FakeResponse(status=self.release_status)
            return FakeResponse(json_data=self.release_document())
        for name, body in self._assets().items():
            if url == self.asset_url(name):
                return FakeResponse(body=body, headers={"Content-Length": str(len(body))})
        return FakeResponse(status=404)

    def archive_downloads(self) -> int:
        return sum(1 for url in self.session.urls() if url.endswith("/data.zip"))


def patch_zip_headers(
    data: bytes, flag_bits: int = 0, compress_type: int | None = None
) -> bytes:
    """Rewrites the flags and compression method of every local and central header."""
    patched = bytearray(data)
    # (signature, offset of general-purpose flags, offset of compression method)
    for signature, flags_at, method_at in ((b"PK\x03\x04", 6, 8), (b"PK\x01\x02", 8, 10)):
        start = patched.find(signature)
        while start != -1:
            patched[start + flags_at] |= flag_bits
            if compress_type is not None:
                patched[start + method_at : start + method_at + 2] = compress_type.to_bytes(
                    2, "little"
                )
            start = patched.find(signature, start + len(signature))
    return bytes(patched)
