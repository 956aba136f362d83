"""
Handles the low-level downloading of release assets over HTTP with bounded
streaming buffers and byte-level progress reporting.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp

from release_sync.exceptions import NetworkError, StorageError
from release_sync.models.progress import INDETERMINATE, ProgressCallbacks
from release_sync.models.stats import SyncStats

log = logging.getLogger(__name__)


class Downloader:
    """
    Streams a remote asset to a local path.

    Bytes go to ``<destination>.part`` first and are renamed onto the
    destination only once the body has been fully written. Nothing is resumed
    or retried; a failed transfer may leave the ``.part`` file behind for the
    caller to clean up.

    Without an injected session the downloader opens its own connection pool,
    bound to the event loop that first uses it, and replaces it when called
    from a different loop.
    """

    def __init__(
        self,
        chunk_size: int = 65536,
        user_agent: str = "release-sync",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.chunk_size = chunk_size
        self.user_agent = user_agent
        self._session = session
        self._own_session: aiohttp.ClientSession | None = None
        self._own_session_loop: asyncio.AbstractEventLoop | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Returns the injected session, or a connection pool for the running loop."""
        if self._session is not None:
            return self._session

        loop = asyncio.get_running_loop()
        if (
            self._own_session is None
            or self._own_session.closed
            or self._own_session_loop is not loop
        ):
            connector = aiohttp.TCPConnector(
                limit=2,
                ttl_dns_cache=600,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
            self._own_session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers={"User-Agent": self.user_agent},
            )
            self._own_session_loop = loop
            log.debug("Created download connection pool.")
        return self._own_session

    async def close(self) -> None:
        """Closes the connection pool this downloader opened, if any."""
        session = self._own_session
        # A pool left behind by a finished loop cannot be closed from this one.
        if (
            session is not None
            and not session.closed
            and self._own_session_loop is asyncio.get_running_loop()
        ):
            await session.close()
            log.debug("Download connection pool closed.")
        self._own_session = None
        self._own_session_loop = None

    async def download(
        self,
        url: str,
        destination: Path,
        expected_size: int = 0,
        callbacks: ProgressCallbacks | None = None,
        stats: SyncStats | None = None,
    ) -> None:
        """
        Downloads ``url`` to ``destination``, overwriting it unconditionally.

        Args:
            url: The asset locator.
            destination: The final local path.
            expected_size: Size announced by the release, 0 if unknown.
            callbacks: Receives the download text and progress fractions.
            stats: Accumulates transferred bytes.

        Raises:
            NetworkError: The host is unreachable, answers with a non-success
                status, or the stream breaks.
            StorageError: The destination cannot be written.
        """
        callbacks = callbacks or ProgressCallbacks()
        destination = Path(destination)
        part_path = destination.with_name(destination.name + ".part")

        log.info(f"Downloading [dim]{url}[/dim] to [dim]{destination}[/dim]")
        callbacks.text(f"Downloading {destination.name}...")
        callbacks.fraction(0.0)

        session = await self._get_session()
        try:
            async with session.get(url, allow_redirects=True) as response:
                if response.status != 200:
                    raise NetworkError(
                        f"Download of '{destination.name}' failed. "
                        f"HTTP status: {response.status}"
                    )

                total = expected_size
                if total <= 0:
                    total = int(response.headers.get("Content-Length", 0) or 0)
                if total <= 0:
                    log.debug(f"Could not determine total size for '{destination.name}'.")
                    callbacks.fraction(INDETERMINATE)

                bytes_written = await self._stream_to_file(
                    response, part_path, total, callbacks, stats
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(
                f"Download of '{destination.name}' failed: {e}"
            ) from e

        try:
            os.replace(part_path, destination)
        except OSError as e:
            raise StorageError(
                f"Could not move '{part_path.name}' into place: {e}"
            ) from e

        if stats:
            stats.downloads += 1
        log.debug(f"Download complete: {destination.name} ({bytes_written} bytes)")
        callbacks.fraction(1.0)

    async def _stream_to_file(
        self,
        response: aiohttp.ClientResponse,
        part_path: Path,
        total: int,
        callbacks: ProgressCallbacks,
        stats: SyncStats | None,
    ) -> int:
        bytes_written = 0
        last_fraction = 0.0
        try:
            async with aiofiles.open(part_path, "wb") as f:
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    await f.write(chunk)
                    bytes_written += len(chunk)
                    if stats:
                        stats.record_chunk(len(chunk))
                    if total > 0:
                        fraction = min(bytes_written / total, 1.0)
                        if fraction > last_fraction:
                            last_fraction = fraction
                            callbacks.fraction(fraction)
        except aiohttp.ClientError:
            raise
        except OSError as e:
            raise StorageError(f"Could not write '{part_path.name}': {e}") from e
        return bytes_written
