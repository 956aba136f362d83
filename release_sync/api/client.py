"""
Async client for the release-hosting endpoint that resolves the latest release.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp
from pydantic import ValidationError

from release_sync.exceptions import AssetNotFoundError, NetworkError
from release_sync.models.config import SyncConfig
from release_sync.models.release import ReleaseManifest, ReleasePayload

log = logging.getLogger(__name__)


class ReleaseClient:
    """
    Resolves the latest published release of a repository.

    Issues exactly one read request per ``resolve()`` call and checks that both
    required assets (the tree manifest and the data archive) are present.
    """

    ACCEPT = "application/vnd.github+json"

    def __init__(
        self,
        config: SyncConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initializes the release client.

        Args:
            config: The validated application configuration.
            session: An existing session to reuse. When omitted, the client opens
                its own on first use and closes it in ``close()``.
        """
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._session_loop: asyncio.AbstractEventLoop | None = None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        loop = asyncio.get_running_loop()
        stale = self._owns_session and self._session_loop is not loop
        if self._session is None or self._session.closed or stale:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self.config.request_timeout, connect=15
                ),
            )
            self._owns_session = True
            self._session_loop = loop
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session if this client opened it."""
        if (
            self._owns_session
            and self._session
            and not self._session.closed
            and self._session_loop is asyncio.get_running_loop()
        ):
            await self._session.close()

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.config.user_agent, "Accept": self.ACCEPT}

    async def fetch_latest_release(self) -> dict[str, Any]:
        """Fetches the raw JSON document describing the latest release."""
        session = await self._initialize_session()
        url = self.config.release_url
        log.info(f"Fetching latest release info from: [dim]{url}[/dim]")
        start_time = time.monotonic()

        try:
            async with session.get(url, headers=self.headers) as r:
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(f"Release endpoint answered {r.status} in {duration_ms:.0f} ms")
                if r.status != 200:
                    raise NetworkError(
                        f"Failed to fetch release info. HTTP status: {r.status}"
                    )
                return await r.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Release endpoint unreachable: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Release endpoint returned invalid JSON: {e}") from e

    async def resolve(self) -> ReleaseManifest:
        """
        Resolves the latest release into a manifest.

        Raises:
            NetworkError: The endpoint is unreachable, refuses the request, or
                returns a body that is not a release document.
            AssetNotFoundError: The tree manifest or data archive is missing.
        """
        raw = await self.fetch_latest_release()
        try:
            manifest = ReleasePayload.model_validate(raw).to_manifest()
        except ValidationError as e:
            raise NetworkError(f"Unexpected release document: {e}") from e

        required = (self.config.tree_asset, self.config.archive_asset)
        missing = [name for name in required if name not in manifest.assets]
        if missing:
            raise AssetNotFoundError(
                f"Required assets not found in release '{manifest.tag}': "
                f"{', '.join(missing)}"
            )

        log.info(f"Latest release tag: [cyan]{manifest.tag}[/cyan]")
        for name in required:
            ref = manifest.assets[name]
            log.debug(f"{name} URL: {ref.locator}, Size: {ref.size_bytes}")
        return manifest
