"""
HTTP Transport.

Fetches manifest documents and resource bodies:
- Manifest fetch into memory
- Streaming resource download to a caller-chosen (staging) path
- Network failures reported separately from HTTP status failures
- Optional bounded retry for network failures
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any

import httpx

from preload_sync import __version__
from preload_sync.config import Settings
from preload_sync.errors import NetworkError, RemoteStatusError, WriteError


logger = logging.getLogger(__name__)


class Transport:
    """
    Async HTTP transport built on httpx.

    Example:
        async with Transport(timeout=30.0) as transport:
            body = await transport.fetch("https://updates.example.com/preload.json")
            await transport.fetch_to_file(url, Path("resources/app.bin.tmp"))
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize transport.

        Args:
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts after a network failure (0 = none)
            retry_delay: Base delay between attempts, multiplied by attempt number
            transport: Optional httpx transport (used for testing)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": f"preload-sync/{__version__}"},
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _retrying(self, url: str, attempt_fn: Any) -> Any:
        """Run ``attempt_fn`` retrying only on network errors."""
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                return await attempt_fn()
            except NetworkError as e:
                if attempt < attempts - 1:
                    logger.warning(
                        "Network error fetching %s (attempt %d/%d): %s",
                        url, attempt + 1, attempts, e,
                    )
                    await asyncio.sleep(self.retry_delay * (attempt + 1))
                    continue
                raise
        raise NetworkError("Max retries exceeded", url)

    async def fetch(self, url: str) -> bytes:
        """
        Fetch a document into memory.

        Raises:
            NetworkError: Connection, DNS, timeout or body decoding failure
            RemoteStatusError: Non-2xx response
        """

        async def attempt() -> bytes:
            client = await self._get_client()
            try:
                response = await client.get(url)
            except (httpx.RequestError, httpx.InvalidURL) as e:
                raise NetworkError(f"Failed to fetch {url}: {e}", url) from e
            if not response.is_success:
                raise RemoteStatusError(response.status_code, url)
            return response.content

        return await self._retrying(url, attempt)

    async def fetch_to_file(self, url: str, destination: Path | str) -> int:
        """
        Stream a resource body to ``destination`` and flush it to storage.

        Anything partially written is removed on failure.

        Returns:
            Number of bytes written

        Raises:
            NetworkError: Connection, DNS, timeout or body decoding failure
            RemoteStatusError: Non-2xx response
            WriteError: Local file could not be written
        """
        destination = Path(destination)

        async def attempt() -> int:
            client = await self._get_client()
            written = 0
            try:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise RemoteStatusError(response.status_code, url)
                    with destination.open("wb") as out:
                        async for chunk in response.aiter_bytes():
                            out.write(chunk)
                            written += len(chunk)
                        out.flush()
                        os.fsync(out.fileno())
            except (httpx.RequestError, httpx.InvalidURL) as e:
                destination.unlink(missing_ok=True)
                raise NetworkError(f"Failed to download {url}: {e}", url) from e
            except OSError as e:
                destination.unlink(missing_ok=True)
                raise WriteError(
                    f"Failed to write {destination}: {e}", destination
                ) from e
            return written

        return await self._retrying(url, attempt)


def create_transport(settings: Settings) -> Transport:
    """Create a transport from settings."""
    return Transport(
        timeout=settings.sync.timeout_seconds,
        max_retries=settings.sync.max_retries,
        retry_delay=settings.sync.retry_delay_seconds,
    )
