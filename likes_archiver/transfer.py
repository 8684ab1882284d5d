"""HTTP streaming of media files to disk."""
from pathlib import Path
from typing import Optional

import httpx

from likes_archiver.exceptions import TransferError


CHUNK_SIZE = 64 * 1024


def create_client(timeout: float = 30.0, connect_timeout: float = 10.0) -> httpx.AsyncClient:
    """Create an HTTP client with connection pooling for media hosts."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=connect_timeout),
        follow_redirects=True,
        verify=True,
        limits=httpx.Limits(
            max_keepalive_connections=20,
            max_connections=50,
            keepalive_expiry=60.0,
        ),
        http2=True,
        headers=get_headers(),
    )


def get_headers() -> dict:
    """Get headers for media requests."""
    return {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept": "*/*",
        "Accept-Encoding": "identity",
    }


class MediaTransfer:
    """Streams a URL to a destination file; success only on a 2xx response."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = create_client()
            self._owns_client = True
        return self._client

    async def download(self, url: str, dest: Path) -> int:
        """
        Download url into dest.

        Returns:
            Number of bytes written

        Raises:
            TransferError: Non-2xx status or transport failure. A partially
                written file is left for the caller to clean up.
        """
        dest = Path(dest)
        written = 0
        try:
            async with self.client.stream("GET", url) as response:
                if not 200 <= response.status_code < 300:
                    raise TransferError(
                        f"Failed to get '{url}' ({response.status_code})",
                        url=url,
                        status_code=response.status_code,
                    )
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        f.write(chunk)
                        written += len(chunk)
        except httpx.TimeoutException as e:
            raise TransferError(
                f"{type(e).__name__}: request timed out for '{url}'",
                url=url,
                is_timeout=True,
            ) from e
        except httpx.HTTPError as e:
            raise TransferError(f"{type(e).__name__}: {e}", url=url) from e
        return written

    async def aclose(self):
        if self._owns_client and self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> "MediaTransfer":
        return self

    async def __aexit__(self, *exc):
        await self.aclose()
