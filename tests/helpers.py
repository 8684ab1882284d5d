from typing import Callable, Dict, List, Optional

import httpx

from likes_archiver.transfer import MediaTransfer


FIXED_NOW = "2024-05-01T10:00:00.000000Z"


def make_transfer(handler: Callable[[httpx.Request], httpx.Response]) -> MediaTransfer:
    """Transfer client whose requests are answered by ``handler``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MediaTransfer(client)


class RecordingHandler:
    """MockTransport handler that serves fixed bodies and records requested URLs."""

    def __init__(self, status_by_url: Optional[Dict[str, int]] = None, body: bytes = b"media-bytes"):
        self.status_by_url = status_by_url or {}
        self.body = body
        self.requested: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        status = self.status_by_url.get(url, 200)
        return httpx.Response(status, content=self.body if status == 200 else b"")
