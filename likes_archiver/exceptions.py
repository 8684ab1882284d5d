"""
Exceptions raised by the archiver.
"""

from typing import Optional


class ArchiverError(Exception):
    """Base class for archiver errors."""


class TransferError(ArchiverError):
    """A media transfer did not complete."""

    def __init__(
        self,
        message: str,
        url: str = "",
        status_code: Optional[int] = None,
        is_timeout: bool = False
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.is_timeout = is_timeout


class AuthenticationError(ArchiverError):
    """The downloader rejected our credentials; the whole run must stop."""

    def __init__(self, item_id: str, output: str = ""):
        super().__init__(f"Authentication failed while fetching {item_id}")
        self.item_id = item_id
        self.output = output
