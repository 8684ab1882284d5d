"""
Metadata fetching through the external media downloader.

The downloader is run once per post as
``<command> -t <id> -o <archive>/<id> -a [-u <user> -p <password>]`` and writes
the post's metadata document (and media) into the output directory. Its
combined stdout/stderr decides the outcome.
"""

import asyncio
import shlex
from typing import List, Optional, Protocol

from likes_archiver.archive import LocalArchive
from likes_archiver.models import ErrorKind, FetchOutcome, FetchStatus
from likes_archiver.resilience.error_classifier import classify_text


AUTH_MARKERS = ('Authentication failed', 'Login failed', 'Unauthorized', 'Invalid credentials')
RATE_LIMIT_MARKERS = ('429 Too Many Requests', 'Rate limit exceeded')
NO_MEDIA_MARKERS = ('No media found', 'contains no media')


class MetadataFetcher(Protocol):
    async def fetch(self, item_id: str) -> FetchOutcome:
        ...


def interpret_output(item_id: str, returncode: int, output: str) -> FetchOutcome:
    """
    Map downloader output to a fetch outcome.

    Precedence: auth failure, rate limit, no media, non-zero exit, success.

    Args:
        item_id: Post id
        returncode: Process exit status
        output: Combined stdout and stderr

    Returns:
        FetchOutcome
    """
    if any(marker in output for marker in AUTH_MARKERS):
        return FetchOutcome(item_id, FetchStatus.FAILED, ErrorKind.AUTH_ERROR, output)
    if any(marker in output for marker in RATE_LIMIT_MARKERS):
        return FetchOutcome(item_id, FetchStatus.FAILED, ErrorKind.RATE_LIMIT, output)
    if any(marker in output for marker in NO_MEDIA_MARKERS):
        return FetchOutcome(item_id, FetchStatus.NO_MEDIA, None, output)
    if returncode != 0:
        kind = classify_text(f"exit status {returncode} {output}")
        return FetchOutcome(item_id, FetchStatus.FAILED, kind, output)
    return FetchOutcome(item_id, FetchStatus.SUCCEEDED, None, output)


class CommandMetadataFetcher:
    """Runs the external downloader as a subprocess."""

    def __init__(
        self,
        archive: LocalArchive,
        command: str = "twitter-media-downloader",
        username: str = "",
        password: str = ""
    ):
        """
        Initialize fetcher.

        Args:
            archive: Local archive; output goes to the post's directory
            command: Downloader executable (may include leading arguments)
            username: Account name, passed only together with password
            password: Account password
        """
        self.archive = archive
        self.command = shlex.split(command)
        self.username = username
        self.password = password

    def build_args(self, item_id: str) -> List[str]:
        args = self.command + ['-t', item_id, '-o', str(self.archive.item_dir(item_id)), '-a']
        if self.username and self.password:
            args += ['-u', self.username, '-p', self.password]
        return args

    async def fetch(self, item_id: str) -> FetchOutcome:
        """
        Fetch one post's metadata into the archive.

        Args:
            item_id: Post id

        Returns:
            FetchOutcome; launch failures are reported as FAILED, not raised
        """
        self.archive.item_dir(item_id).mkdir(parents=True, exist_ok=True)
        returncode: Optional[int]
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_args(item_id),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            stdout, _ = await process.communicate()
            returncode = process.returncode
            output = stdout.decode('utf-8', errors='replace')
        except OSError as e:
            returncode = None
            output = f"Failed to start downloader {self.command[0]!r}: {e}"

        if returncode is None:
            outcome = FetchOutcome(item_id, FetchStatus.FAILED, ErrorKind.DOWNLOAD_FAILED, output)
        else:
            outcome = interpret_output(item_id, returncode, output)

        if not outcome.succeeded:
            self.archive.remove_if_empty(item_id)
        return outcome
