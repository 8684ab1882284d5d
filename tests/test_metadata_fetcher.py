import sys

import pytest

from likes_archiver.archive import LocalArchive
from likes_archiver.metadata_fetcher import CommandMetadataFetcher, interpret_output
from likes_archiver.models import ErrorKind, FetchStatus


@pytest.mark.parametrize(
    "returncode, output, status, kind",
    [
        (1, "Login failed: 429 Too Many Requests", FetchStatus.FAILED, ErrorKind.AUTH_ERROR),
        (1, "Rate limit exceeded, No media found", FetchStatus.FAILED, ErrorKind.RATE_LIMIT),
        (0, "No media found for this tweet", FetchStatus.NO_MEDIA, None),
        (2, "getaddrinfo ENOTFOUND api.twitter.com", FetchStatus.FAILED, ErrorKind.NETWORK_ERROR),
        (1, "", FetchStatus.FAILED, ErrorKind.UNKNOWN_ERROR),
        (0, "Saved tweet-data.json", FetchStatus.SUCCEEDED, None),
    ],
)
def test_interpret_output(returncode: int, output: str, status: FetchStatus, kind) -> None:
    outcome = interpret_output("1234567", returncode, output)

    assert outcome.status == status
    assert outcome.error_kind == kind
    assert outcome.output == output


def test_build_args_adds_credentials_only_when_complete(archive: LocalArchive) -> None:
    anonymous = CommandMetadataFetcher(archive, command="tmd --quiet", username="me")
    logged_in = CommandMetadataFetcher(archive, command="tmd", username="me", password="pw")
    out_dir = str(archive.item_dir("42"))

    assert anonymous.build_args("42") == ["tmd", "--quiet", "-t", "42", "-o", out_dir, "-a"]
    assert logged_in.build_args("42") == ["tmd", "-t", "42", "-o", out_dir, "-a", "-u", "me", "-p", "pw"]


@pytest.mark.asyncio
async def test_fetch_runs_command_and_cleans_empty_dir(archive: LocalArchive) -> None:
    fetcher = CommandMetadataFetcher(archive)
    fetcher.command = [sys.executable, "-c", "print('No media found')"]

    outcome = await fetcher.fetch("42")

    assert outcome.status == FetchStatus.NO_MEDIA
    assert not archive.item_dir("42").exists()


@pytest.mark.asyncio
async def test_fetch_keeps_output_dir_on_success(archive: LocalArchive) -> None:
    script = (
        "import sys, pathlib; out = pathlib.Path(sys.argv[sys.argv.index('-o') + 1]);"
        "(out / 'tweet-data.json').write_text('{}')"
    )
    fetcher = CommandMetadataFetcher(archive)
    fetcher.command = [sys.executable, "-c", script]

    outcome = await fetcher.fetch("42")

    assert outcome.succeeded
    assert archive.exists_local_metadata("42")


@pytest.mark.asyncio
async def test_missing_executable_is_a_failed_outcome(archive: LocalArchive) -> None:
    fetcher = CommandMetadataFetcher(archive, command="definitely-not-a-real-downloader-binary")

    outcome = await fetcher.fetch("42")

    assert outcome.status == FetchStatus.FAILED
    assert outcome.error_kind == ErrorKind.DOWNLOAD_FAILED
    assert not archive.item_dir("42").exists()
