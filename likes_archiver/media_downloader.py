"""
Per-post media check and download.

For each archived post: honour the retry budget in the error ledger, read the
metadata document, pick what to download for every media entry and hand the
transfers to the shared concurrency limiter.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from likes_archiver.archive import LocalArchive
from likes_archiver.models import ErrorKind, ItemResult
from likes_archiver.resilience.concurrency_limiter import ConcurrencyLimiter
from likes_archiver.resilience.error_classifier import classify
from likes_archiver.resilience.error_ledger import ErrorLedger
from likes_archiver.schemas import MediaItem, MediaVariant, parse_tweet_document
from likes_archiver.transfer import MediaTransfer
from likes_archiver.utils import filename_from_url


def select_best_variant(variants: List[MediaVariant]) -> Optional[MediaVariant]:
    """
    Pick the highest-bitrate rendition.

    Args:
        variants: Renditions in document order; a missing bitrate counts as 0

    Returns:
        The first variant with the maximum bitrate, or None if empty
    """
    if not variants:
        return None
    return max(variants, key=lambda v: v.bitrate or 0)


class _ItemCounters:
    def __init__(self):
        self.downloads = 0
        self.successes = 0
        self.errors = 0
        self.skips = 0


class MediaDownloader:
    """Checks one archived post and downloads whatever media is missing."""

    def __init__(
        self,
        archive: LocalArchive,
        ledger: ErrorLedger,
        limiter: ConcurrencyLimiter,
        transfer: MediaTransfer,
        max_retries: int = 3
    ):
        """
        Initialize downloader.

        Args:
            archive: Local archive view
            ledger: Error ledger (shared with the rest of the run)
            limiter: Concurrency limiter shared by every post of the run
            transfer: Byte transfer client
            max_retries: Posts whose retry count reached this are skipped
        """
        self.archive = archive
        self.ledger = ledger
        self.limiter = limiter
        self.transfer = transfer
        self.max_retries = max_retries
        self._stopped = False
        self._claimed: Set[Path] = set()

    def stop(self):
        """Stop dispatching new transfers; in-flight ones finish."""
        self._stopped = True

    async def process_item(self, item_id: str) -> ItemResult:
        """
        Check and download the media of one post.

        Args:
            item_id: Post id (name of its archive directory)

        Returns:
            ItemResult with status completed, skipped or error
        """
        record = self.ledger.get_error(item_id)
        if record is not None:
            if record.retry_count >= self.max_retries:
                print(f"Skipping {item_id} ({record.kind.value}, retry limit reached: {record.retry_count})")
                return ItemResult(
                    item_id=item_id,
                    status='skipped',
                    reason='max_retry_exceeded',
                    retry_count=record.retry_count
                )
            print(f"Retrying {item_id} ({record.kind.value}, retries so far: {record.retry_count})")

        if self._stopped:
            return ItemResult(item_id=item_id, status='skipped', reason='stopped')

        metadata_path = self.archive.metadata_path(item_id)
        if metadata_path is None:
            paths = [str(p) for p in self.archive.metadata_candidates(item_id)]
            self.ledger.add_error(item_id, ErrorKind.JSON_PARSE_ERROR, {
                'message': 'JSON file not found',
                'paths': paths,
                'tweetId': item_id
            })
            print(f"✗ Metadata not found: {item_id}")
            return ItemResult(item_id=item_id, status='error', reason='json_not_found')

        try:
            document = parse_tweet_document(self.archive.read_metadata(metadata_path))
        except (OSError, ValueError) as e:
            self.ledger.add_error(item_id, ErrorKind.JSON_PARSE_ERROR, {
                'message': str(e),
                'path': str(metadata_path),
                'tweetId': item_id
            })
            print(f"✗ Metadata unreadable: {metadata_path}")
            return ItemResult(item_id=item_id, status='error', reason='json_parse_error')

        if not document.has_media_list:
            return ItemResult(item_id=item_id, status='skipped', reason='no_media')

        item_dir = self.archive.item_dir(item_id)
        counters = _ItemCounters()
        tasks = []

        for media in document.media_entries():
            if media is None:
                print(f"  Malformed media entry in {item_id}")
                counters.skips += 1
            elif media.type == 'photo' and media.image:
                self._plan(tasks, counters, item_id, item_dir, media.image, 'photo')
            elif media.type == 'video' and media.videos is not None:
                self._plan_video(tasks, counters, item_id, item_dir, media)
            else:
                print(f"  Unsupported media type: {media.type or '(none)'}")
                counters.skips += 1

        if tasks:
            await asyncio.gather(*tasks)

        return ItemResult(
            item_id=item_id,
            status='completed',
            downloads=counters.downloads,
            successes=counters.successes,
            errors=counters.errors,
            skips=counters.skips
        )

    def _plan_video(self, tasks: list, counters: _ItemCounters, item_id: str, item_dir: Path, media: MediaItem):
        best = select_best_variant(media.variants)
        if best is None:
            print(f"  No video URL for {item_id}")
            counters.skips += 1
        else:
            self._plan(tasks, counters, item_id, item_dir, best.url, 'video', {'bitrate': best.bitrate})

        if media.cover_url:
            self._plan(tasks, counters, item_id, item_dir, media.cover_url, 'video_cover')

    def _plan(
        self,
        tasks: list,
        counters: _ItemCounters,
        item_id: str,
        item_dir: Path,
        url: str,
        media_type: str,
        extra: Optional[Dict[str, Any]] = None
    ):
        filename = filename_from_url(url)
        if not filename:
            print(f"  Cannot derive a filename from {url}")
            counters.skips += 1
            return

        file_path = item_dir / filename
        if file_path.exists() or file_path in self._claimed:
            print(f"  Already present: {file_path}")
            counters.skips += 1
            return

        if self._stopped:
            counters.skips += 1
            return

        self._claimed.add(file_path)
        counters.downloads += 1
        print(f"  Downloading: {url} -> {file_path}")
        details = {
            'url': url,
            'mediaType': media_type,
            'filename': filename,
            'filePath': str(file_path),
            'tweetId': item_id
        }
        details.update(extra or {})
        tasks.append(self._transfer(counters, item_id, url, file_path, details))

    async def _transfer(
        self,
        counters: _ItemCounters,
        item_id: str,
        url: str,
        file_path: Path,
        details: Dict[str, Any]
    ):
        try:
            await self.limiter.run(lambda: self.transfer.download(url, file_path))
        except Exception as e:
            counters.errors += 1
            kind = classify(e)
            details = dict(details, message=str(e))
            status_code = getattr(e, 'status_code', None)
            if status_code is not None:
                details['statusCode'] = status_code
            if getattr(e, 'is_timeout', False):
                details['isTimeout'] = True
            self.ledger.add_error(item_id, kind, details)
            print(f"  ✗ {url} - {e} [{kind.value}]")
            self._discard(file_path)
        else:
            counters.successes += 1
            self.ledger.remove_error(item_id)
            print(f"  ✓ {url}")
        finally:
            self._claimed.discard(file_path)

    @staticmethod
    def _discard(file_path: Path):
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            print(f"  Could not remove partial file {file_path}: {e}")
