"""
Main orchestrator for the likes archiver.
Coordinates all components and manages the fetch, media and reconcile runs.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from likes_archiver.archive import LocalArchive
from likes_archiver.batch_runner import process_batch_async
from likes_archiver.config import ArchiverConfig
from likes_archiver.exceptions import AuthenticationError
from likes_archiver.likes_export import extract_like_ids
from likes_archiver.media_downloader import MediaDownloader
from likes_archiver.metadata_fetcher import CommandMetadataFetcher, MetadataFetcher
from likes_archiver.models import (
    ErrorKind,
    FetchOutcome,
    FetchRunResult,
    FetchStatus,
    MediaRunResult,
    ReconciliationReport,
)
from likes_archiver.reconciliation import Reconciler
from likes_archiver.resilience.concurrency_limiter import ConcurrencyLimiter
from likes_archiver.resilience.error_ledger import ErrorLedger
from likes_archiver.resilience.progress_tracker import ProgressTracker
from likes_archiver.resilience.retry_handler import RetryHandler
from likes_archiver.transfer import MediaTransfer, create_client
from likes_archiver.utils import RunLog, utc_now_iso


# Fetch failures keep these kinds in the ledger; anything else is download_failed
_FETCH_ERROR_KINDS = {ErrorKind.RATE_LIMIT, ErrorKind.AUTH_ERROR, ErrorKind.NETWORK_ERROR}


class ArchiveController:
    """Main orchestrator that coordinates all archiver components."""

    VALID_MODES = ['fetch', 'media', 'reconcile']

    def __init__(
        self,
        config: Optional[ArchiverConfig] = None,
        fetcher: Optional[MetadataFetcher] = None,
        transfer: Optional[MediaTransfer] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize controller with configuration.

        Args:
            config: ArchiverConfig instance, uses defaults if None
            fetcher: Metadata fetcher, defaults to the external downloader command
            transfer: Media transfer client, created lazily if None
            sleep: Awaitable delay used for rate-limit waits
        """
        self.config = config or ArchiverConfig()
        self._stopped = False
        self._started_at: Optional[str] = None

        self.archive = LocalArchive(self.config.archive_dir)
        self.progress = ProgressTracker(self.config.processed_file)
        self.ledger = ErrorLedger(self.config.error_file)
        self.retry_handler = RetryHandler(config=self.config.retry, sleep=sleep)
        self.fetcher = fetcher or CommandMetadataFetcher(
            self.archive,
            command=self.config.downloader_command,
            username=self.config.username,
            password=self.config.password
        )
        self._transfer = transfer
        self._downloader: Optional[MediaDownloader] = None
        self.log = RunLog(self.config.log_file)

    def run(self, mode: str = "fetch"):
        """
        Run the archiver in the given mode.

        Args:
            mode: "fetch", "media" or "reconcile"

        Returns:
            FetchRunResult, MediaRunResult or ReconciliationReport
        """
        if mode not in self.VALID_MODES:
            raise ValueError(f"Invalid mode: {mode}. Must be one of {self.VALID_MODES}")

        if mode == "reconcile":
            return self.reconcile()
        if mode == "media":
            return asyncio.run(self.download_media())
        return asyncio.run(self.fetch_likes())

    # ------------------------------------------------------------------
    # Fetch run
    # ------------------------------------------------------------------

    async def fetch_likes(self, item_ids: Optional[List[str]] = None) -> FetchRunResult:
        """
        Fetch metadata for every liked post not yet processed.

        Args:
            item_ids: Worklist; read from like.js if None

        Returns:
            FetchRunResult
        """
        self._stopped = False
        self._started_at = utc_now_iso()
        log = self.log

        if self.config.has_credentials:
            log(f'Logging in as "{self.config.username}"')
        else:
            log("No credentials configured, running anonymously")

        self.archive.ensure_root()
        self.progress.load_state()
        self.ledger.set_batch_mode(True)

        if item_ids is None:
            log(f"Reading liked post ids from {self.config.like_js_path}...")
            item_ids = extract_like_ids(self.config.like_js_path)
            log(f"Extracted {len(item_ids)} liked post ids")

        pending = self.progress.filter_unprocessed(item_ids)
        log(f"Unprocessed posts: {len(pending)}")

        counts = {FetchStatus.SUCCEEDED: 0, FetchStatus.NO_MEDIA: 0, FetchStatus.FAILED: 0}
        halted = False
        halt_reason = ""

        async def fetch_one(item_id: str) -> FetchOutcome:
            log(f"Fetching: {item_id}")
            try:
                outcome = await self.retry_handler.execute_with_retry(self.fetcher.fetch, item_id)
            except AuthenticationError as e:
                self.progress.mark_failed(item_id)
                self.ledger.add_error(item_id, ErrorKind.AUTH_ERROR, {
                    'message': str(e),
                    'output': e.output[-2000:]
                })
                counts[FetchStatus.FAILED] += 1
                log(f"✗ Authentication error: {item_id} - {e.output.strip()}")
                log("Authentication failed. Check the credentials in config.json or the environment")
                raise
            self._record_fetch(outcome)
            counts[outcome.status] += 1
            return outcome

        try:
            await process_batch_async(
                pending,
                fetch_one,
                batch_size=self.config.fetch_batch_size,
                concurrent=False,
                after_chunk=self.ledger.flush,
                delay=self.config.batch_delay,
                should_stop=lambda: self._stopped
            )
        except AuthenticationError as e:
            halted = True
            halt_reason = str(e)
        finally:
            self.ledger.flush()
            self.ledger.set_batch_mode(False)
            self.progress.save_state()

        stats = self.progress.get_stats()
        log("Fetch run finished:")
        log(f"- successful: {stats['successful']}")
        log(f"- failed: {stats['failed']}")
        log(f"- no media: {stats['no_media']}")

        return self._create_fetch_result(
            success=not halted and not self._stopped,
            total_ids=len(item_ids),
            total_pending=len(pending),
            counts=counts,
            halted=halted,
            halt_reason=halt_reason
        )

    def _record_fetch(self, outcome: FetchOutcome):
        item_id = outcome.item_id
        if outcome.status == FetchStatus.SUCCEEDED:
            self.progress.mark_successful(item_id)
            self.ledger.remove_error(item_id)
            self.log(f"✓ Fetched: {item_id}")
        elif outcome.status == FetchStatus.NO_MEDIA:
            self.progress.mark_no_media(item_id)
            self.ledger.remove_error(item_id)
            self.log(f"No media: {item_id}")
        else:
            kind = outcome.error_kind if outcome.error_kind in _FETCH_ERROR_KINDS else ErrorKind.DOWNLOAD_FAILED
            self.progress.mark_failed(item_id)
            self.ledger.add_error(item_id, kind, {
                'message': outcome.output.strip()[-500:],
                'attempts': outcome.attempts,
                'classified_as': outcome.error_kind.value if outcome.error_kind else None
            })
            self.log(f"✗ Failed: {item_id} ({kind.value}) - {outcome.output.strip()[-200:]}")

    # ------------------------------------------------------------------
    # Media run
    # ------------------------------------------------------------------

    async def download_media(self, item_ids: Optional[List[str]] = None) -> MediaRunResult:
        """
        Check every archived post and download missing media.

        Args:
            item_ids: Posts to check; every archive directory if None

        Returns:
            MediaRunResult
        """
        self._stopped = False
        print("=== Media check and download ===")
        self.ledger.set_batch_mode(True)

        if item_ids is None:
            item_ids = self.archive.list_item_ids()
        print(f"Posts to check: {len(item_ids)}")
        if not item_ids:
            print("Nothing to process.")
            self.ledger.set_batch_mode(False)
            return MediaRunResult()

        download = self.config.download
        transfer = self._transfer or MediaTransfer(
            create_client(download.request_timeout, download.connect_timeout)
        )
        self._downloader = MediaDownloader(
            self.archive,
            self.ledger,
            ConcurrencyLimiter(download.max_concurrent),
            transfer,
            max_retries=download.max_item_retries
        )

        try:
            results = await process_batch_async(
                item_ids,
                self._downloader.process_item,
                batch_size=download.batch_size,
                concurrent=True,
                after_chunk=self.ledger.flush,
                should_stop=lambda: self._stopped
            )
        finally:
            print("\nSaving error file...")
            self.ledger.save()
            self.ledger.set_batch_mode(False)
            if self._transfer is None:
                await transfer.aclose()

        result = MediaRunResult.from_results(results, stopped=self._stopped)
        self._print_media_summary(result)
        return result

    def _print_media_summary(self, result: MediaRunResult):
        print("\n=== Results ===")
        print(f"Posts processed:     {result.total}")
        print(f"Completed:           {result.completed}")
        print(f"Skipped:             {result.skipped}")
        print(f"Errors:              {result.error}")
        print(f"Downloads succeeded: {result.total_successes}")
        print(f"Downloads failed:    {result.total_errors}")
        print(f"Files skipped:       {result.total_skips}")
        print(f"Downloads attempted: {result.total_downloads}")

        self.ledger.print_summary()
        if self.ledger.get_statistics()['total_errors'] > 0:
            print("\n=== Handling errors ===")
            print("Retry a post:            likes-archiver errors retry <id>")
            print("List errors:             likes-archiver errors list")
            print("Errors of one type:      likes-archiver errors type <kind>")
            print("Clear every error:       likes-archiver errors clear-all")

    # ------------------------------------------------------------------
    # Reconcile run
    # ------------------------------------------------------------------

    def reconcile(self) -> ReconciliationReport:
        """
        Align the processed set with the archive directory.

        Returns:
            ReconciliationReport
        """
        print("=== Reconciling processed posts with the archive ===")
        self.progress.load_state()
        stats = self.progress.get_stats()
        print(f"Successful posts: {stats['successful']}")

        report = Reconciler(
            self.archive,
            self.progress,
            self.ledger,
            batch_size=self.config.reconcile_batch_size
        ).run()

        print("\n=== Results ===")
        if not report.not_found:
            print("Every successful post has its metadata document.")
        else:
            print("Marked successful but missing tweet-data.json / {id}.json:")
            for item_id in report.not_found:
                print(item_id)
            print(f"Total: {len(report.not_found)}")

        if report.newly_added:
            print("\nHave a metadata document but were not recorded:")
            for item_id in report.newly_added:
                print(item_id)
            print(f"Added: {len(report.newly_added)}")
        return report

    # ------------------------------------------------------------------

    def stop(self):
        """Gracefully stop: finish in-flight work, issue nothing new, keep state."""
        print("\nStopping gracefully...")
        self._stopped = True
        if self._downloader is not None:
            self._downloader.stop()

    def get_status(self) -> dict:
        """
        Get current status and statistics.

        Returns:
            Dict with status info
        """
        return {
            'progress': self.progress.get_stats(),
            'errors': self.ledger.get_statistics(),
            'retry': self.retry_handler.get_stats(),
            'stopped': self._stopped
        }

    def _create_fetch_result(
        self,
        success: bool,
        total_ids: int,
        total_pending: int,
        counts: dict,
        halted: bool,
        halt_reason: str
    ) -> FetchRunResult:
        """Create FetchRunResult with calculated fields."""
        completed_at = utc_now_iso()
        started_at = self._started_at or completed_at
        duration = (_parse_iso(completed_at) - _parse_iso(started_at)).total_seconds()

        return FetchRunResult(
            success=success,
            started_at=started_at,
            completed_at=completed_at,
            total_ids=total_ids,
            total_pending=total_pending,
            total_succeeded=counts[FetchStatus.SUCCEEDED],
            total_no_media=counts[FetchStatus.NO_MEDIA],
            total_failed=counts[FetchStatus.FAILED],
            halted=halted,
            halt_reason=halt_reason,
            duration_seconds=duration
        )


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))
