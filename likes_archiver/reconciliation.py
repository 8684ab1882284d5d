"""
Reconciliation of the processed set against the archive on disk.

The metadata document in a post's directory is the ground truth; the
processed set is a cache of it.
"""

from typing import List, Sequence

from likes_archiver.archive import LocalArchive
from likes_archiver.batch_runner import process_batch
from likes_archiver.models import ErrorKind, ReconciliationReport
from likes_archiver.resilience.error_ledger import ErrorLedger
from likes_archiver.resilience.progress_tracker import ProgressTracker


class Reconciler:
    """Aligns the processed set with the archive directory."""

    def __init__(
        self,
        archive: LocalArchive,
        tracker: ProgressTracker,
        ledger: ErrorLedger,
        batch_size: int = 1000
    ):
        self.archive = archive
        self.tracker = tracker
        self.ledger = ledger
        self.batch_size = batch_size

    def run(self) -> ReconciliationReport:
        """
        Run both passes and persist the result.

        Returns:
            ReconciliationReport listing removed and newly added ids
        """
        report = ReconciliationReport()
        self.ledger.set_batch_mode(True)
        try:
            successful_ids = self.tracker.get_successful_ids()
            print(f"\nValidating {len(successful_ids)} successful posts...")
            report.not_found = process_batch(
                successful_ids, self._validate_successful, self.batch_size
            )

            archive_ids = self.archive.list_item_ids()
            print(f"\nScanning {len(archive_ids)} archive directories...")
            report.newly_added = process_batch(
                archive_ids, self._adopt_untracked, self.batch_size
            )
        finally:
            self.ledger.flush()
            self.ledger.set_batch_mode(False)

        if report.changed:
            self.tracker.save_state()
        return report

    def _validate_successful(self, item_ids: Sequence[str]) -> List[str]:
        missing = []
        for item_id in item_ids:
            if self.archive.exists_local_metadata(item_id):
                if self.ledger.has_error(item_id):
                    self.ledger.remove_error(item_id)
                continue

            missing.append(item_id)
            if self.archive.remove_item(item_id):
                print(f"Deleted: {item_id}")
            self.tracker.remove(item_id, save=False)
            self.ledger.remove_error(item_id)
            self.ledger.add_error(item_id, ErrorKind.NOT_FOUND, {
                'message': 'tweet-data.json or {id}.json does not exist'
            })
        return missing

    def _adopt_untracked(self, item_ids: Sequence[str]) -> List[str]:
        added = []
        for item_id in item_ids:
            if self.tracker.is_processed(item_id):
                continue
            if not self.archive.exists_local_metadata(item_id):
                continue
            self.tracker.mark_successful(item_id, save=False)
            added.append(item_id)
            print(f"Added: {item_id}")
            if self.ledger.has_error(item_id):
                self.ledger.remove_error(item_id)
        return added
