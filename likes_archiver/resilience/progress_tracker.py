"""
Progress tracking for resumable archive runs.
Persists the terminal outcome of every post to disk for recovery after interruptions.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from likes_archiver.models import ProcessedState
from likes_archiver.utils import backup_file, utc_now_iso, write_json_atomic


SUCCESSFUL = 'successful'
FAILED = 'failed'
NO_MEDIA = 'noMedia'

BUCKETS = (SUCCESSFUL, FAILED, NO_MEDIA)


class ProgressTracker:
    """Manages the processed set: which posts already reached a terminal outcome."""

    def __init__(self, state_file: str = "processed-tweets.json"):
        """
        Initialize tracker with its state file.

        Args:
            state_file: JSON document holding the three outcome buckets
        """
        self.state_file = Path(state_file)
        self._state = ProcessedState()

    def _buckets(self) -> Dict[str, Dict[str, str]]:
        return {
            SUCCESSFUL: self._state.successful,
            FAILED: self._state.failed,
            NO_MEDIA: self._state.no_media
        }

    def load_state(self) -> ProcessedState:
        """
        Load existing state from disk.

        Returns:
            ProcessedState, empty if the file is missing or unreadable
        """
        self._state = ProcessedState()
        if not self.state_file.exists():
            return self._state

        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            loaded = {bucket: dict(data.get(bucket) or {}) for bucket in BUCKETS}
        except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            print(f"Processed file corrupted: {e}")
            backup_file(self.state_file, "corrupted")
            return self._state

        # A hand-edited file may list an id twice; the first bucket wins
        seen = set()
        for bucket in BUCKETS:
            entries = loaded[bucket]
            for item_id in list(entries):
                if item_id in seen:
                    del entries[item_id]
                seen.add(item_id)

        self._state = ProcessedState(
            successful=loaded[SUCCESSFUL],
            failed=loaded[FAILED],
            no_media=loaded[NO_MEDIA]
        )
        return self._state

    def save_state(self):
        """Atomically save state to disk."""
        data = {
            SUCCESSFUL: self._state.successful,
            FAILED: self._state.failed,
            NO_MEDIA: self._state.no_media
        }
        try:
            write_json_atomic(self.state_file, data)
        except OSError as e:
            print(f"Failed to save processed state: {e}")
            raise

    @property
    def state(self) -> ProcessedState:
        return self._state

    def _mark(self, item_id: str, bucket: str, timestamp: Optional[str], save: bool):
        buckets = self._buckets()
        for name, entries in buckets.items():
            if name != bucket:
                entries.pop(item_id, None)
        buckets[bucket][item_id] = timestamp or utc_now_iso()
        if save:
            self.save_state()

    def mark_successful(self, item_id: str, timestamp: Optional[str] = None, save: bool = True):
        """
        Mark a post as fully fetched.

        Args:
            item_id: Post id
            timestamp: Completion time, defaults to now
            save: Persist immediately
        """
        self._mark(item_id, SUCCESSFUL, timestamp, save)

    def mark_failed(self, item_id: str, timestamp: Optional[str] = None, save: bool = True):
        """Mark a post as permanently failed."""
        self._mark(item_id, FAILED, timestamp, save)

    def mark_no_media(self, item_id: str, timestamp: Optional[str] = None, save: bool = True):
        """Mark a post as having nothing to download."""
        self._mark(item_id, NO_MEDIA, timestamp, save)

    def remove(self, item_id: str, save: bool = True) -> Optional[str]:
        """
        Forget a post's outcome.

        Args:
            item_id: Post id
            save: Persist immediately

        Returns:
            Bucket the post was removed from, or None
        """
        bucket = self.bucket_of(item_id)
        if bucket is None:
            return None
        del self._buckets()[bucket][item_id]
        if save:
            self.save_state()
        return bucket

    def bucket_of(self, item_id: str) -> Optional[str]:
        for name, entries in self._buckets().items():
            if item_id in entries:
                return name
        return None

    def is_processed(self, item_id: str) -> bool:
        return self.bucket_of(item_id) is not None

    def filter_unprocessed(self, item_ids: Iterable[str]) -> List[str]:
        """
        Drop posts that already reached a terminal outcome, keeping order.

        Args:
            item_ids: Candidate post ids

        Returns:
            Ids not present in any bucket
        """
        return [i for i in item_ids if not self.is_processed(i)]

    def get_successful_ids(self) -> List[str]:
        return list(self._state.successful)

    def reset(self):
        """Clear all progress state (with backup)."""
        if self.state_file.exists():
            backup_file(self.state_file, "reset")
            self.state_file.unlink()
        self._state = ProcessedState()

    def get_stats(self) -> dict:
        """
        Get current progress statistics.

        Returns:
            Dict with per-bucket counts and total
        """
        successful = len(self._state.successful)
        failed = len(self._state.failed)
        no_media = len(self._state.no_media)
        return {
            'successful': successful,
            'failed': failed,
            'no_media': no_media,
            'total': successful + failed + no_media
        }
