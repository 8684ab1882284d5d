"""
Durable per-post failure records with running statistics.
Persists to a JSON document for inspection and retry across runs.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from likes_archiver.models import ErrorKind, ErrorRecord
from likes_archiver.utils import backup_file, utc_now_iso, write_json_atomic


def _empty_statistics() -> dict:
    return {'total_errors': 0, 'by_type': {}, 'by_date': {}}


class ErrorLedger:
    """Keyed store of failure records; the only writer of the error file."""

    def __init__(
        self,
        error_file: str = "error-tweets.json",
        batch_mode: bool = False,
        autosave_every: Optional[int] = None,
        now_fn: Callable[[], str] = utc_now_iso
    ):
        """
        Initialize ledger and load any existing error file.

        Args:
            error_file: Path of the JSON document
            batch_mode: Defer persistence until flush() when True
            autosave_every: In batch mode, flush after this many mutations
            now_fn: Returns the current UTC timestamp as an ISO string
        """
        self.error_file = Path(error_file)
        self.batch_mode = batch_mode
        self.autosave_every = autosave_every
        self._now = now_fn
        self._unsaved = 0
        self._records: Dict[str, ErrorRecord] = {}
        self._statistics = _empty_statistics()
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self):
        """Load the error file, falling back to an empty ledger."""
        self._records = {}
        self._statistics = _empty_statistics()
        self._unsaved = 0

        if not self.error_file.exists():
            return

        try:
            with open(self.error_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            records = {
                item_id: ErrorRecord.from_dict(item_id, raw)
                for item_id, raw in (data.get('errors') or {}).items()
            }
            statistics = data.get('statistics')
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            print(f"⚠️  Error file unreadable, starting with an empty ledger: {e}")
            backup_file(self.error_file, "corrupted")
            return

        self._records = records
        if self._valid_statistics(statistics):
            self._statistics = {
                'total_errors': int(statistics['total_errors']),
                'by_type': dict(statistics['by_type']),
                'by_date': dict(statistics['by_date'])
            }
        else:
            self._rebuild_statistics()

    @staticmethod
    def _valid_statistics(statistics: Any) -> bool:
        return (
            isinstance(statistics, dict)
            and isinstance(statistics.get('total_errors'), int)
            and isinstance(statistics.get('by_type'), dict)
            and isinstance(statistics.get('by_date'), dict)
        )

    def _rebuild_statistics(self):
        self._statistics = _empty_statistics()
        for record in self._records.values():
            self._count(record, 1)

    def save(self):
        """Write the whole ledger to disk."""
        data = {
            'errors': {item_id: r.to_dict() for item_id, r in self._records.items()},
            'statistics': self.get_statistics()
        }
        try:
            write_json_atomic(self.error_file, data)
        except OSError as e:
            print(f"Failed to save error file: {e}")
            raise
        self._unsaved = 0

    def flush(self):
        """Persist deferred changes (no-op when nothing changed)."""
        if self._unsaved:
            self.save()

    def set_batch_mode(self, enabled: bool):
        """
        Toggle deferred persistence.

        Args:
            enabled: When True, mutations are only written by flush()/save()
        """
        self.batch_mode = enabled

    def _persist(self):
        self._unsaved += 1
        if not self.batch_mode:
            self.save()
        elif self.autosave_every and self._unsaved >= self.autosave_every:
            self.save()

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _count(self, record: ErrorRecord, delta: int):
        stats = self._statistics
        stats['total_errors'] += delta
        for bucket, key in (('by_type', record.kind.value), ('by_date', record.date)):
            value = stats[bucket].get(key, 0) + delta
            if value > 0:
                stats[bucket][key] = value
            else:
                stats[bucket].pop(key, None)

    def get_statistics(self) -> dict:
        """
        Get aggregate statistics.

        Returns:
            Dict with total_errors, by_type and by_date counts
        """
        return {
            'total_errors': self._statistics['total_errors'],
            'by_type': dict(self._statistics['by_type']),
            'by_date': dict(self._statistics['by_date'])
        }

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def add_error(
        self,
        item_id: str,
        kind: ErrorKind,
        details: Optional[Dict[str, Any]] = None
    ) -> ErrorRecord:
        """
        Record a failure for a post, replacing any earlier record.

        The retry count carries over from the previous record regardless of
        its kind.

        Args:
            item_id: Post id
            kind: Classified error kind
            details: Diagnostic context (url, message, status code, ...)

        Returns:
            The stored ErrorRecord
        """
        kind = ErrorKind(kind)
        previous = self._records.get(item_id)
        if previous is not None:
            self._count(previous, -1)

        record = ErrorRecord(
            item_id=item_id,
            kind=kind,
            timestamp=self._now(),
            retry_count=(previous.retry_count if previous else 0) + 1,
            details=dict(details or {})
        )
        self._records[item_id] = record
        self._count(record, 1)
        self._persist()
        return record

    def has_error(self, item_id: str) -> bool:
        return item_id in self._records

    def get_error(self, item_id: str) -> Optional[ErrorRecord]:
        return self._records.get(item_id)

    def remove_error(self, item_id: str) -> bool:
        """
        Delete a post's record (after a success or an operator clear).

        Args:
            item_id: Post id

        Returns:
            True if a record was removed
        """
        record = self._records.pop(item_id, None)
        if record is None:
            return False
        self._count(record, -1)
        self._persist()
        return True

    clear_error = remove_error

    def get_errors_by_type(self, kind: ErrorKind) -> List[ErrorRecord]:
        kind = ErrorKind(kind)
        return [r for r in self._records.values() if r.kind == kind]

    def get_errors_by_retry_count(self, min_retry_count: int) -> List[ErrorRecord]:
        return [r for r in self._records.values() if r.retry_count >= min_retry_count]

    def get_error_list(self) -> List[ErrorRecord]:
        return list(self._records.values())

    def clear_all_errors(self):
        """Drop every record and reset statistics."""
        self._records = {}
        self._statistics = _empty_statistics()
        self._persist()

    def __len__(self) -> int:
        return len(self._records)

    def print_summary(self, recent_days: int = 7):
        """Print totals by kind and for the most recent dates."""
        stats = self.get_statistics()
        print("\n=== Error statistics ===")
        print(f"Total errors: {stats['total_errors']}")

        if stats['by_type']:
            print("\nBy type:")
            for kind, count in stats['by_type'].items():
                print(f"  {kind}: {count}")

        if stats['by_date']:
            print("\nBy date:")
            for date, count in sorted(stats['by_date'].items(), reverse=True)[:recent_days]:
                print(f"  {date}: {count}")
