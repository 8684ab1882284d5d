"""
Data models for the likes archiver.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Closed set of failure classifications stored in the error ledger."""
    DOWNLOAD_FAILED = "download_failed"
    JSON_PARSE_ERROR = "json_parse_error"
    MEDIA_404 = "media_404"
    MEDIA_403 = "media_403"
    MEDIA_DOWNLOAD_FAILED = "media_download_failed"
    RATE_LIMIT = "rate_limit"
    AUTH_ERROR = "auth_error"
    NETWORK_ERROR = "network_error"
    UNKNOWN_ERROR = "unknown_error"
    NOT_FOUND = "not_found"


ERROR_KIND_DESCRIPTIONS = {
    ErrorKind.DOWNLOAD_FAILED: "post data download failed",
    ErrorKind.JSON_PARSE_ERROR: "metadata document missing or unreadable",
    ErrorKind.MEDIA_404: "media file returned 404",
    ErrorKind.MEDIA_403: "media file returned 403",
    ErrorKind.MEDIA_DOWNLOAD_FAILED: "media file download failed",
    ErrorKind.RATE_LIMIT: "rate limited",
    ErrorKind.AUTH_ERROR: "authentication failed",
    ErrorKind.NETWORK_ERROR: "network error",
    ErrorKind.UNKNOWN_ERROR: "other error",
    ErrorKind.NOT_FOUND: "required local files are missing",
}


@dataclass
class ErrorRecord:
    """Failure state of a single liked post."""
    item_id: str
    kind: ErrorKind
    timestamp: str
    retry_count: int = 1
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def date(self) -> str:
        """UTC calendar date (YYYY-MM-DD) the record was written."""
        return self.timestamp.split('T')[0]

    def to_dict(self) -> dict:
        return {
            'type': self.kind.value,
            'timestamp': self.timestamp,
            'details': self.details,
            'retry_count': self.retry_count
        }

    @classmethod
    def from_dict(cls, item_id: str, data: dict) -> "ErrorRecord":
        kind_value = data.get('type', ErrorKind.UNKNOWN_ERROR.value)
        try:
            kind = ErrorKind(kind_value)
        except ValueError:
            kind = ErrorKind.UNKNOWN_ERROR
        timestamp = data['timestamp']
        if not isinstance(timestamp, str):
            raise ValueError(f"error record {item_id} has a non-string timestamp: {timestamp!r}")
        return cls(
            item_id=item_id,
            kind=kind,
            timestamp=timestamp,
            retry_count=int(data.get('retry_count', 1)),
            details=dict(data.get('details') or {})
        )


class FetchStatus(str, Enum):
    """Outcome of one metadata fetch attempt."""
    SUCCEEDED = "succeeded"
    NO_MEDIA = "no_media"
    FAILED = "failed"


@dataclass
class FetchOutcome:
    """Result of fetching one post's metadata with the external downloader."""
    item_id: str
    status: FetchStatus
    error_kind: Optional[ErrorKind] = None
    output: str = ""
    attempts: int = 1

    @property
    def succeeded(self) -> bool:
        return self.status == FetchStatus.SUCCEEDED


@dataclass
class ItemResult:
    """Result of checking and downloading the media of one archived post."""
    item_id: str
    status: str
    reason: str = ""
    downloads: int = 0
    successes: int = 0
    errors: int = 0
    skips: int = 0
    retry_count: int = 0


@dataclass
class BatchProgress:
    """Progress observation emitted after each chunk."""
    completed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.completed / self.total * 100)


@dataclass
class ProcessedState:
    """Terminal outcomes per post id, used to skip finished work on resume."""
    successful: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    no_media: Dict[str, str] = field(default_factory=dict)


@dataclass
class ReconciliationReport:
    """Differences found between the processed set and the archive."""
    not_found: List[str] = field(default_factory=list)
    newly_added: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.not_found or self.newly_added)


@dataclass
class FetchRunResult:
    """Result of a metadata fetch run."""
    success: bool
    started_at: str
    completed_at: str
    total_ids: int
    total_pending: int
    total_succeeded: int = 0
    total_no_media: int = 0
    total_failed: int = 0
    halted: bool = False
    halt_reason: str = ""
    duration_seconds: float = 0.0


@dataclass
class MediaRunResult:
    """Result of a media check-and-download run."""
    total: int = 0
    completed: int = 0
    skipped: int = 0
    error: int = 0
    total_downloads: int = 0
    total_successes: int = 0
    total_errors: int = 0
    total_skips: int = 0
    stopped: bool = False

    @classmethod
    def from_results(cls, results: List[ItemResult], stopped: bool = False) -> "MediaRunResult":
        return cls(
            total=len(results),
            completed=sum(1 for r in results if r.status == 'completed'),
            skipped=sum(1 for r in results if r.status == 'skipped'),
            error=sum(1 for r in results if r.status == 'error'),
            total_downloads=sum(r.downloads for r in results),
            total_successes=sum(r.successes for r in results),
            total_errors=sum(r.errors for r in results),
            total_skips=sum(r.skips for r in results),
            stopped=stopped
        )
