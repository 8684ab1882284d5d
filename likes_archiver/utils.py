"""
Shared utility functions for the archiver.
"""

import json
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Optional
from urllib.parse import unquote, urlsplit


def utc_now_iso() -> str:
    """
    Current UTC time in ISO-8601 form with a ``Z`` suffix.

    Returns:
        Timestamp string (e.g., 2024-05-01T12:00:00.123456Z)
    """
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def filename_from_url(url: str) -> Optional[str]:
    """
    Derive the local filename for a media URL from its path component.

    Args:
        url: Media URL (e.g., https://pbs.twimg.com/media/abc.jpg?name=large)

    Returns:
        Last path segment (e.g., abc.jpg) or None if the URL has none
    """
    if not url:
        return None
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None

    name = PurePosixPath(unquote(parts.path)).name
    if not name or name in ('.', '..'):
        return None
    return name


def write_json_atomic(path: Path, data: Any):
    """
    Atomically write data as JSON: write to a temp file, then rename.

    Args:
        path: Destination file
        data: JSON-serialisable document
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_name(path.name + ".tmp")
    try:
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        # replace() is atomic on both POSIX and Windows
        temp_file.replace(path)
    except Exception:
        if temp_file.exists():
            temp_file.unlink()
        raise


def backup_file(path: Path, label: str) -> Optional[Path]:
    """
    Copy a state file aside before it is discarded.

    Args:
        path: File to back up
        label: Tag placed in the backup name (e.g., "corrupted")

    Returns:
        Backup path, or None if nothing was copied
    """
    path = Path(path)
    if not path.exists():
        return None

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = path.with_name(f"{path.stem}.{label}.{timestamp}{path.suffix}")
    try:
        shutil.copy2(path, backup_path)
        print(f"Backed up {path.name} to {backup_path}")
        return backup_path
    except OSError as e:
        print(f"Failed to back up {path}: {e}")
        return None


class RunLog:
    """Prints status lines and appends them, timestamped, to a log file."""

    def __init__(self, log_file: Optional[Path] = None):
        self.log_file = Path(log_file) if log_file else None

    def __call__(self, message: str):
        print(message)
        if self.log_file is None:
            return
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(f"[{utc_now_iso()}] {message}\n")
        except OSError as e:
            print(f"⚠️  Could not write to log file {self.log_file}: {e}")
            self.log_file = None
