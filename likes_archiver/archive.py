"""
Local archive layout: one directory per liked post.

    <archive_dir>/<post id>/tweet-data.json   (or <post id>.json)
    <archive_dir>/<post id>/<media files>
"""

import json
import shutil
from pathlib import Path
from typing import Any, List, Optional


GENERIC_METADATA_NAME = "tweet-data.json"


class LocalArchive:
    """Filesystem view of the archive directory."""

    def __init__(self, root: str = "downloads"):
        """
        Initialize archive view.

        Args:
            root: Archive root directory
        """
        self.root = Path(root)

    def ensure_root(self):
        self.root.mkdir(parents=True, exist_ok=True)

    def item_dir(self, item_id: str) -> Path:
        return self.root / item_id

    def metadata_candidates(self, item_id: str) -> List[Path]:
        """Recognized metadata paths, generic name first."""
        item_dir = self.item_dir(item_id)
        return [item_dir / GENERIC_METADATA_NAME, item_dir / f"{item_id}.json"]

    def metadata_path(self, item_id: str) -> Optional[Path]:
        """
        Locate a post's metadata document.

        Args:
            item_id: Post id

        Returns:
            First existing recognized path, or None
        """
        for candidate in self.metadata_candidates(item_id):
            if candidate.is_file():
                return candidate
        return None

    def exists_local_metadata(self, item_id: str) -> bool:
        """Ground truth for "this post's data was fetched"."""
        return self.metadata_path(item_id) is not None

    def read_metadata(self, path: Path) -> Any:
        """
        Parse a metadata document.

        Raises:
            OSError: File could not be read
            json.JSONDecodeError: File is not valid JSON
        """
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def list_item_ids(self) -> List[str]:
        """
        List post ids that have a directory in the archive.

        Returns:
            Directory names, sorted
        """
        try:
            return sorted(p.name for p in self.root.iterdir() if p.is_dir())
        except OSError as e:
            print(f"Could not read archive directory {self.root}: {e}")
            return []

    def remove_item(self, item_id: str) -> bool:
        """
        Delete a post's directory and everything in it.

        Returns:
            True if the directory was removed
        """
        item_dir = self.item_dir(item_id)
        if not item_dir.exists():
            return False
        try:
            shutil.rmtree(item_dir)
            return True
        except OSError as e:
            print(f"Failed to delete {item_dir}: {e}")
            return False

    def remove_if_empty(self, item_id: str):
        item_dir = self.item_dir(item_id)
        try:
            if item_dir.is_dir() and not any(item_dir.iterdir()):
                item_dir.rmdir()
        except OSError as e:
            print(f"Could not remove empty directory {item_dir}: {e}")
