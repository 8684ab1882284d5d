import json
from pathlib import Path
from typing import Any, Callable

import pytest

from likes_archiver.archive import LocalArchive
from likes_archiver.resilience.error_ledger import ErrorLedger
from likes_archiver.resilience.progress_tracker import ProgressTracker

from tests.helpers import FIXED_NOW


@pytest.fixture
def archive(tmp_path: Path) -> LocalArchive:
    archive = LocalArchive(str(tmp_path / "downloads"))
    archive.ensure_root()
    return archive


@pytest.fixture
def ledger(tmp_path: Path) -> ErrorLedger:
    return ErrorLedger(str(tmp_path / "error-tweets.json"), now_fn=lambda: FIXED_NOW)


@pytest.fixture
def tracker(tmp_path: Path) -> ProgressTracker:
    tracker = ProgressTracker(str(tmp_path / "processed-tweets.json"))
    tracker.load_state()
    return tracker


@pytest.fixture
def write_metadata(archive: LocalArchive) -> Callable[..., Path]:
    def _write(item_id: str, document: Any, name: str = "tweet-data.json") -> Path:
        item_dir = archive.item_dir(item_id)
        item_dir.mkdir(parents=True, exist_ok=True)
        path = item_dir / name
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write
