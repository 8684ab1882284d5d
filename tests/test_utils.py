import json
from pathlib import Path

import pytest

from likes_archiver.utils import RunLog, filename_from_url, utc_now_iso, write_json_atomic


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://pbs.twimg.com/media/abc.jpg?name=large", "abc.jpg"),
        ("https://video.twimg.com/ext_tw_video/1/pu/vid/720x1280/clip.mp4?tag=12", "clip.mp4"),
        ("https://example.com/a%20b.png", "a b.png"),
        ("https://example.com/", None),
        ("not a url", None),
        ("", None),
    ],
)
def test_filename_from_url(url: str, expected) -> None:
    assert filename_from_url(url) == expected


def test_utc_now_iso_uses_z_suffix() -> None:
    stamp = utc_now_iso()
    assert stamp.endswith("Z")
    assert "T" in stamp


def test_write_json_atomic_leaves_no_temp_file(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "state.json"

    write_json_atomic(path, {"a": 1})

    assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1}
    assert not (tmp_path / "nested" / "state.json.tmp").exists()


def test_run_log_prints_and_appends(tmp_path: Path, capsys) -> None:
    log_file = tmp_path / "download-log.txt"
    log = RunLog(log_file)

    log("first")
    log("second")

    assert capsys.readouterr().out == "first\nsecond\n"
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("[") and lines[0].endswith("] first")
