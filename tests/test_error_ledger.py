import json
from pathlib import Path

from likes_archiver.models import ErrorKind
from likes_archiver.resilience.error_ledger import ErrorLedger

from tests.helpers import FIXED_NOW


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_add_error_creates_record_and_statistics(ledger: ErrorLedger) -> None:
    record = ledger.add_error("100", ErrorKind.MEDIA_404, {"url": "https://pbs.twimg.com/media/a.jpg"})

    assert record.retry_count == 1
    assert record.timestamp == FIXED_NOW
    assert ledger.has_error("100")
    assert ledger.get_statistics() == {
        "total_errors": 1,
        "by_type": {"media_404": 1},
        "by_date": {"2024-05-01": 1},
    }


def test_upsert_increments_retry_count_and_moves_counts(ledger: ErrorLedger) -> None:
    ledger.add_error("100", ErrorKind.MEDIA_404)
    record = ledger.add_error("100", ErrorKind.NETWORK_ERROR)

    assert record.retry_count == 2
    assert record.kind == ErrorKind.NETWORK_ERROR
    assert len(ledger) == 1
    stats = ledger.get_statistics()
    assert stats["total_errors"] == 1
    assert stats["by_type"] == {"network_error": 1}


def test_add_then_remove_restores_statistics(ledger: ErrorLedger) -> None:
    ledger.add_error("1", ErrorKind.RATE_LIMIT)
    before = ledger.get_statistics()

    ledger.add_error("2", ErrorKind.MEDIA_403)
    assert ledger.remove_error("2") is True

    assert ledger.get_statistics() == before
    assert ledger.remove_error("2") is False


def test_non_batch_mutations_are_written_immediately(tmp_path: Path) -> None:
    path = tmp_path / "error-tweets.json"
    ledger = ErrorLedger(str(path), now_fn=lambda: FIXED_NOW)
    ledger.add_error("100", ErrorKind.JSON_PARSE_ERROR, {"message": "JSON file not found"})

    data = _read(path)
    assert data["errors"]["100"] == {
        "type": "json_parse_error",
        "timestamp": FIXED_NOW,
        "details": {"message": "JSON file not found"},
        "retry_count": 1,
    }
    assert data["statistics"]["total_errors"] == 1

    reloaded = ErrorLedger(str(path))
    assert reloaded.get_error("100").kind == ErrorKind.JSON_PARSE_ERROR
    assert reloaded.get_statistics() == ledger.get_statistics()


def test_batch_mode_defers_writes_until_flush(tmp_path: Path) -> None:
    path = tmp_path / "error-tweets.json"
    ledger = ErrorLedger(str(path), batch_mode=True)

    ledger.add_error("100", ErrorKind.MEDIA_404)
    ledger.add_error("200", ErrorKind.MEDIA_403)
    assert not path.exists()

    ledger.flush()
    assert set(_read(path)["errors"]) == {"100", "200"}


def test_autosave_in_batch_mode(tmp_path: Path) -> None:
    path = tmp_path / "error-tweets.json"
    ledger = ErrorLedger(str(path), batch_mode=True, autosave_every=2)

    ledger.add_error("100", ErrorKind.MEDIA_404)
    assert not path.exists()
    ledger.add_error("200", ErrorKind.MEDIA_404)
    assert path.exists()


def test_corrupted_file_is_backed_up_and_ignored(tmp_path: Path) -> None:
    path = tmp_path / "error-tweets.json"
    path.write_text("{not json", encoding="utf-8")

    ledger = ErrorLedger(str(path))

    assert len(ledger) == 0
    assert ledger.get_statistics()["total_errors"] == 0
    assert list(tmp_path.glob("error-tweets.corrupted.*.json"))


def test_missing_statistics_are_rebuilt(tmp_path: Path) -> None:
    path = tmp_path / "error-tweets.json"
    path.write_text(json.dumps({
        "errors": {
            "1": {"type": "media_404", "timestamp": "2024-04-30T01:00:00Z", "details": {}, "retry_count": 2},
            "2": {"type": "no_such_kind", "timestamp": "2024-05-01T01:00:00Z", "details": {}, "retry_count": 1},
        }
    }), encoding="utf-8")

    ledger = ErrorLedger(str(path))

    assert ledger.get_error("2").kind == ErrorKind.UNKNOWN_ERROR
    assert ledger.get_statistics() == {
        "total_errors": 2,
        "by_type": {"media_404": 1, "unknown_error": 1},
        "by_date": {"2024-04-30": 1, "2024-05-01": 1},
    }


def test_queries(ledger: ErrorLedger) -> None:
    ledger.add_error("1", ErrorKind.MEDIA_404)
    ledger.add_error("1", ErrorKind.MEDIA_404)
    ledger.add_error("2", ErrorKind.RATE_LIMIT)

    assert [r.item_id for r in ledger.get_errors_by_type(ErrorKind.MEDIA_404)] == ["1"]
    assert [r.item_id for r in ledger.get_errors_by_retry_count(2)] == ["1"]
    assert {r.item_id for r in ledger.get_error_list()} == {"1", "2"}


def test_clear_all_errors(ledger: ErrorLedger) -> None:
    ledger.add_error("1", ErrorKind.MEDIA_404)
    ledger.add_error("2", ErrorKind.RATE_LIMIT)

    ledger.clear_all_errors()

    assert len(ledger) == 0
    assert ledger.get_statistics() == {"total_errors": 0, "by_type": {}, "by_date": {}}
    assert _read(ledger.error_file)["errors"] == {}


def test_print_summary(ledger: ErrorLedger, capsys) -> None:
    ledger.add_error("1", ErrorKind.MEDIA_404)
    ledger.print_summary()

    out = capsys.readouterr().out
    assert "Total errors: 1" in out
    assert "media_404: 1" in out
    assert "2024-05-01: 1" in out


def test_clear_error_is_remove_error(ledger: ErrorLedger) -> None:
    ledger.add_error("1", ErrorKind.RATE_LIMIT)

    assert ledger.clear_error("1") is True
    assert not ledger.has_error("1")


def test_record_with_invalid_timestamp_is_treated_as_corruption(tmp_path: Path) -> None:
    path = tmp_path / "error-tweets.json"
    path.write_text(json.dumps({"errors": {"1": {"type": "media_404", "timestamp": 5}}}), encoding="utf-8")

    ledger = ErrorLedger(str(path))

    assert len(ledger) == 0
    assert ledger.get_statistics() == {"total_errors": 0, "by_type": {}, "by_date": {}}
    assert list(tmp_path.glob("error-tweets.corrupted.*.json"))
