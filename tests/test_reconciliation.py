from likes_archiver.archive import LocalArchive
from likes_archiver.models import ErrorKind
from likes_archiver.reconciliation import Reconciler
from likes_archiver.resilience.error_ledger import ErrorLedger
from likes_archiver.resilience.progress_tracker import SUCCESSFUL, ProgressTracker


def test_reconcile_removes_missing_and_adopts_untracked(
    archive: LocalArchive, tracker: ProgressTracker, ledger: ErrorLedger, write_metadata
) -> None:
    write_metadata("100", {"media": []})
    tracker.mark_successful("100", save=False)
    ledger.add_error("100", ErrorKind.MEDIA_404)

    # marked successful, directory present but no metadata document
    stale_dir = archive.item_dir("200")
    stale_dir.mkdir()
    (stale_dir / "leftover.mp4").write_bytes(b"x")
    tracker.mark_successful("200", save=False)

    write_metadata("300", {"media": []}, name="300.json")

    write_metadata("400", {"media": []})
    tracker.mark_failed("400", save=False)

    report = Reconciler(archive, tracker, ledger, batch_size=2).run()

    assert report.not_found == ["200"]
    assert report.newly_added == ["300"]
    assert not stale_dir.exists()
    assert not tracker.is_processed("200")
    assert tracker.bucket_of("300") == SUCCESSFUL
    assert tracker.bucket_of("400") == "failed"
    assert not ledger.has_error("100")

    record = ledger.get_error("200")
    assert record.kind == ErrorKind.NOT_FOUND
    assert record.retry_count == 1

    reloaded = ProgressTracker(str(tracker.state_file))
    reloaded.load_state()
    assert set(reloaded.state.successful) == {"100", "300"}
    assert ErrorLedger(str(ledger.error_file)).has_error("200")


def test_reconcile_is_idempotent(
    archive: LocalArchive, tracker: ProgressTracker, ledger: ErrorLedger, write_metadata
) -> None:
    write_metadata("1", {"media": []})
    tracker.mark_successful("2", save=False)

    first = Reconciler(archive, tracker, ledger).run()
    second = Reconciler(archive, tracker, ledger).run()

    assert first.changed
    assert not second.changed
    assert second.not_found == [] and second.newly_added == []


def test_reconcile_without_differences_does_not_write_state(
    archive: LocalArchive, tracker: ProgressTracker, ledger: ErrorLedger
) -> None:
    report = Reconciler(archive, tracker, ledger).run()

    assert not report.changed
    assert not tracker.state_file.exists()
