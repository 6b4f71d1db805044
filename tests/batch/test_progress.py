"""Tests for batch progress tracking."""

from unittest.mock import MagicMock

from asaas_sync.batch import ProgressState, ProgressTracker, ProgressUpdate


class TestProgressUpdate:
    """Tests for ProgressUpdate computed values."""

    def test_processed_and_remaining(self):
        update = ProgressUpdate(
            total=10, succeeded=4, ignored=1, failed=2, state=ProgressState.IN_PROGRESS
        )

        assert update.processed == 7
        assert update.remaining == 3
        assert update.progress_percent == 70.0

    def test_empty_total_is_complete(self):
        update = ProgressUpdate(
            total=0, succeeded=0, ignored=0, failed=0, state=ProgressState.COMPLETED
        )
        assert update.progress_percent == 100.0


class TestProgressTracker:
    """Tests for ProgressTracker."""

    def test_lifecycle(self):
        tracker = ProgressTracker(total=3, name="payments")
        assert tracker.state == ProgressState.PENDING

        tracker.start()
        tracker.increment()
        tracker.increment_ignored()
        tracker.increment_failed(error="boom")
        tracker.complete()

        assert tracker.state == ProgressState.COMPLETED
        assert tracker.is_done
        update = tracker.get_update()
        assert (update.succeeded, update.ignored, update.failed) == (1, 1, 1)
        assert update.remaining == 0

    def test_fail_records_error(self):
        tracker = ProgressTracker(name="customers")
        tracker.start()
        tracker.fail("Asaas rejected the API key")

        update = tracker.get_update()
        assert update.state == ProgressState.FAILED
        assert update.error == "Asaas rejected the API key"

    def test_callbacks_receive_updates(self):
        callback = MagicMock()
        tracker = ProgressTracker(total=2)
        tracker.on_progress(callback)

        tracker.increment()

        update = callback.call_args.args[0]
        assert isinstance(update, ProgressUpdate)
        assert update.succeeded == 1

    def test_failing_callback_is_contained(self):
        tracker = ProgressTracker(total=2)
        tracker.on_progress(MagicMock(side_effect=RuntimeError("ui gone")))

        tracker.increment()

        assert tracker.succeeded == 1

    def test_total_can_grow(self):
        tracker = ProgressTracker()
        tracker.total = 5
        tracker.add_total(3)

        assert tracker.total == 8

    def test_elapsed_before_start(self):
        assert ProgressTracker().elapsed_seconds == 0.0
