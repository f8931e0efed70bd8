from __future__ import annotations

from unittest.mock import Mock, patch

from lead_import.services.progress import ProgressTracker, is_tty_enabled, progress_message


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


def test_progress_message():
    assert progress_message(3, 10) == "Processing 3 / 10..."


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_init_with_tty_enabled(self):
        with patch('lead_import.services.progress.is_tty_enabled', return_value=True), \
             patch('lead_import.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(5, description="Importing")

            assert tracker.total == 5
            assert tracker.current == 0
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Importing",
                unit="record",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('lead_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)
            assert tracker.enabled is False
            assert tracker.pbar is None

    def test_advance_updates_bar_and_callback(self):
        mock_pbar = Mock()
        messages: list[str] = []
        with patch('lead_import.services.progress.is_tty_enabled', return_value=True), \
             patch('lead_import.services.progress.tqdm', return_value=mock_pbar):

            tracker = ProgressTracker(2, callback=messages.append)
            tracker.advance()
            tracker.advance()

        assert messages == ["Processing 1 / 2...", "Processing 2 / 2..."]
        assert mock_pbar.update.call_count == 2

    def test_callback_without_tty(self):
        messages: list[str] = []
        with patch('lead_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(1, callback=messages.append)
            tracker.advance()
            tracker.report("Import complete: 1 created, 0 updated.")
        assert messages == ["Processing 1 / 1...", "Import complete: 1 created, 0 updated."]

    def test_set_postfix_and_close(self):
        mock_pbar = Mock()
        with patch('lead_import.services.progress.is_tty_enabled', return_value=True), \
             patch('lead_import.services.progress.tqdm', return_value=mock_pbar):

            with ProgressTracker(3) as tracker:
                tracker.set_postfix(created=1, updated=0)

        mock_pbar.set_postfix.assert_called_once_with(created=1, updated=0)
        mock_pbar.close.assert_called_once()
        assert tracker.pbar is None

    def test_disabled_tracker_is_noop(self):
        with patch('lead_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(3)
            tracker.advance()
            tracker.set_postfix(created=1)
            tracker.close()
        assert tracker.current == 1
