"""
Unit tests for progress_tracker module.
"""

from unittest.mock import MagicMock, patch

from educrm.utils.progress_tracker import ProgressTracker


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_initialization(self):
        """Test that ProgressTracker initializes correctly."""
        # Arrange & Act
        tracker = ProgressTracker()

        # Assert
        assert tracker.progress is None
        assert tracker.task_id is None
        assert tracker.phase_name == ""
        assert tracker.total_items == 0
        assert tracker.completed_items == 0
        assert not tracker.is_active()

    @patch("educrm.utils.progress_tracker.Progress")
    def test_start_phase_creates_progress_bar(self, mock_progress_class):
        """Test that start_phase creates progress bar."""
        # Arrange
        mock_progress_instance = MagicMock()
        mock_progress_class.return_value = mock_progress_instance
        mock_progress_instance.add_task.return_value = 123  # TaskID

        tracker = ProgressTracker()

        # Act
        tracker.start_phase("Lead re-scoring", total_items=100)

        # Assert
        assert tracker.phase_name == "Lead re-scoring"
        assert tracker.total_items == 100
        assert tracker.is_active()
        mock_progress_instance.start.assert_called_once()
        mock_progress_instance.add_task.assert_called_once_with(
            description="Lead re-scoring", total=100
        )

    @patch("educrm.utils.progress_tracker.Progress")
    def test_increment_advances_bar(self, mock_progress_class):
        """Test that increment advances the progress bar."""
        # Arrange
        mock_progress_instance = MagicMock()
        mock_progress_class.return_value = mock_progress_instance
        mock_progress_instance.add_task.return_value = 123

        tracker = ProgressTracker()
        tracker.start_phase("Lead re-scoring", total_items=100)

        # Act
        tracker.increment(15)

        # Assert
        assert tracker.completed_items == 15
        mock_progress_instance.update.assert_called_with(123, advance=15)

    @patch("educrm.utils.progress_tracker.Progress")
    def test_update_batch_sets_description(self, mock_progress_class):
        """Test that update_batch shows the batch number in the description."""
        mock_progress_instance = MagicMock()
        mock_progress_class.return_value = mock_progress_instance
        mock_progress_instance.add_task.return_value = 7

        tracker = ProgressTracker()
        tracker.start_phase("Lead re-scoring", total_items=30)

        tracker.update_batch(batch_num=2, total_batches=3, batch_desc="15 students")

        mock_progress_instance.update.assert_called_with(
            7, description="Lead re-scoring - Batch 2/3: 15 students"
        )

    @patch("educrm.utils.progress_tracker.Progress")
    def test_complete_phase_fills_bar_and_resets(self, mock_progress_class):
        """Test that complete_phase completes the bar and resets state."""
        # Arrange
        mock_progress_instance = MagicMock()
        mock_progress_class.return_value = mock_progress_instance
        mock_progress_instance.add_task.return_value = 1
        console = MagicMock()

        tracker = ProgressTracker(console=console)
        tracker.start_phase("Lead re-scoring", total_items=10)
        tracker.increment(4)

        # Act
        tracker.complete_phase("4 scored, 0 failed")

        # Assert
        mock_progress_instance.update.assert_called_with(1, completed=10)
        mock_progress_instance.stop.assert_called_once()
        assert "4 scored, 0 failed" in console.print.call_args[0][0]
        assert not tracker.is_active()
        assert tracker.total_items == 0

    def test_calls_without_active_phase_are_ignored(self):
        """Test that updates before start_phase do nothing."""
        tracker = ProgressTracker()

        tracker.increment(3)
        tracker.update_batch(1, 1)
        tracker.complete_phase()

        assert tracker.completed_items == 0
