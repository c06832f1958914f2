"""Tests for the VideoJob entity state machine."""

import pytest

from src.domain.enums import JobStatus, SensitivityStatus
from src.domain.exceptions import InvalidStateTransition, InvalidValueError
from tests.factories import VideoJobFactory, make_assessment


class TestVideoJobLifecycle:
    """Test status transitions."""

    def test_new_job_is_pending_and_unchecked(self):
        job = VideoJobFactory()

        assert job.status is JobStatus.PENDING
        assert job.sensitivity_status is SensitivityStatus.UNCHECKED
        assert job.progress == 0
        assert not job.is_terminal

    def test_start_processing(self):
        job = VideoJobFactory()
        job.start_processing()

        assert job.status is JobStatus.PROCESSING
        assert job.progress == 0

    def test_cannot_start_twice(self):
        job = VideoJobFactory()
        job.start_processing()

        with pytest.raises(InvalidStateTransition):
            job.start_processing()

    def test_complete_sets_verdict_and_full_progress(self):
        job = VideoJobFactory()
        job.start_processing()
        job.advance_progress(40)

        job.complete(make_assessment(flagged=True, labels=["WEAPONS_FIREARMS"], confidence=88))

        assert job.status is JobStatus.COMPLETED
        assert job.sensitivity_status is SensitivityStatus.FLAGGED
        assert job.confidence == 88
        assert job.detected_labels == ["WEAPONS_FIREARMS"]
        assert job.progress == 100
        assert job.is_terminal

    def test_complete_requires_processing(self):
        job = VideoJobFactory()

        with pytest.raises(InvalidStateTransition):
            job.complete(make_assessment())

    def test_fail_keeps_progress(self):
        job = VideoJobFactory()
        job.start_processing()
        job.advance_progress(7)

        job.fail("Video probe failed: corrupt header")

        assert job.status is JobStatus.FAILED
        assert job.sensitivity_status is SensitivityStatus.UNCHECKED
        assert job.progress == 7
        assert job.analysis_error == "Video probe failed: corrupt header"

    def test_terminal_job_cannot_fail_again(self):
        job = VideoJobFactory()
        job.start_processing()
        job.complete(make_assessment())

        with pytest.raises(InvalidStateTransition):
            job.fail("late error")


class TestVideoJobProgress:
    """Test progress monotonicity."""

    def test_progress_only_moves_forward(self):
        job = VideoJobFactory()
        job.start_processing()

        assert job.advance_progress(30) is True
        assert job.advance_progress(20) is False
        assert job.advance_progress(30) is False
        assert job.progress == 30

    def test_progress_out_of_range_rejected(self):
        job = VideoJobFactory()
        job.start_processing()

        with pytest.raises(InvalidValueError):
            job.advance_progress(101)

    def test_progress_requires_processing(self):
        job = VideoJobFactory()

        with pytest.raises(InvalidStateTransition):
            job.advance_progress(10)
