"""
Tests for the blink heuristic used by the scan screen.
"""

import numpy as np
import pytest

from core.liveness import BlinkHeuristic, LivenessReport


def _eye(y: float, x0: float = 100.0) -> np.ndarray:
    return np.array([[x0 + i * 5.0, y] for i in range(6)], dtype=np.float32)


@pytest.fixture
def heuristic():
    return BlinkHeuristic({"blink_threshold_px": 5.0})


class TestBlinkHeuristic:
    def test_first_frame_sets_baseline_only(self, heuristic):
        assert heuristic.update(_eye(200), _eye(200, 200)) is False

        report = heuristic.report()
        assert report.frames_checked == 1
        assert report.details["has_baseline"] is True

    def test_still_eyes_are_not_blinks(self, heuristic):
        heuristic.update(_eye(200), _eye(200, 200))

        assert heuristic.update(_eye(202), _eye(201, 200)) is False

    def test_downward_move_past_threshold_is_blink(self, heuristic):
        heuristic.update(_eye(200), _eye(200, 200))

        assert heuristic.update(_eye(206), _eye(200, 200)) is True

    def test_exact_threshold_is_not_blink(self, heuristic):
        heuristic.update(_eye(200), _eye(200, 200))

        assert heuristic.update(_eye(205), _eye(205, 200)) is False

    def test_single_point_is_enough(self, heuristic):
        heuristic.update(_eye(200), _eye(200, 200))
        right = _eye(200, 200)
        right[4, 1] = 210.0

        assert heuristic.update(_eye(200), right) is True

    def test_upward_move_is_ignored(self, heuristic):
        heuristic.update(_eye(200), _eye(200, 200))

        assert heuristic.update(_eye(180), _eye(180, 200)) is False

    def test_baseline_is_first_frame_not_previous(self, heuristic):
        heuristic.update(_eye(200), _eye(200, 200))
        heuristic.update(_eye(204), _eye(204, 200))

        # 3 px below the previous frame but 7 px below the baseline
        assert heuristic.update(_eye(207), _eye(207, 200)) is True

    def test_report_lists_blink_frames(self, heuristic):
        for y in (200, 200, 210, 200, 212):
            heuristic.update(_eye(y), _eye(y, 200))

        report = heuristic.report()
        assert report.frames_checked == 5
        assert report.blink_events == [2, 4]
        assert report.blink_detected
        assert report.details["enforced"] is False

    def test_reset_starts_new_baseline(self, heuristic):
        heuristic.update(_eye(200), _eye(200, 200))
        heuristic.reset()

        assert heuristic.update(_eye(260), _eye(260, 200)) is False
        assert heuristic.report().frames_checked == 1

    def test_default_threshold(self):
        assert BlinkHeuristic().threshold_px == 5.0


class TestLivenessReport:
    def test_no_events(self):
        assert LivenessReport(frames_checked=3).blink_detected is False
