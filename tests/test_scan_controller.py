"""
Tests for the ScanController.

This test suite verifies:
- start_scan() guards (models loaded, not already scanning)
- Per-tick landmark detection and the logged blink heuristic
- The single-face capture when the window closes
- Detection errors do not stop the scan

Run with: pytest tests/test_scan_controller.py -v
"""

import logging

import pytest

from core.controllers.scan import (
    MESSAGE_FACE_DETECTED,
    MESSAGE_NO_FACE,
    MESSAGE_SCANNING,
    ScanController,
)
from core.face_analyzer import StubFaceAnalyzer

from conftest import make_face


@pytest.fixture
def controller(analyzer, clock):
    return ScanController(analyzer, {"window_sec": 3.0, "blink_threshold_px": 5.0}, clock=clock)


class TestStartScan:
    def test_start_opens_window(self, controller):
        assert controller.can_start
        assert controller.start_scan() is True

        assert controller.is_scanning
        assert controller.liveness_check
        assert controller.message == MESSAGE_SCANNING
        assert not controller.can_start

    def test_start_ignored_while_scanning(self, controller, clock):
        controller.start_scan()
        end = controller._scan_end
        clock.advance(1.0)

        assert controller.start_scan() is False
        assert controller._scan_end == end

    def test_start_ignored_before_models_load(self, clock):
        ctrl = ScanController(StubFaceAnalyzer(), clock=clock)

        assert ctrl.start_scan() is False
        assert ctrl.is_scanning is False

    def test_idle_tick_does_nothing(self, controller, analyzer, frame):
        result = controller.tick(frame)

        assert result.is_scanning is False
        assert result.annotated is frame
        assert analyzer.calls == []


class TestScanWindow:
    @pytest.fixture
    def scanning(self, controller):
        controller.start_scan()
        return controller

    def test_ticks_detect_landmarks(self, scanning, analyzer, clock, frame):
        analyzer.queue([make_face()])
        clock.advance(0.1)

        result = scanning.tick(frame)

        assert result.is_scanning
        assert result.message == MESSAGE_SCANNING
        assert result.annotated.any()
        assert not frame.any()
        assert analyzer.calls[0]["with_descriptors"] is False

    def test_blink_is_logged(self, scanning, analyzer, clock, frame, caplog):
        analyzer.queue([make_face(eye_y=200)], [make_face(eye_y=210)])

        with caplog.at_level(logging.INFO, logger="core.controllers.scan"):
            clock.advance(0.1)
            scanning.tick(frame)
            clock.advance(0.1)
            scanning.tick(frame)

        assert "Eye blink detected!" in caplog.text

    def test_no_blink_for_still_eyes(self, scanning, analyzer, clock, frame, caplog):
        analyzer.queue([make_face(eye_y=200)], [make_face(eye_y=201)])

        with caplog.at_level(logging.INFO, logger="core.controllers.scan"):
            for _ in range(2):
                clock.advance(0.1)
                scanning.tick(frame)

        assert "Eye blink detected!" not in caplog.text

    def test_only_first_face_is_checked(self, scanning, analyzer, clock, frame):
        analyzer.queue(
            [make_face(eye_y=200), make_face(eye_y=200)],
            [make_face(eye_y=200), make_face(eye_y=260)],
        )
        for _ in range(2):
            clock.advance(0.1)
            scanning.tick(frame)

        clock.advance(3.0)
        analyzer.queue([make_face(descriptor=[0.1, 0.2])])
        result = scanning.tick(frame)

        assert result.liveness.frames_checked == 2
        assert result.liveness.blink_detected is False

    def test_window_end_captures_descriptor(self, scanning, analyzer, clock, frame, caplog):
        clock.advance(3.0)
        analyzer.queue([make_face(descriptor=[0.1, 0.2], bbox=(0, 0, 10, 10)), make_face(descriptor=[0.3, 0.4])])

        with caplog.at_level(logging.INFO, logger="core.controllers.scan"):
            result = scanning.tick(frame)

        assert result.is_scanning is False
        assert result.message == MESSAGE_FACE_DETECTED
        assert result.descriptor.tolist() == pytest.approx([0.3, 0.4])
        assert "Face data: detected" in caplog.text
        assert scanning.can_start

    def test_window_end_without_face(self, scanning, clock, frame):
        clock.advance(3.5)

        result = scanning.tick(frame)

        assert result.descriptor is None
        assert result.message == MESSAGE_NO_FACE
        assert scanning.is_scanning is False

    def test_blinks_do_not_block_capture(self, scanning, analyzer, clock, frame):
        analyzer.queue([make_face(eye_y=200)], [make_face(eye_y=220)])
        for _ in range(2):
            clock.advance(0.1)
            scanning.tick(frame)

        clock.advance(3.0)
        analyzer.queue([make_face(descriptor=[0.5, 0.5])])
        result = scanning.tick(frame)

        assert result.liveness.blink_detected
        assert result.descriptor is not None

    def test_detection_error_does_not_stop_scan(self, clock, frame):
        calls = []

        def flaky(_frame):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("landmarker crashed")
            return [make_face()]

        stub = StubFaceAnalyzer(responder=flaky)
        stub.load_models()
        ctrl = ScanController(stub, clock=clock)
        ctrl.start_scan()

        clock.advance(0.1)
        assert ctrl.tick(frame).is_scanning
        clock.advance(0.1)
        assert ctrl.tick(frame).is_scanning
        assert len(calls) == 2

    def test_cancel_skips_capture(self, scanning, analyzer, frame):
        scanning.cancel()

        result = scanning.tick(frame)

        assert result.is_scanning is False
        assert result.descriptor is None
        assert analyzer.calls == []

    def test_rescan_resets_heuristic(self, scanning, analyzer, clock, frame):
        analyzer.queue([make_face(eye_y=200)], [make_face(eye_y=230)])
        for _ in range(2):
            clock.advance(0.1)
            scanning.tick(frame)
        clock.advance(3.0)
        scanning.tick(frame)

        assert scanning.start_scan() is True
        analyzer.queue([make_face(eye_y=230)])
        clock.advance(0.1)
        scanning.tick(frame)
        clock.advance(3.0)
        result = scanning.tick(frame)

        assert result.liveness.frames_checked == 1
        assert result.liveness.blink_detected is False
