"""
Tests for the CameraFeed component and the drawing helpers it feeds.
"""

import numpy as np

from core.ui_overlay import draw_detections, draw_dim_overlay, draw_label
from frontend.components.camera_feed import CameraFeed

from conftest import make_face


def _rgb_frame():
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    frame[..., 0] = 255  # red in RGB
    return frame


class TestCameraFeed:
    def test_not_ready_before_first_frame(self):
        feed = CameraFeed()

        assert not feed.is_ready
        assert feed.frame is None
        assert feed.size is None

    def test_update_converts_to_bgr(self):
        feed = CameraFeed()

        feed.update(_rgb_frame())

        assert feed.is_ready
        assert feed.frame[0, 0].tolist() == [0, 0, 255]
        assert feed.size == (640, 480)

    def test_none_frame_is_ignored(self):
        feed = CameraFeed()
        feed.update(_rgb_frame())

        assert feed.update(None) is None
        assert feed.is_ready

    def test_frame_is_a_copy(self):
        feed = CameraFeed()
        feed.update(_rgb_frame())

        feed.frame[:] = 0

        assert feed.frame.any()

    def test_reset(self):
        feed = CameraFeed()
        feed.update(_rgb_frame())

        feed.reset()

        assert not feed.is_ready

    def test_to_display_round_trip(self):
        feed = CameraFeed()
        rgb = _rgb_frame()

        assert np.array_equal(CameraFeed.to_display(feed.update(rgb)), rgb)
        assert CameraFeed.to_display(None) is None


class TestOverlay:
    def test_dim_overlay_darkens(self):
        frame = np.full((120, 160, 3), 200, dtype=np.uint8)

        draw_dim_overlay(frame, None, opacity=0.5)

        assert frame.max() == 100

    def test_dim_overlay_with_message(self):
        frame = np.zeros((120, 400, 3), dtype=np.uint8)

        draw_dim_overlay(frame, "Processing...")

        assert frame.any()

    def test_label_and_detections_draw(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)

        draw_detections(frame, [make_face()])
        draw_label(frame, "Detected: Alice")

        assert frame.any()
