"""
Tests for UISession (per-browser state) and the tab switching rules.

This test suite verifies:
- Two sessions enroll independently against one shared store
- A new session (page reload) can enroll again
- Leaving a tab stops its timer and clears its state
- Only the active tab's timer runs

Run with: pytest tests/test_ui_session.py -v
"""

import numpy as np
import pytest

from core.controllers.enrollment import PROMPT_SMILE, PROMPT_STORED
from frontend.session import DETECT_TAB, ENROLLMENT_TAB, SCAN_TAB, UISession

from conftest import make_face


CONFIG = {
    "enrollment": {"smile_timeout_sec": 10.0},
    "detection": {"poll_interval_sec": 1.0},
    "matching": {"distance_threshold": 0.6},
    "scan": {"window_sec": 3.0, "poll_interval_sec": 0.1},
}


@pytest.fixture
def rgb():
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def make_session(analyzer, store, clock, rgb):
    def _make():
        session = UISession(analyzer, store, CONFIG, clock=clock)
        session.camera.update(rgb)
        session.ensure_ready()
        return session
    return _make


def enroll(session, analyzer, name, descriptor):
    analyzer.queue([make_face("neutral", descriptor)], [make_face("happy")])
    assert session.enrollment.capture_face(name, session.camera.frame) == PROMPT_SMILE
    return session.enrollment.poll(session.camera.frame)


class TestSessions:
    def test_new_session_starts_on_enrollment(self, analyzer, store):
        session = UISession(analyzer, store, CONFIG)

        assert session.active_tab == ENROLLMENT_TAB
        assert session.enrollment.loading is True
        assert not any(session.timers_active().values())

    def test_ready_once_camera_and_models_are_up(self, analyzer, store, rgb):
        session = UISession(analyzer, store, CONFIG)
        session.ensure_ready()
        assert session.enrollment.loading is True

        session.camera.update(rgb)
        session.ensure_ready()
        assert session.enrollment.loading is False

    def test_two_users_enroll_independently(self, make_session, analyzer, store):
        alice, bob = make_session(), make_session()

        assert enroll(alice, analyzer, "Alice", [1.0, 0.0, 0.0]) == PROMPT_STORED
        assert enroll(bob, analyzer, "Bob", [0.0, 1.0, 0.0]) == PROMPT_STORED

        assert [r.name for r in store.load()] == ["Alice", "Bob"]
        assert alice.enrollment is not bob.enrollment
        assert alice.camera is not bob.camera

    def test_reload_can_enroll_again(self, make_session, analyzer, store):
        first = make_session()
        enroll(first, analyzer, "Alice", [1.0, 0.0, 0.0])
        first.close()

        reloaded = make_session()

        assert enroll(reloaded, analyzer, "Alice", [0.9, 0.1, 0.0]) == PROMPT_STORED
        assert store.count() == 2

    def test_close_releases_camera(self, make_session):
        session = make_session()

        session.close()

        assert not session.camera.is_ready


class TestTabSwitching:
    def test_leaving_enrollment_cancels_smile_window(self, make_session, analyzer, store):
        session = make_session()
        analyzer.queue([make_face("neutral", [1.0, 0.0, 0.0])])
        session.enrollment.capture_face("Alice", session.camera.frame)
        assert session.timers_active()[ENROLLMENT_TAB] is True

        session.enter_tab(DETECT_TAB)

        assert session.enrollment.capturing is False
        assert session.timers_active() == {ENROLLMENT_TAB: False, DETECT_TAB: True, SCAN_TAB: False}
        analyzer.queue([make_face("happy")])
        session.enrollment.poll(session.camera.frame)
        assert store.count() == 0

    def test_returning_to_enrollment_allows_new_capture(self, make_session, analyzer, store):
        session = make_session()
        enroll(session, analyzer, "Alice", [1.0, 0.0, 0.0])

        session.enter_tab(SCAN_TAB)
        session.enter_tab(ENROLLMENT_TAB)

        assert enroll(session, analyzer, "Bob", [0.0, 1.0, 0.0]) == PROMPT_STORED
        assert store.count() == 2

    def test_leaving_detect_clears_label(self, make_session, analyzer, store):
        session = make_session()
        enroll(session, analyzer, "Alice", [1.0, 0.0, 0.0])
        session.enter_tab(DETECT_TAB)
        analyzer.queue([make_face(descriptor=[1.0, 0.0, 0.0])])
        assert session.detection.tick(session.camera.frame).detected_name == "Alice"

        session.enter_tab(SCAN_TAB)

        assert session.detection.detected_name == ""
        assert session.timers_active()[DETECT_TAB] is False

    def test_leaving_scan_cancels_scan(self, make_session):
        session = make_session()
        session.enter_tab(SCAN_TAB)
        assert session.scanner.start_scan() is True
        assert session.timers_active()[SCAN_TAB] is True

        session.enter_tab(DETECT_TAB)

        assert session.scanner.is_scanning is False
        assert session.timers_active()[SCAN_TAB] is False

    def test_reselecting_same_tab_keeps_state(self, make_session, analyzer):
        session = make_session()
        analyzer.queue([make_face("neutral", [1.0, 0.0, 0.0])])
        session.enrollment.capture_face("Alice", session.camera.frame)

        session.enter_tab(ENROLLMENT_TAB)

        assert session.enrollment.capturing is True

    def test_unknown_tab_raises(self, make_session):
        with pytest.raises(ValueError):
            make_session().enter_tab("settings")
