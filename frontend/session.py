"""
Per-browser UI session.

Each page load gets its own UISession: its own webcam frame and one
controller per screen. The face analyzer and the face store are shared by
all sessions. Switching tabs tears down the screen being left, the same
way leaving a page stops its timers and forgets its state.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from core.controllers import DetectionController, EnrollmentController, ScanController
from core.face_analyzer import FaceAnalyzer
from core.face_store import FaceStore
from frontend.components.camera_feed import CameraFeed

logger = logging.getLogger(__name__)

ENROLLMENT_TAB = "enrollment"
DETECT_TAB = "detect"
SCAN_TAB = "scan"
TABS = (ENROLLMENT_TAB, DETECT_TAB, SCAN_TAB)


class UISession:
    """
    State owned by one browser session.

    Args:
        analyzer: Shared face analyzer.
        store: Shared face store.
        config: Full configuration dict (enrollment, detection, matching,
                scan sections are read).
        clock: Monotonic time source for the timed controllers.
    """

    def __init__(
        self,
        analyzer: FaceAnalyzer,
        store: FaceStore,
        config: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or {}
        self.analyzer = analyzer
        self.camera = CameraFeed()
        self.enrollment = EnrollmentController(analyzer, store, config.get("enrollment"), clock=clock)
        self.detection = DetectionController(analyzer, store, config.get("detection"), config.get("matching"))
        self.scanner = ScanController(analyzer, config.get("scan"), clock=clock)
        self.active_tab = ENROLLMENT_TAB

    def ensure_ready(self) -> None:
        """Open the enrollment screen once models and webcam are up."""
        if self.enrollment.loading and self.analyzer.is_loaded and self.camera.is_ready:
            self.enrollment.mark_ready()

    def enter_tab(self, tab: str) -> None:
        """
        Switch screens. The screen being left is torn down: its timer stops
        and its per-visit state is cleared.
        """
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab!r}")
        if tab == self.active_tab:
            return

        if self.active_tab == ENROLLMENT_TAB:
            self.enrollment.reset()
        elif self.active_tab == DETECT_TAB:
            self.detection.reset()
        elif self.active_tab == SCAN_TAB:
            self.scanner.cancel()

        logger.debug(f"Tab {self.active_tab} -> {tab}")
        self.active_tab = tab

    def timers_active(self) -> Dict[str, bool]:
        """Which polling timers should run right now, keyed by tab."""
        return {
            ENROLLMENT_TAB: self.active_tab == ENROLLMENT_TAB and self.enrollment.capturing,
            DETECT_TAB: self.active_tab == DETECT_TAB,
            SCAN_TAB: self.active_tab == SCAN_TAB and self.scanner.is_scanning,
        }

    def close(self) -> None:
        """Session ended (tab closed or expired)."""
        self.enrollment.cancel()
        self.scanner.cancel()
        self.detection.reset()
        self.camera.reset()
