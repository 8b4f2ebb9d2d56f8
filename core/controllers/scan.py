"""
Scan Controller

Drives the scan screen. start_scan() opens a timed window (3 s) during
which every tick (100 ms) detects landmarks, draws them, and feeds the
first face's eyes to the blink heuristic. Blinks are only logged. When the
window closes, one single-face capture with descriptor is taken.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import numpy as np

from core.face_analyzer import FaceAnalyzer
from core.liveness import BlinkHeuristic, LivenessReport
from core.ui_overlay import draw_face_landmarks

logger = logging.getLogger(__name__)

MESSAGE_IDLE = ""
MESSAGE_SCANNING = "Scanning..."
MESSAGE_FACE_DETECTED = "Face data: detected"
MESSAGE_NO_FACE = "No face detected"


@dataclass
class ScanFrame:
    """Output of one scan tick."""
    annotated: Optional[np.ndarray]
    is_scanning: bool
    message: str
    descriptor: Optional[np.ndarray] = None
    liveness: Optional[LivenessReport] = None


class ScanController:
    """
    Timed scan with a logged blink heuristic and a final capture.

    Args:
        analyzer: Face analyzer capability.
        config: Scan configuration:
            - window_sec: Scan window length (default 3)
            - poll_interval_sec: Tick cadence for the UI timer (default 0.1)
            - blink_threshold_px: Passed to BlinkHeuristic
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        analyzer: FaceAnalyzer,
        config: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or {}
        self.analyzer = analyzer
        self.clock = clock

        self.window_sec = float(config.get("window_sec", 3.0))
        self.poll_interval_sec = float(config.get("poll_interval_sec", 0.1))
        self.heuristic = BlinkHeuristic(config)

        self.is_scanning = False
        self.liveness_check = False
        self.message = MESSAGE_IDLE
        self.last_descriptor: Optional[np.ndarray] = None
        self.last_report: Optional[LivenessReport] = None
        self._scan_end: Optional[float] = None

    @property
    def can_start(self) -> bool:
        return not self.is_scanning and self.analyzer.is_loaded

    def start_scan(self) -> bool:
        """
        Open the scan window.

        Returns:
            False (and does nothing) while scanning or before models load.
        """
        if not self.can_start:
            return False

        self.is_scanning = True
        self.liveness_check = True
        self.message = MESSAGE_SCANNING
        self.last_descriptor = None
        self.last_report = None
        self.heuristic.reset()
        self._scan_end = self.clock() + self.window_sec
        logger.info(f"Scan started ({self.window_sec:.1f}s window)")
        return True

    def tick(self, frame: Optional[np.ndarray]) -> ScanFrame:
        """Advance the scan by one tick on the current frame."""
        if not self.is_scanning:
            return ScanFrame(annotated=frame, is_scanning=False, message=self.message,
                             descriptor=self.last_descriptor, liveness=self.last_report)

        if self.clock() >= self._scan_end:
            return self._finish(frame)

        if frame is None:
            return ScanFrame(annotated=None, is_scanning=True, message=self.message)

        annotated = frame.copy()
        try:
            faces = self.analyzer.detect_all_faces(frame)
            draw_face_landmarks(annotated, faces, step=2)

            if self.liveness_check and faces:
                first = faces[0]
                if self.heuristic.update(first.left_eye(), first.right_eye()):
                    logger.info("Eye blink detected!")
        except Exception as e:
            logger.error(f"Error during face detection: {e}")

        return ScanFrame(annotated=annotated, is_scanning=True, message=self.message)

    def cancel(self) -> None:
        """Stop the window without the final capture (screen teardown)."""
        self.is_scanning = False
        self.liveness_check = False
        self._scan_end = None
        self.message = MESSAGE_IDLE

    def _finish(self, frame: Optional[np.ndarray]) -> ScanFrame:
        self.is_scanning = False
        self.liveness_check = False
        self._scan_end = None

        self.last_report = self.heuristic.report()
        logger.info(
            f"Scan window closed: {self.last_report.frames_checked} frame(s), "
            f"{len(self.last_report.blink_events)} blink event(s)"
        )

        descriptor = None
        if frame is not None:
            try:
                face = self.analyzer.detect_single_face(frame, with_descriptor=True)
                if face is not None and face.descriptor is not None:
                    descriptor = face.descriptor
                    logger.info("Face data: detected")
            except Exception as e:
                logger.error(f"Error during face scan: {e}")

        self.last_descriptor = descriptor
        self.message = MESSAGE_FACE_DETECTED if descriptor is not None else MESSAGE_NO_FACE
        return ScanFrame(annotated=frame, is_scanning=False, message=self.message,
                         descriptor=descriptor, liveness=self.last_report)
