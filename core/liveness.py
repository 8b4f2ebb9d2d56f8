"""
Liveness Heuristic Module

A rudimentary blink check used by the scan screen. The eye landmarks seen
on the first frame of a scan become the baseline; on every later frame, any
eye point that has moved down by more than a few pixels relative to its
baseline is counted as a blink event.

This is NOT a presentation-attack defense. Head motion triggers it, a
replayed video passes it, and its result is only logged; nothing rejects
a scan based on it.

Usage:
    from core.liveness import BlinkHeuristic

    heuristic = BlinkHeuristic({"blink_threshold_px": 5.0})
    if heuristic.update(face.left_eye(), face.right_eye()):
        logger.info("Eye blink detected!")
    report = heuristic.report()
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class LivenessReport:
    """
    Summary of one scan window.

    Attributes:
        frames_checked: Frames with eye landmarks fed to the heuristic.
        blink_events: Indices (0-based, in frames_checked order) of frames
                      flagged as blinks.
        details: Thresholds and baseline info for logging.
    """
    frames_checked: int
    blink_events: List[int] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def blink_detected(self) -> bool:
        return len(self.blink_events) > 0


class BlinkHeuristic:
    """
    Compare eye landmark y-coordinates against their first-seen positions.

    Args:
        config: Dictionary containing:
            - blink_threshold_px: Downward displacement in pixels that
              counts as a blink (default 5.0)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.threshold_px = float(config.get("blink_threshold_px", 5.0))
        self.reset()

    def reset(self) -> None:
        """Forget the baseline; the next frame starts a new scan."""
        self._baseline_left: Optional[np.ndarray] = None
        self._baseline_right: Optional[np.ndarray] = None
        self._frames_checked = 0
        self._blink_events: List[int] = []

    def _moved_down(self, eye: np.ndarray, baseline: np.ndarray) -> bool:
        eye = np.asarray(eye, dtype=np.float32)
        if eye.shape != baseline.shape:
            return False
        return bool(np.any(eye[:, 1] > baseline[:, 1] + self.threshold_px))

    def update(self, left_eye: np.ndarray, right_eye: np.ndarray) -> bool:
        """
        Feed one frame's eye landmarks.

        Args:
            left_eye: (K, 2) points of the image-left eye.
            right_eye: (K, 2) points of the image-right eye.

        Returns:
            True when this frame is flagged as a blink. The first frame only
            sets the baseline and is never flagged.
        """
        frame_index = self._frames_checked
        self._frames_checked += 1

        if self._baseline_left is None or self._baseline_right is None:
            self._baseline_left = np.asarray(left_eye, dtype=np.float32).copy()
            self._baseline_right = np.asarray(right_eye, dtype=np.float32).copy()
            return False

        left_blink = self._moved_down(left_eye, self._baseline_left)
        right_blink = self._moved_down(right_eye, self._baseline_right)

        if left_blink or right_blink:
            self._blink_events.append(frame_index)
            return True
        return False

    def report(self) -> LivenessReport:
        return LivenessReport(
            frames_checked=self._frames_checked,
            blink_events=list(self._blink_events),
            details={
                "threshold_px": self.threshold_px,
                "has_baseline": self._baseline_left is not None,
                "enforced": False,
            },
        )
