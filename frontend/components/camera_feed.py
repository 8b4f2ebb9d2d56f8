"""
Camera feed component for the face capture demo.

Gradio streams the browser webcam to the server as RGB frames. CameraFeed
keeps the most recent one (converted to BGR for the core modules) so that
timer-driven controllers can read "the current video frame" at any moment.
"""

import logging
import threading
from typing import Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraFeed:
    """
    Latest-frame holder for a streaming webcam component.

    The video is ready once the first frame has arrived.
    """

    def __init__(self):
        self._frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def update(self, rgb_frame: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """
        Store a frame received from the browser.

        Returns:
            The stored BGR frame, or None if nothing was received.
        """
        if rgb_frame is None:
            return None

        frame = cv2.cvtColor(np.asarray(rgb_frame, dtype=np.uint8), cv2.COLOR_RGB2BGR)
        with self._lock:
            first = self._frame is None
            self._frame = frame
        if first:
            h, w = frame.shape[:2]
            logger.info(f"Webcam stream started ({w}x{h})")
        return frame

    @property
    def frame(self) -> Optional[np.ndarray]:
        """Copy of the latest BGR frame, or None before the first one."""
        with self._lock:
            return None if self._frame is None else self._frame.copy()

    @property
    def is_ready(self) -> bool:
        return self._frame is not None

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        """Video (width, height), or None before the first frame."""
        with self._lock:
            if self._frame is None:
                return None
            h, w = self._frame.shape[:2]
            return (w, h)

    def reset(self) -> None:
        with self._lock:
            self._frame = None

    @staticmethod
    def to_display(bgr_frame: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """Convert a BGR frame back to RGB for a Gradio image output."""
        if bgr_frame is None:
            return None
        return cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGB)
