"""
Shared UI overlay helpers for the face capture screens.

Provides:
- draw_detections(): face boxes with detection score
- draw_face_landmarks(): landmark dots
- draw_label(): name/status text with a dark backing box
- draw_dim_overlay(): full-frame dimming with centered text ("Processing...")

All helpers draw in-place on BGR frames.
"""

import cv2
import numpy as np
from typing import Iterable, Optional, Tuple


BOX_COLOR = (255, 144, 30)       # BGR
LANDMARK_COLOR = (0, 220, 255)
TEXT_COLOR = (255, 255, 255)
ALERT_COLOR = (0, 0, 255)


def draw_detections(frame: np.ndarray, faces: Iterable, show_score: bool = True) -> None:
    """Draw a box (and score) for every face with a `bbox` and `score`.

    Args:
        frame: BGR image to draw on (modified in-place).
        faces: FaceAnalysis-like objects.
        show_score: Print the detection score above each box.
    """
    for face in faces:
        x1, y1, x2, y2 = [int(v) for v in face.bbox]
        cv2.rectangle(frame, (x1, y1), (x2, y2), BOX_COLOR, 2)
        if show_score:
            cv2.putText(frame, f"{face.score:.2f}", (x1, max(12, y1 - 6)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.45, BOX_COLOR, 1, cv2.LINE_AA)


def draw_face_landmarks(frame: np.ndarray, faces: Iterable, step: int = 1) -> None:
    """Draw landmark points for every face.

    Args:
        frame: BGR image to draw on (modified in-place).
        faces: FaceAnalysis-like objects with `landmarks_2d` (N, 2).
        step: Draw every `step`-th landmark; dense meshes read better thinned.
    """
    h, w = frame.shape[:2]
    for face in faces:
        for x, y in np.asarray(face.landmarks_2d)[::max(1, step)]:
            px, py = int(x), int(y)
            if 0 <= px < w and 0 <= py < h:
                cv2.circle(frame, (px, py), 1, LANDMARK_COLOR, -1, cv2.LINE_AA)


def draw_label(
    frame: np.ndarray,
    text: str,
    origin: Tuple[int, int] = (10, 30),
    color: Tuple[int, int, int] = ALERT_COLOR,
    scale: float = 0.8,
) -> None:
    """Draw bold text on a dark backing box."""
    (tw, th), baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, 2)
    x, y = origin
    cv2.rectangle(frame, (x - 4, y - th - 6), (x + tw + 4, y + baseline + 2), (0, 0, 0), -1)
    cv2.putText(frame, text, (x, y), cv2.FONT_HERSHEY_SIMPLEX, scale, color, 2, cv2.LINE_AA)


def draw_dim_overlay(
    frame: np.ndarray,
    message: Optional[str] = None,
    opacity: float = 0.7,
) -> None:
    """Darken the whole frame and center a message on it."""
    h, w = frame.shape[:2]
    overlay = np.zeros_like(frame)
    cv2.addWeighted(overlay, opacity, frame, 1.0 - opacity, 0, frame)

    if message:
        text_size = cv2.getTextSize(message, cv2.FONT_HERSHEY_SIMPLEX, 1.0, 2)[0]
        tx = (w - text_size[0]) // 2
        ty = (h + text_size[1]) // 2
        cv2.putText(frame, message, (tx, ty), cv2.FONT_HERSHEY_SIMPLEX,
                    1.0, TEXT_COLOR, 2, cv2.LINE_AA)
