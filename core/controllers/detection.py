"""
Continuous Detection Controller

Every tick (one second by default) the detection screen:

1. reloads the full enrolled record list from the face store,
2. rebuilds a FaceMatcher from it,
3. detects faces with descriptors in the current frame,
4. draws boxes and landmarks, and
5. shows the first match whose label is not "unknown". Nothing is shown
   before the first match.

There is no smoothing across ticks: the last non-unknown name stays on
screen until another one replaces it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from core.face_analyzer import FaceAnalyzer
from core.face_store import FaceStore, FaceStoreError
from core.matching import DEFAULT_DISTANCE_THRESHOLD, UNKNOWN_LABEL, FaceMatch, FaceMatcher
from core.ui_overlay import draw_detections, draw_face_landmarks

logger = logging.getLogger(__name__)


@dataclass
class DetectionFrame:
    """
    Output of one detection tick.

    Attributes:
        annotated: Frame with boxes and landmarks drawn, or None when no
                   frame was available.
        matches: Best match per detected face, in detection order.
        detected_name: Name currently shown on screen ("" until first match).
    """
    annotated: Optional[np.ndarray]
    matches: List[FaceMatch] = field(default_factory=list)
    detected_name: str = ""


class DetectionController:
    """
    Continuous matcher for the detection screen.

    Args:
        analyzer: Face analyzer capability.
        store: Enrolled record source, read in full on every tick.
        config: Detection configuration (poll_interval_sec).
        matching_config: Matcher configuration (distance_threshold, unknown_label).
    """

    def __init__(
        self,
        analyzer: FaceAnalyzer,
        store: FaceStore,
        config: Optional[Dict[str, Any]] = None,
        matching_config: Optional[Dict[str, Any]] = None,
    ):
        config = config or {}
        matching_config = matching_config or {}

        self.analyzer = analyzer
        self.store = store
        self.poll_interval_sec = float(config.get("poll_interval_sec", 1.0))
        self.distance_threshold = float(matching_config.get("distance_threshold", DEFAULT_DISTANCE_THRESHOLD))
        self.unknown_label = matching_config.get("unknown_label", UNKNOWN_LABEL)

        self.detected_name = ""

    def build_matcher(self) -> FaceMatcher:
        """Rebuild the matcher index from the full persisted list."""
        records = self.store.load()
        return FaceMatcher.from_records(
            records,
            distance_threshold=self.distance_threshold,
            unknown_label=self.unknown_label,
        )

    def tick(self, frame: Optional[np.ndarray]) -> DetectionFrame:
        """Run one detection + matching pass on the current frame."""
        if frame is None:
            return self._frame(None)

        try:
            matcher = self.build_matcher()
        except FaceStoreError as e:
            logger.error(f"Could not load face data: {e}")
            return self._frame(frame)

        # Nothing enrolled: skip detection entirely
        if matcher.is_empty:
            return self._frame(frame)

        try:
            faces = self.analyzer.detect_all_faces(frame, with_descriptors=True)
        except Exception as e:
            logger.error(f"Error during face detection: {e}")
            return self._frame(frame)

        annotated = frame.copy()
        draw_detections(annotated, faces)
        draw_face_landmarks(annotated, faces, step=4)

        matches = [matcher.find_best_match(face.descriptor) for face in faces]
        for match in matches:
            if not match.is_unknown:
                if match.label != self.detected_name:
                    logger.info(f"Detected {match}")
                self.detected_name = match.label
                break

        return self._frame(annotated, matches)

    def reset(self) -> None:
        self.detected_name = ""

    def _frame(self, annotated: Optional[np.ndarray], matches: Optional[List[FaceMatch]] = None) -> DetectionFrame:
        return DetectionFrame(
            annotated=annotated,
            matches=matches or [],
            detected_name=self.detected_name,
        )
