"""
Matching Module

Nearest-descriptor identification of detected faces against the enrolled
record list.

Usage:
    from core.matching import FaceMatcher

    matcher = FaceMatcher.from_records(store.load(), distance_threshold=0.6)
    match = matcher.find_best_match(face.descriptor)
"""

from core.matching.face_matcher import (
    DEFAULT_DISTANCE_THRESHOLD,
    UNKNOWN_LABEL,
    FaceMatch,
    FaceMatcher,
    LabeledFaceDescriptors,
    euclidean_distance,
)

__all__ = [
    "DEFAULT_DISTANCE_THRESHOLD",
    "UNKNOWN_LABEL",
    "FaceMatch",
    "FaceMatcher",
    "LabeledFaceDescriptors",
    "euclidean_distance",
]
