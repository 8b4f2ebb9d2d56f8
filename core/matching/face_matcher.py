"""
Face Matcher: nearest-descriptor identification by Euclidean distance.

Each labeled entry holds one or more reference descriptors. A query descriptor is
compared to every entry; an entry's distance is the mean Euclidean
distance to its descriptors, and the closest entry wins. When that
distance reaches the threshold the result is the unknown label.

The index is cheap to build, so callers rebuild it from the persisted
record list on every matching attempt.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "unknown"
DEFAULT_DISTANCE_THRESHOLD = 0.6


@dataclass
class LabeledFaceDescriptors:
    """Reference descriptors sharing one label."""

    label: str
    descriptors: List[np.ndarray] = field(default_factory=list)

    def __post_init__(self):
        self.descriptors = [np.asarray(d, dtype=np.float32).ravel() for d in self.descriptors]


@dataclass
class FaceMatch:
    """Best match for a query descriptor."""

    label: str
    distance: float
    unknown_label: str = UNKNOWN_LABEL

    @property
    def is_unknown(self) -> bool:
        return self.label == self.unknown_label

    def __str__(self) -> str:
        return f"{self.label} ({self.distance:.2f})"


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=np.float32) - np.asarray(b, dtype=np.float32)))


class FaceMatcher:
    """
    Identify query descriptors against labeled references.

    Args:
        labeled_descriptors: Reference entries. Duplicate labels are kept
                             as separate entries.
        distance_threshold: Distances at or above this are unknown (default 0.6).
        unknown_label: Label returned when nothing is close enough.
    """

    def __init__(
        self,
        labeled_descriptors: Iterable[LabeledFaceDescriptors],
        distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD,
        unknown_label: str = UNKNOWN_LABEL,
    ):
        self.labeled_descriptors = [ld for ld in labeled_descriptors if ld.descriptors]
        self.distance_threshold = float(distance_threshold)
        self.unknown_label = unknown_label

    @classmethod
    def from_records(
        cls,
        records: Iterable,
        distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD,
        unknown_label: str = UNKNOWN_LABEL,
    ) -> "FaceMatcher":
        """Build one labeled entry per stored FaceRecord."""
        labeled = [
            LabeledFaceDescriptors(record.name, [np.asarray(record.descriptor, dtype=np.float32)])
            for record in records
        ]
        return cls(labeled, distance_threshold=distance_threshold, unknown_label=unknown_label)

    @property
    def is_empty(self) -> bool:
        return not self.labeled_descriptors

    def _mean_distance(self, query: np.ndarray, entry: LabeledFaceDescriptors) -> Optional[float]:
        distances = []
        for reference in entry.descriptors:
            if reference.shape != query.shape:
                logger.warning(
                    f"Descriptor dimension mismatch for '{entry.label}': "
                    f"query={query.shape[0]}, reference={reference.shape[0]}"
                )
                continue
            distances.append(euclidean_distance(query, reference))
        if not distances:
            return None
        return sum(distances) / len(distances)

    def find_best_match(self, descriptor: Optional[np.ndarray]) -> FaceMatch:
        """
        Find the closest labeled entry for a query descriptor.

        Returns:
            FaceMatch with the winning label, or the unknown label when the
            index is empty, the descriptor is missing, or the best distance
            is not strictly below the threshold.
        """
        no_match = FaceMatch(label=self.unknown_label, distance=float("inf"), unknown_label=self.unknown_label)
        if descriptor is None or self.is_empty:
            return no_match

        query = np.asarray(descriptor, dtype=np.float32).ravel()

        best: Optional[FaceMatch] = None
        for entry in self.labeled_descriptors:
            distance = self._mean_distance(query, entry)
            if distance is None:
                continue
            if best is None or distance < best.distance:
                best = FaceMatch(label=entry.label, distance=distance, unknown_label=self.unknown_label)

        if best is None:
            return no_match
        if best.distance >= self.distance_threshold:
            return FaceMatch(label=self.unknown_label, distance=best.distance, unknown_label=self.unknown_label)
        return best
