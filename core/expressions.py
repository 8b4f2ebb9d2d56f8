"""
Facial Expression Scoring

Turns MediaPipe Face Landmarker blendshapes into a small set of expression
probabilities (neutral, happy, sad, angry, surprised, disgusted).

The blendshape model is the pretrained part; this module only groups its
coefficients. Each non-neutral expression is the mean of its blendshapes,
neutral is whatever is left over, and the set is normalized to sum to 1.

Usage:
    from core.expressions import FaceExpressions

    expressions = FaceExpressions.from_blendshapes(result.face_blendshapes[0])
    if expressions.dominant == "happy":
        ...
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple


NEUTRAL = "neutral"
HAPPY = "happy"

# Blendshape names (MediaPipe ARKit-style) grouped per expression
EXPRESSION_BLENDSHAPES = {
    HAPPY: ("mouthSmileLeft", "mouthSmileRight"),
    "sad": ("mouthFrownLeft", "mouthFrownRight"),
    "angry": ("browDownLeft", "browDownRight"),
    "surprised": ("jawOpen", "browInnerUp"),
    "disgusted": ("noseSneerLeft", "noseSneerRight"),
}


@dataclass
class FaceExpressions:
    """
    Expression probabilities for one detected face.

    Attributes:
        scores: Mapping of expression name to probability in [0, 1].
                Values sum to 1 when built via from_scores/from_blendshapes.
    """

    scores: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_scores(cls, raw_scores: Dict[str, float]) -> "FaceExpressions":
        """
        Build from raw non-neutral scores. Neutral is derived from the
        strongest expression and the result is normalized.
        """
        scores = {name: max(0.0, min(1.0, float(raw_scores.get(name, 0.0))))
                  for name in EXPRESSION_BLENDSHAPES}
        strongest = max(scores.values()) if scores else 0.0
        scores[NEUTRAL] = 1.0 - strongest

        # total >= 1 because neutral + strongest == 1
        total = sum(scores.values())
        return cls(scores={name: value / total for name, value in scores.items()})

    @classmethod
    def from_blendshapes(cls, categories: Iterable) -> "FaceExpressions":
        """
        Build from MediaPipe blendshape categories.

        Args:
            categories: Iterable of objects with `category_name` and `score`
                        (mediapipe.tasks.python.components.containers.Category).
        """
        coefficients = {c.category_name: float(c.score) for c in categories}

        raw = {}
        for name, shapes in EXPRESSION_BLENDSHAPES.items():
            values = [coefficients.get(s, 0.0) for s in shapes]
            raw[name] = sum(values) / len(values)

        return cls.from_scores(raw)

    def as_sorted_list(self) -> List[Tuple[str, float]]:
        """Expressions ordered by probability, highest first."""
        return sorted(self.scores.items(), key=lambda item: item[1], reverse=True)

    @property
    def dominant(self) -> str:
        """Name of the most probable expression (neutral when empty)."""
        ranked = self.as_sorted_list()
        return ranked[0][0] if ranked else NEUTRAL

    def is_smiling(self) -> bool:
        return self.dominant == HAPPY

    def is_neutral(self) -> bool:
        return self.dominant == NEUTRAL
