"""
Shared fixtures for the face capture demo tests.

No real models are loaded: controllers are driven with StubFaceAnalyzer,
an in-memory face store, and a manually advanced clock.
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.expressions import FaceExpressions
from core.face_analyzer import LEFT_EYE_INDICES, RIGHT_EYE_INDICES, FaceAnalysis, StubFaceAnalyzer
from core.face_store import KeyValueFaceStore, MemoryKeyValueStore


N_LANDMARKS = 478


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_landmarks(eye_y: float = 200.0) -> np.ndarray:
    """Flat landmark grid with both eyes placed at the given y coordinate."""
    landmarks = np.zeros((N_LANDMARKS, 2), dtype=np.float32)
    landmarks[:, 0] = np.linspace(220, 420, N_LANDMARKS)
    landmarks[:, 1] = np.linspace(140, 340, N_LANDMARKS)
    for i in LEFT_EYE_INDICES:
        landmarks[i] = (270.0, eye_y)
    for i in RIGHT_EYE_INDICES:
        landmarks[i] = (370.0, eye_y)
    return landmarks


def make_face(
    expression: str = "neutral",
    descriptor=None,
    bbox=(220, 140, 420, 340),
    eye_y: float = 200.0,
) -> FaceAnalysis:
    """Build a detected face with the given dominant expression."""
    if expression == "neutral":
        expressions = FaceExpressions.from_scores({})
    else:
        expressions = FaceExpressions.from_scores({expression: 0.9})

    if descriptor is not None:
        descriptor = np.asarray(descriptor, dtype=np.float32)

    return FaceAnalysis(
        bbox=bbox,
        landmarks_2d=make_landmarks(eye_y),
        score=0.95,
        expressions=expressions,
        descriptor=descriptor,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def frame():
    """Blank 640x480 BGR frame."""
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def analyzer():
    """Loaded stub analyzer with an empty response queue."""
    stub = StubFaceAnalyzer()
    stub.load_models()
    return stub


@pytest.fixture
def store():
    return KeyValueFaceStore(MemoryKeyValueStore())
