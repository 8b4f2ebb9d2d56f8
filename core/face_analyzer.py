"""
Face Analysis Module

Wraps the pretrained face libraries behind one capability interface so the
screen controllers never touch MediaPipe or the embedder directly:

- Face localization and 478 landmarks: MediaPipe Face Landmarker (Tasks API)
- Expressions: MediaPipe blendshapes, grouped by core.expressions
- Descriptors: core.face_embedder (insightface / facenet-pytorch)

The FaceAnalyzer ABC is what controllers depend on. MediaPipeFaceAnalyzer is
the real implementation; StubFaceAnalyzer returns scripted results for tests
and for working on the UI without model files.

Usage:
    from core.face_analyzer import get_face_analyzer

    analyzer = get_face_analyzer()
    analyzer.load_models()
    faces = analyzer.detect_all_faces(frame, with_expressions=True, with_descriptors=True)
"""

import logging
import urllib.request
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import cv2
import numpy as np

from core.expressions import FaceExpressions

logger = logging.getLogger(__name__)


# Six-point eye contours in MediaPipe Face Mesh indexing (corner, 2 upper, corner, 2 lower).
# "left" is the eye on the left side of the image, matching the 68-point convention.
LEFT_EYE_INDICES = (33, 160, 158, 133, 153, 144)
RIGHT_EYE_INDICES = (362, 385, 387, 263, 373, 380)

MODEL_URL = "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/face_landmarker.task"
MODEL_FILENAME = "face_landmarker.task"


class ModelLoadError(RuntimeError):
    """Raised when a pretrained model cannot be loaded."""


@dataclass
class FaceAnalysis:
    """
    One detected face.

    Attributes:
        bbox: Bounding box (x1, y1, x2, y2) in pixels.
        landmarks_2d: Facial landmarks in pixel coordinates, shape (N, 2).
        score: Detection confidence estimate (0.0 to 1.0).
        expressions: Expression probabilities, when requested.
        descriptor: L2-normalized descriptor, when requested.
    """

    bbox: Tuple[int, int, int, int]
    landmarks_2d: np.ndarray
    score: float = 1.0
    expressions: Optional[FaceExpressions] = None
    descriptor: Optional[np.ndarray] = None

    @property
    def area(self) -> int:
        x1, y1, x2, y2 = self.bbox
        return max(0, x2 - x1) * max(0, y2 - y1)

    def left_eye(self) -> np.ndarray:
        """Six (x, y) points outlining the image-left eye."""
        return self.landmarks_2d[list(LEFT_EYE_INDICES)]

    def right_eye(self) -> np.ndarray:
        """Six (x, y) points outlining the image-right eye."""
        return self.landmarks_2d[list(RIGHT_EYE_INDICES)]


class FaceAnalyzer(ABC):
    """
    Abstract capability for face detection, expressions and descriptors.

    Implementations own model loading; controllers only call the
    detect_* methods on BGR frames.
    """

    @abstractmethod
    def load_models(self) -> None:
        """Load every model needed by detect_*. Raises ModelLoadError."""

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """True once load_models() succeeded."""

    @abstractmethod
    def detect_all_faces(
        self,
        frame: np.ndarray,
        with_expressions: bool = False,
        with_descriptors: bool = False,
    ) -> List[FaceAnalysis]:
        """
        Detect every face in a BGR frame.

        Returns:
            List of FaceAnalysis, empty when no face is found.
        """

    def detect_single_face(
        self,
        frame: np.ndarray,
        with_descriptor: bool = True,
    ) -> Optional[FaceAnalysis]:
        """Detect the largest face in the frame, or None."""
        faces = self.detect_all_faces(frame, with_descriptors=with_descriptor)
        if not faces:
            return None
        return max(faces, key=lambda f: f.area)

    def close(self) -> None:
        """Release model resources."""


def get_model_path(models_dir: Path, url: str = MODEL_URL) -> Path:
    """
    Get the path to the MediaPipe face landmarker model file.
    Downloads the model if it doesn't exist locally.
    """
    models_dir.mkdir(parents=True, exist_ok=True)
    model_path = models_dir / MODEL_FILENAME

    if not model_path.exists():
        logger.info(f"Downloading MediaPipe face landmarker model from {url}")
        urllib.request.urlretrieve(url, str(model_path))
        logger.info(f"Saved face landmarker model to {model_path}")

    return model_path


class MediaPipeFaceAnalyzer(FaceAnalyzer):
    """
    FaceAnalyzer backed by MediaPipe Face Landmarker and FaceEmbedder.

    Args:
        config: Analyzer configuration:
            - max_faces: Maximum faces per frame (default 5)
            - min_detection_confidence: Landmarker detection threshold
            - face_padding: Crop padding ratio for descriptor extraction
        models_config: Model asset configuration (dir, face_landmarker_url).
        embedder_config: Passed to FaceEmbedder.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        models_config: Optional[Dict[str, Any]] = None,
        embedder_config: Optional[Dict[str, Any]] = None,
    ):
        config = config or {}
        models_config = models_config or {}

        self.max_faces = config.get("max_faces", 5)
        self.min_detection_confidence = config.get("min_detection_confidence", 0.5)
        self.face_padding = config.get("face_padding", 0.2)

        self.models_dir = Path(models_config.get("dir", "storage/models"))
        self.model_url = models_config.get("face_landmarker_url", MODEL_URL)

        self.embedder_config = dict(embedder_config or {})
        self.embedder_config.setdefault("models_dir", str(self.models_dir))

        self._landmarker = None
        self._embedder = None

    @property
    def is_loaded(self) -> bool:
        return self._landmarker is not None and self._embedder is not None

    def load_models(self) -> None:
        if self.is_loaded:
            return

        try:
            from mediapipe.tasks import python as mp_tasks
            from mediapipe.tasks.python import vision
            from core.face_embedder import FaceEmbedder

            model_path = get_model_path(self.models_dir, self.model_url)
            options = vision.FaceLandmarkerOptions(
                base_options=mp_tasks.BaseOptions(model_asset_path=str(model_path)),
                running_mode=vision.RunningMode.IMAGE,
                num_faces=self.max_faces,
                min_face_detection_confidence=self.min_detection_confidence,
                min_face_presence_confidence=self.min_detection_confidence,
                output_face_blendshapes=True,
                output_facial_transformation_matrixes=False,
            )
            landmarker = vision.FaceLandmarker.create_from_options(options)

            embedder = FaceEmbedder(self.embedder_config)
            embedder.load_model()
        except Exception as e:
            logger.error(f"Error loading models: {e}")
            raise ModelLoadError(str(e)) from e

        self._landmarker = landmarker
        self._embedder = embedder
        logger.info("Face analyzer models loaded")

    def detect_all_faces(
        self,
        frame: np.ndarray,
        with_expressions: bool = False,
        with_descriptors: bool = False,
    ) -> List[FaceAnalysis]:
        faces = self._detect(frame, with_expressions)
        if with_descriptors:
            for face in faces:
                face.descriptor = self._descriptor_for(frame, face)
        return faces

    def detect_single_face(
        self,
        frame: np.ndarray,
        with_descriptor: bool = True,
    ) -> Optional[FaceAnalysis]:
        faces = self._detect(frame, with_expressions=False)
        if not faces:
            return None
        face = max(faces, key=lambda f: f.area)
        if with_descriptor:
            face.descriptor = self._descriptor_for(frame, face)
        return face

    def _detect(self, frame: np.ndarray, with_expressions: bool) -> List[FaceAnalysis]:
        if not self.is_loaded:
            self.load_models()

        import mediapipe as mp

        h, w = frame.shape[:2]
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        results = self._landmarker.detect(mp_image)

        if not results.face_landmarks:
            return []

        faces = []
        for i, face_landmarks in enumerate(results.face_landmarks):
            landmarks_2d = np.array(
                [[lm.x * w, lm.y * h] for lm in face_landmarks], dtype=np.float32
            )
            expressions = None
            if with_expressions and results.face_blendshapes:
                expressions = FaceExpressions.from_blendshapes(results.face_blendshapes[i])

            faces.append(
                FaceAnalysis(
                    bbox=_bbox_from_landmarks(landmarks_2d, w, h),
                    landmarks_2d=landmarks_2d,
                    score=_estimate_confidence(landmarks_2d, w, h),
                    expressions=expressions,
                )
            )
        return faces

    def _descriptor_for(self, frame: np.ndarray, face: FaceAnalysis) -> Optional[np.ndarray]:
        return self._embedder.extract_descriptor(crop_face_region(frame, face.bbox, self.face_padding))

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None


class StubFaceAnalyzer(FaceAnalyzer):
    """
    Scripted FaceAnalyzer.

    Each detect call pops the next queued result; once the queue is empty the
    responder (if any) is called with the frame, otherwise `default` is
    returned. Every call is recorded in `calls`.

    Example:
        analyzer = StubFaceAnalyzer([[neutral_face], [smiling_face]])
    """

    def __init__(
        self,
        responses: Optional[Iterable[List[FaceAnalysis]]] = None,
        responder: Optional[Callable[[np.ndarray], List[FaceAnalysis]]] = None,
        default: Optional[List[FaceAnalysis]] = None,
        load_error: Optional[Exception] = None,
    ):
        self._responses = deque(responses or [])
        self._responder = responder
        self._default = list(default or [])
        self._load_error = load_error
        self._loaded = False
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: List[FaceAnalysis]) -> None:
        self._responses.extend(responses)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load_models(self) -> None:
        if self._load_error is not None:
            raise ModelLoadError(str(self._load_error)) from self._load_error
        self._loaded = True

    def detect_all_faces(
        self,
        frame: np.ndarray,
        with_expressions: bool = False,
        with_descriptors: bool = False,
    ) -> List[FaceAnalysis]:
        self.calls.append({"with_expressions": with_expressions, "with_descriptors": with_descriptors})
        if self._responses:
            return list(self._responses.popleft())
        if self._responder is not None:
            return list(self._responder(frame))
        return list(self._default)


def crop_face_region(
    frame: np.ndarray,
    bbox: Tuple[int, int, int, int],
    padding: float = 0.2,
) -> np.ndarray:
    """
    Crop a face region from an image with padding, clamped to the frame.

    Args:
        frame: Original image (BGR format).
        bbox: Face box (x1, y1, x2, y2).
        padding: Padding ratio on each side (0.2 = 20% of face size).
    """
    h, w = frame.shape[:2]
    x1, y1, x2, y2 = bbox

    pad_x = int((x2 - x1) * padding)
    pad_y = int((y2 - y1) * padding)

    crop_x1 = max(0, x1 - pad_x)
    crop_y1 = max(0, y1 - pad_y)
    crop_x2 = min(w, x2 + pad_x)
    crop_y2 = min(h, y2 + pad_y)

    return frame[crop_y1:crop_y2, crop_x1:crop_x2]


def _bbox_from_landmarks(landmarks_2d: np.ndarray, width: int, height: int) -> Tuple[int, int, int, int]:
    x1 = max(0, int(np.min(landmarks_2d[:, 0])))
    y1 = max(0, int(np.min(landmarks_2d[:, 1])))
    x2 = min(width, int(np.max(landmarks_2d[:, 0])))
    y2 = min(height, int(np.max(landmarks_2d[:, 1])))
    return (x1, y1, x2, y2)


def _estimate_confidence(landmarks_2d: np.ndarray, width: int, height: int) -> float:
    """
    Rough confidence from landmark placement: faces cut off by the frame
    edge or covering a tiny share of the image score lower.
    """
    margin = 5
    in_bounds = (
        np.all(landmarks_2d[:, 0] >= margin)
        and np.all(landmarks_2d[:, 0] <= width - margin)
        and np.all(landmarks_2d[:, 1] >= margin)
        and np.all(landmarks_2d[:, 1] <= height - margin)
    )

    face_width = np.max(landmarks_2d[:, 0]) - np.min(landmarks_2d[:, 0])
    face_height = np.max(landmarks_2d[:, 1]) - np.min(landmarks_2d[:, 1])
    size_ratio = (face_width * face_height) / float(width * height)

    confidence = 0.95 if in_bounds else 0.7
    if size_ratio < 0.01:
        confidence *= 0.5
    elif size_ratio < 0.05:
        confidence *= 0.8

    return float(min(1.0, max(0.0, confidence)))


def get_face_analyzer(config: Optional[Dict[str, Any]] = None) -> FaceAnalyzer:
    """
    Factory for the configured FaceAnalyzer.

    Args:
        config: Full configuration dict. If None, loads from config.yaml.
    """
    if config is None:
        from core.config import get_config
        config = get_config()

    analyzer_config = config.get("analyzer", {})
    backend = analyzer_config.get("backend", "mediapipe")

    if backend == "stub":
        logger.warning("Using StubFaceAnalyzer: no faces will be detected")
        return StubFaceAnalyzer()

    models_config = dict(config.get("models", {}))
    if "dir" in models_config:
        from core.config import resolve_path
        models_config["dir"] = str(resolve_path(models_config["dir"]))

    return MediaPipeFaceAnalyzer(
        config=analyzer_config,
        models_config=models_config,
        embedder_config=config.get("embedder", {}),
    )
