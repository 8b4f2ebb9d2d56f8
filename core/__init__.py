"""
Core Module for the Face Capture Demo

This package contains everything except the Gradio UI: configuration,
the face analyzer capability, the face record store, matching, the blink
heuristic, and the three screen controllers.

Main components:
    - config: Configuration loading and management
    - face_analyzer: Detection, landmarks, expressions and descriptors
    - face_store: Append-only record list under the "faceData" key
    - matching: Nearest-descriptor identification
    - liveness: Logged blink heuristic for the scan screen
    - controllers: Enrollment, detection and scan workflows

Usage:
    from core.config import get_config
    from core.face_analyzer import get_face_analyzer
    from core.face_store import get_face_store
    from core.controllers import EnrollmentController
"""

from core.config import (
    get_config,
    get_section,
    get_analyzer_config,
    get_embedder_config,
    get_matching_config,
    get_storage_config,
    get_enrollment_config,
    get_detection_config,
    get_scan_config,
    get_ui_config,
)

from core.expressions import FaceExpressions

from core.face_analyzer import (
    FaceAnalysis,
    FaceAnalyzer,
    MediaPipeFaceAnalyzer,
    ModelLoadError,
    StubFaceAnalyzer,
    get_face_analyzer,
)

from core.face_store import (
    FaceRecord,
    FaceStore,
    FaceStoreError,
    KeyValueFaceStore,
    get_face_store,
)

from core.matching import FaceMatch, FaceMatcher

from core.liveness import BlinkHeuristic, LivenessReport

__all__ = [
    # Configuration
    "get_config",
    "get_section",
    "get_analyzer_config",
    "get_embedder_config",
    "get_matching_config",
    "get_storage_config",
    "get_enrollment_config",
    "get_detection_config",
    "get_scan_config",
    "get_ui_config",
    # Face analysis
    "FaceExpressions",
    "FaceAnalysis",
    "FaceAnalyzer",
    "MediaPipeFaceAnalyzer",
    "ModelLoadError",
    "StubFaceAnalyzer",
    "get_face_analyzer",
    # Storage
    "FaceRecord",
    "FaceStore",
    "FaceStoreError",
    "KeyValueFaceStore",
    "get_face_store",
    # Matching
    "FaceMatch",
    "FaceMatcher",
    # Liveness
    "BlinkHeuristic",
    "LivenessReport",
]
