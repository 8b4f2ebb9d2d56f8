"""
Screen controllers: enrollment, continuous detection, and scan.

Each controller is independent and only talks to the FaceAnalyzer
capability and (for enrollment/detection) a FaceStore.
"""

from core.controllers.enrollment import EnrollmentController, EnrollmentError, EnrollmentStatus
from core.controllers.detection import DetectionController, DetectionFrame
from core.controllers.scan import ScanController, ScanFrame

__all__ = [
    "EnrollmentController",
    "EnrollmentError",
    "EnrollmentStatus",
    "DetectionController",
    "DetectionFrame",
    "ScanController",
    "ScanFrame",
]
