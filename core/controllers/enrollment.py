"""
Enrollment Controller

Drives the enrollment screen:

1. Wait until the camera and models are ready (mark_ready).
2. capture_face(name, frame): validate the name, then look for a face with
   a neutral expression. Its descriptor is held back.
3. poll(frame), once per second: look for a smile. On the first smiling
   frame the held descriptors are appended to the face store. After the
   timeout (10 s) the attempt expires and nothing is stored.

Which descriptor gets stored is configurable. "neutral" (default) stores
the descriptor taken at the neutral moment; "smile" stores the one taken
from the smiling frame instead.

The controller has no UI dependencies: the Gradio layer calls it and shows
prompt_message, and turns EnrollmentError into an alert.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from core.face_analyzer import FaceAnalyzer
from core.face_store import FaceRecord, FaceStore, FaceStoreError

logger = logging.getLogger(__name__)

PROMPT_SMILE = "Please smile to store your face data."
PROMPT_STORED = "Face stored successfully!"
PROMPT_EXPIRED = "Time expired. Please try again."
PROMPT_STORE_FAILED = "Could not store face data. Please try again."

ALERT_NO_NAME = "Please enter a name."
ALERT_ALREADY_STORED = "Face data has already been stored."
ALERT_NO_NEUTRAL = "Neutral face not detected. Please try again."
ALERT_NOT_READY = "Camera is not ready yet."
ALERT_BUSY = "A capture is already in progress."
ALERT_NO_DESCRIPTOR = "Could not read your face. Please try again."
ALERT_DETECTION_FAILED = "Face detection failed. Please try again."

DESCRIPTOR_SOURCES = ("neutral", "smile")


class EnrollmentError(Exception):
    """User-facing enrollment failure (shown as an alert)."""


@dataclass
class EnrollmentStatus:
    """Snapshot of the enrollment screen flags."""
    loading: bool
    processing: bool
    capturing: bool
    prompt_message: str
    face_data_stored: bool
    seconds_remaining: Optional[float] = None


class EnrollmentController:
    """
    Enrollment workflow for one screen session.

    Args:
        analyzer: Face analyzer capability.
        store: Where enrolled records are appended.
        config: Enrollment configuration:
            - smile_timeout_sec: Smile window length (default 10)
            - smile_poll_interval_sec: Poll cadence for the UI timer (default 1)
            - descriptor_source: "neutral" or "smile" (default "neutral")
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        analyzer: FaceAnalyzer,
        store: FaceStore,
        config: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or {}
        self.analyzer = analyzer
        self.store = store
        self.clock = clock

        self.smile_timeout_sec = float(config.get("smile_timeout_sec", 10.0))
        self.poll_interval_sec = float(config.get("smile_poll_interval_sec", 1.0))
        self.descriptor_source = config.get("descriptor_source", "neutral")
        if self.descriptor_source not in DESCRIPTOR_SOURCES:
            raise ValueError(
                f"descriptor_source must be one of {DESCRIPTOR_SOURCES}, got {self.descriptor_source!r}"
            )

        self.loading = True
        self.processing = False
        self.capturing = False
        self.prompt_message = ""
        self.face_data_stored = False

        self._name: Optional[str] = None
        self._neutral_descriptors: List[np.ndarray] = []
        self._deadline: Optional[float] = None

    def mark_ready(self) -> None:
        """Camera and models are up; the capture button can be used."""
        self.loading = False

    @property
    def seconds_remaining(self) -> Optional[float]:
        if not self.capturing or self._deadline is None:
            return None
        return max(0.0, self._deadline - self.clock())

    def status(self) -> EnrollmentStatus:
        return EnrollmentStatus(
            loading=self.loading,
            processing=self.processing,
            capturing=self.capturing,
            prompt_message=self.prompt_message,
            face_data_stored=self.face_data_stored,
            seconds_remaining=self.seconds_remaining,
        )

    def capture_face(self, name: Optional[str], frame: Optional[np.ndarray]) -> str:
        """
        Start an enrollment attempt on the current frame.

        Returns:
            The prompt to show while waiting for a smile.

        Raises:
            EnrollmentError: Empty name, already stored, busy, camera not
                             ready, or no neutral face in the frame.
        """
        name = (name or "").strip()
        if not name:
            raise EnrollmentError(ALERT_NO_NAME)

        if self.loading or frame is None:
            raise EnrollmentError(ALERT_NOT_READY)

        if self.face_data_stored:
            raise EnrollmentError(ALERT_ALREADY_STORED)

        if self.processing:
            raise EnrollmentError(ALERT_BUSY)

        self.processing = True
        self.capturing = True
        self.prompt_message = PROMPT_SMILE

        try:
            faces = self.analyzer.detect_all_faces(
                frame,
                with_expressions=True,
                with_descriptors=self.descriptor_source == "neutral",
            )
        except Exception as e:
            logger.exception("Face detection failed during enrollment")
            self._finish("")
            raise EnrollmentError(ALERT_DETECTION_FAILED) from e

        neutral_faces = [f for f in faces if f.expressions is not None and f.expressions.is_neutral()]
        if not neutral_faces:
            logger.info(f"No neutral face for '{name}' ({len(faces)} face(s) in frame)")
            self._finish("")
            raise EnrollmentError(ALERT_NO_NEUTRAL)

        descriptors = [f.descriptor for f in neutral_faces if f.descriptor is not None]
        if self.descriptor_source == "neutral" and not descriptors:
            logger.warning(f"Neutral face found for '{name}' but no descriptor was computed")
            self._finish("")
            raise EnrollmentError(ALERT_NO_DESCRIPTOR)

        self._name = name
        self._neutral_descriptors = descriptors
        self._deadline = self.clock() + self.smile_timeout_sec

        logger.info(
            f"Neutral face captured for '{name}' ({len(neutral_faces)} face(s)), "
            f"waiting up to {self.smile_timeout_sec:.0f}s for a smile"
        )
        return self.prompt_message

    def poll(self, frame: Optional[np.ndarray]) -> str:
        """
        One smile check. Call on the poll interval while capturing.

        Returns:
            The current prompt message.
        """
        if not self.capturing:
            return self.prompt_message

        if self.clock() >= self._deadline:
            logger.info(f"Smile window expired for '{self._name}'")
            self._finish(PROMPT_EXPIRED)
            return self.prompt_message

        if frame is None:
            return self.prompt_message

        try:
            faces = self.analyzer.detect_all_faces(
                frame,
                with_expressions=True,
                with_descriptors=self.descriptor_source == "smile",
            )
        except Exception as e:
            logger.error(f"Smile detection failed: {e}")
            return self.prompt_message

        smiling_faces = [f for f in faces if f.expressions is not None and f.expressions.is_smiling()]
        if not smiling_faces:
            return self.prompt_message

        if self.descriptor_source == "smile":
            descriptors = [f.descriptor for f in smiling_faces if f.descriptor is not None]
            if not descriptors:
                return self.prompt_message
        else:
            descriptors = self._neutral_descriptors

        self._store(descriptors)
        return self.prompt_message

    def _store(self, descriptors: List[np.ndarray]) -> None:
        records = [
            FaceRecord(name=self._name, descriptor=np.asarray(d, dtype=np.float32).tolist())
            for d in descriptors
        ]
        try:
            self.store.append(records)
        except FaceStoreError as e:
            logger.error(f"Failed to store face data for '{self._name}': {e}")
            self._finish(PROMPT_STORE_FAILED)
            return

        self.face_data_stored = True
        logger.info(f"Enrolled '{self._name}' with {len(records)} descriptor(s)")
        self._finish(PROMPT_STORED)

    def cancel(self) -> None:
        """Stop a running smile window without storing."""
        if self.capturing:
            logger.info("Enrollment capture cancelled")
        self._finish("")

    def reset(self) -> None:
        """Screen teardown: cancel any attempt and allow a new enrollment."""
        self.cancel()
        self.face_data_stored = False
        self._name = None

    def _finish(self, message: str) -> None:
        self.processing = False
        self.capturing = False
        self.prompt_message = message
        self._deadline = None
        self._neutral_descriptors = []
