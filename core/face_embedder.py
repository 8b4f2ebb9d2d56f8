"""
Face Descriptor Extraction

Computes the fixed-length face descriptor stored for each enrolled user and
compared by the matcher. The network is pretrained; this module only loads
it and feeds it face crops.

Supports two backends:
  - insightface (preferred): buffalo_l model bundle with SCRFD + ArcFace R100
  - facenet-pytorch (fallback): InceptionResnetV1 with VGGFace2 pretraining

Both produce L2-normalized 512-dim vectors.

Usage:
    from core.face_embedder import FaceEmbedder

    embedder = FaceEmbedder(config)
    embedder.load_model()
    descriptor = embedder.extract_descriptor(face_crop_bgr)  # (512,) or None
"""

import logging
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Backend availability flags
_INSIGHTFACE_AVAILABLE = False
_FACENET_AVAILABLE = False

try:
    from insightface.app import FaceAnalysis
    _INSIGHTFACE_AVAILABLE = True
except ImportError:
    pass

try:
    from facenet_pytorch import InceptionResnetV1
    import torch
    _FACENET_AVAILABLE = True
except ImportError:
    pass


ARCFACE_INPUT_SIZE = (112, 112)
FACENET_INPUT_SIZE = (160, 160)


def _l2_normalize(vector: np.ndarray) -> np.ndarray:
    vector = np.asarray(vector, dtype=np.float32).ravel()
    norm = np.linalg.norm(vector)
    if norm > 1e-8:
        vector = vector / norm
    return vector.astype(np.float32)


class FaceEmbedder:
    """
    Extract face descriptors from face crops.

    Args:
        config: Dictionary with keys:
            - model: insightface model pack ("buffalo_l", "buffalo_sc")
            - embedding_dim: Expected descriptor dimension (default 512)
            - device: "cuda" or "cpu"
            - backend: "insightface", "facenet" or "auto"
            - models_dir: Optional root for downloaded insightface packs
    """

    def __init__(self, config: Optional[dict] = None):
        if config is None:
            config = {}

        self.model_name = config.get("model", "buffalo_l")
        self.embedding_dim = config.get("embedding_dim", 512)
        self.device = config.get("device", "cpu")
        self.models_dir = config.get("models_dir")

        requested_backend = config.get("backend", "auto")
        if requested_backend == "auto":
            if _INSIGHTFACE_AVAILABLE:
                self.backend = "insightface"
            elif _FACENET_AVAILABLE:
                self.backend = "facenet"
            else:
                raise ImportError(
                    "No face descriptor backend available. "
                    "Install insightface: pip install insightface onnxruntime\n"
                    "Or facenet-pytorch: pip install facenet-pytorch"
                )
        else:
            self.backend = requested_backend

        self._model = None
        self._recognition = None
        self.is_loaded = False

    def load_model(self) -> None:
        """Load the recognition model. Called lazily by extract_descriptor."""
        if self.is_loaded:
            return

        if self.backend == "insightface":
            self._load_insightface()
        elif self.backend == "facenet":
            self._load_facenet()
        else:
            raise ValueError(f"Unknown backend: {self.backend}")

        self.is_loaded = True
        logger.info(f"FaceEmbedder loaded (backend={self.backend}, model={self.model_name})")

    def _load_insightface(self) -> None:
        if not _INSIGHTFACE_AVAILABLE:
            raise ImportError("insightface not installed. Run: pip install insightface onnxruntime")

        if self.device == "cuda":
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]
        else:
            providers = ["CPUExecutionProvider"]

        kwargs = {"name": self.model_name, "providers": providers}
        if self.models_dir:
            kwargs["root"] = str(self.models_dir)

        self._model = FaceAnalysis(**kwargs)
        self._model.prepare(ctx_id=0 if self.device == "cuda" else -1, det_size=(320, 320))

        # Keep a handle on the ArcFace network for crops SCRFD cannot localize
        self._recognition = self._model.models.get("recognition")

    def _load_facenet(self) -> None:
        if not _FACENET_AVAILABLE:
            raise ImportError("facenet-pytorch not installed. Run: pip install facenet-pytorch")

        device = torch.device(self.device if torch.cuda.is_available() else "cpu")
        self._model = InceptionResnetV1(pretrained="vggface2").eval().to(device)

    def extract_descriptor(self, face_image: np.ndarray) -> Optional[np.ndarray]:
        """
        Compute the descriptor of a face crop.

        Args:
            face_image: Face crop in BGR format (H, W, 3), uint8.

        Returns:
            L2-normalized float32 vector, or None if the crop is empty.
        """
        if face_image is None or face_image.size == 0:
            logger.warning("Empty face crop, no descriptor computed")
            return None

        if not self.is_loaded:
            self.load_model()

        if self.backend == "insightface":
            return self._extract_insightface(face_image)
        return self._extract_facenet(face_image)

    def _extract_insightface(self, face_image: np.ndarray) -> Optional[np.ndarray]:
        faces = self._model.get(face_image)
        if faces:
            best_face = max(faces, key=lambda f: f.det_score)
            return best_face.normed_embedding.astype(np.float32)

        # The crop already comes from the landmarker, so run ArcFace on it directly
        logger.debug("SCRFD found no face in crop, using direct ArcFace bypass")
        if self._recognition is None:
            logger.error("No recognition model found in insightface bundle")
            return None

        aligned = cv2.resize(face_image, ARCFACE_INPUT_SIZE, interpolation=cv2.INTER_AREA)
        blob = cv2.dnn.blobFromImage(
            aligned, 1.0 / 127.5, ARCFACE_INPUT_SIZE, (127.5, 127.5, 127.5), swapRB=True
        )
        session = self._recognition.session
        input_name = session.get_inputs()[0].name
        output_name = session.get_outputs()[0].name
        pred = session.run([output_name], {input_name: blob})[0]
        return _l2_normalize(pred)

    def _extract_facenet(self, face_image: np.ndarray) -> Optional[np.ndarray]:
        rgb = cv2.cvtColor(face_image, cv2.COLOR_BGR2RGB)
        resized = cv2.resize(rgb, FACENET_INPUT_SIZE, interpolation=cv2.INTER_AREA)

        # facenet-pytorch convention: CHW float in [-1, 1]
        tensor = torch.from_numpy(resized).permute(2, 0, 1).float()
        tensor = ((tensor - 127.5) / 128.0).unsqueeze(0)

        device = next(self._model.parameters()).device
        with torch.no_grad():
            embedding = self._model(tensor.to(device)).cpu().numpy()

        return _l2_normalize(embedding)
