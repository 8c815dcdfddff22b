"""Model loading and readiness state.

The three pretrained dlib networks are loaded once at startup. The outcome is
returned as a ``StartupResult`` for the entry point to inspect, and the
service's readiness lives in a ``ModelState`` object held by the application.
"""

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import dlib

from ..config import Settings
from .face_detection import FaceDetector, ModelLoadError

logger = logging.getLogger(__name__)

FACE_DETECTOR_MODEL = "mmod_human_face_detector.dat"
LANDMARK_MODEL = "shape_predictor_68_face_landmarks.dat"
RECOGNITION_MODEL = "dlib_face_recognition_resnet_model_v1.dat"

MODEL_FILES = (FACE_DETECTOR_MODEL, LANDMARK_MODEL, RECOGNITION_MODEL)


class Phase(enum.Enum):
    LOADING = "loading"
    READY = "ready"


class ModelState:
    """Readiness of the face models. Moves from LOADING to READY once."""

    def __init__(self) -> None:
        self.phase = Phase.LOADING
        self.detector: Optional[FaceDetector] = None

    @classmethod
    def ready(cls, detector: FaceDetector) -> "ModelState":
        state = cls()
        state.mark_ready(detector)
        return state

    @property
    def is_ready(self) -> bool:
        return self.phase is Phase.READY

    def mark_ready(self, detector: FaceDetector) -> None:
        if self.is_ready:
            raise RuntimeError("Models are already loaded")
        self.detector = detector
        self.phase = Phase.READY


@dataclass
class StartupResult:
    detector: Optional[FaceDetector] = None
    error: Optional[ModelLoadError] = None

    @property
    def ok(self) -> bool:
        return self.detector is not None and self.error is None


def _load_model(models_dir: Path, filename: str, loader, description: str):
    path = models_dir / filename
    if not path.is_file():
        raise ModelLoadError(f"Model file not found: {path}")

    logger.info(f"Loading {description} model...")
    try:
        model = loader(str(path))
    except RuntimeError as e:
        raise ModelLoadError(f"Failed to load {description} model from {path}: {e}")
    logger.info(f"{description} model loaded.")
    return model


def load_models(settings: Settings) -> StartupResult:
    """Load the detector, landmark and recognition networks in order.

    Args:
        settings: Service settings; ``models_dir`` holds the weight files.

    Returns:
        A result holding either a ready ``FaceDetector`` or the
        ``ModelLoadError`` that stopped loading.
    """
    models_dir = Path(settings.models_dir)
    logger.info(f"Loading face models from {models_dir}...")

    try:
        cnn_detector = _load_model(
            models_dir, FACE_DETECTOR_MODEL, dlib.cnn_face_detection_model_v1, "Face detector"
        )
        shape_predictor = _load_model(
            models_dir, LANDMARK_MODEL, dlib.shape_predictor, "Face landmark 68"
        )
        face_encoder = _load_model(
            models_dir, RECOGNITION_MODEL, dlib.face_recognition_model_v1, "Face recognition"
        )
    except ModelLoadError as e:
        logger.error(f"Failed to load models: {e}")
        return StartupResult(error=e)

    use_cnn = settings.detector_model == "cnn"
    detector = FaceDetector(
        face_detector=cnn_detector if use_cnn else dlib.get_frontal_face_detector(),
        shape_predictor=shape_predictor,
        face_encoder=face_encoder,
        use_cnn=use_cnn,
        upsample=settings.upsample,
        num_jitters=settings.num_jitters,
    )
    logger.info(f"All face models loaded successfully ({settings.detector_model} detector).")
    return StartupResult(detector=detector)
